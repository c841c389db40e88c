# homeschool/models/teacher.py
from sqlalchemy import Column, String, Boolean, ForeignKey, Uuid, Enum
from sqlalchemy.orm import relationship
from .base import Base, UTCDateTime
import enum


class TokenPurpose(enum.Enum):
    REFRESH = "refresh"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"


class Teacher(Base):
    """Account owner: the homeschool parent."""
    __tablename__ = "teachers"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20), nullable=True)
    timezone = Column(String(64), default="UTC", nullable=False)
    profile_image_url = Column(String(500), nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(UTCDateTime, nullable=True)

    tokens = relationship("AuthToken", back_populates="teacher", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class AuthToken(Base):
    """Refresh sessions and one-time tokens; only SHA-256 digests are stored."""
    __tablename__ = "auth_tokens"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    purpose = Column(Enum(TokenPurpose), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True)
    expires_at = Column(UTCDateTime, nullable=False)
    used_at = Column(UTCDateTime, nullable=True)
    revoked_at = Column(UTCDateTime, nullable=True)
    user_agent = Column(String(255), nullable=True)

    teacher = relationship("Teacher", back_populates="tokens")
