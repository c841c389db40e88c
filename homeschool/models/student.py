# homeschool/models/student.py
from sqlalchemy import Column, String, Boolean, Date, Text, ForeignKey, Uuid
from .base import Base


class Student(Base):
    __tablename__ = "students"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)

    # Basic Information
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    grade_level = Column(String(2), nullable=True, index=True)
    email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    profile_image_url = Column(String(500), nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
