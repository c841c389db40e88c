# homeschool/models/lesson_plan.py
from sqlalchemy import Column, String, Integer, Boolean, Text, ForeignKey, Uuid, JSON, Enum
from sqlalchemy.orm import relationship
from .base import Base
import enum


class SharePermission(enum.Enum):
    VIEW = "view"
    COPY = "copy"


class LessonPlan(Base):
    __tablename__ = "lesson_plans"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Uuid, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)
    copied_from_id = Column(Uuid, ForeignKey("lesson_plans.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    grade_level = Column(String(2), nullable=True, index=True)
    objectives = Column(JSON, default=list, nullable=False)
    materials = Column(JSON, default=list, nullable=False)
    content = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False, index=True)

    teacher = relationship("Teacher", lazy="selectin")
    subject = relationship("Subject", lazy="selectin")
    attachments = relationship(
        "LessonPlanAttachment", back_populates="lesson_plan",
        cascade="all, delete-orphan", lazy="selectin",
    )
    shares = relationship("LessonPlanShare", back_populates="lesson_plan", cascade="all, delete-orphan")


class LessonPlanShare(Base):
    __tablename__ = "lesson_plan_shares"

    lesson_plan_id = Column(Uuid, ForeignKey("lesson_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_by_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    shared_with_email = Column(String(255), nullable=False, index=True)
    shared_with_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=True, index=True)
    permission = Column(Enum(SharePermission), default=SharePermission.VIEW, nullable=False)
    message = Column(Text, nullable=True)

    lesson_plan = relationship("LessonPlan", back_populates="shares", lazy="selectin")


class LessonPlanAttachment(Base):
    __tablename__ = "lesson_plan_attachments"

    lesson_plan_id = Column(Uuid, ForeignKey("lesson_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(500), nullable=False)
    content_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)

    lesson_plan = relationship("LessonPlan", back_populates="attachments")
