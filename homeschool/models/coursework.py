# homeschool/models/coursework.py
"""Assignments and to-do tasks."""
from sqlalchemy import Column, String, Integer, Text, ForeignKey, Uuid, Enum, Numeric
from sqlalchemy.orm import relationship
from .base import Base, UTCDateTime
import enum


class AssignmentStatus(enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"


class TaskStatus(enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Assignment(Base):
    __tablename__ = "assignments"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Uuid, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(UTCDateTime, nullable=True, index=True)
    status = Column(Enum(AssignmentStatus), default=AssignmentStatus.NOT_STARTED, nullable=False, index=True)

    # Grading
    score = Column(Numeric(7, 2), nullable=True)
    max_score = Column(Numeric(7, 2), nullable=True)
    grade = Column(String(5), nullable=True)
    feedback = Column(Text, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)

    attachments = relationship(
        "AssignmentAttachment", back_populates="assignment",
        cascade="all, delete-orphan", lazy="selectin",
    )


class AssignmentAttachment(Base):
    __tablename__ = "assignment_attachments"

    assignment_id = Column(Uuid, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(500), nullable=False)
    content_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)

    assignment = relationship("Assignment", back_populates="attachments")


class Task(Base):
    __tablename__ = "tasks"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(UTCDateTime, nullable=True, index=True)
    priority = Column(Enum(TaskPriority), default=TaskPriority.MEDIUM, nullable=False)
    status = Column(Enum(TaskStatus), default=TaskStatus.PENDING, nullable=False, index=True)
    completed_at = Column(UTCDateTime, nullable=True)
