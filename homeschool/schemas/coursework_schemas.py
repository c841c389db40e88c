# homeschool/schemas/coursework_schemas.py
"""Pydantic schemas for assignments and tasks."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from pydantic import AwareDatetime, BaseModel, Field, model_validator

from .common import ORMModel, TimestampedOut
from ..models.coursework import AssignmentStatus, TaskPriority, TaskStatus


class AttachmentOut(ORMModel):
    id: UUID
    file_name: str
    file_url: str
    content_type: str
    file_size: int
    created_at: datetime


class AssignmentCreate(BaseModel):
    student_id: UUID
    subject_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date: Optional[AwareDatetime] = None
    status: AssignmentStatus = AssignmentStatus.NOT_STARTED


class AssignmentUpdate(BaseModel):
    student_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date: Optional[AwareDatetime] = None
    status: Optional[AssignmentStatus] = None


class AssignmentGrade(BaseModel):
    score: Optional[Decimal] = Field(default=None, ge=0, max_digits=7, decimal_places=2)
    max_score: Optional[Decimal] = Field(default=None, gt=0, max_digits=7, decimal_places=2)
    grade: Optional[str] = Field(default=None, min_length=1, max_length=5)
    feedback: Optional[str] = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def validate_score(self):
        if self.score is None and self.grade is None:
            raise ValueError("Either score or grade is required")
        if self.score is not None and self.max_score is not None and self.score > self.max_score:
            raise ValueError("score cannot exceed max_score")
        return self


class AssignmentOut(TimestampedOut):
    student_id: UUID
    subject_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: AssignmentStatus
    score: Optional[float] = None
    max_score: Optional[float] = None
    grade: Optional[str] = None
    feedback: Optional[str] = None
    completed_at: Optional[datetime] = None
    attachments: List[AttachmentOut] = Field(default_factory=list)


class TaskCreate(BaseModel):
    student_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date: Optional[AwareDatetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING


class TaskUpdate(BaseModel):
    student_id: Optional[UUID] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date: Optional[AwareDatetime] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None


class TaskOut(TimestampedOut):
    student_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: TaskPriority
    status: TaskStatus
    completed_at: Optional[datetime] = None
