# homeschool/schemas/lesson_plan_schemas.py
"""Pydantic schemas for lesson plans and sharing."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import GradeLevel, ORMModel, TimestampedOut
from .coursework_schemas import AttachmentOut
from ..models.lesson_plan import SharePermission


def _clean_list(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return values
    cleaned = []
    for value in values:
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


class LessonPlanCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    subject_id: Optional[UUID] = None
    grade_level: Optional[GradeLevel] = None
    objectives: List[str] = Field(default_factory=list, max_length=50)
    materials: List[str] = Field(default_factory=list, max_length=100)
    content: Optional[str] = Field(default=None, max_length=50000)
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=1440)
    tags: List[str] = Field(default_factory=list, max_length=20)
    is_public: bool = False

    @field_validator("objectives", "materials")
    @classmethod
    def clean_items(cls, v):
        return _clean_list(v)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        return _clean_list([tag.lower() for tag in v])


class LessonPlanUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    subject_id: Optional[UUID] = None
    grade_level: Optional[GradeLevel] = None
    objectives: Optional[List[str]] = Field(default=None, max_length=50)
    materials: Optional[List[str]] = Field(default=None, max_length=100)
    content: Optional[str] = Field(default=None, max_length=50000)
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=1440)
    tags: Optional[List[str]] = Field(default=None, max_length=20)
    is_public: Optional[bool] = None

    @field_validator("objectives", "materials")
    @classmethod
    def clean_items(cls, v):
        return _clean_list(v)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        return _clean_list([tag.lower() for tag in v]) if v is not None else v


class AuthorOut(ORMModel):
    id: UUID
    first_name: str
    last_name: str


class LessonPlanOut(TimestampedOut):
    teacher_id: UUID
    author: Optional[AuthorOut] = None
    subject_id: Optional[UUID] = None
    subject_name: Optional[str] = None
    copied_from_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    grade_level: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)
    content: Optional[str] = None
    duration_minutes: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    is_public: bool
    attachments: List[AttachmentOut] = Field(default_factory=list)


class LessonPlanCopy(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)


class ShareRequest(BaseModel):
    emails: List[EmailStr] = Field(..., min_length=1, max_length=20)
    permission: SharePermission = SharePermission.VIEW
    message: Optional[str] = Field(default=None, max_length=1000)


class ShareOut(ORMModel):
    id: UUID
    lesson_plan_id: UUID
    shared_with_email: str
    shared_with_id: Optional[UUID] = None
    permission: SharePermission
    message: Optional[str] = None
    created_at: datetime
