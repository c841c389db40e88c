# homeschool/schemas/student_schemas.py
"""Pydantic schemas for students and subjects."""
from datetime import date
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import GradeLevel, HexColor, ORMModel, TimestampedOut


class StudentBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50, description="First name")
    last_name: str = Field(..., min_length=1, max_length=50, description="Last name")
    date_of_birth: Optional[date] = Field(default=None, description="Date of birth")
    grade_level: Optional[GradeLevel] = Field(default=None, description="PK, K or 1-12")
    email: Optional[EmailStr] = Field(default=None)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v):
        if v is not None and v > date.today():
            raise ValueError("date_of_birth cannot be in the future")
        return v


class StudentCreate(StudentBase):
    """Schema for creating a new student"""
    pass


class StudentUpdate(BaseModel):
    """Schema for updating a student - all fields optional"""
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    date_of_birth: Optional[date] = None
    grade_level: Optional[GradeLevel] = None
    email: Optional[EmailStr] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    is_active: Optional[bool] = None

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v):
        if v is not None and v > date.today():
            raise ValueError("date_of_birth cannot be in the future")
        return v


class StudentOut(TimestampedOut):
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    grade_level: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_active: bool


class StudentSummary(ORMModel):
    id: UUID
    first_name: str
    last_name: str


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    color: Optional[HexColor] = None


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    color: Optional[HexColor] = None
    is_active: Optional[bool] = None


class SubjectOut(TimestampedOut):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    is_active: bool
