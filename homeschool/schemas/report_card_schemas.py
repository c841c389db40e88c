# homeschool/schemas/report_card_schemas.py
"""Pydantic schemas for report cards."""
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional
from uuid import UUID
from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

from .common import ORMModel, TimestampedOut
from .student_schemas import StudentSummary

LETTER_GRADES = ("A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "D-", "F", "P", "I")


def _academic_year(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    first, _, second = value.partition("-")
    if int(second) != int(first) + 1:
        raise ValueError("academic_year must span consecutive years, e.g. 2025-2026")
    return value


def _letter_grade(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    normalized = value.strip().upper()
    if normalized not in LETTER_GRADES:
        raise ValueError(f"grade must be one of {', '.join(LETTER_GRADES)}")
    return normalized


LetterGrade = Annotated[str, AfterValidator(_letter_grade)]


class EntryBase(BaseModel):
    subject_id: Optional[UUID] = None
    subject_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    grade: Optional[LetterGrade] = None
    score: Optional[Decimal] = Field(default=None, ge=0, max_digits=7, decimal_places=2)
    max_score: Optional[Decimal] = Field(default=None, gt=0, max_digits=7, decimal_places=2)
    credits: Optional[Decimal] = Field(default=None, ge=0, le=10, max_digits=4, decimal_places=2)
    comments: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def validate_scores(self):
        if self.score is not None and self.max_score is not None and self.score > self.max_score:
            raise ValueError("score cannot exceed max_score")
        return self


class EntryCreate(EntryBase):
    @model_validator(mode="after")
    def require_subject(self):
        if self.subject_id is None and not self.subject_name:
            raise ValueError("subject_id or subject_name is required")
        return self


class EntryUpdate(EntryBase):
    pass


class EntryOut(ORMModel):
    id: UUID
    subject_id: Optional[UUID] = None
    subject_name: str
    grade: Optional[str] = None
    score: Optional[float] = None
    max_score: Optional[float] = None
    credits: Optional[float] = None
    comments: Optional[str] = None


class ReportCardCreate(BaseModel):
    student_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    academic_year: str = Field(..., pattern=r"^\d{4}-\d{4}$")
    term: Optional[str] = Field(default=None, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    comments: Optional[str] = Field(default=None, max_length=5000)
    entries: List[EntryCreate] = Field(default_factory=list)

    @field_validator("academic_year")
    @classmethod
    def validate_academic_year(cls, v):
        return _academic_year(v)

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ReportCardUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    academic_year: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{4}$")
    term: Optional[str] = Field(default=None, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    comments: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("academic_year")
    @classmethod
    def validate_academic_year(cls, v):
        return _academic_year(v)


class ReportCardOut(TimestampedOut):
    student_id: UUID
    student: Optional[StudentSummary] = None
    title: str
    academic_year: str
    term: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    comments: Optional[str] = None
    pdf_url: Optional[str] = None
    generated_at: Optional[datetime] = None
    entries: List[EntryOut] = Field(default_factory=list)
    gpa: Optional[float] = None
