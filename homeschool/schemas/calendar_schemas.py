# homeschool/schemas/calendar_schemas.py
"""Pydantic schemas for calendar events, event types and attendance."""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID
from pydantic import AwareDatetime, BaseModel, Field, model_validator

from .auth_schemas import TimezoneName
from .common import HexColor, ORMModel, TimestampedOut
from .student_schemas import StudentSummary
from ..models.calendar import AttendanceStatus


class EventTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: Optional[HexColor] = None


class EventTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[HexColor] = None


class EventTypeOut(TimestampedOut):
    name: str
    color: Optional[str] = None
    is_default: bool


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    location: Optional[str] = Field(default=None, max_length=255)
    start_time: AwareDatetime
    end_time: AwareDatetime
    all_day: bool = False
    timezone: Optional[TimezoneName] = Field(default=None, description="IANA zone; defaults to the teacher's")
    event_type_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    student_ids: List[UUID] = Field(default_factory=list)
    recurrence_rule: Optional[str] = Field(default=None, max_length=255, examples=["FREQ=WEEKLY;BYDAY=MO,WE,FR"])
    recurrence_end_date: Optional[AwareDatetime] = None

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        if self.recurrence_end_date is not None and not self.recurrence_rule:
            raise ValueError("recurrence_end_date requires recurrence_rule")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    location: Optional[str] = Field(default=None, max_length=255)
    start_time: Optional[AwareDatetime] = None
    end_time: Optional[AwareDatetime] = None
    all_day: Optional[bool] = None
    timezone: Optional[TimezoneName] = None
    event_type_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    student_ids: Optional[List[UUID]] = None
    recurrence_rule: Optional[str] = Field(default=None, max_length=255)
    recurrence_end_date: Optional[AwareDatetime] = None

    @model_validator(mode="after")
    def validate_times(self):
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class OccurrenceUpdate(BaseModel):
    """Changes to a single occurrence of a recurring series."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    location: Optional[str] = Field(default=None, max_length=255)
    start_time: Optional[AwareDatetime] = None
    end_time: Optional[AwareDatetime] = None
    student_ids: Optional[List[UUID]] = None

    @model_validator(mode="after")
    def validate_times(self):
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class EventOut(TimestampedOut):
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: datetime
    end_time: datetime
    all_day: bool
    timezone: str
    event_type_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    event_type: Optional[EventTypeOut] = None
    students: List[StudentSummary] = Field(default_factory=list)
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[datetime] = None
    parent_event_id: Optional[UUID] = None
    recurrence_id: Optional[datetime] = None
    is_cancelled: bool
    is_recurring: bool


class OccurrenceOut(BaseModel):
    """One concrete instance of an event within a queried window."""
    event_id: UUID
    series_id: Optional[UUID] = None
    occurrence_start: datetime
    start_time: datetime
    end_time: datetime
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    all_day: bool
    event_type_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    students: List[StudentSummary] = Field(default_factory=list)
    is_recurring: bool
    is_exception: bool = False


class AttendanceMark(BaseModel):
    student_id: UUID
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: Optional[str] = Field(default=None, max_length=1000)
    occurrence_start: Optional[AwareDatetime] = Field(
        default=None, description="Start of the occurrence; defaults to the event start"
    )


class AttendanceOut(ORMModel):
    id: UUID
    event_id: UUID
    student_id: UUID
    occurrence_start: datetime
    status: AttendanceStatus
    notes: Optional[str] = None


class RecurrencePreviewRequest(BaseModel):
    start_time: AwareDatetime
    recurrence_rule: str = Field(..., min_length=1, max_length=255)
    timezone: TimezoneName = "UTC"
    count: int = Field(default=10, ge=1, le=100)


class RecurrencePreviewOut(BaseModel):
    recurrence_rule: str
    dates: List[date]
