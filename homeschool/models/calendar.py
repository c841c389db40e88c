# homeschool/models/calendar.py
from sqlalchemy import (
    Column, String, Boolean, Text, ForeignKey, Uuid, Enum, Table, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from .base import Base, UTCDateTime
import enum


class AttendanceStatus(enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


event_students = Table(
    "event_students",
    Base.metadata,
    Column("event_id", Uuid, ForeignKey("calendar_events.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", Uuid, ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
)


class EventType(Base):
    __tablename__ = "event_types"
    __table_args__ = (UniqueConstraint("teacher_id", "name", name="uq_event_types_teacher_name"),)

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    color = Column(String(7), nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)


class CalendarEvent(Base):
    """A single event, a recurring series, or an exception to a series.

    Exceptions carry ``parent_event_id`` (the series) and ``recurrence_id``
    (the original start of the occurrence they replace).
    """
    __tablename__ = "calendar_events"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type_id = Column(Uuid, ForeignKey("event_types.id", ondelete="SET NULL"), nullable=True, index=True)
    subject_id = Column(Uuid, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)
    all_day = Column(Boolean, default=False, nullable=False)
    timezone = Column(String(64), default="UTC", nullable=False)

    # Recurrence
    recurrence_rule = Column(String(255), nullable=True)
    recurrence_end_date = Column(UTCDateTime, nullable=True)
    parent_event_id = Column(Uuid, ForeignKey("calendar_events.id", ondelete="CASCADE"), nullable=True, index=True)
    recurrence_id = Column(UTCDateTime, nullable=True)
    is_cancelled = Column(Boolean, default=False, nullable=False)

    event_type = relationship("EventType", lazy="selectin")
    students = relationship("Student", secondary=event_students, lazy="selectin", order_by="Student.first_name")

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_rule) and self.parent_event_id is None


class EventAttendance(Base):
    __tablename__ = "event_attendance"
    __table_args__ = (
        UniqueConstraint("event_id", "student_id", "occurrence_start", name="uq_event_attendance_occurrence"),
    )

    event_id = Column(Uuid, ForeignKey("calendar_events.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    occurrence_start = Column(UTCDateTime, nullable=False)
    status = Column(Enum(AttendanceStatus), default=AttendanceStatus.PRESENT, nullable=False)
    notes = Column(Text, nullable=True)
