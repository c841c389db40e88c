# homeschool/models/__init__.py
"""Import all models here so metadata is complete for Alembic and create_all."""
from .base import Base

from .teacher import Teacher, AuthToken, TokenPurpose
from .student import Student
from .subject import Subject
from .calendar import EventType, CalendarEvent, EventAttendance, AttendanceStatus, event_students
from .coursework import (
    Assignment, AssignmentAttachment, AssignmentStatus,
    Task, TaskStatus, TaskPriority,
)
from .report_card import ReportCard, ReportCardEntry
from .expense import Expense, ExpenseCategory, PaymentMethod
from .lesson_plan import LessonPlan, LessonPlanShare, LessonPlanAttachment, SharePermission
