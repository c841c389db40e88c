# homeschool/services/calendar_service.py
"""Calendar events, recurring series and their exceptions, attendance.

A recurring series is one ``CalendarEvent`` row with a ``recurrence_rule``;
its occurrences are never stored. Editing or cancelling a single occurrence
stores an *exception* row pointing back at the series (``parent_event_id``)
and naming the occurrence it replaces (``recurrence_id``, the original start).
"""
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID
import logging

from icalendar import Calendar as iCalendar
from icalendar import Event as iEvent
from icalendar import vRecur
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from .base_service import BaseService
from .recurrence import (
    Occurrence, RecurrenceError, RecurrenceExpander, occurrence_dates, parse_rule, resolve_timezone,
    validate_rule,
)
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..models.base import utc_now
from ..models.calendar import CalendarEvent, EventAttendance, EventType
from ..models.student import Student
from ..models.subject import Subject
from ..models.teacher import Teacher
from ..schemas.calendar_schemas import OccurrenceOut
from ..schemas.student_schemas import StudentSummary

logger = logging.getLogger(__name__)

MAX_WINDOW_DAYS = 366

DEFAULT_EVENT_TYPES = (
    ("Lesson", "#4A90D9"),
    ("Field Trip", "#50B83C"),
    ("Test", "#DE3618"),
    ("Activity", "#F49342"),
    ("Holiday", "#9C6ADE"),
)

SERIES_SHAPE_FIELDS = ("start_time", "recurrence_rule", "recurrence_end_date", "timezone")
REQUIRED_FIELDS = ("title", "start_time", "end_time", "all_day", "timezone")
COPIED_TO_EXCEPTION = (
    "title", "description", "location", "all_day", "timezone", "event_type_id", "subject_id",
)


def check_window(window_start: datetime, window_end: datetime):
    if window_end <= window_start:
        raise ValidationError("end must be after start", field="end")
    if window_end - window_start > timedelta(days=MAX_WINDOW_DAYS):
        raise ValidationError(f"The query window cannot exceed {MAX_WINDOW_DAYS} days", field="end")


def _overlaps(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> bool:
    if start >= window_end:
        return False
    if end == start:
        return start >= window_start
    return end > window_start


def _utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc)


def _span(event: CalendarEvent) -> Tuple[datetime, datetime]:
    """UTC start and end of a stored event; zero-length all-day events last a day"""
    start, end = _utc(event.start_time), _utc(event.end_time)
    if event.all_day and end == start:
        end = start + timedelta(days=1)
    return start, end


class EventTypeService(BaseService[EventType]):
    resource_name = "Event type"

    def __init__(self, db: AsyncSession, teacher_id: UUID):
        super().__init__(EventType, db, teacher_id)

    async def list_event_types(self) -> List[EventType]:
        """All of the teacher's event types; the defaults are created on first use"""
        types = await self.list_all(order_by=EventType.name)
        if types:
            return types
        for name, color in DEFAULT_EVENT_TYPES:
            self.db.add(EventType(teacher_id=self.teacher_id, name=name, color=color, is_default=True))
        await self.db.commit()
        return await self.list_all(order_by=EventType.name)

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[UUID] = None):
        stmt = self._scope(select(EventType.id).where(func.lower(EventType.name) == name.strip().lower()))
        if exclude_id is not None:
            stmt = stmt.where(EventType.id != exclude_id)
        if (await self.db.execute(stmt)).first():
            raise ConflictError(f"An event type named '{name}' already exists", field="name")

    async def create_event_type(self, data: Dict[str, Any]) -> EventType:
        await self._ensure_unique_name(data["name"])
        return await self.create(data)

    async def update_event_type(self, event_type: EventType, data: Dict[str, Any]) -> EventType:
        if data.get("name"):
            await self._ensure_unique_name(data["name"], exclude_id=event_type.id)
        return await self.update(event_type, data)

    async def delete_event_type(self, event_type: EventType):
        events = await self.db.execute(select(CalendarEvent).where(CalendarEvent.event_type_id == event_type.id))
        for event in events.scalars().all():
            event.event_type_id = None
        await self.hard_delete(event_type)


class CalendarService(BaseService[CalendarEvent]):
    resource_name = "Event"

    def __init__(self, db: AsyncSession, teacher: Teacher):
        super().__init__(CalendarEvent, db, teacher.id)
        self.teacher = teacher

    # Recurrence helpers

    def _expander(self, event: CalendarEvent) -> RecurrenceExpander:
        try:
            return RecurrenceExpander(
                event.start_time,
                event.end_time,
                parse_rule(event.recurrence_rule),
                tz=event.timezone,
                all_day=event.all_day,
                series_end=event.recurrence_end_date,
            )
        except RecurrenceError as e:
            raise ValidationError(str(e), field="recurrence_rule")

    def _generated_occurrence(self, series: CalendarEvent, occurrence_start: datetime) -> Optional[Occurrence]:
        """The occurrence of ``series`` starting exactly at ``occurrence_start``, if any"""
        for occurrence in self._expander(series).occurrences(window_start=occurrence_start):
            if occurrence.start == occurrence_start:
                return occurrence
            if occurrence.start > occurrence_start:
                return None
        return None

    @staticmethod
    def _check_rule(rule: str, start: datetime, end: datetime, tz: str, series_end: Optional[datetime]) -> str:
        try:
            return validate_rule(rule, start, end, tz=tz, series_end=series_end)
        except RecurrenceError as e:
            raise ValidationError(str(e), field="recurrence_rule")

    @staticmethod
    def preview(start: datetime, rule: str, tz: str, count: int) -> Tuple[str, List]:
        try:
            canonical = validate_rule(rule, start, tz=tz)
            return canonical, occurrence_dates(start, canonical, limit=count, tz=tz)
        except RecurrenceError as e:
            raise ValidationError(str(e), field="recurrence_rule")

    # Loading

    async def _load_students(self, student_ids: Sequence[UUID]) -> List[Student]:
        ids = list(dict.fromkeys(student_ids))
        if not ids:
            return []
        stmt = select(Student).where(Student.id.in_(ids), Student.teacher_id == self.teacher_id)
        students = list((await self.db.execute(stmt)).scalars().all())
        if len(students) != len(ids):
            found = {s.id for s in students}
            missing = ", ".join(str(i) for i in ids if i not in found)
            raise ValidationError(f"Unknown students: {missing}", field="student_ids")
        return students

    async def _reload(self, event_id: UUID) -> CalendarEvent:
        stmt = select(CalendarEvent).where(CalendarEvent.id == event_id).execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalar_one()

    async def _exceptions_for(self, series_ids: Sequence[UUID]) -> Dict[UUID, List[CalendarEvent]]:
        grouped: Dict[UUID, List[CalendarEvent]] = {}
        if not series_ids:
            return grouped
        stmt = select(CalendarEvent).where(CalendarEvent.parent_event_id.in_(series_ids))
        for exception in (await self.db.execute(stmt)).scalars().all():
            grouped.setdefault(exception.parent_event_id, []).append(exception)
        return grouped

    async def get_series(self, event_id: UUID) -> CalendarEvent:
        event = await self.get_or_404(event_id)
        if not event.is_recurring:
            raise ValidationError("Event is not a recurring series", field="event_id")
        return event

    # Events

    async def create_event(self, data: Dict[str, Any]) -> CalendarEvent:
        student_ids = data.pop("student_ids", [])
        data["timezone"] = data.get("timezone") or self.teacher.timezone
        await self.ensure_owned(EventType, data.get("event_type_id"), "event_type_id")
        await self.ensure_owned(Subject, data.get("subject_id"), "subject_id")
        if data.get("recurrence_rule"):
            data["recurrence_rule"] = self._check_rule(
                data["recurrence_rule"], data["start_time"], data["end_time"],
                data["timezone"], data.get("recurrence_end_date"),
            )
        else:
            data["recurrence_rule"] = None

        event = CalendarEvent(**data, teacher_id=self.teacher_id)
        event.students = await self._load_students(student_ids)
        self.db.add(event)
        await self.db.commit()
        logger.info(f"Created event {event.id} for teacher {self.teacher_id}")
        return await self._reload(event.id)

    async def update_event(self, event: CalendarEvent, data: Dict[str, Any]) -> CalendarEvent:
        """Update a single event, a whole series, or one stored exception"""
        student_ids = data.pop("student_ids", None)
        for key in REQUIRED_FIELDS:
            if key in data and data[key] is None:
                del data[key]
        reshaped = any(key in data for key in SERIES_SHAPE_FIELDS)
        await self.ensure_owned(EventType, data.get("event_type_id"), "event_type_id")
        await self.ensure_owned(Subject, data.get("subject_id"), "subject_id")

        if event.parent_event_id is not None and (
            data.get("recurrence_rule") or data.get("recurrence_end_date")
        ):
            raise ValidationError("A single occurrence cannot have its own recurrence", field="recurrence_rule")

        start = data.get("start_time", event.start_time)
        end = data.get("end_time", event.end_time)
        if end < start:
            raise ValidationError("end_time must not be before start_time", field="end_time")

        rule = data.get("recurrence_rule", event.recurrence_rule) or None
        series_end = data.get("recurrence_end_date", event.recurrence_end_date)
        if rule is None and "recurrence_rule" in data:
            series_end = data["recurrence_end_date"] = None
        if rule is None and series_end is not None:
            raise ValidationError("recurrence_end_date requires recurrence_rule", field="recurrence_end_date")
        if rule is not None and event.parent_event_id is None:
            data["recurrence_rule"] = self._check_rule(
                rule, start, end, data.get("timezone", event.timezone), series_end,
            )

        was_recurring = event.is_recurring
        for key, value in data.items():
            setattr(event, key, value)
        if student_ids is not None:
            event.students = await self._load_students(student_ids)

        if was_recurring and reshaped:
            await self._prune_exceptions(event)
        await self.db.commit()
        return await self._reload(event.id)

    async def _prune_exceptions(self, series: CalendarEvent):
        """Drop exceptions whose original occurrence the series no longer produces"""
        exceptions = (await self._exceptions_for([series.id])).get(series.id, [])
        dropped = 0
        for exception in exceptions:
            if not series.recurrence_rule or self._generated_occurrence(series, exception.recurrence_id) is None:
                await self.db.delete(exception)
                dropped += 1
        if dropped:
            logger.info(f"Dropped {dropped} exceptions of series {series.id} after edit")

    async def delete_event(self, event: CalendarEvent):
        """Deleting a series removes its exceptions; deleting an exception restores the occurrence"""
        if event.parent_event_id is None:
            for exception in (await self._exceptions_for([event.id])).get(event.id, []):
                await self.db.delete(exception)
            await self.db.flush()
            await self.db.execute(delete(EventAttendance).where(EventAttendance.event_id == event.id))
        await self.hard_delete(event)

    async def list_events(
        self,
        page: int,
        limit: int,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
        event_type_id: Optional[UUID] = None,
        subject_id: Optional[UUID] = None,
        student_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """Stored events and series (not exceptions), optionally limited to a window"""
        conditions = [CalendarEvent.parent_event_id.is_(None), *self._window_conditions(window_start, window_end)]
        if student_id is not None:
            conditions.append(CalendarEvent.students.any(Student.id == student_id))
        return await self.get_paginated(
            page=page, limit=limit, order_by="start_time", conditions=conditions,
            event_type_id=event_type_id, subject_id=subject_id,
        )

    @staticmethod
    def _window_conditions(window_start: Optional[datetime], window_end: Optional[datetime]) -> List[Any]:
        conditions = []
        if window_end is not None:
            conditions.append(CalendarEvent.start_time < window_end)
        if window_start is not None:
            conditions.append(or_(
                and_(CalendarEvent.recurrence_rule.is_(None), CalendarEvent.end_time >= window_start),
                and_(
                    CalendarEvent.recurrence_rule.is_not(None),
                    or_(CalendarEvent.recurrence_end_date.is_(None), CalendarEvent.recurrence_end_date >= window_start),
                ),
            ))
        if not conditions:
            return []

        # A series outside the window still shows up through an occurrence moved into it
        moved = aliased(CalendarEvent)
        moved_conditions = [moved.parent_event_id.is_not(None), moved.is_cancelled.is_(False)]
        if window_end is not None:
            moved_conditions.append(moved.start_time < window_end)
        if window_start is not None:
            moved_conditions.append(moved.end_time >= window_start)
        moved_into_window = CalendarEvent.id.in_(select(moved.parent_event_id).where(*moved_conditions))
        return [or_(and_(*conditions), moved_into_window)]

    # Occurrences

    def _occurrence_out(
        self,
        event: CalendarEvent,
        start: datetime,
        end: datetime,
        occurrence_start: datetime,
        series: Optional[CalendarEvent] = None,
    ) -> OccurrenceOut:
        recurring = series is not None or event.is_recurring
        return OccurrenceOut(
            event_id=event.id,
            series_id=(series or event).id if recurring else None,
            occurrence_start=occurrence_start,
            start_time=start,
            end_time=end,
            title=event.title,
            description=event.description,
            location=event.location,
            all_day=event.all_day,
            event_type_id=event.event_type_id,
            subject_id=event.subject_id,
            students=[StudentSummary.model_validate(s) for s in event.students],
            is_recurring=recurring,
            is_exception=series is not None,
        )

    async def _expand(
        self, events: Sequence[CalendarEvent], window_start: datetime, window_end: datetime,
    ) -> List[OccurrenceOut]:
        exceptions = await self._exceptions_for([e.id for e in events if e.is_recurring])
        results = []
        for event in events:
            if not event.is_recurring:
                start, end = _span(event)
                if _overlaps(start, end, window_start, window_end) and not event.is_cancelled:
                    results.append(self._occurrence_out(event, start, end, start))
                continue

            overridden = {_utc(e.recurrence_id): e for e in exceptions.get(event.id, [])}
            for occurrence in self._expander(event).occurrences(window_start, window_end):
                if occurrence.start not in overridden:
                    results.append(self._occurrence_out(event, occurrence.start, occurrence.end, occurrence.start))
            # Moved exceptions count where they now are, not where they were generated
            for original_start, exception in overridden.items():
                if exception.is_cancelled:
                    continue
                start, end = _span(exception)
                if _overlaps(start, end, window_start, window_end):
                    results.append(self._occurrence_out(exception, start, end, original_start, series=event))

        results.sort(key=lambda o: (o.start_time, o.title))
        return results

    async def occurrences(
        self,
        window_start: datetime,
        window_end: datetime,
        event_type_id: Optional[UUID] = None,
        subject_id: Optional[UUID] = None,
        student_id: Optional[UUID] = None,
    ) -> List[OccurrenceOut]:
        """Every occurrence of the teacher's calendar inside ``[window_start, window_end)``"""
        check_window(window_start, window_end)
        conditions = [CalendarEvent.parent_event_id.is_(None), *self._window_conditions(window_start, window_end)]
        if event_type_id is not None:
            conditions.append(CalendarEvent.event_type_id == event_type_id)
        if subject_id is not None:
            conditions.append(CalendarEvent.subject_id == subject_id)
        if student_id is not None:
            conditions.append(CalendarEvent.students.any(Student.id == student_id))
        events = await self.list_all(conditions=conditions, order_by=CalendarEvent.start_time)
        return await self._expand(events, window_start, window_end)

    async def event_occurrences(
        self, event: CalendarEvent, window_start: datetime, window_end: datetime,
    ) -> List[OccurrenceOut]:
        check_window(window_start, window_end)
        if event.parent_event_id is not None:
            event = await self.get_or_404(event.parent_event_id)
        return await self._expand([event], window_start, window_end)

    async def _exception_for(self, series: CalendarEvent, occurrence_start: datetime) -> CalendarEvent:
        """The stored exception for one occurrence, created from the series if needed"""
        occurrence_start = _utc(occurrence_start)
        stmt = select(CalendarEvent).where(
            CalendarEvent.parent_event_id == series.id,
            CalendarEvent.recurrence_id == occurrence_start,
        )
        exception = (await self.db.execute(stmt)).scalar_one_or_none()
        if exception is not None:
            return exception

        occurrence = self._generated_occurrence(series, occurrence_start)
        if occurrence is None:
            raise NotFoundError("Occurrence", occurrence_start.isoformat())
        exception = CalendarEvent(
            teacher_id=self.teacher_id,
            parent_event_id=series.id,
            recurrence_id=occurrence.start,
            start_time=occurrence.start,
            end_time=occurrence.end if series.end_time > series.start_time else occurrence.start,
            **{field: getattr(series, field) for field in COPIED_TO_EXCEPTION},
        )
        exception.students = list(series.students)
        self.db.add(exception)
        return exception

    async def update_occurrence(
        self, series: CalendarEvent, occurrence_start: datetime, data: Dict[str, Any],
    ) -> CalendarEvent:
        """Edit one occurrence of a series without touching the others"""
        exception = await self._exception_for(series, occurrence_start)
        student_ids = data.pop("student_ids", None)
        data = {k: v for k, v in data.items() if v is not None or k not in REQUIRED_FIELDS}
        start = data.get("start_time", exception.start_time)
        end = data.get("end_time", exception.end_time)
        if "start_time" in data and "end_time" not in data:
            end = start + (exception.end_time - exception.start_time)
            data["end_time"] = end
        if end < start:
            raise ValidationError("end_time must not be before start_time", field="end_time")
        for key, value in data.items():
            setattr(exception, key, value)
        exception.is_cancelled = False
        if student_ids is not None:
            exception.students = await self._load_students(student_ids)
        await self.db.commit()
        return await self._reload(exception.id)

    async def cancel_occurrence(self, series: CalendarEvent, occurrence_start: datetime) -> CalendarEvent:
        exception = await self._exception_for(series, occurrence_start)
        exception.is_cancelled = True
        await self.db.commit()
        logger.info(f"Cancelled occurrence {exception.recurrence_id.isoformat()} of series {series.id}")
        return await self._reload(exception.id)

    # Attendance

    async def _attendance_key(self, event: CalendarEvent, occurrence_start: Optional[datetime]) -> Tuple[CalendarEvent, datetime]:
        """Attendance is stored against the series and the occurrence's original start"""
        if event.parent_event_id is not None:
            if event.is_cancelled:
                raise ValidationError("This occurrence has been cancelled", field="occurrence_start")
            series = await self.get_or_404(event.parent_event_id)
            return series, _utc(event.recurrence_id)

        if not event.is_recurring:
            start = _utc(event.start_time)
            if occurrence_start is not None and _utc(occurrence_start) != start:
                raise ValidationError("occurrence_start does not match the event", field="occurrence_start")
            return event, start

        if occurrence_start is None:
            return event, _utc(event.start_time)
        occurrence_start = _utc(occurrence_start)
        stmt = select(CalendarEvent.is_cancelled).where(
            CalendarEvent.parent_event_id == event.id,
            CalendarEvent.recurrence_id == occurrence_start,
        )
        cancelled = (await self.db.execute(stmt)).scalar_one_or_none()
        if cancelled:
            raise ValidationError("This occurrence has been cancelled", field="occurrence_start")
        if cancelled is None and self._generated_occurrence(event, occurrence_start) is None:
            raise ValidationError("occurrence_start is not an occurrence of this event", field="occurrence_start")
        return event, occurrence_start

    async def mark_attendance(self, event: CalendarEvent, marks: List[Dict[str, Any]]) -> List[EventAttendance]:
        """Create or update attendance records, one per student and occurrence"""
        records = []
        for mark in marks:
            target, occurrence_start = await self._attendance_key(event, mark.get("occurrence_start"))
            await self.ensure_owned(Student, mark["student_id"], "student_id")
            stmt = select(EventAttendance).where(
                EventAttendance.event_id == target.id,
                EventAttendance.student_id == mark["student_id"],
                EventAttendance.occurrence_start == occurrence_start,
            )
            record = (await self.db.execute(stmt)).scalar_one_or_none()
            if record is None:
                record = EventAttendance(
                    event_id=target.id,
                    student_id=mark["student_id"],
                    occurrence_start=occurrence_start,
                )
                self.db.add(record)
            record.status = mark["status"]
            record.notes = mark.get("notes")
            # Later marks in the same request may address the same record
            await self.db.flush()
            records.append(record)
        await self.db.commit()
        return records

    async def list_attendance(
        self,
        event: CalendarEvent,
        occurrence_start: Optional[datetime] = None,
        student_id: Optional[UUID] = None,
    ) -> List[EventAttendance]:
        target = event
        if event.parent_event_id is not None:
            target, occurrence_start = await self._attendance_key(event, None)
        stmt = select(EventAttendance).where(EventAttendance.event_id == target.id)
        if occurrence_start is not None:
            stmt = stmt.where(EventAttendance.occurrence_start == _utc(occurrence_start))
        if student_id is not None:
            stmt = stmt.where(EventAttendance.student_id == student_id)
        stmt = stmt.order_by(EventAttendance.occurrence_start, EventAttendance.created_at)
        return list((await self.db.execute(stmt)).scalars().all())

    # iCalendar export

    def _export_rule(self, event: CalendarEvent) -> vRecur:
        rule = parse_rule(event.recurrence_rule)
        until = self._expander(event).until
        if until is not None and rule.count is None:
            if event.all_day:
                local = until.astimezone(resolve_timezone(event.timezone))
                rule = replace(rule, until=datetime(local.year, local.month, local.day), until_is_date=True)
            else:
                rule = replace(rule, until=_utc(until), until_is_date=False)
        return vRecur.from_ical(str(rule))

    def _vevent(self, event: CalendarEvent, series: Optional[CalendarEvent] = None) -> iEvent:
        zone = resolve_timezone(event.timezone)
        vevent = iEvent()
        vevent.add("uid", f"{(series or event).id}@homeschool")
        vevent.add("dtstamp", event.updated_at or utc_now())
        vevent.add("summary", event.title)
        if event.description:
            vevent.add("description", event.description)
        if event.location:
            vevent.add("location", event.location)
        if event.event_type is not None:
            vevent.add("categories", [event.event_type.name])

        start, end = event.start_time.astimezone(zone), event.end_time.astimezone(zone)
        if event.all_day:
            vevent.add("dtstart", start.date())
            vevent.add("dtend", max(end.date(), start.date() + timedelta(days=1)))
        else:
            vevent.add("dtstart", start)
            vevent.add("dtend", end)

        if series is not None:
            original = event.recurrence_id.astimezone(resolve_timezone(series.timezone))
            vevent.add("recurrence-id", original.date() if series.all_day else original)
        elif event.is_recurring:
            vevent.add("rrule", self._export_rule(event))
        return vevent

    async def export_ics(self) -> bytes:
        """The teacher's whole calendar as an iCalendar document"""
        events = await self.list_all(
            conditions=[CalendarEvent.parent_event_id.is_(None)], order_by=CalendarEvent.start_time,
        )
        exceptions = await self._exceptions_for([e.id for e in events if e.is_recurring])

        cal = iCalendar()
        cal.add("prodid", "-//Homeschool Records//Calendar//EN")
        cal.add("version", "2.0")
        cal.add("x-wr-calname", f"{self.teacher.full_name} - Homeschool")
        for event in events:
            if not event.is_recurring and event.is_cancelled:
                continue
            vevent = self._vevent(event)
            overrides = []
            for exception in exceptions.get(event.id, []):
                if exception.is_cancelled:
                    original = exception.recurrence_id.astimezone(resolve_timezone(event.timezone))
                    vevent.add("exdate", original.date() if event.all_day else original)
                else:
                    overrides.append(self._vevent(exception, series=event))
            cal.add_component(vevent)
            for override in overrides:
                cal.add_component(override)
        return cal.to_ical()
