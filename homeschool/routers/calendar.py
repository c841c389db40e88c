"""Calendar endpoints: event types, events, recurring series and attendance."""
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import AwareDatetime
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_current_teacher
from ..core.database import get_db
from ..core.exceptions import ValidationError
from ..core.rate_limiter import rate_limit
from ..models.teacher import Teacher
from ..schemas.calendar_schemas import (
    AttendanceMark, AttendanceOut, EventCreate, EventOut, EventTypeCreate, EventTypeOut, EventTypeUpdate,
    EventUpdate, OccurrenceUpdate, RecurrencePreviewOut, RecurrencePreviewRequest,
)
from ..services.calendar_service import CalendarService, EventTypeService
from ..utils.pagination import PaginationParams, Paginator
from ..utils.responses import success_response

router = APIRouter(
    prefix="/api/v1/calendar",
    tags=["Calendar"],
    dependencies=[Depends(rate_limit("standard"))],
)

# Event types

@router.get("/event-types")
async def list_event_types(
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    types = await EventTypeService(db, teacher.id).list_event_types()
    return success_response([EventTypeOut.model_validate(t) for t in types])

@router.post("/event-types", status_code=status.HTTP_201_CREATED)
async def create_event_type(
    data: EventTypeCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    event_type = await EventTypeService(db, teacher.id).create_event_type(data.model_dump())
    return success_response(EventTypeOut.model_validate(event_type))

@router.put("/event-types/{event_type_id}")
async def update_event_type(
    event_type_id: UUID,
    data: EventTypeUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = EventTypeService(db, teacher.id)
    event_type = await service.get_or_404(event_type_id)
    event_type = await service.update_event_type(event_type, data.model_dump(exclude_unset=True, exclude_none=True))
    return success_response(EventTypeOut.model_validate(event_type))

@router.delete("/event-types/{event_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_type(
    event_type_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = EventTypeService(db, teacher.id)
    await service.delete_event_type(await service.get_or_404(event_type_id))

# Recurrence helpers

@router.post("/recurrence/preview")
async def preview_recurrence(
    data: RecurrencePreviewRequest,
    teacher: Teacher = Depends(get_current_teacher),
):
    """Validate a rule and list the dates of its first occurrences"""
    rule, dates = CalendarService.preview(data.start_time, data.recurrence_rule, data.timezone, data.count)
    return success_response(RecurrencePreviewOut(recurrence_rule=rule, dates=dates))

@router.get("/export.ics")
async def export_calendar(
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    body = await CalendarService(db, teacher).export_ics()
    return Response(
        content=body,
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="homeschool-calendar.ics"'},
    )

# Events

@router.get("/events")
async def list_events(
    start: Optional[AwareDatetime] = Query(None, description="Window start (inclusive)"),
    end: Optional[AwareDatetime] = Query(None, description="Window end (exclusive)"),
    expand: bool = Query(False, description="Return concrete occurrences instead of stored events"),
    event_type_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    student_id: Optional[UUID] = Query(None),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Stored events and series, or with ``expand=true`` every occurrence in the window"""
    service = CalendarService(db, teacher)
    if expand:
        if start is None or end is None:
            raise ValidationError("start and end are required when expand=true", field="start")
        occurrences = await service.occurrences(
            start, end, event_type_id=event_type_id, subject_id=subject_id, student_id=student_id,
        )
        page = occurrences[pagination.offset:pagination.offset + pagination.limit]
        return Paginator.create_response(page, pagination.page, pagination.limit, len(occurrences))

    if start is not None and end is not None and end <= start:
        raise ValidationError("end must be after start", field="end")
    result = await service.list_events(
        pagination.page, pagination.limit, window_start=start, window_end=end,
        event_type_id=event_type_id, subject_id=subject_id, student_id=student_id,
    )
    items = [EventOut.model_validate(e) for e in result["items"]]
    return Paginator.create_response(items, pagination.page, pagination.limit, result["total"])

@router.post("/events", status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    event = await CalendarService(db, teacher).create_event(data.model_dump())
    return success_response(EventOut.model_validate(event))

@router.get("/events/{event_id}")
async def get_event(
    event_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    event = await CalendarService(db, teacher).get_or_404(event_id)
    return success_response(EventOut.model_validate(event))

@router.put("/events/{event_id}")
async def update_event(
    event_id: UUID,
    data: EventUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Update an event; for a series this applies to every occurrence"""
    service = CalendarService(db, teacher)
    event = await service.get_or_404(event_id)
    event = await service.update_event(event, data.model_dump(exclude_unset=True))
    return success_response(EventOut.model_validate(event))

@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = CalendarService(db, teacher)
    await service.delete_event(await service.get_or_404(event_id))

# Occurrences

@router.get("/events/{event_id}/occurrences")
async def list_event_occurrences(
    event_id: UUID,
    start: AwareDatetime = Query(..., description="Window start (inclusive)"),
    end: AwareDatetime = Query(..., description="Window end (exclusive)"),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = CalendarService(db, teacher)
    event = await service.get_or_404(event_id)
    occurrences = await service.event_occurrences(event, start, end)
    page = occurrences[pagination.offset:pagination.offset + pagination.limit]
    return Paginator.create_response(page, pagination.page, pagination.limit, len(occurrences))

@router.put("/events/{event_id}/occurrences/{occurrence_start}")
async def update_occurrence(
    event_id: UUID,
    occurrence_start: AwareDatetime,
    data: OccurrenceUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Edit one occurrence of a series, leaving the others unchanged"""
    service = CalendarService(db, teacher)
    series = await service.get_series(event_id)
    exception = await service.update_occurrence(series, occurrence_start, data.model_dump(exclude_unset=True))
    return success_response(EventOut.model_validate(exception))

@router.post("/events/{event_id}/occurrences/{occurrence_start}/cancel")
async def cancel_occurrence(
    event_id: UUID,
    occurrence_start: AwareDatetime,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = CalendarService(db, teacher)
    series = await service.get_series(event_id)
    exception = await service.cancel_occurrence(series, occurrence_start)
    return success_response(EventOut.model_validate(exception))

# Attendance

@router.get("/events/{event_id}/attendance")
async def list_attendance(
    event_id: UUID,
    occurrence_start: Optional[AwareDatetime] = Query(None),
    student_id: Optional[UUID] = Query(None),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = CalendarService(db, teacher)
    event = await service.get_or_404(event_id)
    records = await service.list_attendance(event, occurrence_start, student_id)
    return success_response([AttendanceOut.model_validate(r) for r in records])

@router.post("/events/{event_id}/attendance")
async def mark_attendance(
    event_id: UUID,
    marks: List[AttendanceMark],
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Record attendance for one or more students; marking again overwrites"""
    if not marks:
        raise ValidationError("At least one attendance mark is required", field="body")
    service = CalendarService(db, teacher)
    event = await service.get_or_404(event_id)
    records = await service.mark_attendance(event, [m.model_dump() for m in marks])
    return success_response([AttendanceOut.model_validate(r) for r in records])
