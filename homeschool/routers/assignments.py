"""Assignment endpoints, including grading and attachments."""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from pydantic import AwareDatetime
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_current_teacher
from ..core.database import get_db
from ..core.rate_limiter import rate_limit
from ..models.coursework import AssignmentStatus
from ..models.teacher import Teacher
from ..schemas.coursework_schemas import (
    AssignmentCreate, AssignmentGrade, AssignmentOut, AssignmentUpdate, AttachmentOut,
)
from ..services.assignment_service import AssignmentService
from ..services.file_storage import save_upload
from ..utils.pagination import PaginationParams, Paginator
from ..utils.responses import success_response

router = APIRouter(
    prefix="/api/v1/assignments",
    tags=["Assignments"],
    dependencies=[Depends(rate_limit("standard"))],
)

@router.get("")
async def list_assignments(
    student_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    status_filter: Optional[AssignmentStatus] = Query(None, alias="status"),
    due_from: Optional[AwareDatetime] = Query(None, description="Due on or after"),
    due_to: Optional[AwareDatetime] = Query(None, description="Due before"),
    sort_by: str = Query("due_date", pattern="^(due_date|created_at|title|status)$"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await AssignmentService(db, teacher.id).list_assignments(
        pagination.page, pagination.limit,
        student_id=student_id, subject_id=subject_id, status=status_filter,
        due_from=due_from, due_to=due_to, sort_by=sort_by, sort_order=sort_order,
    )
    items = [AssignmentOut.model_validate(a) for a in result["items"]]
    return Paginator.create_response(items, pagination.page, pagination.limit, result["total"])

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    data: AssignmentCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    assignment = await AssignmentService(db, teacher.id).create_assignment(data.model_dump())
    return success_response(AssignmentOut.model_validate(assignment))

@router.get("/{assignment_id}")
async def get_assignment(
    assignment_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    assignment = await AssignmentService(db, teacher.id).get_or_404(assignment_id)
    return success_response(AssignmentOut.model_validate(assignment))

@router.put("/{assignment_id}")
async def update_assignment(
    assignment_id: UUID,
    data: AssignmentUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = AssignmentService(db, teacher.id)
    assignment = await service.get_or_404(assignment_id)
    assignment = await service.update_assignment(assignment, data.model_dump(exclude_unset=True))
    return success_response(AssignmentOut.model_validate(assignment))

@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = AssignmentService(db, teacher.id)
    await service.delete_assignment(await service.get_or_404(assignment_id))

@router.post("/{assignment_id}/grade")
async def grade_assignment(
    assignment_id: UUID,
    data: AssignmentGrade,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Record a score and/or letter grade; the assignment becomes graded"""
    service = AssignmentService(db, teacher.id)
    assignment = await service.get_or_404(assignment_id)
    assignment = await service.grade(assignment, data.model_dump(exclude_unset=True))
    return success_response(AssignmentOut.model_validate(assignment))

@router.post(
    "/{assignment_id}/attachments",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("upload"))],
)
async def upload_attachment(
    assignment_id: UUID,
    file: UploadFile = File(...),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = AssignmentService(db, teacher.id)
    assignment = await service.get_or_404(assignment_id)
    stored = await save_upload(file, "attachments", teacher.id)
    attachment = await service.add_attachment(assignment, stored)
    return success_response(AttachmentOut.model_validate(attachment))

@router.delete("/{assignment_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    assignment_id: UUID,
    attachment_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = AssignmentService(db, teacher.id)
    assignment = await service.get_or_404(assignment_id)
    await service.remove_attachment(assignment, attachment_id)
