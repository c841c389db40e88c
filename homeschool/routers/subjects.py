"""Subject endpoints."""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_current_teacher
from ..core.database import get_db
from ..core.rate_limiter import rate_limit
from ..models.teacher import Teacher
from ..schemas.student_schemas import SubjectCreate, SubjectOut, SubjectUpdate
from ..services.subject_service import SubjectService
from ..utils.pagination import PaginationParams, Paginator
from ..utils.responses import success_response

router = APIRouter(
    prefix="/api/v1/subjects",
    tags=["Subjects"],
    dependencies=[Depends(rate_limit("standard"))],
)

@router.get("")
async def list_subjects(
    is_active: Optional[bool] = Query(True, description="Defaults to active subjects only"),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await SubjectService(db, teacher.id).list_subjects(pagination.page, pagination.limit, is_active)
    items = [SubjectOut.model_validate(s) for s in result["items"]]
    return Paginator.create_response(items, pagination.page, pagination.limit, result["total"])

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_subject(
    data: SubjectCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    subject = await SubjectService(db, teacher.id).create_subject(data.model_dump())
    return success_response(SubjectOut.model_validate(subject))

@router.get("/{subject_id}")
async def get_subject(
    subject_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    subject = await SubjectService(db, teacher.id).get_or_404(subject_id)
    return success_response(SubjectOut.model_validate(subject))

@router.put("/{subject_id}")
async def update_subject(
    subject_id: UUID,
    data: SubjectUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = SubjectService(db, teacher.id)
    subject = await service.get_or_404(subject_id)
    subject = await service.update_subject(subject, data.model_dump(exclude_unset=True))
    return success_response(SubjectOut.model_validate(subject))

@router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subject(
    subject_id: UUID,
    permanent: bool = Query(False),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a subject, or delete it with ``permanent=true``"""
    service = SubjectService(db, teacher.id)
    subject = await service.get_or_404(subject_id)
    if permanent:
        await service.delete_permanently(subject)
    else:
        await service.soft_delete(subject)
