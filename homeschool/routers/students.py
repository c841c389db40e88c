"""Student roster endpoints."""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..core.auth import get_current_teacher
from ..core.database import get_db
from ..core.rate_limiter import rate_limit
from ..models.teacher import Teacher
from ..schemas.common import GradeLevel
from ..schemas.student_schemas import StudentCreate, StudentOut, StudentUpdate
from ..services.file_storage import save_upload
from ..services.student_service import StudentService
from ..utils.pagination import PaginationParams, Paginator
from ..utils.responses import success_response

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/students",
    tags=["Students"],
    dependencies=[Depends(rate_limit("standard"))],
)

@router.get("")
async def list_students(
    search: Optional[str] = Query(None, max_length=100, description="Match first name, last name or email"),
    grade_level: Optional[GradeLevel] = Query(None),
    is_active: Optional[bool] = Query(None),
    sort_by: str = Query("last_name", pattern="^(first_name|last_name|grade_level|date_of_birth|created_at)$"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await StudentService(db, teacher.id).search(
        page=pagination.page,
        limit=pagination.limit,
        search=search,
        grade_level=grade_level,
        is_active=is_active,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items = [StudentOut.model_validate(s) for s in result["items"]]
    return Paginator.create_response(items, pagination.page, pagination.limit, result["total"])

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_student(
    data: StudentCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    student = await StudentService(db, teacher.id).create(data.model_dump())
    logger.info(f"Teacher {teacher.id} added student {student.id}")
    return success_response(StudentOut.model_validate(student))

@router.get("/{student_id}")
async def get_student(
    student_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    student = await StudentService(db, teacher.id).get_or_404(student_id)
    return success_response(StudentOut.model_validate(student))

@router.put("/{student_id}")
async def update_student(
    student_id: UUID,
    data: StudentUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = StudentService(db, teacher.id)
    student = await service.get_or_404(student_id)
    student = await service.update(student, data.model_dump(exclude_unset=True))
    return success_response(StudentOut.model_validate(student))

@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: UUID,
    permanent: bool = Query(False, description="Remove the student and their records instead of deactivating"),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = StudentService(db, teacher.id)
    student = await service.get_or_404(student_id)
    if permanent:
        await service.delete_permanently(student)
    else:
        await service.soft_delete(student)

@router.post("/{student_id}/profile-image", dependencies=[Depends(rate_limit("upload"))])
async def upload_profile_image(
    student_id: UUID,
    file: UploadFile = File(...),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = StudentService(db, teacher.id)
    student = await service.get_or_404(student_id)
    stored = await save_upload(file, "profile_images", teacher.id)
    student = await service.set_profile_image(student, stored.file_url)
    return success_response(StudentOut.model_validate(student))
