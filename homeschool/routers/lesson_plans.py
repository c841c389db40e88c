"""Lesson plan endpoints: own plans, the public library, copies and sharing."""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..core.auth import get_current_teacher
from ..core.database import get_db
from ..core.rate_limiter import rate_limit
from ..models.teacher import Teacher
from ..schemas.common import GradeLevel
from ..schemas.coursework_schemas import AttachmentOut
from ..schemas.lesson_plan_schemas import LessonPlanCopy, LessonPlanCreate, LessonPlanUpdate, ShareOut, ShareRequest
from ..services.email_service import lesson_plan_shared_email
from ..services.file_storage import save_upload
from ..services.lesson_plan_service import LessonPlanService, to_out
from ..tasks import queue_email
from ..utils.pagination import PaginationParams, Paginator
from ..utils.responses import success_response

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/lesson-plans",
    tags=["Lesson Plans"],
    dependencies=[Depends(rate_limit("standard"))],
)


def _page(result):
    items = [to_out(plan) for plan in result["items"]]
    return Paginator.create_response(items, result["page"], result["limit"], result["total"])


@router.get("")
async def list_lesson_plans(
    q: Optional[str] = Query(None, max_length=100, description="Match title or description"),
    subject_id: Optional[UUID] = Query(None),
    grade_level: Optional[GradeLevel] = Query(None),
    tag: Optional[str] = Query(None, max_length=50),
    is_public: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """The teacher's own lesson plans"""
    result = await LessonPlanService(db, teacher).list_own(
        pagination.page, pagination.limit,
        q=q, subject_id=subject_id, grade_level=grade_level, tag=tag, is_public=is_public,
    )
    return _page(result)


@router.get("/public")
async def search_public_lesson_plans(
    q: Optional[str] = Query(None, max_length=100),
    subject: Optional[str] = Query(None, max_length=100, description="Subject name"),
    grade_level: Optional[GradeLevel] = Query(None),
    tag: Optional[str] = Query(None, max_length=50),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await LessonPlanService(db, teacher).search_public(
        pagination.page, pagination.limit, q=q, subject=subject, grade_level=grade_level, tag=tag,
    )
    return _page(result)


@router.get("/shared-with-me")
async def shared_with_me(
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await LessonPlanService(db, teacher).shared_with_me(pagination.page, pagination.limit)
    return _page(result)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_lesson_plan(
    data: LessonPlanCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    plan = await LessonPlanService(db, teacher).create_plan(data.model_dump())
    return success_response(to_out(plan))


@router.get("/{plan_id}")
async def get_lesson_plan(
    plan_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    plan, _ = await LessonPlanService(db, teacher).get_visible(plan_id)
    return success_response(to_out(plan))


@router.put("/{plan_id}")
async def update_lesson_plan(
    plan_id: UUID,
    data: LessonPlanUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = LessonPlanService(db, teacher)
    plan = await service.get_editable(plan_id)
    plan = await service.update_plan(plan, data.model_dump(exclude_unset=True))
    return success_response(to_out(plan))


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson_plan(
    plan_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = LessonPlanService(db, teacher)
    await service.delete_plan(await service.get_editable(plan_id))


@router.post("/{plan_id}/copy", status_code=status.HTTP_201_CREATED)
async def copy_lesson_plan(
    plan_id: UUID,
    data: Optional[LessonPlanCopy] = None,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Copy a visible plan into the teacher's account as a private plan"""
    plan = await LessonPlanService(db, teacher).copy_plan(plan_id, data.title if data else None)
    return success_response(to_out(plan))


@router.post("/{plan_id}/share", status_code=status.HTTP_201_CREATED)
async def share_lesson_plan(
    plan_id: UUID,
    data: ShareRequest,
    background_tasks: BackgroundTasks,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = LessonPlanService(db, teacher)
    plan = await service.get_editable(plan_id)
    shares = await service.share(plan, [str(email) for email in data.emails], data.permission, data.message)
    subject, body = lesson_plan_shared_email(teacher.full_name, plan.title, data.message)
    for share in shares:
        queue_email(background_tasks, [share.shared_with_email], subject, body)
    logger.info(f"Teacher {teacher.id} shared lesson plan {plan.id} with {len(shares)} recipient(s)")
    return success_response([ShareOut.model_validate(s) for s in shares])


@router.get("/{plan_id}/shares")
async def list_shares(
    plan_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = LessonPlanService(db, teacher)
    shares = await service.list_shares(await service.get_editable(plan_id))
    return success_response([ShareOut.model_validate(s) for s in shares])


@router.delete("/{plan_id}/shares/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_share(
    plan_id: UUID,
    share_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = LessonPlanService(db, teacher)
    await service.revoke_share(await service.get_editable(plan_id), share_id)


@router.post(
    "/{plan_id}/attachments",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("upload"))],
)
async def upload_attachment(
    plan_id: UUID,
    file: UploadFile = File(...),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = LessonPlanService(db, teacher)
    plan = await service.get_editable(plan_id)
    stored = await save_upload(file, "attachments", teacher.id)
    attachment = await service.add_attachment(plan, stored)
    return success_response(AttachmentOut.model_validate(attachment))


@router.delete("/{plan_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    plan_id: UUID,
    attachment_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = LessonPlanService(db, teacher)
    await service.remove_attachment(await service.get_editable(plan_id), attachment_id)
