"""To-do task endpoints."""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from pydantic import AwareDatetime
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_current_teacher
from ..core.database import get_db
from ..core.rate_limiter import rate_limit
from ..models.coursework import TaskPriority, TaskStatus
from ..models.teacher import Teacher
from ..schemas.coursework_schemas import TaskCreate, TaskOut, TaskUpdate
from ..services.task_service import TaskService
from ..utils.pagination import PaginationParams, Paginator
from ..utils.responses import success_response

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["Tasks"],
    dependencies=[Depends(rate_limit("standard"))],
)

@router.get("")
async def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = Query(None),
    student_id: Optional[UUID] = Query(None),
    due_from: Optional[AwareDatetime] = Query(None),
    due_to: Optional[AwareDatetime] = Query(None),
    overdue: Optional[bool] = Query(None, description="Only past-due tasks that are not completed"),
    sort_by: str = Query("due_date", pattern="^(due_date|created_at|title|priority|status)$"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await TaskService(db, teacher.id).list_tasks(
        pagination.page, pagination.limit,
        status=status_filter, priority=priority, student_id=student_id,
        due_from=due_from, due_to=due_to, overdue=overdue,
        sort_by=sort_by, sort_order=sort_order,
    )
    items = [TaskOut.model_validate(t) for t in result["items"]]
    return Paginator.create_response(items, pagination.page, pagination.limit, result["total"])

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    task = await TaskService(db, teacher.id).create_task(data.model_dump())
    return success_response(TaskOut.model_validate(task))

@router.get("/{task_id}")
async def get_task(
    task_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    task = await TaskService(db, teacher.id).get_or_404(task_id)
    return success_response(TaskOut.model_validate(task))

@router.put("/{task_id}")
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = TaskService(db, teacher.id)
    task = await service.get_or_404(task_id)
    task = await service.update_task(task, data.model_dump(exclude_unset=True))
    return success_response(TaskOut.model_validate(task))

@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = TaskService(db, teacher.id)
    await service.hard_delete(await service.get_or_404(task_id))

@router.post("/{task_id}/complete")
async def complete_task(
    task_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = TaskService(db, teacher.id)
    task = await service.complete(await service.get_or_404(task_id))
    return success_response(TaskOut.model_validate(task))

@router.post("/{task_id}/reopen")
async def reopen_task(
    task_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = TaskService(db, teacher.id)
    task = await service.reopen(await service.get_or_404(task_id))
    return success_response(TaskOut.model_validate(task))
