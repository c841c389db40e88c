# homeschool/services/task_service.py
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from ..models.base import utc_now
from ..models.coursework import Task, TaskPriority, TaskStatus
from ..models.student import Student


class TaskService(BaseService[Task]):
    resource_name = "Task"

    def __init__(self, db: AsyncSession, teacher_id: UUID):
        super().__init__(Task, db, teacher_id)

    async def list_tasks(
        self,
        page: int,
        limit: int,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        student_id: Optional[UUID] = None,
        due_from: Optional[datetime] = None,
        due_to: Optional[datetime] = None,
        overdue: Optional[bool] = None,
        sort_by: str = "due_date",
        sort_order: str = "asc",
    ) -> Dict[str, Any]:
        conditions = []
        if due_from is not None:
            conditions.append(Task.due_date >= due_from)
        if due_to is not None:
            conditions.append(Task.due_date < due_to)
        if overdue:
            # Overdue: past due and not completed
            conditions.append(Task.due_date < utc_now())
            conditions.append(Task.status != TaskStatus.COMPLETED)
        return await self.get_paginated(
            page=page, limit=limit, order_by=sort_by, sort=sort_order, conditions=conditions,
            status=status, priority=priority, student_id=student_id,
        )

    async def create_task(self, data: Dict[str, Any]) -> Task:
        await self.ensure_owned(Student, data.get("student_id"), "student_id")
        if data.get("status") == TaskStatus.COMPLETED:
            data["completed_at"] = utc_now()
        return await self.create(data)

    async def update_task(self, task: Task, data: Dict[str, Any]) -> Task:
        await self.ensure_owned(Student, data.get("student_id"), "student_id")
        if "status" in data:
            if data["status"] == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED:
                data["completed_at"] = utc_now()
            elif data["status"] != TaskStatus.COMPLETED:
                data["completed_at"] = None
        return await self.update(task, data)

    async def complete(self, task: Task) -> Task:
        if task.status == TaskStatus.COMPLETED:
            return task
        return await self.update(task, {"status": TaskStatus.COMPLETED, "completed_at": utc_now()})

    async def reopen(self, task: Task) -> Task:
        return await self.update(task, {"status": TaskStatus.PENDING, "completed_at": None})
