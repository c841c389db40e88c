# homeschool/services/subject_service.py
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from ..core.exceptions import ConflictError
from ..models.calendar import CalendarEvent
from ..models.coursework import Assignment
from ..models.expense import Expense
from ..models.lesson_plan import LessonPlan
from ..models.report_card import ReportCardEntry
from ..models.subject import Subject


class SubjectService(BaseService[Subject]):
    resource_name = "Subject"

    def __init__(self, db: AsyncSession, teacher_id: UUID):
        super().__init__(Subject, db, teacher_id)

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[UUID] = None):
        """Names are unique per teacher among active subjects"""
        stmt = self._scope(select(Subject.id).where(
            func.lower(Subject.name) == name.strip().lower(),
            Subject.is_active.is_(True),
        ))
        if exclude_id is not None:
            stmt = stmt.where(Subject.id != exclude_id)
        if (await self.db.execute(stmt)).first():
            raise ConflictError(f"A subject named '{name}' already exists", field="name")

    async def list_subjects(self, page: int, limit: int, is_active: Optional[bool] = True) -> Dict[str, Any]:
        return await self.get_paginated(page=page, limit=limit, order_by="name", is_active=is_active)

    async def create_subject(self, data: Dict[str, Any]) -> Subject:
        await self._ensure_unique_name(data["name"])
        return await self.create(data)

    async def update_subject(self, subject: Subject, data: Dict[str, Any]) -> Subject:
        name = data.get("name", subject.name)
        becomes_active = data.get("is_active", subject.is_active)
        if becomes_active and ("name" in data or "is_active" in data):
            await self._ensure_unique_name(name, exclude_id=subject.id)
        return await self.update(subject, data)

    async def delete_permanently(self, subject: Subject):
        """Delete the subject and clear it from everything that referenced it"""
        for model in (Assignment, Expense, LessonPlan, CalendarEvent, ReportCardEntry):
            await self.db.execute(
                update(model).where(model.subject_id == subject.id).values(subject_id=None)
            )
        await self.hard_delete(subject)
