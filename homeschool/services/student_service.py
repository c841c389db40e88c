# homeschool/services/student_service.py
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .file_storage import delete_file
from ..models.calendar import EventAttendance, event_students
from ..models.coursework import Assignment, AssignmentAttachment, Task
from ..models.expense import Expense
from ..models.report_card import ReportCard, ReportCardEntry
from ..models.student import Student

logger = logging.getLogger(__name__)


def sanitize_search_term(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally"""
    return term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class StudentService(BaseService[Student]):
    resource_name = "Student"

    def __init__(self, db: AsyncSession, teacher_id: UUID):
        super().__init__(Student, db, teacher_id)

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        grade_level: Optional[str] = None,
        is_active: Optional[bool] = None,
        sort_by: str = "last_name",
        sort_order: str = "asc",
    ) -> Dict[str, Any]:
        conditions = []
        if search and search.strip():
            pattern = f"%{sanitize_search_term(search)}%"
            conditions.append(or_(
                Student.first_name.ilike(pattern, escape="\\"),
                Student.last_name.ilike(pattern, escape="\\"),
                Student.email.ilike(pattern, escape="\\"),
            ))
        return await self.get_paginated(
            page=page,
            limit=limit,
            order_by=sort_by,
            sort=sort_order,
            conditions=conditions,
            grade_level=grade_level.upper() if grade_level else None,
            is_active=is_active,
        )

    async def set_profile_image(self, student: Student, url: str) -> Student:
        previous = student.profile_image_url
        student = await self.update(student, {"profile_image_url": url})
        delete_file(previous)
        return student

    async def delete_permanently(self, student: Student):
        """Remove the student and everything recorded only for them"""
        assignment_ids = select(Assignment.id).where(Assignment.student_id == student.id)
        attachments = (await self.db.execute(
            select(AssignmentAttachment.file_url).where(AssignmentAttachment.assignment_id.in_(assignment_ids))
        )).scalars().all()
        report_card_ids = select(ReportCard.id).where(ReportCard.student_id == student.id)
        pdfs = (await self.db.execute(
            select(ReportCard.pdf_url).where(ReportCard.student_id == student.id, ReportCard.pdf_url.is_not(None))
        )).scalars().all()

        await self.db.execute(delete(AssignmentAttachment).where(AssignmentAttachment.assignment_id.in_(assignment_ids)))
        await self.db.execute(delete(Assignment).where(Assignment.student_id == student.id))
        await self.db.execute(delete(ReportCardEntry).where(ReportCardEntry.report_card_id.in_(report_card_ids)))
        await self.db.execute(delete(ReportCard).where(ReportCard.student_id == student.id))
        await self.db.execute(delete(EventAttendance).where(EventAttendance.student_id == student.id))
        await self.db.execute(delete(event_students).where(event_students.c.student_id == student.id))
        await self.db.execute(update(Task).where(Task.student_id == student.id).values(student_id=None))
        await self.db.execute(update(Expense).where(Expense.student_id == student.id).values(student_id=None))

        image, student_id = student.profile_image_url, student.id
        await self.hard_delete(student)
        for url in [*attachments, *pdfs, image]:
            delete_file(url)
        logger.info(f"Permanently deleted student {student_id}")
