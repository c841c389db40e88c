# homeschool/services/assignment_service.py
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .file_storage import StoredFile, delete_file
from ..core.exceptions import NotFoundError, ValidationError
from ..models.base import utc_now
from ..models.coursework import Assignment, AssignmentAttachment, AssignmentStatus
from ..models.student import Student
from ..models.subject import Subject

MAX_ATTACHMENTS = 20


class AssignmentService(BaseService[Assignment]):
    resource_name = "Assignment"

    def __init__(self, db: AsyncSession, teacher_id: UUID):
        super().__init__(Assignment, db, teacher_id)

    async def list_assignments(
        self,
        page: int,
        limit: int,
        student_id: Optional[UUID] = None,
        subject_id: Optional[UUID] = None,
        status: Optional[AssignmentStatus] = None,
        due_from: Optional[datetime] = None,
        due_to: Optional[datetime] = None,
        sort_by: str = "due_date",
        sort_order: str = "asc",
    ) -> Dict[str, Any]:
        conditions = []
        if due_from is not None:
            conditions.append(Assignment.due_date >= due_from)
        if due_to is not None:
            conditions.append(Assignment.due_date < due_to)
        return await self.get_paginated(
            page=page, limit=limit, order_by=sort_by, sort=sort_order, conditions=conditions,
            student_id=student_id, subject_id=subject_id, status=status,
        )

    async def create_assignment(self, data: Dict[str, Any]) -> Assignment:
        await self.ensure_owned(Student, data.get("student_id"), "student_id")
        await self.ensure_owned(Subject, data.get("subject_id"), "subject_id")
        if data.get("status") in (AssignmentStatus.SUBMITTED, AssignmentStatus.GRADED):
            data["completed_at"] = utc_now()
        return await self.create(data)

    async def update_assignment(self, assignment: Assignment, data: Dict[str, Any]) -> Assignment:
        if "student_id" in data:
            if data["student_id"] is None:
                raise ValidationError("student_id cannot be cleared", field="student_id")
            await self.ensure_owned(Student, data["student_id"], "student_id")
        await self.ensure_owned(Subject, data.get("subject_id"), "subject_id")

        status = data.get("status")
        if status in (AssignmentStatus.SUBMITTED, AssignmentStatus.GRADED) and assignment.completed_at is None:
            data["completed_at"] = utc_now()
        elif status in (AssignmentStatus.NOT_STARTED, AssignmentStatus.IN_PROGRESS):
            data["completed_at"] = None
        return await self.update(assignment, data)

    async def grade(self, assignment: Assignment, data: Dict[str, Any]) -> Assignment:
        """Record a score and/or letter grade and mark the assignment graded"""
        max_score = data.get("max_score") or assignment.max_score
        score = data.get("score")
        if score is not None and max_score is not None and score > max_score:
            raise ValidationError("score cannot exceed max_score", field="score")
        data["status"] = AssignmentStatus.GRADED
        if assignment.completed_at is None:
            data["completed_at"] = utc_now()
        return await self.update(assignment, data)

    async def add_attachment(self, assignment: Assignment, stored: StoredFile) -> AssignmentAttachment:
        if len(assignment.attachments) >= MAX_ATTACHMENTS:
            delete_file(stored.file_url)
            raise ValidationError(f"An assignment can have at most {MAX_ATTACHMENTS} attachments", field="file")
        attachment = AssignmentAttachment(
            assignment_id=assignment.id,
            file_name=stored.file_name,
            file_url=stored.file_url,
            content_type=stored.content_type,
            file_size=stored.file_size,
        )
        self.db.add(attachment)
        await self.db.commit()
        await self.db.refresh(attachment)
        return attachment

    async def remove_attachment(self, assignment: Assignment, attachment_id: UUID):
        attachment = next((a for a in assignment.attachments if a.id == attachment_id), None)
        if attachment is None:
            raise NotFoundError("Attachment", attachment_id)
        assignment.attachments.remove(attachment)
        await self.db.commit()
        delete_file(attachment.file_url)

    async def delete_assignment(self, assignment: Assignment):
        urls = [a.file_url for a in assignment.attachments]
        await self.hard_delete(assignment)
        for url in urls:
            delete_file(url)
