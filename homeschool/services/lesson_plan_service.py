# homeschool/services/lesson_plan_service.py
"""Lesson plans: own plans, the public library, copies and shares."""
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .file_storage import StoredFile, copy_file, delete_file
from .student_service import sanitize_search_term
from ..core.exceptions import ForbiddenError, NotFoundError, ValidationError
from ..models.lesson_plan import LessonPlan, LessonPlanAttachment, LessonPlanShare, SharePermission
from ..models.subject import Subject
from ..models.teacher import Teacher
from ..schemas.lesson_plan_schemas import AuthorOut, LessonPlanOut

logger = logging.getLogger(__name__)

MAX_ATTACHMENTS = 20
COPIED_FIELDS = (
    "description", "grade_level", "objectives", "materials", "content", "duration_minutes", "tags",
)


def to_out(plan: LessonPlan) -> LessonPlanOut:
    out = LessonPlanOut.model_validate(plan)
    return out.model_copy(update={
        "author": AuthorOut.model_validate(plan.teacher) if plan.teacher else None,
        "subject_name": plan.subject.name if plan.subject else None,
    })


def _like(term: str) -> str:
    return f"%{sanitize_search_term(term)}%"


def _text_filters(q: Optional[str], subject: Optional[str], grade_level: Optional[str], tag: Optional[str]) -> List[Any]:
    conditions = []
    if q and q.strip():
        conditions.append(or_(
            LessonPlan.title.ilike(_like(q), escape="\\"),
            LessonPlan.description.ilike(_like(q), escape="\\"),
        ))
    if subject and subject.strip():
        conditions.append(LessonPlan.subject.has(Subject.name.ilike(_like(subject), escape="\\")))
    if grade_level:
        conditions.append(LessonPlan.grade_level == grade_level.upper())
    if tag and tag.strip():
        # tags are stored lower-cased as a JSON list
        conditions.append(cast(LessonPlan.tags, String).like(_like(f'"{tag.strip().lower()}"'), escape="\\"))
    return conditions


class LessonPlanService(BaseService[LessonPlan]):
    resource_name = "Lesson plan"

    def __init__(self, db: AsyncSession, teacher: Teacher):
        super().__init__(LessonPlan, db, teacher.id)
        self.teacher = teacher

    async def _paginate(self, stmt, page: int, limit: int, order_by=None) -> Dict[str, Any]:
        total = (await self.db.execute(select(func.count()).select_from(stmt.subquery()))).scalar() or 0
        order = order_by if order_by is not None else LessonPlan.created_at.desc()
        result = await self.db.execute(stmt.order_by(order, LessonPlan.id).offset((page - 1) * limit).limit(limit))
        return {"items": list(result.scalars().all()), "total": total, "page": page, "limit": limit}

    async def list_own(
        self,
        page: int,
        limit: int,
        q: Optional[str] = None,
        subject_id: Optional[UUID] = None,
        grade_level: Optional[str] = None,
        tag: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> Dict[str, Any]:
        conditions = _text_filters(q, None, grade_level, tag)
        return await self.get_paginated(
            page=page, limit=limit, order_by="created_at", sort="desc", conditions=conditions,
            subject_id=subject_id, is_public=is_public,
        )

    async def search_public(
        self,
        page: int,
        limit: int,
        q: Optional[str] = None,
        subject: Optional[str] = None,
        grade_level: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Search every teacher's public plans"""
        stmt = select(LessonPlan).where(LessonPlan.is_public.is_(True), *_text_filters(q, subject, grade_level, tag))
        return await self._paginate(stmt, page, limit)

    def _shared_with_me(self):
        return or_(
            LessonPlanShare.shared_with_id == self.teacher.id,
            LessonPlanShare.shared_with_email == self.teacher.email,
        )

    async def shared_with_me(self, page: int, limit: int) -> Dict[str, Any]:
        plan_ids = select(LessonPlanShare.lesson_plan_id).where(self._shared_with_me())
        stmt = select(LessonPlan).where(LessonPlan.id.in_(plan_ids))
        return await self._paginate(stmt, page, limit)

    async def _share_for(self, plan_id: UUID) -> Optional[LessonPlanShare]:
        """The recipient's share of a plan, preferring one that allows copying"""
        stmt = select(LessonPlanShare).where(LessonPlanShare.lesson_plan_id == plan_id, self._shared_with_me())
        shares = (await self.db.execute(stmt)).scalars().all()
        return next((s for s in shares if s.permission == SharePermission.COPY), shares[0] if shares else None)

    async def get_visible(self, plan_id: UUID) -> Tuple[LessonPlan, Optional[LessonPlanShare]]:
        """A plan the teacher owns, that is public, or that was shared with them"""
        plan = await self.db.get(LessonPlan, plan_id)
        if plan is None:
            raise NotFoundError(self.resource_name, plan_id)
        if plan.teacher_id == self.teacher.id:
            return plan, None
        share = await self._share_for(plan_id)
        if share is None and not plan.is_public:
            raise NotFoundError(self.resource_name, plan_id)
        return plan, share

    async def get_editable(self, plan_id: UUID) -> LessonPlan:
        plan, _ = await self.get_visible(plan_id)
        if plan.teacher_id != self.teacher.id:
            raise ForbiddenError("Only the author can change this lesson plan")
        return plan

    async def _reload(self, plan_id: UUID) -> LessonPlan:
        stmt = select(LessonPlan).where(LessonPlan.id == plan_id).execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalar_one()

    async def create_plan(self, data: Dict[str, Any]) -> LessonPlan:
        await self.ensure_owned(Subject, data.get("subject_id"), "subject_id")
        plan = await self.create(data)
        return await self._reload(plan.id)

    async def update_plan(self, plan: LessonPlan, data: Dict[str, Any]) -> LessonPlan:
        await self.ensure_owned(Subject, data.get("subject_id"), "subject_id")
        for key in ("objectives", "materials", "tags"):
            if key in data and data[key] is None:
                data[key] = []
        plan = await self.update(plan, data)
        return await self._reload(plan.id)

    async def delete_plan(self, plan: LessonPlan):
        urls = [a.file_url for a in plan.attachments]
        await self.hard_delete(plan)
        for url in urls:
            delete_file(url)

    async def copy_plan(self, plan_id: UUID, title: Optional[str] = None) -> LessonPlan:
        """Copy a visible plan into the teacher's account as a private plan"""
        source, share = await self.get_visible(plan_id)
        own = source.teacher_id == self.teacher.id
        if not own and not source.is_public and share.permission != SharePermission.COPY:
            raise ForbiddenError("This lesson plan was shared with view permission only")

        copy = LessonPlan(
            teacher_id=self.teacher.id,
            title=title or (source.title if not own else f"Copy of {source.title}")[:200],
            subject_id=source.subject_id if own else None,
            copied_from_id=source.id,
            is_public=False,
            **{field: getattr(source, field) for field in COPIED_FIELDS},
        )
        for attachment in source.attachments:
            url = copy_file(attachment.file_url, "attachments", self.teacher.id)
            if url is None:
                logger.warning(f"Attachment {attachment.id} missing on disk, not copied")
                continue
            copy.attachments.append(LessonPlanAttachment(
                file_name=attachment.file_name,
                file_url=url,
                content_type=attachment.content_type,
                file_size=attachment.file_size,
            ))
        self.db.add(copy)
        await self.db.commit()
        logger.info(f"Teacher {self.teacher.id} copied lesson plan {source.id} to {copy.id}")
        return await self._reload(copy.id)

    async def share(
        self,
        plan: LessonPlan,
        emails: List[str],
        permission: SharePermission,
        message: Optional[str] = None,
    ) -> List[LessonPlanShare]:
        """Share with each email; sharing again updates permission and message"""
        addresses = []
        for email in emails:
            email = email.strip().lower()
            if email == self.teacher.email:
                raise ValidationError("You cannot share a lesson plan with yourself", field="emails")
            if email not in addresses:
                addresses.append(email)

        recipients = {
            t.email: t.id for t in (await self.db.execute(
                select(Teacher).where(Teacher.email.in_(addresses))
            )).scalars().all()
        }
        existing = {
            s.shared_with_email: s for s in (await self.db.execute(
                select(LessonPlanShare).where(
                    LessonPlanShare.lesson_plan_id == plan.id,
                    LessonPlanShare.shared_with_email.in_(addresses),
                )
            )).scalars().all()
        }

        shares = []
        for email in addresses:
            share = existing.get(email)
            if share is None:
                share = LessonPlanShare(
                    lesson_plan_id=plan.id,
                    shared_by_id=self.teacher.id,
                    shared_with_email=email,
                )
                self.db.add(share)
            share.shared_with_id = recipients.get(email)
            share.permission = permission
            share.message = message
            shares.append(share)
        await self.db.commit()
        for share in shares:
            await self.db.refresh(share)
        return shares

    async def list_shares(self, plan: LessonPlan) -> List[LessonPlanShare]:
        stmt = select(LessonPlanShare).where(LessonPlanShare.lesson_plan_id == plan.id).order_by(
            LessonPlanShare.created_at
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def revoke_share(self, plan: LessonPlan, share_id: UUID):
        share = await self.db.get(LessonPlanShare, share_id)
        if share is None or share.lesson_plan_id != plan.id:
            raise NotFoundError("Share", share_id)
        await self.db.delete(share)
        await self.db.commit()

    async def add_attachment(self, plan: LessonPlan, stored: StoredFile) -> LessonPlanAttachment:
        if len(plan.attachments) >= MAX_ATTACHMENTS:
            delete_file(stored.file_url)
            raise ValidationError(f"A lesson plan can have at most {MAX_ATTACHMENTS} attachments", field="file")
        attachment = LessonPlanAttachment(
            lesson_plan_id=plan.id,
            file_name=stored.file_name,
            file_url=stored.file_url,
            content_type=stored.content_type,
            file_size=stored.file_size,
        )
        self.db.add(attachment)
        await self.db.commit()
        await self.db.refresh(attachment)
        return attachment

    async def remove_attachment(self, plan: LessonPlan, attachment_id: UUID):
        attachment = next((a for a in plan.attachments if a.id == attachment_id), None)
        if attachment is None:
            raise NotFoundError("Attachment", attachment_id)
        plan.attachments.remove(attachment)
        await self.db.commit()
        delete_file(attachment.file_url)
