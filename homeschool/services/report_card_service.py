# homeschool/services/report_card_service.py
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .file_storage import delete_file, save_bytes
from .report_card_pdf import render_report_card
from ..core.exceptions import NotFoundError, ValidationError
from ..models.base import utc_now
from ..models.report_card import ReportCard, ReportCardEntry
from ..models.student import Student
from ..models.subject import Subject
from ..models.teacher import Teacher
from ..schemas.report_card_schemas import ReportCardOut

logger = logging.getLogger(__name__)

GRADE_POINTS = {
    "A+": 4.0, "A": 4.0, "A-": 3.7,
    "B+": 3.3, "B": 3.0, "B-": 2.7,
    "C+": 2.3, "C": 2.0, "C-": 1.7,
    "D+": 1.3, "D": 1.0, "D-": 0.7,
    "F": 0.0,
}

# Lowest percentage for each letter, highest first
PERCENT_GRADES = (
    (97, "A+"), (93, "A"), (90, "A-"),
    (87, "B+"), (83, "B"), (80, "B-"),
    (77, "C+"), (73, "C"), (70, "C-"),
    (67, "D+"), (63, "D"), (60, "D-"),
)


def letter_for_percentage(percent: float) -> str:
    for floor, letter in PERCENT_GRADES:
        if percent >= floor:
            return letter
    return "F"


def grade_points(entry) -> Optional[float]:
    """Points for one entry: its letter grade, else its percentage; P and I carry none"""
    if entry.grade:
        return GRADE_POINTS.get(entry.grade)
    if entry.score is not None and entry.max_score:
        percent = float(entry.score) / float(entry.max_score) * 100
        return GRADE_POINTS[letter_for_percentage(percent)]
    return None


def compute_gpa(entries: Iterable) -> Optional[float]:
    """Credit-weighted GPA on a 4.0 scale; entries without credits weigh 1"""
    total_points = 0.0
    total_credits = 0.0
    for entry in entries:
        points = grade_points(entry)
        if points is None:
            continue
        credits = float(entry.credits) if entry.credits is not None else 1.0
        if credits <= 0:
            continue
        total_points += points * credits
        total_credits += credits
    if not total_credits:
        return None
    return round(total_points / total_credits, 2)


class ReportCardService(BaseService[ReportCard]):
    resource_name = "Report card"

    def __init__(self, db: AsyncSession, teacher_id: UUID):
        super().__init__(ReportCard, db, teacher_id)

    @staticmethod
    def to_out(card: ReportCard) -> ReportCardOut:
        out = ReportCardOut.model_validate(card)
        return out.model_copy(update={"gpa": compute_gpa(card.entries)})

    async def _reload(self, card_id: UUID) -> ReportCard:
        stmt = self._scope(select(ReportCard).where(ReportCard.id == card_id)).execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalar_one()

    async def list_report_cards(
        self,
        page: int,
        limit: int,
        student_id: Optional[UUID] = None,
        academic_year: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.get_paginated(
            page=page, limit=limit, order_by="created_at", sort="desc",
            student_id=student_id, academic_year=academic_year,
        )

    async def _entry_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Fill subject_name from the linked subject when not given"""
        if data.get("subject_id") is not None:
            subject = await self.ensure_owned(Subject, data["subject_id"], "subject_id")
            if not data.get("subject_name"):
                data["subject_name"] = subject.name
        return data

    async def create_report_card(self, data: Dict[str, Any]) -> ReportCard:
        entries = data.pop("entries", [])
        await self.ensure_owned(Student, data["student_id"], "student_id")
        card = ReportCard(**data, teacher_id=self.teacher_id)
        for entry in entries:
            card.entries.append(ReportCardEntry(**await self._entry_fields(entry)))
        self.db.add(card)
        await self.db.commit()
        return await self._reload(card.id)

    async def update_report_card(self, card: ReportCard, data: Dict[str, Any]) -> ReportCard:
        start = data.get("start_date", card.start_date)
        end = data.get("end_date", card.end_date)
        if start and end and end < start:
            raise ValidationError("end_date must not be before start_date", field="end_date")
        card = await self.update(card, data)
        return await self._reload(card.id)

    async def add_entry(self, card: ReportCard, data: Dict[str, Any]) -> ReportCard:
        entry = ReportCardEntry(**await self._entry_fields(data), report_card_id=card.id)
        self.db.add(entry)
        await self.db.commit()
        return await self._reload(card.id)

    def _find_entry(self, card: ReportCard, entry_id: UUID) -> ReportCardEntry:
        entry = next((e for e in card.entries if e.id == entry_id), None)
        if entry is None:
            raise NotFoundError("Report card entry", entry_id)
        return entry

    async def update_entry(self, card: ReportCard, entry_id: UUID, data: Dict[str, Any]) -> ReportCard:
        entry = self._find_entry(card, entry_id)
        if "subject_name" in data and not data["subject_name"]:
            data.pop("subject_name")
        data = await self._entry_fields(data)
        score = data.get("score", entry.score)
        max_score = data.get("max_score", entry.max_score)
        if score is not None and max_score is not None and Decimal(score) > Decimal(max_score):
            raise ValidationError("score cannot exceed max_score", field="score")
        for key, value in data.items():
            setattr(entry, key, value)
        await self.db.commit()
        return await self._reload(card.id)

    async def remove_entry(self, card: ReportCard, entry_id: UUID) -> ReportCard:
        entry = self._find_entry(card, entry_id)
        card.entries.remove(entry)
        await self.db.commit()
        return await self._reload(card.id)

    async def generate_pdf(self, card: ReportCard, teacher: Teacher) -> ReportCard:
        pdf = render_report_card(card, teacher.full_name, compute_gpa(card.entries))
        stored = save_bytes(pdf, "report_cards", teacher.id)
        previous = card.pdf_url
        card.pdf_url = stored.file_url
        card.generated_at = utc_now()
        await self.db.commit()
        delete_file(previous)
        logger.info(f"Generated PDF for report card {card.id} ({stored.file_size} bytes)")
        return await self._reload(card.id)

    async def delete_report_card(self, card: ReportCard):
        pdf_url = card.pdf_url
        await self.hard_delete(card)
        delete_file(pdf_url)
