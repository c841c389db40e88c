"""Report card endpoints: entries, GPA and PDF documents."""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_current_teacher
from ..core.database import get_db
from ..core.exceptions import NotFoundError
from ..core.rate_limiter import rate_limit
from ..models.teacher import Teacher
from ..schemas.report_card_schemas import EntryCreate, EntryUpdate, ReportCardCreate, ReportCardUpdate
from ..services.file_storage import path_for_url
from ..services.report_card_service import ReportCardService
from ..utils.pagination import PaginationParams, Paginator
from ..utils.responses import success_response

router = APIRouter(
    prefix="/api/v1/report-cards",
    tags=["Report Cards"],
    dependencies=[Depends(rate_limit("standard"))],
)

@router.get("")
async def list_report_cards(
    student_id: Optional[UUID] = Query(None),
    academic_year: Optional[str] = Query(None, pattern=r"^\d{4}-\d{4}$"),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await ReportCardService(db, teacher.id).list_report_cards(
        pagination.page, pagination.limit, student_id=student_id, academic_year=academic_year,
    )
    items = [ReportCardService.to_out(card) for card in result["items"]]
    return Paginator.create_response(items, pagination.page, pagination.limit, result["total"])

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_report_card(
    data: ReportCardCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    card = await ReportCardService(db, teacher.id).create_report_card(data.model_dump())
    return success_response(ReportCardService.to_out(card))

@router.get("/{report_card_id}")
async def get_report_card(
    report_card_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    card = await ReportCardService(db, teacher.id).get_or_404(report_card_id)
    return success_response(ReportCardService.to_out(card))

@router.put("/{report_card_id}")
async def update_report_card(
    report_card_id: UUID,
    data: ReportCardUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = ReportCardService(db, teacher.id)
    card = await service.get_or_404(report_card_id)
    card = await service.update_report_card(card, data.model_dump(exclude_unset=True))
    return success_response(ReportCardService.to_out(card))

@router.delete("/{report_card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report_card(
    report_card_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = ReportCardService(db, teacher.id)
    await service.delete_report_card(await service.get_or_404(report_card_id))

@router.post("/{report_card_id}/entries", status_code=status.HTTP_201_CREATED)
async def add_entry(
    report_card_id: UUID,
    data: EntryCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Add a subject line; returns the whole card with its recomputed GPA"""
    service = ReportCardService(db, teacher.id)
    card = await service.add_entry(await service.get_or_404(report_card_id), data.model_dump())
    return success_response(ReportCardService.to_out(card))

@router.put("/{report_card_id}/entries/{entry_id}")
async def update_entry(
    report_card_id: UUID,
    entry_id: UUID,
    data: EntryUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = ReportCardService(db, teacher.id)
    card = await service.get_or_404(report_card_id)
    card = await service.update_entry(card, entry_id, data.model_dump(exclude_unset=True))
    return success_response(ReportCardService.to_out(card))

@router.delete("/{report_card_id}/entries/{entry_id}")
async def remove_entry(
    report_card_id: UUID,
    entry_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = ReportCardService(db, teacher.id)
    card = await service.remove_entry(await service.get_or_404(report_card_id), entry_id)
    return success_response(ReportCardService.to_out(card))

@router.post("/{report_card_id}/generate-pdf")
async def generate_pdf(
    report_card_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Render the card to PDF, replacing any earlier document"""
    service = ReportCardService(db, teacher.id)
    card = await service.generate_pdf(await service.get_or_404(report_card_id), teacher)
    return success_response(ReportCardService.to_out(card))

@router.get("/{report_card_id}/pdf")
async def download_pdf(
    report_card_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    card = await ReportCardService(db, teacher.id).get_or_404(report_card_id)
    path = path_for_url(card.pdf_url)
    if path is None or not path.is_file():
        raise NotFoundError("Report card PDF", report_card_id)
    filename = f"report-card-{card.academic_year}-{card.id.hex[:8]}.pdf"
    return FileResponse(path, media_type="application/pdf", filename=filename)
