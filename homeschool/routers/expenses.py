"""Expense tracking endpoints: categories, expenses, receipts and summaries."""
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_current_teacher
from ..core.database import get_db
from ..core.rate_limiter import rate_limit
from ..models.expense import ExpenseCategory
from ..models.teacher import Teacher
from ..schemas.expense_schemas import CategoryCreate, CategoryOut, CategoryUpdate, ExpenseCreate, ExpenseOut, ExpenseUpdate
from ..services.expense_service import ExpenseCategoryService, ExpenseService
from ..services.file_storage import save_upload
from ..utils.pagination import PaginationParams, Paginator
from ..utils.responses import success_response

router = APIRouter(
    prefix="/api/v1/expenses",
    tags=["Expenses"],
    dependencies=[Depends(rate_limit("standard"))],
)

# Categories

@router.get("/categories")
async def list_categories(
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    categories = await ExpenseCategoryService(db, teacher.id).list_all(order_by=ExpenseCategory.name)
    return success_response([CategoryOut.model_validate(c) for c in categories])

@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    category = await ExpenseCategoryService(db, teacher.id).create_category(data.model_dump())
    return success_response(CategoryOut.model_validate(category))

@router.put("/categories/{category_id}")
async def update_category(
    category_id: UUID,
    data: CategoryUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = ExpenseCategoryService(db, teacher.id)
    category = await service.get_or_404(category_id)
    category = await service.update_category(category, data.model_dump(exclude_unset=True, exclude_none=True))
    return success_response(CategoryOut.model_validate(category))

@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Delete a category; its expenses become uncategorized"""
    service = ExpenseCategoryService(db, teacher.id)
    await service.delete_category(await service.get_or_404(category_id))

# Summary

@router.get("/summary")
async def expense_summary(
    group_by: str = Query("category", pattern="^(category|student|subject|month)$"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    summary = await ExpenseService(db, teacher.id).summary(group_by, start_date, end_date)
    return success_response(summary)

# Expenses

@router.get("")
async def list_expenses(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    category_id: Optional[UUID] = Query(None),
    student_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    is_tax_deductible: Optional[bool] = Query(None),
    sort_by: str = Query("expense_date", pattern="^(expense_date|amount|created_at|description)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await ExpenseService(db, teacher.id).list_expenses(
        pagination.page, pagination.limit,
        start_date=start_date, end_date=end_date,
        category_id=category_id, student_id=student_id, subject_id=subject_id,
        min_amount=min_amount, max_amount=max_amount, is_tax_deductible=is_tax_deductible,
        sort_by=sort_by, sort_order=sort_order,
    )
    items = [ExpenseOut.model_validate(e) for e in result["items"]]
    return Paginator.create_response(items, pagination.page, pagination.limit, result["total"])

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(
    data: ExpenseCreate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    expense = await ExpenseService(db, teacher.id).create_expense(data.model_dump())
    return success_response(ExpenseOut.model_validate(expense))

@router.get("/{expense_id}")
async def get_expense(
    expense_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    expense = await ExpenseService(db, teacher.id).get_or_404(expense_id)
    return success_response(ExpenseOut.model_validate(expense))

@router.put("/{expense_id}")
async def update_expense(
    expense_id: UUID,
    data: ExpenseUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = ExpenseService(db, teacher.id)
    expense = await service.get_or_404(expense_id)
    expense = await service.update_expense(expense, data.model_dump(exclude_unset=True))
    return success_response(ExpenseOut.model_validate(expense))

@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = ExpenseService(db, teacher.id)
    await service.delete_expense(await service.get_or_404(expense_id))

@router.post("/{expense_id}/receipt", dependencies=[Depends(rate_limit("upload"))])
async def upload_receipt(
    expense_id: UUID,
    file: UploadFile = File(...),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    """Attach a receipt image or PDF, replacing any earlier one"""
    service = ExpenseService(db, teacher.id)
    expense = await service.get_or_404(expense_id)
    stored = await save_upload(file, "receipts", teacher.id)
    expense = await service.attach_receipt(expense, stored)
    return success_response(ExpenseOut.model_validate(expense))

@router.delete("/{expense_id}/receipt")
async def delete_receipt(
    expense_id: UUID,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    service = ExpenseService(db, teacher.id)
    expense = await service.remove_receipt(await service.get_or_404(expense_id))
    return success_response(ExpenseOut.model_validate(expense))
