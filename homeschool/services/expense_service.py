# homeschool/services/expense_service.py
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .file_storage import StoredFile, delete_file
from ..core.cache import cache_manager
from ..core.exceptions import ConflictError, ValidationError
from ..models.expense import Expense, ExpenseCategory
from ..models.student import Student
from ..models.subject import Subject
from ..schemas.expense_schemas import ExpenseSummary, SummaryGroup

logger = logging.getLogger(__name__)

GROUP_BY_OPTIONS = ("category", "student", "subject", "month")


def _money(value) -> float:
    return float(Decimal(value or 0).quantize(Decimal("0.01")))


class ExpenseCategoryService(BaseService[ExpenseCategory]):
    resource_name = "Expense category"

    def __init__(self, db: AsyncSession, teacher_id: UUID):
        super().__init__(ExpenseCategory, db, teacher_id)

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[UUID] = None):
        stmt = self._scope(select(ExpenseCategory.id).where(func.lower(ExpenseCategory.name) == name.strip().lower()))
        if exclude_id is not None:
            stmt = stmt.where(ExpenseCategory.id != exclude_id)
        if (await self.db.execute(stmt)).first():
            raise ConflictError(f"An expense category named '{name}' already exists", field="name")

    async def create_category(self, data: Dict[str, Any]) -> ExpenseCategory:
        await self._ensure_unique_name(data["name"])
        try:
            category = await self.create(data)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"An expense category named '{data['name']}' already exists", field="name")
        await invalidate_summaries(self.teacher_id)
        return category

    async def update_category(self, category: ExpenseCategory, data: Dict[str, Any]) -> ExpenseCategory:
        if data.get("name"):
            await self._ensure_unique_name(data["name"], exclude_id=category.id)
        category = await self.update(category, data)
        await invalidate_summaries(self.teacher_id)
        return category

    async def delete_category(self, category: ExpenseCategory):
        """Expenses in the category become uncategorized"""
        await self.db.execute(
            update(Expense).where(Expense.category_id == category.id).values(category_id=None)
        )
        await self.hard_delete(category)
        await invalidate_summaries(self.teacher_id)


async def invalidate_summaries(teacher_id: UUID):
    await cache_manager.delete_pattern(cache_manager.make_key("expense_summary", teacher_id, "*"))


class ExpenseService(BaseService[Expense]):
    resource_name = "Expense"

    def __init__(self, db: AsyncSession, teacher_id: UUID):
        super().__init__(Expense, db, teacher_id)

    def _filters(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        is_tax_deductible: Optional[bool] = None,
    ) -> List[Any]:
        conditions = []
        if start_date is not None:
            conditions.append(Expense.expense_date >= start_date)
        if end_date is not None:
            conditions.append(Expense.expense_date <= end_date)
        if min_amount is not None:
            conditions.append(Expense.amount >= min_amount)
        if max_amount is not None:
            conditions.append(Expense.amount <= max_amount)
        if is_tax_deductible is not None:
            conditions.append(Expense.is_tax_deductible.is_(is_tax_deductible))
        return conditions

    async def list_expenses(
        self,
        page: int,
        limit: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_id: Optional[UUID] = None,
        student_id: Optional[UUID] = None,
        subject_id: Optional[UUID] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        is_tax_deductible: Optional[bool] = None,
        sort_by: str = "expense_date",
        sort_order: str = "desc",
    ) -> Dict[str, Any]:
        if start_date and end_date and end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")
        conditions = self._filters(start_date, end_date, min_amount, max_amount, is_tax_deductible)
        return await self.get_paginated(
            page=page, limit=limit, order_by=sort_by, sort=sort_order, conditions=conditions,
            category_id=category_id, student_id=student_id, subject_id=subject_id,
        )

    async def _check_references(self, data: Dict[str, Any]):
        await self.ensure_owned(ExpenseCategory, data.get("category_id"), "category_id")
        await self.ensure_owned(Student, data.get("student_id"), "student_id")
        await self.ensure_owned(Subject, data.get("subject_id"), "subject_id")

    async def create_expense(self, data: Dict[str, Any]) -> Expense:
        await self._check_references(data)
        expense = await self.create(data)
        await invalidate_summaries(self.teacher_id)
        return expense

    async def update_expense(self, expense: Expense, data: Dict[str, Any]) -> Expense:
        if "amount" in data and data["amount"] is None:
            raise ValidationError("amount cannot be cleared", field="amount")
        await self._check_references(data)
        expense = await self.update(expense, data)
        await invalidate_summaries(self.teacher_id)
        return expense

    async def delete_expense(self, expense: Expense):
        receipt = expense.receipt_url
        await self.hard_delete(expense)
        delete_file(receipt)
        await invalidate_summaries(self.teacher_id)

    async def attach_receipt(self, expense: Expense, stored: StoredFile) -> Expense:
        previous = expense.receipt_url
        expense = await self.update(expense, {"receipt_url": stored.file_url})
        delete_file(previous)
        return expense

    async def remove_receipt(self, expense: Expense) -> Expense:
        previous = expense.receipt_url
        expense = await self.update(expense, {"receipt_url": None})
        delete_file(previous)
        return expense

    async def summary(
        self,
        group_by: str = "category",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> ExpenseSummary:
        """Totals and counts per group, cached until an expense changes"""
        if group_by not in GROUP_BY_OPTIONS:
            raise ValidationError(f"group_by must be one of {', '.join(GROUP_BY_OPTIONS)}", field="group_by")
        if start_date and end_date and end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")

        cache_key = cache_manager.make_key("expense_summary", self.teacher_id, group_by, start_date, end_date)
        cached = await cache_manager.get(cache_key)
        if cached is not None:
            return ExpenseSummary.model_validate(cached)

        conditions = self._filters(start_date, end_date)
        if group_by == "month":
            groups = await self._by_month(conditions)
        else:
            groups = await self._by_reference(group_by, conditions)

        totals_stmt = self._scope(select(
            func.coalesce(func.sum(Expense.amount), 0),
            func.count(Expense.id),
        ).where(*conditions))
        total, count = (await self.db.execute(totals_stmt)).one()
        deductible_stmt = self._scope(select(func.coalesce(func.sum(Expense.amount), 0)).where(
            *conditions, Expense.is_tax_deductible.is_(True),
        ))
        deductible = (await self.db.execute(deductible_stmt)).scalar()

        result = ExpenseSummary(
            group_by=group_by,
            start_date=start_date,
            end_date=end_date,
            total=_money(total),
            count=count,
            tax_deductible_total=_money(deductible),
            groups=groups,
        )
        await cache_manager.set(cache_key, result.model_dump(mode="json"))
        return result

    async def _by_reference(self, group_by: str, conditions: List[Any]) -> List[SummaryGroup]:
        if group_by == "category":
            column, label, budget = Expense.category_id, ExpenseCategory.name, ExpenseCategory.budget
            stmt = select(column, label, budget, func.sum(Expense.amount), func.count(Expense.id)).outerjoin(
                ExpenseCategory, ExpenseCategory.id == Expense.category_id
            ).group_by(column, label, budget)
            unassigned = "Uncategorized"
        elif group_by == "student":
            column = Expense.student_id
            stmt = select(
                column, Student.first_name, Student.last_name, func.sum(Expense.amount), func.count(Expense.id)
            ).outerjoin(Student, Student.id == Expense.student_id).group_by(column, Student.first_name, Student.last_name)
            unassigned = "Unassigned"
        else:
            column = Expense.subject_id
            stmt = select(column, Subject.name, func.sum(Expense.amount), func.count(Expense.id)).outerjoin(
                Subject, Subject.id == Expense.subject_id
            ).group_by(column, Subject.name)
            unassigned = "Unassigned"

        rows = (await self.db.execute(self._scope(stmt.where(*conditions)))).all()
        groups = []
        for row in rows:
            key = row[0]
            if group_by == "category":
                _, name, budget, total, count = row
            elif group_by == "student":
                _, first, last, total, count = row
                name, budget = (f"{first} {last}" if first else None), None
            else:
                _, name, total, count = row
                budget = None
            groups.append(SummaryGroup(
                key=str(key) if key is not None else None,
                label=name if key is not None and name else unassigned,
                total=_money(total),
                count=count,
                budget=_money(budget) if budget is not None else None,
            ))
        groups.sort(key=lambda g: (-g.total, g.label))
        return groups

    async def _by_month(self, conditions: List[Any]) -> List[SummaryGroup]:
        stmt = self._scope(select(Expense.expense_date, Expense.amount).where(*conditions))
        months: Dict[str, List[Decimal]] = OrderedDict()
        for expense_date, amount in (await self.db.execute(stmt.order_by(Expense.expense_date))).all():
            months.setdefault(f"{expense_date:%Y-%m}", []).append(Decimal(amount))
        return [
            SummaryGroup(key=month, label=f"{date(int(month[:4]), int(month[5:]), 1):%B %Y}", total=_money(sum(amounts)), count=len(amounts))
            for month, amounts in months.items()
        ]
