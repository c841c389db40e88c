# homeschool/schemas/expense_schemas.py
"""Pydantic schemas for expenses and expense categories."""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from .common import HexColor, TimestampedOut
from ..models.expense import PaymentMethod


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: Optional[HexColor] = None
    budget: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[HexColor] = None
    budget: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class CategoryOut(TimestampedOut):
    name: str
    color: Optional[str] = None
    budget: Optional[float] = None


class ExpenseCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    description: str = Field(..., min_length=1, max_length=255)
    expense_date: date
    vendor: Optional[str] = Field(default=None, max_length=100)
    payment_method: Optional[PaymentMethod] = None
    category_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    is_tax_deductible: bool = False
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("expense_date")
    @classmethod
    def validate_expense_date(cls, v):
        if v.year < 1900:
            raise ValueError("expense_date is out of range")
        return v


class ExpenseUpdate(BaseModel):
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    expense_date: Optional[date] = None
    vendor: Optional[str] = Field(default=None, max_length=100)
    payment_method: Optional[PaymentMethod] = None
    category_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    is_tax_deductible: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class ExpenseOut(TimestampedOut):
    amount: float
    description: str
    expense_date: date
    vendor: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    category_id: Optional[UUID] = None
    category: Optional[CategoryOut] = None
    student_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    receipt_url: Optional[str] = None
    is_tax_deductible: bool
    notes: Optional[str] = None


class SummaryGroup(BaseModel):
    key: Optional[str] = None
    label: str
    total: float
    count: int
    budget: Optional[float] = None


class ExpenseSummary(BaseModel):
    group_by: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total: float
    count: int
    tax_deductible_total: float
    groups: List[SummaryGroup]
