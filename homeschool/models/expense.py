# homeschool/models/expense.py
from sqlalchemy import Column, String, Boolean, Text, ForeignKey, Uuid, Numeric, Date, UniqueConstraint, Enum
from sqlalchemy.orm import relationship
from .base import Base
import enum


class PaymentMethod(enum.Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CHECK = "check"
    BANK_TRANSFER = "bank_transfer"
    OTHER = "other"


class ExpenseCategory(Base):
    __tablename__ = "expense_categories"
    __table_args__ = (UniqueConstraint("teacher_id", "name", name="uq_expense_categories_teacher_name"),)

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    color = Column(String(7), nullable=True)
    budget = Column(Numeric(10, 2), nullable=True)


class Expense(Base):
    __tablename__ = "expenses"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Uuid, ForeignKey("expense_categories.id", ondelete="SET NULL"), nullable=True, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="SET NULL"), nullable=True, index=True)
    subject_id = Column(Uuid, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String(255), nullable=False)
    expense_date = Column(Date, nullable=False, index=True)
    vendor = Column(String(100), nullable=True)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    receipt_url = Column(String(500), nullable=True)
    is_tax_deductible = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)

    category = relationship("ExpenseCategory", lazy="selectin")
