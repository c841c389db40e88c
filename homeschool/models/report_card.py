# homeschool/models/report_card.py
from sqlalchemy import Column, String, Text, ForeignKey, Uuid, Numeric, Date
from sqlalchemy.orm import relationship
from .base import Base, UTCDateTime


class ReportCard(Base):
    __tablename__ = "report_cards"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    academic_year = Column(String(9), nullable=False, index=True)  # 2025-2026
    term = Column(String(50), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    comments = Column(Text, nullable=True)

    # Generated document
    pdf_url = Column(String(500), nullable=True)
    generated_at = Column(UTCDateTime, nullable=True)

    student = relationship("Student", lazy="selectin")
    entries = relationship(
        "ReportCardEntry", back_populates="report_card",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="ReportCardEntry.subject_name",
    )


class ReportCardEntry(Base):
    __tablename__ = "report_card_entries"

    report_card_id = Column(Uuid, ForeignKey("report_cards.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Uuid, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)

    # Name is copied so the card survives subject deletion
    subject_name = Column(String(100), nullable=False)
    grade = Column(String(5), nullable=True)
    score = Column(Numeric(7, 2), nullable=True)
    max_score = Column(Numeric(7, 2), nullable=True)
    credits = Column(Numeric(4, 2), nullable=True)
    comments = Column(Text, nullable=True)

    report_card = relationship("ReportCard", back_populates="entries")
