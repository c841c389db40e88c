# homeschool/services/report_card_pdf.py
"""Render a report card to PDF with fpdf2."""
from datetime import datetime, timezone
from typing import Optional

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..models.report_card import ReportCard

HEADER_BG = (220, 230, 241)
ALTERNATE_ROW_BG = (245, 245, 245)


def safe_encode(text) -> str:
    """Core PDF fonts are latin-1 only"""
    if text is None or text == "":
        return "-"
    replacements = {
        "–": "-", "—": "--", "‘": "'", "’": "'",
        "“": '"', "”": '"', "…": "...",
    }
    result = str(text)
    for a, b in replacements.items():
        result = result.replace(a, b)
    return result.encode("latin-1", "replace").decode("latin-1")


def _number(value) -> str:
    if value is None:
        return "-"
    return f"{float(value):g}"


class ReportCardPDF(FPDF):
    def __init__(self, school_name: str):
        super().__init__(orientation="P", unit="mm", format="A4")
        self.school_name = school_name
        self.set_margins(15, 15, 15)
        self.set_auto_page_break(auto=True, margin=15)

    def header(self):
        self.set_font("Helvetica", "B", 14)
        self.cell(0, 7, safe_encode(self.school_name), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_font("Helvetica", "", 10)
        self.cell(0, 5, "Homeschool Report Card", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(6)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(128, 128, 128)
        self.cell(0, 10, f"Page {self.page_no()}", align="C")

    def section_header(self, title: str):
        self.ln(3)
        self.set_font("Helvetica", "B", 12)
        self.set_text_color(0, 0, 0)
        self.cell(0, 8, safe_encode(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(1)

    def key_value(self, key: str, value):
        self.set_font("Helvetica", "B", 10)
        self.cell(40, 6, safe_encode(key))
        self.set_font("Helvetica", "", 10)
        self.cell(0, 6, safe_encode(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def render_report_card(card: ReportCard, teacher_name: str, gpa: Optional[float]) -> bytes:
    pdf = ReportCardPDF(school_name=f"{teacher_name}'s Homeschool")
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 9, safe_encode(card.title), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)

    pdf.section_header("Student")
    pdf.key_value("Name:", card.student.full_name if card.student else None)
    if card.student and card.student.grade_level:
        pdf.key_value("Grade level:", card.student.grade_level)
    pdf.key_value("Academic year:", card.academic_year)
    if card.term:
        pdf.key_value("Term:", card.term)
    if card.start_date or card.end_date:
        period = f"{card.start_date or '...'} to {card.end_date or '...'}"
        pdf.key_value("Period:", period)

    pdf.section_header("Grades")
    col_widths = [60, 20, 25, 20, 55]
    headers = ["Subject", "Grade", "Score", "Credits", "Comments"]
    pdf.set_fill_color(*HEADER_BG)
    pdf.set_font("Helvetica", "B", 9)
    for width, title in zip(col_widths, headers):
        pdf.cell(width, 8, title, border=1, align="C", fill=True)
    pdf.ln()

    pdf.set_font("Helvetica", "", 9)
    for i, entry in enumerate(card.entries):
        pdf.set_fill_color(*(ALTERNATE_ROW_BG if i % 2 == 0 else (255, 255, 255)))
        score = "-"
        if entry.score is not None:
            score = _number(entry.score)
            if entry.max_score is not None:
                score += f" / {_number(entry.max_score)}"
        pdf.cell(col_widths[0], 7, safe_encode(entry.subject_name)[:40], border=1, fill=True)
        pdf.cell(col_widths[1], 7, safe_encode(entry.grade), border=1, fill=True, align="C")
        pdf.cell(col_widths[2], 7, score, border=1, fill=True, align="C")
        pdf.cell(col_widths[3], 7, _number(entry.credits), border=1, fill=True, align="C")
        pdf.cell(col_widths[4], 7, safe_encode(entry.comments)[:38], border=1, fill=True)
        pdf.ln()

    if not card.entries:
        pdf.set_font("Helvetica", "I", 9)
        pdf.cell(0, 7, "No grades recorded.", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.ln(3)
    pdf.key_value("GPA:", f"{gpa:.2f}" if gpa is not None else "-")

    if card.comments:
        pdf.section_header("Comments")
        pdf.set_font("Helvetica", "", 10)
        pdf.multi_cell(0, 5, safe_encode(card.comments))

    pdf.ln(8)
    pdf.set_font("Helvetica", "I", 8)
    pdf.set_text_color(150, 150, 150)
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    pdf.cell(0, 6, f"Generated on {generated}", align="C")
    return bytes(pdf.output())
