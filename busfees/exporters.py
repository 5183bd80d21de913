"""Report export sinks: an .xlsx workbook (openpyxl) and a PDF table (reportlab).

Both take rows in the order they should appear and write them unchanged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .constants import EXPORT_DIR, SCHOOL_NAME
from .models import ReportRow

REPORT_HEADERS = ["Student Name", "Station", "Date", "Status", "Amount"]
SHEET_NAME = "Payments"
HEADER_BLUE = "2680EB"


def _target(directory: Path | None, filename: str, suffix: str) -> Path:
    out_dir = Path(directory) if directory is not None else EXPORT_DIR
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir / f"{filename}{suffix}"


def export_to_spreadsheet(rows: Sequence[ReportRow], filename: str, directory: Path | None = None) -> Path:
    path = _target(directory, filename, ".xlsx")
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_NAME
    ws.append(REPORT_HEADERS)
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill("solid", fgColor=HEADER_BLUE)

    for r in rows:
        ws.append([r.student_name, r.station_name, r.date.isoformat(), r.status, round(r.amount, 2)])
        ws.cell(row=ws.max_row, column=5).number_format = "0.00"

    for col, width in enumerate((28, 22, 12, 10, 10), start=1):
        ws.column_dimensions[get_column_letter(col)].width = width
    wb.save(path)
    return path


def export_to_document(
    rows: Sequence[ReportRow],
    title: str,
    filename: str,
    directory: Path | None = None,
    school_name: str = SCHOOL_NAME,
) -> Path:
    path = _target(directory, filename, ".pdf")
    styles = getSampleStyleSheet()
    doc = SimpleDocTemplate(str(path), pagesize=A4, rightMargin=40, leftMargin=40, topMargin=48, bottomMargin=48, title=title)

    content = [
        Paragraph(school_name, styles["Title"]),
        Paragraph(title, styles["Heading2"]),
        Spacer(1, 12),
    ]

    table = Table([REPORT_HEADERS] + [r.cells() for r in rows], repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(f"#{HEADER_BLUE}")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("ALIGN", (4, 0), (4, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#cbd5e0")),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    content.append(table)

    doc.build(content)
    return path
