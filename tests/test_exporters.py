"""
Tests for the spreadsheet and PDF export sinks
"""
from datetime import date

from openpyxl import load_workbook

from busfees.exporters import REPORT_HEADERS, SHEET_NAME, export_to_document, export_to_spreadsheet
from busfees.models import ReportRow

ROWS = [
    ReportRow("Amy", "East", date(2024, 1, 10), "Paid", 5.0),
    ReportRow("Bob", "East", date(2024, 1, 10), "Not Paid", 0.0),
    ReportRow("Amy", "West", date(2024, 1, 10), "Paid", 5.0),
]


class TestSpreadsheet:
    """Test .xlsx export"""

    def test_rows_written_in_order(self, tmp_path):
        path = export_to_spreadsheet(ROWS, "payment_report_2024-01-10", tmp_path)

        assert path == tmp_path / "payment_report_2024-01-10.xlsx"
        ws = load_workbook(path)[SHEET_NAME]
        values = list(ws.iter_rows(values_only=True))
        assert list(values[0]) == REPORT_HEADERS
        assert [tuple(v) for v in values[1:]] == [
            ("Amy", "East", "2024-01-10", "Paid", 5.0),
            ("Bob", "East", "2024-01-10", "Not Paid", 0.0),
            ("Amy", "West", "2024-01-10", "Paid", 5.0),
        ]
        assert ws.cell(row=2, column=5).number_format == "0.00"

    def test_empty_report(self, tmp_path):
        path = export_to_spreadsheet([], "empty", tmp_path)

        ws = load_workbook(path)[SHEET_NAME]
        assert ws.max_row == 1


class TestDocument:
    """Test PDF export"""

    def test_writes_pdf(self, tmp_path):
        path = export_to_document(ROWS, "Payment Report for 2024-01-10", "payment_report_2024-01-10", tmp_path)

        assert path.suffix == ".pdf"
        assert path.read_bytes().startswith(b"%PDF")

    def test_empty_report(self, tmp_path):
        path = export_to_document([], "Payment Report for all dates", "empty", tmp_path, school_name="Test School")

        assert path.exists()
