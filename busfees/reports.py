from __future__ import annotations

import re
import unicodedata
from datetime import date
from typing import Sequence

from .constants import ALL_STATIONS, DEFAULT_UNIT_FEE
from .models import Payment, ReportRow, Station, Student


# Letters with a stroke or ligature have no decomposition; fold them to the
# base letter they are alphabetized with.
_BASE_LETTERS = str.maketrans({
    "ł": "l", "Ł": "L", "ø": "o", "Ø": "O", "đ": "d", "Đ": "D",
    "ħ": "h", "Ħ": "H", "ŧ": "t", "Ŧ": "T", "ı": "i",
    "æ": "ae", "Æ": "AE", "œ": "oe", "Œ": "OE", "þ": "th", "Þ": "TH",
})


def collation_key(text: str) -> tuple[str, str]:
    """Case- and accent-insensitive ordering, ties broken by the raw text.

    Accents are stripped from the decomposed form; every other character is
    kept, so non-Latin names sort by their own letters.
    """
    decomposed = unicodedata.normalize("NFKD", text.translate(_BASE_LETTERS))
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return folded, text


def _row(payment: Payment, student: Student, station: Station, unit_fee: float) -> ReportRow:
    return ReportRow(
        student_name=student.full_name,
        station_name=station.name,
        date=payment.date,
        status=payment.status.label,
        amount=unit_fee if payment.is_paid else 0.0,
    )


def build_report(
    payments: Sequence[Payment],
    students: Sequence[Student],
    stations: Sequence[Station],
    date_filter: date | None = None,
    station_filter: str = ALL_STATIONS,
    unit_fee: float = DEFAULT_UNIT_FEE,
) -> list[ReportRow]:
    """One row per recorded payment, ordered by station then student.

    Payments whose student or station no longer exists are left out.
    """
    students_by_id = {s.id: s for s in students}
    stations_by_id = {st.id: st for st in stations}
    station_filter = station_filter or ALL_STATIONS

    rows: list[ReportRow] = []
    for p in payments:
        if date_filter is not None and p.date != date_filter:
            continue
        student = students_by_id.get(p.student_id)
        if student is None:
            continue
        station = stations_by_id.get(student.station_id)
        if station is None:
            continue
        if station_filter != ALL_STATIONS and student.station_id != station_filter:
            continue
        rows.append(_row(p, student, station, unit_fee))

    rows.sort(key=lambda r: (collation_key(r.station_name), collation_key(r.student_name)))
    return rows


def build_station_report(
    payments: Sequence[Payment],
    students: Sequence[Student],
    station: Station | None,
    date_filter: date | None = None,
    unit_fee: float = DEFAULT_UNIT_FEE,
) -> list[ReportRow]:
    """Single-station variant for teachers, ordered by student name."""
    if station is None:
        return []
    own = {s.id: s for s in students if s.station_id == station.id}
    rows = [
        _row(p, own[p.student_id], station, unit_fee)
        for p in payments
        if p.student_id in own and (date_filter is None or p.date == date_filter)
    ]
    rows.sort(key=lambda r: collation_key(r.student_name))
    return rows


def _date_part(date_filter: date | None) -> str:
    return date_filter.isoformat() if date_filter else "all_dates"


def report_title(date_filter: date | None) -> str:
    if date_filter is None:
        return "Payment Report for all dates"
    return f"Payment Report for {date_filter.isoformat()}"


def report_filename(date_filter: date | None, station: Station | None = None) -> str:
    if station is None:
        return f"payment_report_{_date_part(date_filter)}"
    safe = re.sub(r"[^A-Za-z0-9_-]+", "_", station.name).strip("_") or station.id
    return f"payment_report_{safe}_{_date_part(date_filter)}"
