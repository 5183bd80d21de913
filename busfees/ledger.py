"""Payment ledger rules and dashboard figures.

Everything here is a pure function over a snapshot of the collections. The
figures are recomputed on every refresh; there is no index to keep in sync.

A student with no payment record for a day counts as Not Paid on the
dashboard. Reports (see reports.py) never invent rows for missing records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Sequence

from .constants import DEFAULT_UNIT_FEE
from .models import Payment, PaymentStatus, Station, Student, User


@dataclass
class PaymentPlan:
    """What record_payment should send to the store.

    existing_id is set when the (student, date) pair already has a record and
    the write must overwrite it in place.
    """

    existing_id: str | None
    fields: dict[str, Any]


def find_payment(payments: Iterable[Payment], student_id: str, day: date) -> Payment | None:
    for p in payments:
        if p.student_id == student_id and p.date == day:
            return p
    return None


def plan_payment(
    payments: Iterable[Payment],
    student_id: str,
    day: date,
    status: PaymentStatus,
    acting_user: User,
    recorded_at: str,
) -> PaymentPlan:
    existing = find_payment(payments, student_id, day)
    if existing is not None:
        return PaymentPlan(
            existing_id=existing.id,
            fields={"status": status.value, "recordedBy": acting_user.id, "recordedAt": recorded_at},
        )
    return PaymentPlan(
        existing_id=None,
        fields={
            "studentId": student_id,
            "date": day.isoformat(),
            "status": status.value,
            "recordedBy": acting_user.id,
            "recordedAt": recorded_at,
        },
    )


def payment_status_for(payments: Iterable[Payment], student_id: str, day: date) -> PaymentStatus:
    p = find_payment(payments, student_id, day)
    return p.status if p is not None else PaymentStatus.NotPaid


def students_of(students: Iterable[Student], station_id: str | None) -> list[Student]:
    if not station_id:
        return []
    return [s for s in students if s.station_id == station_id]


def paid_student_ids(payments: Iterable[Payment], day: date) -> set[str]:
    return {p.student_id for p in payments if p.date == day and p.is_paid}


def paid_today(payments: Sequence[Payment], students: Sequence[Student], station_id: str | None, today: date) -> int:
    ids = {s.id for s in students_of(students, station_id)}
    return sum(1 for p in payments if p.date == today and p.is_paid and p.student_id in ids)


def unpaid_students(students: Sequence[Student], payments: Sequence[Payment], station_id: str | None, day: date) -> list[Student]:
    paid = paid_student_ids(payments, day)
    return [s for s in students_of(students, station_id) if s.id not in paid]


def collection_amount(paid_count: int, unit_fee: float = DEFAULT_UNIT_FEE) -> float:
    return round(paid_count * unit_fee, 2)


@dataclass
class StationSummary:
    station: Station
    paid_count: int
    total_students: int
    total_collection: float


def station_summaries(
    stations: Sequence[Station],
    students: Sequence[Student],
    payments: Sequence[Payment],
    day: date,
    unit_fee: float = DEFAULT_UNIT_FEE,
) -> list[StationSummary]:
    paid = paid_student_ids(payments, day)
    counts: dict[str, list[int]] = {st.id: [0, 0] for st in stations}
    for s in students:
        c = counts.get(s.station_id)
        if c is None:
            continue
        c[1] += 1
        if s.id in paid:
            c[0] += 1
    return [
        StationSummary(
            station=st,
            paid_count=counts[st.id][0],
            total_students=counts[st.id][1],
            total_collection=collection_amount(counts[st.id][0], unit_fee),
        )
        for st in stations
    ]


@dataclass
class AdminOverview:
    total_stations: int
    total_students: int
    paid_count: int
    collected_today: float
    stations: list[StationSummary] = field(default_factory=list)


def admin_overview(
    stations: Sequence[Station],
    students: Sequence[Student],
    payments: Sequence[Payment],
    today: date,
    unit_fee: float = DEFAULT_UNIT_FEE,
) -> AdminOverview:
    paid_count = sum(1 for p in payments if p.date == today and p.is_paid)
    return AdminOverview(
        total_stations=len(stations),
        total_students=len(students),
        paid_count=paid_count,
        collected_today=collection_amount(paid_count, unit_fee),
        stations=station_summaries(stations, students, payments, today, unit_fee),
    )


@dataclass
class TeacherOverview:
    station: Station | None
    assigned_students: int
    paid_count: int
    collected_today: float
    unpaid: list[Student] = field(default_factory=list)


def teacher_overview(
    teacher: User,
    stations: Sequence[Station],
    students: Sequence[Student],
    payments: Sequence[Payment],
    today: date,
    unit_fee: float = DEFAULT_UNIT_FEE,
) -> TeacherOverview:
    station_id = teacher.station_id
    station = next((st for st in stations if st.id == station_id), None)
    paid_count = paid_today(payments, students, station_id, today)
    return TeacherOverview(
        station=station,
        assigned_students=len(students_of(students, station_id)),
        paid_count=paid_count,
        collected_today=collection_amount(paid_count, unit_fee),
        unpaid=unpaid_students(students, payments, station_id, today),
    )
