from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from .errors import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Role(str, Enum):
    Admin = "ADMIN"
    Teacher = "TEACHER"

    @property
    def label(self) -> str:
        return self.name

    @staticmethod
    def parse(value: Any) -> "Role | str":
        """Return the matching Role, or the raw string when it is not one.

        Unknown roles are kept as-is so a bad record still loads; navigation
        refuses them later.
        """
        if isinstance(value, Role):
            return value
        try:
            return Role(str(value))
        except ValueError:
            return str(value)


class PaymentStatus(str, Enum):
    Paid = "PAID"
    NotPaid = "NOT_PAID"

    @property
    def label(self) -> str:
        return "Paid" if self is PaymentStatus.Paid else "Not Paid"


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match((email or "").strip()))


def parse_day(value: Any) -> date:
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) != 10:
        raise ValueError(f"Invalid date: {text!r}")
    return date.fromisoformat(text)


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


@dataclass
class User:
    id: str
    name: str
    email: str
    role: Role | str
    station_id: str | None = None  # Only meaningful for teachers

    @property
    def is_admin(self) -> bool:
        return self.role is Role.Admin

    @property
    def is_teacher(self) -> bool:
        return self.role is Role.Teacher

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "User":
        return User(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            email=str(d.get("email", "")),
            role=Role.parse(d.get("role", "")),
            station_id=_opt_str(d.get("stationId")),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value if isinstance(self.role, Role) else self.role,
        }
        if self.station_id:
            d["stationId"] = self.station_id
        return d


@dataclass
class Station:
    id: str
    name: str

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Station":
        return Station(id=str(d.get("id", "")), name=str(d.get("name", "")))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class Student:
    id: str
    full_name: str
    station_id: str

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Student":
        return Student(
            id=str(d.get("id", "")),
            full_name=str(d.get("fullName", "")),
            station_id=str(d.get("stationId", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "fullName": self.full_name, "stationId": self.station_id}


@dataclass
class Payment:
    id: str
    student_id: str
    date: date
    status: PaymentStatus
    recorded_by: str
    recorded_at: str  # ISO timestamp

    @property
    def is_paid(self) -> bool:
        return self.status is PaymentStatus.Paid

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Payment":
        try:
            status = PaymentStatus(str(d.get("status", PaymentStatus.NotPaid.value)))
        except ValueError:
            status = PaymentStatus.NotPaid
        return Payment(
            id=str(d.get("id", "")),
            student_id=str(d.get("studentId", "")),
            date=parse_day(d.get("date", "")),
            status=status,
            recorded_by=str(d.get("recordedBy", "")),
            recorded_at=str(d.get("recordedAt", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "recordedBy": self.recorded_by,
            "recordedAt": self.recorded_at,
        }


@dataclass(frozen=True)
class ReportRow:
    student_name: str
    station_name: str
    date: date
    status: str  # "Paid" | "Not Paid"
    amount: float

    def cells(self) -> list[str]:
        return [self.student_name, self.station_name, self.date.isoformat(), self.status, f"{self.amount:.2f}"]


# ---------------- Partial updates ----------------
# Only the fields listed on each struct can change after creation. None means
# "leave as is"; validate() runs before anything is sent to the store.


def _require_text(value: str | None, field: str, message: str) -> None:
    if value is not None and not value.strip():
        raise ValidationError(message, field)


@dataclass
class StationUpdate:
    name: str | None = None

    def validate(self) -> None:
        _require_text(self.name, "name", "Station name is required.")

    def to_fields(self) -> dict[str, Any]:
        self.validate()
        fields: dict[str, Any] = {}
        if self.name is not None:
            fields["name"] = self.name.strip()
        return fields


@dataclass
class StudentUpdate:
    full_name: str | None = None
    station_id: str | None = None

    def validate(self) -> None:
        _require_text(self.full_name, "fullName", "Student name is required.")
        _require_text(self.station_id, "stationId", "Please select a station.")

    def to_fields(self) -> dict[str, Any]:
        self.validate()
        fields: dict[str, Any] = {}
        if self.full_name is not None:
            fields["fullName"] = self.full_name.strip()
        if self.station_id is not None:
            fields["stationId"] = self.station_id.strip()
        return fields


@dataclass
class UserUpdate:
    name: str | None = None
    email: str | None = None
    role: Role | None = None
    station_id: str | None = None
    clear_station: bool = False

    def validate(self) -> None:
        _require_text(self.name, "name", "Name is required.")
        if self.email is not None and not is_valid_email(self.email):
            raise ValidationError("Invalid email address format.", "email")
        if self.role is not None and not isinstance(self.role, Role):
            raise ValidationError(f"Unknown role: {self.role!r}", "role")
        if self.clear_station and self.station_id:
            raise ValidationError("Cannot assign and clear a station at once.", "stationId")

    def to_fields(self) -> dict[str, Any]:
        self.validate()
        fields: dict[str, Any] = {}
        if self.name is not None:
            fields["name"] = self.name.strip()
        if self.email is not None:
            fields["email"] = self.email.strip()
        if self.role is not None:
            fields["role"] = self.role.value
        if self.clear_station:
            # The store drops keys set to None.
            fields["stationId"] = None
        elif self.station_id is not None:
            fields["stationId"] = self.station_id.strip() or None
        return fields
