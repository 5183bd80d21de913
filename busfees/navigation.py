from __future__ import annotations

from dataclasses import dataclass

from .errors import UnknownRoleError
from .models import Role
from .session import Session

DASHBOARD = "dashboard"


@dataclass(frozen=True)
class NavItem:
    key: str
    label: str


ADMIN_PAGES = (
    NavItem(DASHBOARD, "Dashboard"),
    NavItem("stations", "Stations"),
    NavItem("teachers", "Teachers"),
    NavItem("students", "Students"),
    NavItem("reports", "Reports"),
)

TEACHER_PAGES = (
    NavItem(DASHBOARD, "Dashboard"),
    NavItem("payments", "Record Payments"),
    NavItem("reports", "Reports"),
)


def pages_for_role(role: Role | str) -> tuple[NavItem, ...]:
    if role is Role.Admin:
        return ADMIN_PAGES
    if role is Role.Teacher:
        return TEACHER_PAGES
    raise UnknownRoleError(role)


class Navigator:
    """Which page of a role's sidebar is showing. Starts on the dashboard."""

    def __init__(self, role: Role | str):
        self.role = role
        self.pages = pages_for_role(role)
        self.current = DASHBOARD

    @property
    def keys(self) -> list[str]:
        return [p.key for p in self.pages]

    def navigate(self, key: str) -> str:
        # Keys outside the role's set land on the dashboard.
        self.current = key if key in self.keys else DASHBOARD
        return self.current


def root_view(session: Session | None, loading: bool = False) -> str:
    """Top-level screen: loading, login, admin or teacher."""
    if loading:
        return "loading"
    if session is None or not session.is_open:
        return "login"
    role = session.user.role
    if role is Role.Admin:
        return "admin"
    if role is Role.Teacher:
        return "teacher"
    raise UnknownRoleError(role)
