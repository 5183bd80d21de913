"""Exceptions raised across the fee tracker.

Identity errors carry a code and a user-facing message; store errors mean a
mutation did not happen; context and role errors are programming faults and
are not meant to be caught by view code.
"""

from __future__ import annotations

from typing import Any


class BusFeesError(Exception):
    """Base exception for all fee tracker errors"""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", details: dict[str, Any] | None = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


INVALID_EMAIL = "auth/invalid-email"
USER_NOT_FOUND = "auth/user-not-found"
WRONG_PASSWORD = "auth/wrong-password"
USER_DISABLED = "auth/user-disabled"
TOO_MANY_REQUESTS = "auth/too-many-requests"
EMAIL_IN_USE = "auth/email-already-in-use"
WEAK_PASSWORD = "auth/weak-password"

_IDENTITY_MESSAGES = {
    INVALID_EMAIL: "Invalid email address format.",
    USER_DISABLED: "This account has been disabled.",
    USER_NOT_FOUND: "No account found with this email.",
    WRONG_PASSWORD: "Incorrect password.",
    TOO_MANY_REQUESTS: "Too many login attempts. Please try again later.",
    EMAIL_IN_USE: "An account with this email already exists.",
    WEAK_PASSWORD: "Password must be at least 6 characters.",
}


class IdentityError(BusFeesError):
    """Login or registration was refused"""

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or _IDENTITY_MESSAGES.get(code, "Failed to login. Please try again."), code=code)

    @property
    def user_message(self) -> str:
        return _IDENTITY_MESSAGES.get(self.code, "Failed to login. Please try again.")


class StoreError(BusFeesError):
    """The entity store could not be reached or refused the operation"""

    def __init__(self, message: str, collection: str = "", operation: str = ""):
        super().__init__(message, code="STORE_ERROR", details={"collection": collection, "operation": operation})


class ValidationError(BusFeesError):
    """Input rejected before it reached the store"""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message, code="VALIDATION_ERROR", details={"field": field})


class ContextError(BusFeesError):
    """State or session used outside of its initialized lifetime"""

    def __init__(self, message: str):
        super().__init__(message, code="CONTEXT_ERROR")


class UnknownRoleError(BusFeesError):
    """A user carries a role no view exists for"""

    def __init__(self, role: object):
        super().__init__(f"Unknown user role: {role!r}", code="UNKNOWN_ROLE", details={"role": str(role)})
