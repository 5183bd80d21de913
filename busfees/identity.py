"""Who is logged in.

Two interchangeable providers sit behind IdentityProvider:

- EmailIdentityProvider trusts an email that matches a known user. It is the
  local-file variant and remembers the logged-in user in the store's
  currentUser blob.
- PasswordIdentityProvider checks a bcrypt hash kept in the credentials
  collection and refuses with coded IdentityErrors. It is the remote variant.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable

import bcrypt

from .constants import CREDENTIALS, USERS
from .errors import (
    EMAIL_IN_USE,
    INVALID_EMAIL,
    TOO_MANY_REQUESTS,
    USER_DISABLED,
    USER_NOT_FOUND,
    WEAK_PASSWORD,
    WRONG_PASSWORD,
    IdentityError,
)
from .models import Role, User, is_valid_email
from .storage import EntityStore

MIN_PASSWORD_LENGTH = 6


@dataclass
class Credentials:
    email: str
    password: str = ""


def hash_password(password: str, rounds: int = 12) -> str:
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store
        return False


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _find_user_by_email(store: EntityStore, email: str) -> User | None:
    wanted = _normalize_email(email)
    for rec in store.list(USERS):
        if _normalize_email(str(rec.get("email", ""))) == wanted:
            return User.from_dict(rec)
    return None


class IdentityProvider(ABC):
    @abstractmethod
    def login(self, credentials: Credentials) -> User | None:
        """Return the matching user, None when nobody matches.

        Credentialed providers raise IdentityError instead of returning None.
        """

    @abstractmethod
    def logout(self) -> None: ...

    def restore(self) -> User | None:
        """User still logged in from a previous run, if the provider keeps one."""
        return None


class EmailIdentityProvider(IdentityProvider):
    def __init__(self, store: EntityStore):
        self.store = store

    def login(self, credentials: Credentials) -> User | None:
        user = _find_user_by_email(self.store, credentials.email)
        if user is not None:
            self.store.save_current_user(user.to_dict())
        return user

    def logout(self) -> None:
        self.store.save_current_user(None)

    def restore(self) -> User | None:
        blob = self.store.load_current_user()
        return User.from_dict(blob) if blob else None


class PasswordIdentityProvider(IdentityProvider):
    def __init__(
        self,
        store: EntityStore,
        max_attempts: int = 5,
        window_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.clock = clock
        self._failures: dict[str, deque[float]] = defaultdict(deque)

    def _recent_failures(self, email: str) -> int:
        # Only emails with failures inside the window stay tracked.
        cutoff = self.clock() - self.window_seconds
        for known in list(self._failures):
            q = self._failures[known]
            while q and q[0] < cutoff:
                q.popleft()
            if not q:
                del self._failures[known]
        return len(self._failures.get(email, ()))

    def _record_failure(self, email: str) -> None:
        self._failures[email].append(self.clock())

    def _find_credential(self, email: str) -> dict | None:
        for rec in self.store.list(CREDENTIALS):
            if _normalize_email(str(rec.get("email", ""))) == email:
                return rec
        return None

    def login(self, credentials: Credentials) -> User | None:
        email = _normalize_email(credentials.email)
        if not is_valid_email(email):
            raise IdentityError(INVALID_EMAIL)
        if self._recent_failures(email) >= self.max_attempts:
            raise IdentityError(TOO_MANY_REQUESTS)

        cred = self._find_credential(email)
        if cred is None:
            self._record_failure(email)
            raise IdentityError(USER_NOT_FOUND)
        if cred.get("disabled"):
            raise IdentityError(USER_DISABLED)
        if not verify_password(credentials.password, str(cred.get("passwordHash", ""))):
            self._record_failure(email)
            raise IdentityError(WRONG_PASSWORD)

        self._failures.pop(email, None)
        rec = self.store.get(USERS, str(cred["id"]))
        return User.from_dict(rec) if rec else None

    def logout(self) -> None:
        return None


def register_user(
    store: EntityStore,
    email: str,
    password: str,
    name: str,
    role: Role,
    station_id: str | None = None,
    rounds: int = 12,
) -> User:
    """Create a credential and the user document that shares its id."""
    email = (email or "").strip()
    if not is_valid_email(email):
        raise IdentityError(INVALID_EMAIL)
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise IdentityError(WEAK_PASSWORD)
    wanted = _normalize_email(email)
    if any(_normalize_email(str(c.get("email", ""))) == wanted for c in store.list(CREDENTIALS)):
        raise IdentityError(EMAIL_IN_USE)

    uid = store.create(CREDENTIALS, {"email": email, "passwordHash": hash_password(password, rounds), "disabled": False})
    user = User(id=uid, name=name, email=email, role=role, station_id=station_id or None)
    store.create(USERS, user.to_dict())
    return user


def provider_for(backend: str, store: EntityStore, max_attempts: int = 5, window_seconds: int = 300) -> IdentityProvider:
    if backend == "remote":
        return PasswordIdentityProvider(store, max_attempts=max_attempts, window_seconds=window_seconds)
    return EmailIdentityProvider(store)
