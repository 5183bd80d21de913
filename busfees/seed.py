"""Create the starting accounts and stations.

Run once against an empty store::

    busfees-seed
"""

from __future__ import annotations

from .constants import STATIONS, USERS
from .errors import EMAIL_IN_USE, IdentityError, StoreError
from .identity import register_user
from .logger import ErrorLogger
from .models import Role, User
from .settings_store import SettingsStore
from .storage import EntityStore, open_store

INITIAL_STATIONS = (("station-1", "Central Station"), ("station-2", "North Station"))

INITIAL_USERS = (
    ("admin@school.com", "admin123", "Admin User", Role.Admin, None),
    ("alice@school.com", "teacher123", "Teacher Alice", Role.Teacher, "station-1"),
    ("bob@school.com", "teacher123", "Teacher Bob", Role.Teacher, "station-2"),
)


def setup_initial_data(store: EntityStore, with_credentials: bool = True, rounds: int = 12) -> list[User]:
    """Idempotent: stations and accounts that already exist are skipped.

    Without credentials (local mode logs in by email alone) only the user
    documents are written.
    """
    existing = {str(s.get("id")) for s in store.list(STATIONS)}
    for sid, name in INITIAL_STATIONS:
        if sid not in existing:
            store.create(STATIONS, {"id": sid, "name": name})

    known = {str(u.get("email", "")).lower() for u in store.list(USERS)}
    created: list[User] = []
    for email, password, name, role, station_id in INITIAL_USERS:
        if not with_credentials:
            if email in known:
                continue
            user = User(id="", name=name, email=email, role=role, station_id=station_id)
            user.id = store.create(USERS, {k: v for k, v in user.to_dict().items() if k != "id"})
            created.append(user)
            continue
        try:
            created.append(register_user(store, email, password, name, role, station_id, rounds=rounds))
        except IdentityError as e:
            if e.code != EMAIL_IN_USE:
                raise
    return created


def main() -> None:
    err_logger = ErrorLogger()
    settings = SettingsStore().load()
    try:
        users = setup_initial_data(open_store(settings), with_credentials=settings.backend == "remote")
    except (IdentityError, StoreError) as e:
        err_logger.log_exception(e, "seed")
        print(f"Error setting up initial data: {e}")
        raise SystemExit(1)
    print(f"Initial users created successfully! ({len(users)} new)")


if __name__ == "__main__":
    main()
