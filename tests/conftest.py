"""
Shared fixtures: an in-memory store, a loaded AppState, and a store that can
be told to fail specific operations.
"""
from datetime import date

import pytest

from busfees.constants import PAYMENTS, STATIONS, STUDENTS, USERS
from busfees.errors import StoreError
from busfees.logger import ActivityLog, ErrorLogger
from busfees.models import Role, User
from busfees.session import AppState, Session
from busfees.settings_store import Settings
from busfees.storage import MemoryStore

DAY = date(2024, 1, 10)


class TickingClock:
    """Returns a strictly increasing ISO timestamp on every call"""

    def __init__(self):
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        return f"2024-01-10T08:00:{self.calls:02d}.000"


class FlakyStore(MemoryStore):
    """MemoryStore that raises StoreError for chosen (operation, collection, id) triples.

    An id of None matches every record in that collection.
    """

    def __init__(self, data=None):
        super().__init__(data)
        self.failures: set[tuple[str, str, str | None]] = set()

    def _check(self, op, collection, record_id=None):
        if (op, collection, record_id) in self.failures or (op, collection, None) in self.failures:
            raise StoreError(f"{op} {collection} refused", collection, op)

    def list(self, collection):
        self._check("list", collection)
        return super().list(collection)

    def create(self, collection, fields):
        self._check("create", collection)
        return super().create(collection, fields)

    def update(self, collection, record_id, fields):
        self._check("update", collection, record_id)
        return super().update(collection, record_id, fields)

    def delete(self, collection, record_id):
        self._check("delete", collection, record_id)
        return super().delete(collection, record_id)


def sample_data():
    return {
        USERS: [
            {"id": "u-admin", "name": "Admin User", "email": "admin@school.com", "role": "ADMIN"},
            {"id": "u-alice", "name": "Teacher Alice", "email": "alice@school.com", "role": "TEACHER", "stationId": "s1"},
            {"id": "u-bob", "name": "Teacher Bob", "email": "bob@school.com", "role": "TEACHER", "stationId": "s2"},
        ],
        STATIONS: [
            {"id": "s1", "name": "West"},
            {"id": "s2", "name": "East"},
        ],
        STUDENTS: [
            {"id": "st-a", "fullName": "Bob", "stationId": "s1"},
            {"id": "st-b", "fullName": "Amy", "stationId": "s1"},
            {"id": "st-c", "fullName": "Bob", "stationId": "s2"},
            {"id": "st-d", "fullName": "Amy", "stationId": "s2"},
        ],
        PAYMENTS: [],
    }


@pytest.fixture
def err_logger(tmp_path):
    return ErrorLogger(tmp_path / "error_log.txt")


@pytest.fixture
def activity(tmp_path, err_logger):
    return ActivityLog(tmp_path / "activity_log.jsonl", err_logger)


@pytest.fixture
def store():
    return FlakyStore(sample_data())


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def state(store, err_logger, activity, clock):
    s = AppState(store, Settings(), err_logger, activity, clock=clock)
    s.load()
    return s


@pytest.fixture
def alice():
    return User(id="u-alice", name="Teacher Alice", email="alice@school.com", role=Role.Teacher, station_id="s1")


@pytest.fixture
def alice_session(alice):
    return Session(alice)
