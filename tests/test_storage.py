"""
Tests for the entity stores: memory, local JSON file, MongoDB adapter
"""
import json
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from busfees.constants import CURRENT_USER, PAYMENTS, STATIONS, STUDENTS, USERS
from busfees.errors import StoreError
from busfees.models import Payment, PaymentStatus, Station, Student, User, Role
from busfees.settings_store import Settings
from busfees.storage import LocalStore, MemoryStore, MongoStore, open_store

from conftest import DAY


class TestMemoryStore:
    """Test the in-memory collections"""

    def test_create_list_get(self):
        store = MemoryStore()
        sid = store.create(STATIONS, {"name": "West"})

        assert store.list(STATIONS) == [{"name": "West", "id": sid}]
        assert store.get(STATIONS, sid)["name"] == "West"
        assert store.get(STATIONS, "nope") is None

    def test_create_keeps_supplied_id(self):
        store = MemoryStore()

        assert store.create(USERS, {"id": "u1", "name": "A"}) == "u1"

    def test_update_merges_and_none_removes(self):
        store = MemoryStore()
        uid = store.create(USERS, {"name": "A", "stationId": "s1"})

        assert store.update(USERS, uid, {"name": "B", "stationId": None}) is True
        assert store.get(USERS, uid) == {"name": "B", "id": uid}

    def test_update_and_delete_missing(self):
        store = MemoryStore()

        assert store.update(USERS, "nope", {"name": "x"}) is False
        assert store.delete(USERS, "nope") is False

    def test_list_returns_copies(self):
        store = MemoryStore()
        sid = store.create(STATIONS, {"name": "West"})
        store.list(STATIONS)[0]["name"] = "changed"

        assert store.get(STATIONS, sid)["name"] == "West"


class TestLocalStore:
    """Test the JSON-file store and its layout"""

    def test_layout_keys(self, tmp_path):
        path = tmp_path / "data.json"
        store = LocalStore(path)
        store.create(STATIONS, {"name": "West"})

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert set(raw) == {USERS, STATIONS, STUDENTS, PAYMENTS, CURRENT_USER}
        assert raw[CURRENT_USER] is None
        assert raw[STATIONS][0]["name"] == "West"

    def test_round_trip_is_exact(self, tmp_path):
        path = tmp_path / "data.json"
        store = LocalStore(path)
        user = User(id="u1", name="Alice", email="alice@school.com", role=Role.Teacher, station_id="s1")
        store.create(USERS, user.to_dict())
        store.create(STATIONS, Station(id="s1", name="West").to_dict())
        store.create(STUDENTS, Student(id="a", full_name="Amy", station_id="s1").to_dict())
        payment = Payment(id="p1", student_id="a", date=DAY, status=PaymentStatus.Paid, recorded_by="u1", recorded_at="2024-01-10T08:00:00.000")
        store.create(PAYMENTS, payment.to_dict())
        store.save_current_user(user.to_dict())
        first = json.loads(path.read_text(encoding="utf-8"))

        reopened = LocalStore(path)
        reopened._write()
        second = json.loads(path.read_text(encoding="utf-8"))

        assert first == second
        assert first[USERS] == [user.to_dict()]
        assert first[PAYMENTS] == [payment.to_dict()]
        assert first[CURRENT_USER] == user.to_dict()
        assert User.from_dict(reopened.load_current_user()) == user
        assert Payment.from_dict(reopened.list(PAYMENTS)[0]) == payment

    def test_missing_file_starts_empty(self, tmp_path):
        store = LocalStore(tmp_path / "absent.json")

        assert store.list(USERS) == []
        assert store.load_current_user() is None

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StoreError):
            LocalStore(path)

    def test_failed_write_rolls_back(self, tmp_path, monkeypatch):
        store = LocalStore(tmp_path / "data.json")
        sid = store.create(STATIONS, {"name": "West"})

        def boom():
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write", boom)
        with pytest.raises(StoreError):
            store.delete(STATIONS, sid)

        assert store.get(STATIONS, sid) is not None


class TestMongoStore:
    """Test the pymongo adapter against a mocked client"""

    @pytest.fixture
    def collection(self):
        return MagicMock()

    @pytest.fixture
    def mongo(self, collection):
        client = MagicMock()
        client.__getitem__.return_value.__getitem__.return_value = collection
        return MongoStore(database_name="busfees", client=client)

    def test_list_maps_object_ids(self, mongo, collection):
        oid = ObjectId()
        collection.find.return_value = [{"_id": oid, "name": "West"}]

        assert mongo.list(STATIONS) == [{"name": "West", "id": str(oid)}]

    def test_create_returns_string_id(self, mongo, collection):
        oid = ObjectId()
        collection.insert_one.return_value.inserted_id = oid

        assert mongo.create(STATIONS, {"name": "West", "note": None}) == str(oid)
        collection.insert_one.assert_called_once_with({"name": "West"})

    def test_create_with_supplied_id(self, mongo, collection):
        collection.insert_one.return_value.inserted_id = "u1"

        mongo.create(USERS, {"id": "u1", "name": "A"})

        collection.insert_one.assert_called_once_with({"name": "A", "_id": "u1"})

    def test_supplied_object_id_is_stored_as_object_id(self, mongo, collection):
        """A user document sharing its credential's id must be found by get()"""
        oid = ObjectId()
        collection.insert_one.return_value.inserted_id = oid
        collection.find_one.return_value = {"_id": oid, "name": "A"}

        assert mongo.create(USERS, {"id": str(oid), "name": "A"}) == str(oid)
        collection.insert_one.assert_called_once_with({"name": "A", "_id": oid})
        assert mongo.get(USERS, str(oid)) == {"name": "A", "id": str(oid)}
        collection.find_one.assert_called_once_with({"_id": oid})

    def test_update_sets_and_unsets(self, mongo, collection):
        oid = ObjectId()
        collection.update_one.return_value.matched_count = 1

        assert mongo.update(USERS, str(oid), {"name": "B", "stationId": None}) is True
        collection.update_one.assert_called_once_with(
            {"_id": oid}, {"$set": {"name": "B"}, "$unset": {"stationId": ""}}
        )

    def test_delete_missing(self, mongo, collection):
        collection.delete_one.return_value.deleted_count = 0

        assert mongo.delete(STUDENTS, "plain-id") is False
        collection.delete_one.assert_called_once_with({"_id": "plain-id"})

    def test_driver_errors_become_store_errors(self, mongo, collection):
        collection.find.side_effect = ServerSelectionTimeoutError("no server")

        with pytest.raises(StoreError) as exc:
            mongo.list(PAYMENTS)
        assert exc.value.details == {"collection": PAYMENTS, "operation": "list"}


class TestOpenStore:
    """Test backend selection"""

    def test_local_backend(self, tmp_path):
        store = open_store(Settings(backend="local", data_path=str(tmp_path / "d.json")))

        assert isinstance(store, LocalStore)
