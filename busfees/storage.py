from __future__ import annotations

import copy
import json
import os
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from bson import ObjectId
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from .constants import COLLECTIONS, CURRENT_USER
from .errors import StoreError
from .settings_store import Settings


def _new_id() -> str:
    return uuid.uuid4().hex


class EntityStore(ABC):
    """Flat document collections keyed by string id.

    Records travel as plain dicts in their persisted (camelCase) shape with
    the id under "id". Any method may raise StoreError; callers treat that as
    "nothing changed".
    """

    @abstractmethod
    def list(self, collection: str) -> list[dict[str, Any]]: ...

    @abstractmethod
    def get(self, collection: str, record_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    def create(self, collection: str, fields: dict[str, Any]) -> str: ...

    @abstractmethod
    def update(self, collection: str, record_id: str, fields: dict[str, Any]) -> bool:
        """Merge fields into a record. A None value removes that key."""

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> bool: ...

    # Only the local variant remembers who is logged in between runs.
    def load_current_user(self) -> dict[str, Any] | None:
        return None

    def save_current_user(self, user: dict[str, Any] | None) -> None:
        return None


class MemoryStore(EntityStore):
    def __init__(self, data: dict[str, list[dict[str, Any]]] | None = None):
        self._data: dict[str, dict[str, dict[str, Any]]] = {c: {} for c in COLLECTIONS}
        self._current_user: dict[str, Any] | None = None
        for collection, rows in (data or {}).items():
            bucket = self._data.setdefault(collection, {})
            for row in rows:
                rid = str(row.get("id") or _new_id())
                bucket[rid] = {**row, "id": rid}

    def _bucket(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(collection, {})

    def list(self, collection: str) -> list[dict[str, Any]]:
        return [dict(r) for r in self._bucket(collection).values()]

    def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        rec = self._bucket(collection).get(record_id)
        return dict(rec) if rec is not None else None

    def create(self, collection: str, fields: dict[str, Any]) -> str:
        rid = str(fields.get("id") or _new_id())
        rec = {k: v for k, v in fields.items() if v is not None}
        rec["id"] = rid
        self._bucket(collection)[rid] = rec
        return rid

    def update(self, collection: str, record_id: str, fields: dict[str, Any]) -> bool:
        rec = self._bucket(collection).get(record_id)
        if rec is None:
            return False
        for k, v in fields.items():
            if k == "id":
                continue
            if v is None:
                rec.pop(k, None)
            else:
                rec[k] = v
        return True

    def delete(self, collection: str, record_id: str) -> bool:
        return self._bucket(collection).pop(record_id, None) is not None

    def load_current_user(self) -> dict[str, Any] | None:
        return dict(self._current_user) if self._current_user else None

    def save_current_user(self, user: dict[str, Any] | None) -> None:
        self._current_user = dict(user) if user else None

    def snapshot(self) -> dict[str, Any]:
        """Persisted layout: one JSON array per collection plus currentUser."""
        out: dict[str, Any] = {c: self.list(c) for c in self._data}
        out[CURRENT_USER] = self.load_current_user()
        return out


class LocalStore(MemoryStore):
    """MemoryStore mirrored to a single JSON file after every mutation.

    A failed write rolls the in-memory copy back so the store never reports a
    change it could not persist.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(self._read())
        blob = self._raw.get(CURRENT_USER) if isinstance(self._raw, dict) else None
        self._current_user = dict(blob) if isinstance(blob, dict) else None

    def _read(self) -> dict[str, list[dict[str, Any]]]:
        self._raw: dict[str, Any] = {}
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read {self.path}: {e}", operation="load") from e
        if not isinstance(raw, dict):
            raise StoreError(f"Unexpected layout in {self.path}", operation="load")
        self._raw = raw
        return {k: v for k, v in raw.items() if k != CURRENT_USER and isinstance(v, list)}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(self.snapshot(), f, indent=2)
            f.write("\n")
        os.replace(tmp, self.path)

    def _persist(self, collection: str, operation: str, fn, *args):
        before = copy.deepcopy(self._data), copy.deepcopy(self._current_user)
        result = fn(*args)
        try:
            self._write()
        except OSError as e:
            self._data, self._current_user = before
            raise StoreError(f"Cannot write {self.path}: {e}", collection, operation) from e
        return result

    def create(self, collection: str, fields: dict[str, Any]) -> str:
        return self._persist(collection, "create", super().create, collection, fields)

    def update(self, collection: str, record_id: str, fields: dict[str, Any]) -> bool:
        return self._persist(collection, "update", super().update, collection, record_id, fields)

    def delete(self, collection: str, record_id: str) -> bool:
        return self._persist(collection, "delete", super().delete, collection, record_id)

    def save_current_user(self, user: dict[str, Any] | None) -> None:
        self._persist(CURRENT_USER, "save", super().save_current_user, user)


class MongoStore(EntityStore):
    def __init__(self, uri: str = "", database_name: str = "busfees", client: MongoClient | None = None):
        self.client = client if client is not None else MongoClient(uri, serverSelectionTimeoutMS=5000)
        self.db = self.client[database_name]

    @staticmethod
    def _key(record_id: str) -> Any:
        # Ids we generate are ObjectIds; ids supplied by callers stay strings.
        return ObjectId(record_id) if ObjectId.is_valid(record_id) else record_id

    @staticmethod
    def _serialize(doc: dict[str, Any]) -> dict[str, Any]:
        d = dict(doc)
        d["id"] = str(d.pop("_id"))
        return d

    def list(self, collection: str) -> list[dict[str, Any]]:
        try:
            return [self._serialize(d) for d in self.db[collection].find()]
        except PyMongoError as e:
            raise StoreError(str(e), collection, "list") from e

    def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        try:
            doc = self.db[collection].find_one({"_id": self._key(record_id)})
        except PyMongoError as e:
            raise StoreError(str(e), collection, "get") from e
        return self._serialize(doc) if doc else None

    def create(self, collection: str, fields: dict[str, Any]) -> str:
        doc = {k: v for k, v in fields.items() if k != "id" and v is not None}
        if fields.get("id"):
            doc["_id"] = self._key(str(fields["id"]))
        try:
            res = self.db[collection].insert_one(doc)
        except PyMongoError as e:
            raise StoreError(str(e), collection, "create") from e
        return str(res.inserted_id)

    def update(self, collection: str, record_id: str, fields: dict[str, Any]) -> bool:
        to_set = {k: v for k, v in fields.items() if k != "id" and v is not None}
        to_unset = {k: "" for k, v in fields.items() if k != "id" and v is None}
        ops: dict[str, Any] = {}
        if to_set:
            ops["$set"] = to_set
        if to_unset:
            ops["$unset"] = to_unset
        if not ops:
            return self.get(collection, record_id) is not None
        try:
            res = self.db[collection].update_one({"_id": self._key(record_id)}, ops)
        except PyMongoError as e:
            raise StoreError(str(e), collection, "update") from e
        return res.matched_count > 0

    def delete(self, collection: str, record_id: str) -> bool:
        try:
            res = self.db[collection].delete_one({"_id": self._key(record_id)})
        except PyMongoError as e:
            raise StoreError(str(e), collection, "delete") from e
        return res.deleted_count > 0


def open_store(settings: Settings) -> EntityStore:
    if settings.backend == "remote":
        return MongoStore(settings.mongo_uri, settings.database_name)
    return LocalStore(Path(settings.data_path))
