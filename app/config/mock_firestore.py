"""
In-process Firestore stand-in for local development and tests.

Enabled with USE_MOCK_DB=true. Implements the subset of the Firestore client
API the services use: collection/document references, set/get/update,
where/order_by/limit/stream queries, dotted field paths in update(), and the
SERVER_TIMESTAMP / Increment / ArrayUnion / DELETE_FIELD transforms.

Data lives in memory and, unless the path is ":memory:", is flushed to a JSON
file after every write so a dev server keeps its data across restarts.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from firebase_admin import firestore

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"
_MISSING = object()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"__datetime__": value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value.keys()) == {"__datetime__"}:
            return datetime.fromisoformat(value["__datetime__"])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


def _get_path(data: Dict, field_path: str) -> Any:
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _apply_transform(existing: Any, value: Any) -> Any:
    """Resolve Firestore sentinels and transforms against the stored value."""
    if value is firestore.SERVER_TIMESTAMP:
        return _now()
    if isinstance(value, firestore.Increment):
        base = existing if isinstance(existing, (int, float)) and existing is not _MISSING else 0
        return base + value.value
    if isinstance(value, firestore.ArrayUnion):
        base = list(existing) if isinstance(existing, list) else []
        for item in value.values:
            if item not in base:
                base.append(copy.deepcopy(item))
        return base
    if isinstance(value, dict):
        return {k: _apply_transform(_MISSING, v) for k, v in value.items()}
    if isinstance(value, list):
        return [_apply_transform(_MISSING, v) for v in value]
    return copy.deepcopy(value)


def _set_path(data: Dict, field_path: str, value: Any) -> None:
    parts = field_path.split(".")
    current = data
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    leaf = parts[-1]
    if value is firestore.DELETE_FIELD:
        current.pop(leaf, None)
        return
    current[leaf] = _apply_transform(current.get(leaf, _MISSING), value)


def _compare(field_value: Any, op: str, value: Any) -> bool:
    if field_value is _MISSING:
        return False
    try:
        if op == "==":
            return field_value == value
        if op == "!=":
            return field_value != value and field_value is not None
        if op == "in":
            return field_value in value
        if op == "not-in":
            return field_value not in value
        if op == "array_contains":
            return isinstance(field_value, list) and value in field_value
        if op == "array_contains_any":
            return isinstance(field_value, list) and any(v in field_value for v in value)
        if field_value is None or value is None:
            return False
        if op == "<":
            return field_value < value
        if op == "<=":
            return field_value <= value
        if op == ">":
            return field_value > value
        if op == ">=":
            return field_value >= value
    except TypeError:
        return False
    raise ValueError(f"Unsupported query operator: {op}")


class MockDocumentSnapshot:
    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        if self._data is None:
            return None
        return copy.deepcopy(self._data)

    def get(self, field_path: str) -> Any:
        value = _get_path(self._data or {}, field_path)
        return None if value is _MISSING else copy.deepcopy(value)


class MockDocumentReference:
    def __init__(self, store: "MockFirestore", collection: str, doc_id: str):
        self._store = store
        self._collection = collection
        self.id = doc_id

    @property
    def path(self) -> str:
        return f"{self._collection}/{self.id}"

    def get(self) -> MockDocumentSnapshot:
        with self._store._lock:
            data = self._store._data.get(self._collection, {}).get(self.id)
            return MockDocumentSnapshot(self, copy.deepcopy(data) if data is not None else None)

    def set(self, document_data: Dict, merge: bool = False) -> None:
        with self._store._lock:
            docs = self._store._data.setdefault(self._collection, {})
            if merge and self.id in docs:
                target = docs[self.id]
                for key, value in document_data.items():
                    target[key] = _apply_transform(target.get(key, _MISSING), value)
            else:
                docs[self.id] = {k: _apply_transform(_MISSING, v) for k, v in document_data.items()}
            self._store._flush()

    def update(self, field_updates: Dict) -> None:
        with self._store._lock:
            docs = self._store._data.get(self._collection, {})
            if self.id not in docs:
                raise KeyError(f"No document to update: {self.path}")
            for field_path, value in field_updates.items():
                _set_path(docs[self.id], field_path, value)
            self._store._flush()

    def delete(self) -> None:
        with self._store._lock:
            self._store._data.get(self._collection, {}).pop(self.id, None)
            self._store._flush()


class MockQuery:
    def __init__(
        self,
        store: "MockFirestore",
        collection: str,
        filters: Optional[List[Tuple[str, str, Any]]] = None,
        orders: Optional[List[Tuple[str, str]]] = None,
        limit_count: Optional[int] = None,
    ):
        self._store = store
        self._collection = collection
        self._filters = list(filters or [])
        self._orders = list(orders or [])
        self._limit = limit_count

    def _copy(self, **changes) -> "MockQuery":
        return MockQuery(
            self._store,
            self._collection,
            filters=changes.get("filters", self._filters),
            orders=changes.get("orders", self._orders),
            limit_count=changes.get("limit_count", self._limit),
        )

    def where(self, field_path: str, op_string: str, value: Any) -> "MockQuery":
        return self._copy(filters=self._filters + [(field_path, op_string, value)])

    def order_by(self, field_path: str, direction: str = firestore.Query.ASCENDING) -> "MockQuery":
        return self._copy(orders=self._orders + [(field_path, direction)])

    def limit(self, count: int) -> "MockQuery":
        return self._copy(limit_count=count)

    def stream(self) -> Iterator[MockDocumentSnapshot]:
        with self._store._lock:
            docs = self._store._data.get(self._collection, {})
            matches = [
                (doc_id, copy.deepcopy(data))
                for doc_id, data in docs.items()
                if all(_compare(_get_path(data, f), op, v) for f, op, v in self._filters)
            ]

        for field_path, direction in reversed(self._orders):
            matches = [m for m in matches if _get_path(m[1], field_path) is not _MISSING]
            matches.sort(
                key=lambda m: _get_path(m[1], field_path),
                reverse=direction == firestore.Query.DESCENDING,
            )

        if self._limit is not None:
            matches = matches[: self._limit]

        for doc_id, data in matches:
            ref = MockDocumentReference(self._store, self._collection, doc_id)
            yield MockDocumentSnapshot(ref, data)

    def get(self) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollection(MockQuery):
    def __init__(self, store: "MockFirestore", name: str):
        super().__init__(store, name)
        self.id = name

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._store, self._collection, document_id or uuid.uuid4().hex[:20])

    def add(self, document_data: Dict) -> Tuple[datetime, MockDocumentReference]:
        ref = self.document()
        ref.set(document_data)
        return _now(), ref


class MockFirestore:
    """Minimal Firestore client backed by a dict (and optionally a JSON file)."""

    def __init__(self, path: str = MEMORY_PATH):
        self.path = path
        self._lock = threading.RLock()
        self._data: Dict[str, Dict[str, Dict]] = {}
        self._load()

    def _load(self) -> None:
        if self.path == MEMORY_PATH or not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                self._data = _decode(json.load(f))
            logger.info(f"[MOCK DB] Loaded {sum(len(d) for d in self._data.values())} documents from {self.path}")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[MOCK DB] Could not load {self.path}: {e}; starting empty")
            self._data = {}

    def _flush(self) -> None:
        if self.path == MEMORY_PATH:
            return
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(_encode(self._data), f, indent=2)

    def collection(self, name: str) -> MockCollection:
        return MockCollection(self, name)

    def collections(self) -> List[MockCollection]:
        with self._lock:
            return [MockCollection(self, name) for name in self._data.keys()]

    def reset(self) -> None:
        with self._lock:
            self._data = {}
            self._flush()


_mock_db: Optional[MockFirestore] = None


def get_mock_db(path: str = MEMORY_PATH) -> MockFirestore:
    global _mock_db
    if _mock_db is None or _mock_db.path != path:
        _mock_db = MockFirestore(path)
    return _mock_db
