"""Infrastructure layer for document persistence."""
from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Mapping, Protocol, Sequence

from fermes_backend.core.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "fermes",
    "workers",
    "rooms",
    "stocks",
    "stock_transfers",
    "stock_additions",
)

Filter = tuple[str, str, Any]
Filters = Mapping[str, Any] | Sequence[Filter] | None
ChangeListener = Callable[[list[dict[str, Any]]], None]


@dataclass(frozen=True, slots=True)
class Increment:
    """Field transform applied atomically by the store."""

    amount: int


class _ServerTimestamp:
    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStore(Protocol):
    """Persistence contract for the dashboard collections."""

    def query(self, collection: str, filters: Filters = None) -> list[dict[str, Any]]: ...

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    def subscribe(self, collection: str, filters: Filters, on_change: ChangeListener) -> Callable[[], None]: ...

    def create_document(self, collection: str, data: dict[str, Any]) -> str: ...

    def update_document(self, collection: str, doc_id: str, data: dict[str, Any]) -> None: ...

    def delete_document(self, collection: str, doc_id: str) -> None: ...

    def transaction(self) -> Any: ...

    def reset(self) -> None: ...


def _normalise_filters(filters: Filters) -> list[Filter]:
    if not filters:
        return []
    if isinstance(filters, Mapping):
        return [(field, "==", value) for field, value in filters.items()]
    return [tuple(item) for item in filters]  # type: ignore[misc]


def _matches(doc: Mapping[str, Any], filters: list[Filter]) -> bool:
    for field_name, op, expected in filters:
        actual = doc.get(field_name)
        try:
            if op == "==":
                ok = actual == expected
            elif op == "!=":
                ok = actual != expected
            elif op == "in":
                ok = actual in expected
            elif actual is None:
                ok = False
            elif op == "<":
                ok = actual < expected
            elif op == "<=":
                ok = actual <= expected
            elif op == ">":
                ok = actual > expected
            elif op == ">=":
                ok = actual >= expected
            else:
                raise StoreError(f"unsupported filter operator: {op}")
        except TypeError:
            ok = False
        if not ok:
            return False
    return True


class InMemoryDocumentStore:
    """Thread-safe in-memory store for development and tests."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, dict[str, Any]]] = {name: {} for name in COLLECTIONS}
        self._counters: dict[str, int] = {}
        self._listeners: dict[str, list[tuple[list[Filter], ChangeListener]]] = {}
        self._tx_depth = 0
        self._tx_snapshot: tuple[dict, dict] | None = None
        self._dirty: set[str] = set()

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        if name not in self._collections:
            raise StoreError(f"unknown collection: {name}")
        return self._collections[name]

    def _next_id(self, collection: str) -> str:
        self._counters[collection] = self._counters.get(collection, 0) + 1
        return f"{collection}-{self._counters[collection]:05d}"

    def _resolve(self, current: Any, value: Any) -> Any:
        if isinstance(value, Increment):
            base = current if isinstance(current, (int, float)) else 0
            return base + value.amount
        if value is SERVER_TIMESTAMP:
            return utcnow_iso()
        return copy.deepcopy(value)

    def _changed(self, collection: str) -> bool:
        """Record a write; return True when listeners should run right away."""

        if self._tx_depth:
            self._dirty.add(collection)
            return False
        return True

    def _notify(self, collection: str) -> None:
        listeners = list(self._listeners.get(collection, []))
        for filters, callback in listeners:
            snapshot = self.query(collection, filters)
            try:
                callback(snapshot)
            except Exception:  # noqa: BLE001
                logger.exception("change listener failed for collection %s", collection)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def query(self, collection: str, filters: Filters = None) -> list[dict[str, Any]]:
        normalised = _normalise_filters(filters)
        with self._lock:
            docs = self._collection(collection)
            return [copy.deepcopy(doc) for doc in docs.values() if _matches(doc, normalised)]

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def subscribe(self, collection: str, filters: Filters, on_change: ChangeListener) -> Callable[[], None]:
        self._collection(collection)
        entry = (_normalise_filters(filters), on_change)
        with self._lock:
            self._listeners.setdefault(collection, []).append(entry)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(collection, [])
                if entry in listeners:
                    listeners.remove(entry)

        return unsubscribe

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def create_document(self, collection: str, data: dict[str, Any]) -> str:
        with self._lock:
            docs = self._collection(collection)
            doc_id = str(data.get("id") or self._next_id(collection))
            if doc_id in docs:
                raise StoreError(f"document already exists: {collection}/{doc_id}")
            document = {key: self._resolve(None, value) for key, value in data.items()}
            document["id"] = doc_id
            docs[doc_id] = document
            notify = self._changed(collection)
        if notify:
            self._notify(collection)
        return doc_id

    def update_document(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            docs = self._collection(collection)
            document = docs.get(doc_id)
            if document is None:
                raise NotFoundError(f"document not found: {collection}/{doc_id}")
            for key, value in data.items():
                if key == "id":
                    continue
                document[key] = self._resolve(document.get(key), value)
            notify = self._changed(collection)
        if notify:
            self._notify(collection)

    def delete_document(self, collection: str, doc_id: str) -> None:
        with self._lock:
            docs = self._collection(collection)
            if docs.pop(doc_id, None) is None:
                raise NotFoundError(f"document not found: {collection}/{doc_id}")
            notify = self._changed(collection)
        if notify:
            self._notify(collection)

    @contextmanager
    def transaction(self) -> Iterator["InMemoryDocumentStore"]:
        """Commit every write inside the block or none of them."""

        with self._lock:
            outermost = self._tx_depth == 0
            if outermost:
                self._tx_snapshot = (copy.deepcopy(self._collections), dict(self._counters))
            self._tx_depth += 1
            try:
                yield self
            except BaseException:
                self._tx_depth -= 1
                if outermost and self._tx_snapshot is not None:
                    self._collections, self._counters = self._tx_snapshot
                    self._tx_snapshot = None
                    self._dirty.clear()
                raise
            self._tx_depth -= 1
            if not outermost:
                return
            self._tx_snapshot = None
            dirty, self._dirty = self._dirty, set()
        for collection in sorted(dirty):
            self._notify(collection)

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        with self._lock:
            self._collections = {name: {} for name in COLLECTIONS}
            self._counters.clear()
            self._listeners.clear()
            self._dirty.clear()
