"""
In-memory document store with optimistic transactions.

Every stored document carries a version drawn from a single counter, so a
document that is deleted and recreated never reuses an old version. Commits
take the store lock, re-check every version the transaction read (including
the exact result set of each query it ran) and then install all staged writes
together. Reads outside a commit also take the lock but never block on a
running transaction body.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from ..errors import DocumentNotFound, TransactionConflict
from .base import (
    SERVER_TIMESTAMP,
    ChangeEvent,
    DocumentSnapshot,
    DocumentStore,
    FieldFilter,
    ListenerRegistry,
    Subscription,
    Transaction,
    Write,
)

logger = logging.getLogger(__name__)


def _resolve_timestamps(value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_timestamps(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_timestamps(v, now) for v in value]
    return value


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing values sort first, like an unset timestamp.
    if value is None:
        return (0, "")
    return (1, value)


class InMemoryTransaction(Transaction):
    def __init__(self, store: InMemoryDocumentStore):
        super().__init__()
        self._store = store

    def _fetch(self, collection: str, doc_id: str) -> DocumentSnapshot:
        return self._store.get(collection, doc_id)

    def _fetch_query(self, collection: str, filters: tuple[FieldFilter, ...]) -> list[DocumentSnapshot]:
        return self._store.query(collection, filters)

    def new_id(self) -> str:
        return self._store.new_id()


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe document store held in process memory."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, tuple[int, dict[str, Any]]]] = {}
        self._version_counter = 0
        self._clock = clock or (lambda: datetime.now(UTC))
        self._listeners = ListenerRegistry()
        self.commit_count = 0

    # ---- reads ----

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        with self._lock:
            entry = self._collections.get(collection, {}).get(doc_id)
            if entry is None:
                return DocumentSnapshot(collection, doc_id, None, None)
            version, data = entry
            return DocumentSnapshot(collection, doc_id, copy.deepcopy(data), version)

    def query(
        self,
        collection: str,
        filters: Iterable[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        filters = tuple(filters)
        with self._lock:
            snapshots = [
                DocumentSnapshot(collection, doc_id, copy.deepcopy(data), version)
                for doc_id, (version, data) in self._collections.get(collection, {}).items()
                if all(f.matches(data) for f in filters)
            ]
        if order_by:
            snapshots.sort(key=lambda s: _sort_key(s.get(order_by)), reverse=descending)
        if limit is not None:
            snapshots = snapshots[:limit]
        return snapshots

    def new_id(self) -> str:
        return uuid.uuid4().hex[:15]

    # ---- writes ----

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._apply([Write("set", collection, doc_id, dict(data))])

    def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        self._apply([Write("update", collection, doc_id, dict(changes))])

    def delete(self, collection: str, doc_id: str) -> None:
        self._apply([Write("delete", collection, doc_id)])

    def _apply(self, writes: list[Write]) -> None:
        with self._lock:
            events = self._install(writes)
        self._listeners.dispatch(events)

    def _install(self, writes: list[Write]) -> list[ChangeEvent]:
        """Stage every write on a scratch view, then swap it in. Caller holds the lock."""
        now = self._clock()
        staged: dict[tuple[str, str], dict[str, Any] | None] = {}

        def current(key: tuple[str, str]) -> dict[str, Any] | None:
            if key in staged:
                return staged[key]
            entry = self._collections.get(key[0], {}).get(key[1])
            return copy.deepcopy(entry[1]) if entry else None

        for write in writes:
            key = (write.collection, write.doc_id)
            if write.kind == "set":
                staged[key] = _resolve_timestamps(copy.deepcopy(write.data or {}), now)
            elif write.kind == "update":
                existing = current(key)
                if existing is None:
                    raise DocumentNotFound(f"No document {write.doc_id} in {write.collection}")
                existing.update(_resolve_timestamps(copy.deepcopy(write.data or {}), now))
                staged[key] = existing
            elif write.kind == "delete":
                staged[key] = None
            else:
                raise ValueError(f"Unknown write kind: {write.kind}")

        events: list[ChangeEvent] = []
        for (collection, doc_id), data in staged.items():
            docs = self._collections.setdefault(collection, {})
            existed = doc_id in docs
            if data is None:
                if existed:
                    del docs[doc_id]
                    events.append(ChangeEvent(collection, doc_id, "removed"))
                continue
            self._version_counter += 1
            docs[doc_id] = (self._version_counter, data)
            events.append(ChangeEvent(collection, doc_id, "modified" if existed else "added", copy.deepcopy(data)))
        return events

    # ---- transactions ----

    def _begin(self) -> Transaction:
        return InMemoryTransaction(self)

    def _commit(self, txn: Transaction) -> None:
        with self._lock:
            self._validate(txn)
            events = self._install(txn.writes)
            self.commit_count += 1
        self._listeners.dispatch(events)

    def _validate(self, txn: Transaction) -> None:
        for (collection, doc_id), seen_version in txn.reads.items():
            entry = self._collections.get(collection, {}).get(doc_id)
            current_version = entry[0] if entry else None
            if current_version != seen_version:
                raise TransactionConflict(f"{collection}/{doc_id} changed during transaction")

        for read in txn.query_reads:
            current_versions = {
                doc_id: version
                for doc_id, (version, data) in self._collections.get(read.collection, {}).items()
                if all(f.matches(data) for f in read.filters)
            }
            if current_versions != read.versions:
                raise TransactionConflict(f"Query result on {read.collection} changed during transaction")

    # ---- subscriptions ----

    def subscribe(
        self,
        collection: str,
        listener: Callable[[ChangeEvent], None],
        doc_id: str | None = None,
    ) -> Subscription:
        token = self._listeners.add(collection, doc_id, listener)
        return Subscription(lambda: self._listeners.remove(token))

    def listener_count(self, collection: str | None = None) -> int:
        return self._listeners.count(collection)
