"""
Document store abstraction.

The portal talks to a hosted document database through this small surface:
plain CRUD, filtered queries, optimistic transactions and change
subscriptions. Two implementations exist:

- InMemoryDocumentStore: versioned documents in process memory (tests, dev)
- PocketBaseDocumentStore: a hosted PocketBase instance

Transactions are optimistic. The body reads through the transaction, which
records the version of everything it saw, and stages its writes. At commit
the store re-validates the read set; if any of it changed the commit is
aborted with TransactionConflict and the whole body runs again.
"""

from __future__ import annotations

import logging
import queue
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ..errors import TransactionConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5


class _ServerTimestamp:
    """Sentinel replaced by the store clock when a write is applied."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class FieldFilter:
    """A single equality-style condition on a document field."""

    field: str
    op: str
    value: Any

    OPERATORS = ("==", "!=", "in")

    def __post_init__(self) -> None:
        if self.op not in self.OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, data: dict[str, Any]) -> bool:
        actual = data.get(self.field)
        if self.op == "==":
            return bool(actual == self.value)
        if self.op == "!=":
            return bool(actual != self.value)
        return actual in self.value


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time view of one document. ``data`` is None when missing."""

    collection: str
    id: str
    data: dict[str, Any] | None
    version: Any = None

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, key: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(key, default)


@dataclass(frozen=True)
class ChangeEvent:
    """One change pushed to subscribers: added, modified or removed."""

    collection: str
    doc_id: str
    kind: str
    data: dict[str, Any] | None = None


@dataclass
class Write:
    """A staged write inside a transaction."""

    kind: str  # "set", "update" or "delete"
    collection: str
    doc_id: str
    data: dict[str, Any] | None = None


@dataclass
class QueryRead:
    """A query executed inside a transaction plus what it returned."""

    collection: str
    filters: tuple[FieldFilter, ...]
    versions: dict[str, Any] = field(default_factory=dict)


class Subscription:
    """Cancellation handle returned by DocumentStore.subscribe."""

    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._cancel()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()


class ChangeStream(Subscription):
    """Queue-backed stream of ChangeEvents for consumers that poll or iterate.

    Usage:
        with store.watch("rooms") as stream:
            for event in stream:
                ...
    """

    def __init__(self) -> None:
        super().__init__(cancel=lambda: None)
        self._queue: queue.Queue[ChangeEvent | None] = queue.Queue()

    def bind(self, subscription: Subscription) -> None:
        self._cancel = subscription.cancel

    def push(self, event: ChangeEvent) -> None:
        self._queue.put(event)

    def get(self, timeout: float | None = None) -> ChangeEvent | None:
        """Next event, or None when the stream is closed or the wait timed out."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def cancel(self) -> None:
        if self.active:
            super().cancel()
            self._queue.put(None)

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            event = self._queue.get()
            if event is None:
                return
            yield event


class Transaction(ABC):
    """Read-validate-write unit. Reads go to the store, writes are staged."""

    def __init__(self) -> None:
        self.reads: dict[tuple[str, str], Any] = {}
        self.query_reads: list[QueryRead] = []
        self.writes: list[Write] = []

    @abstractmethod
    def _fetch(self, collection: str, doc_id: str) -> DocumentSnapshot:
        """Read one document straight from the store."""

    @abstractmethod
    def _fetch_query(self, collection: str, filters: tuple[FieldFilter, ...]) -> list[DocumentSnapshot]:
        """Run a query straight against the store."""

    @abstractmethod
    def new_id(self) -> str:
        """Generate a fresh document id."""

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        snapshot = self._fetch(collection, doc_id)
        self.reads.setdefault((collection, doc_id), snapshot.version)
        return snapshot

    def query(self, collection: str, filters: Iterable[FieldFilter] = ()) -> list[DocumentSnapshot]:
        frozen = tuple(filters)
        snapshots = self._fetch_query(collection, frozen)
        self.query_reads.append(
            QueryRead(collection=collection, filters=frozen, versions={s.id: s.version for s in snapshots})
        )
        return snapshots

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.writes.append(Write("set", collection, doc_id, dict(data)))

    def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = self.new_id()
        self.set(collection, doc_id, data)
        return doc_id

    def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        self.writes.append(Write("update", collection, doc_id, dict(changes)))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes.append(Write("delete", collection, doc_id))


class DocumentStore(ABC):
    """Interface every store backend implements."""

    # ---- plain CRUD ----

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> DocumentSnapshot: ...

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Iterable[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]: ...

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None: ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        """Merge ``changes`` into an existing document. Raises DocumentNotFound."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None: ...

    @abstractmethod
    def new_id(self) -> str: ...

    def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = self.new_id()
        self.set(collection, doc_id, data)
        return doc_id

    # ---- transactions ----

    @abstractmethod
    def _begin(self) -> Transaction: ...

    @abstractmethod
    def _commit(self, txn: Transaction) -> None:
        """Validate the read set and apply the write set atomically.

        Raises TransactionConflict if anything read has changed since.
        """

    def run_transaction(self, body: Callable[[Transaction], T], max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> T:
        """Run ``body`` in an optimistic transaction, retrying on conflict.

        Exceptions raised by ``body`` abort the attempt without committing and
        propagate unchanged; only TransactionConflict triggers a retry.
        """
        for attempt in range(1, max_attempts + 1):
            txn = self._begin()
            result = body(txn)
            try:
                self._commit(txn)
                return result
            except TransactionConflict:
                logger.debug(f"Transaction conflict on attempt {attempt}/{max_attempts}, retrying")
        logger.warning(f"Transaction gave up after {max_attempts} conflicting attempts")
        raise TransactionConflict()

    # ---- change notifications ----

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        listener: Callable[[ChangeEvent], None],
        doc_id: str | None = None,
    ) -> Subscription: ...

    def watch(self, collection: str, doc_id: str | None = None) -> ChangeStream:
        """Subscribe and receive events through a ChangeStream."""
        stream = ChangeStream()
        stream.bind(self.subscribe(collection, stream.push, doc_id=doc_id))
        return stream


class ListenerRegistry:
    """Thread-safe listener bookkeeping shared by store backends."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next_token = 0
        self._listeners: dict[int, tuple[str, str | None, Callable[[ChangeEvent], None]]] = {}

    def add(self, collection: str, doc_id: str | None, listener: Callable[[ChangeEvent], None]) -> int:
        with self._lock:
            self._next_token += 1
            self._listeners[self._next_token] = (collection, doc_id, listener)
            return self._next_token

    def remove(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def count(self, collection: str | None = None) -> int:
        with self._lock:
            return sum(1 for c, _, _ in self._listeners.values() if collection is None or c == collection)

    def dispatch(self, events: Iterable[ChangeEvent]) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for event in events:
            for collection, doc_id, listener in listeners:
                if collection != event.collection or (doc_id is not None and doc_id != event.doc_id):
                    continue
                try:
                    listener(event)
                except Exception as e:
                    logger.error(f"Change listener for {collection} failed: {e}", exc_info=True)
