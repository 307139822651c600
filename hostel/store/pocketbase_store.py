"""
PocketBase-backed document store.

Documents map onto PocketBase records. Every collection carries an integer
``version`` field that the store bumps on each write and uses as the
document version. A record without one is rejected. PocketBase has no
optimistic read-validate-write primitive, so transactions are built from two
pieces it does have:

1. Read-set validation: every record (and query result set) the body read is
   fetched again and compared against the versions seen during the body.
2. Atomic apply: the staged writes go out as one ``/api/batch`` request, which
   PocketBase executes all-or-nothing.

Validation and apply run under a process-wide commit lock, so commits made
by this API process are serialised. Writers outside the process only race
the short window between validation and the batch call.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from pocketbase import PocketBase
from pocketbase.client import ClientResponseError  # type: ignore[attr-defined]

from ..errors import DocumentNotFound, TransactionConflict
from ..logging_config import TRACE
from .base import (
    SERVER_TIMESTAMP,
    ChangeEvent,
    DocumentSnapshot,
    DocumentStore,
    FieldFilter,
    Subscription,
    Transaction,
    Write,
)

logger = logging.getLogger(__name__)

VERSION_FIELD = "version"
SYSTEM_FIELDS = frozenset({"id", "collectionId", "collectionName", "created", "updated", "expand", VERSION_FIELD})
PAGE_SIZE = 200

_COMMIT_LOCK = threading.Lock()

_ACTION_KINDS = {"create": "added", "update": "modified", "delete": "removed"}


def pb_timestamp(now: datetime | None = None) -> str:
    """Format a datetime the way PocketBase stores date fields."""
    now = now or datetime.now(UTC)
    return now.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3] + "Z"


def _resolve_timestamps(value: Any, stamp: str) -> Any:
    if value is SERVER_TIMESTAMP:
        return stamp
    if isinstance(value, dict):
        return {k: _resolve_timestamps(v, stamp) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_timestamps(v, stamp) for v in value]
    return value


def _quote(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    text = str(value.value if hasattr(value, "value") else value)
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_filter(filters: Iterable[FieldFilter]) -> str:
    """Translate FieldFilters into a PocketBase filter expression."""
    parts = []
    for f in filters:
        if f.op == "==":
            parts.append(f"{f.field} = {_quote(f.value)}")
        elif f.op == "!=":
            parts.append(f"{f.field} != {_quote(f.value)}")
        else:
            options = " || ".join(f"{f.field} = {_quote(v)}" for v in f.value)
            parts.append(f"({options})")
    return " && ".join(parts)


def _strip_system_fields(record: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in record.items() if k not in SYSTEM_FIELDS}


def record_version(collection: str, record: dict[str, Any]) -> int:
    """Read the integer write counter off a record."""
    value = record.get(VERSION_FIELD)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise RuntimeError(
            f"Record {collection}/{record.get('id')} has no numeric '{VERSION_FIELD}' field, "
            f"add it to the {collection} collection schema"
        )
    return int(value)


class PocketBaseTransaction(Transaction):
    def __init__(self, store: PocketBaseDocumentStore):
        super().__init__()
        self._store = store

    def _fetch(self, collection: str, doc_id: str) -> DocumentSnapshot:
        return self._store.get(collection, doc_id)

    def _fetch_query(self, collection: str, filters: tuple[FieldFilter, ...]) -> list[DocumentSnapshot]:
        return self._store.query(collection, filters)

    def new_id(self) -> str:
        return self._store.new_id()


class PocketBaseDocumentStore(DocumentStore):
    """Document store on top of an authenticated PocketBase client."""

    def __init__(self, pb_client: PocketBase):
        self.pb = pb_client

    @staticmethod
    def _records_path(collection: str) -> str:
        return f"/api/collections/{collection}/records"

    # ---- reads ----

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        try:
            record = self.pb.send(f"{self._records_path(collection)}/{doc_id}", {"method": "GET"})
        except ClientResponseError as e:
            if e.status == 404:
                return DocumentSnapshot(collection, doc_id, None, None)
            raise
        return DocumentSnapshot(collection, doc_id, _strip_system_fields(record), record_version(collection, record))

    def query(
        self,
        collection: str,
        filters: Iterable[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        filters = tuple(filters)
        if any(f.op == "in" and not f.value for f in filters):
            return []

        params: dict[str, Any] = {}
        if filters:
            params["filter"] = build_filter(filters)
        if order_by:
            params["sort"] = f"-{order_by}" if descending else order_by

        per_page = min(limit, PAGE_SIZE) if limit else PAGE_SIZE
        snapshots: list[DocumentSnapshot] = []
        page = 1
        while True:
            logger.log(TRACE, f"Querying {collection} page {page} with params: {params}")
            response = self.pb.send(
                self._records_path(collection),
                {"method": "GET", "params": {**params, "page": page, "perPage": per_page}},
            )
            items = response.get("items") or []
            for record in items:
                version = record_version(collection, record)
                snapshots.append(DocumentSnapshot(collection, record["id"], _strip_system_fields(record), version))
            if limit is not None and len(snapshots) >= limit:
                return snapshots[:limit]
            if not items or page >= response.get("totalPages", 1):
                return snapshots
            page += 1

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
        with _COMMIT_LOCK:
            self._send_batch(writes, {})

    def _next_versions(self, writes: list[Write], seen: dict[tuple[str, str], Any]) -> dict[tuple[str, str], int]:
        versions: dict[tuple[str, str], int] = {}
        for write in writes:
            key = (write.collection, write.doc_id)
            if write.kind == "delete" or key in versions:
                continue
            current = seen[key] if key in seen else self.get(*key).version
            versions[key] = (current or 0) + 1
        return versions

    def _batch_request(self, write: Write, stamp: str, version: int | None = None) -> dict[str, Any]:
        path = self._records_path(write.collection)
        if write.kind == "set":
            body = _resolve_timestamps(write.data or {}, stamp)
            return {"method": "PUT", "url": path, "body": {**body, "id": write.doc_id, VERSION_FIELD: version}}
        if write.kind == "update":
            body = _resolve_timestamps(write.data or {}, stamp)
            return {"method": "PATCH", "url": f"{path}/{write.doc_id}", "body": {**body, VERSION_FIELD: version}}
        if write.kind == "delete":
            return {"method": "DELETE", "url": f"{path}/{write.doc_id}"}
        raise ValueError(f"Unknown write kind: {write.kind}")

    def _send_batch(self, writes: list[Write], seen: dict[tuple[str, str], Any]) -> None:
        if not writes:
            return
        stamp = pb_timestamp()
        versions = self._next_versions(writes, seen)
        requests = [self._batch_request(w, stamp, versions.get((w.collection, w.doc_id))) for w in writes]
        try:
            self.pb.send("/api/batch", {"method": "POST", "body": {"requests": requests}})
        except ClientResponseError as e:
            if e.status == 404:
                raise DocumentNotFound(str(e)) from e
            raise

    # ---- transactions ----

    def _begin(self) -> Transaction:
        return PocketBaseTransaction(self)

    def _commit(self, txn: Transaction) -> None:
        with _COMMIT_LOCK:
            seen = dict(txn.reads)
            for (collection, doc_id), seen_version in txn.reads.items():
                if self.get(collection, doc_id).version != seen_version:
                    raise TransactionConflict(f"{collection}/{doc_id} changed during transaction")
            for read in txn.query_reads:
                current = {s.id: s.version for s in self.query(read.collection, read.filters)}
                if current != read.versions:
                    raise TransactionConflict(f"Query result on {read.collection} changed during transaction")
                seen.update({(read.collection, doc_id): v for doc_id, v in read.versions.items()})
            self._send_batch(txn.writes, seen)

    # ---- subscriptions ----

    def subscribe(
        self,
        collection: str,
        listener: Callable[[ChangeEvent], None],
        doc_id: str | None = None,
    ) -> Subscription:
        service = self.pb.collection(collection)

        def handle(message: Any) -> None:
            record_id = getattr(message.record, "id", "")
            kind = _ACTION_KINDS.get(message.action, "modified")
            data = None if kind == "removed" else self.get(collection, record_id).data
            try:
                listener(ChangeEvent(collection, record_id, kind, data))
            except Exception as e:
                logger.error(f"Change listener for {collection} failed: {e}", exc_info=True)

        if doc_id is not None:
            # Older SDK releases only expose the camelCase name.
            subscribe_one = getattr(service, "subscribe_one", None) or service.subscribeOne
            unsubscribe = subscribe_one(doc_id, handle)
        else:
            unsubscribe = service.subscribe(handle)
        logger.debug(f"Subscribed to PocketBase realtime for {collection}")

        def cancel() -> None:
            if callable(unsubscribe):
                unsubscribe()
            else:
                service.unsubscribe()

        return Subscription(cancel)
