"""
Read-through document cache invalidated by the store's change stream.

Replaces page-level lists of rooms/bookings with one cache per collection,
keyed by document id. Entries are dropped as soon as the store reports a
change to them, so a cached value is never older than the last change event.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from .base import ChangeEvent, DocumentSnapshot, DocumentStore, Subscription

logger = logging.getLogger(__name__)


class DocumentCache:
    """Thread-safe read-through cache for one collection."""

    def __init__(self, store: DocumentStore, collection: str):
        self._store = store
        self._collection = collection
        self._entries: dict[str, DocumentSnapshot] = {}
        self._all_loaded = False
        self._generation = 0
        self._lock = threading.RLock()
        self._hit_count = 0
        self._miss_count = 0
        self._subscription: Subscription | None = store.subscribe(collection, self._on_change)

        logger.info(f"DocumentCache initialized for {collection}")

    def _on_change(self, event: ChangeEvent) -> None:
        with self._lock:
            self._entries.pop(event.doc_id, None)
            self._generation += 1
            # Membership may have changed; the next list() goes back to the store.
            self._all_loaded = False
        logger.debug(f"Invalidated {self._collection}/{event.doc_id} ({event.kind})")

    def get(self, doc_id: str) -> DocumentSnapshot:
        with self._lock:
            cached = self._entries.get(doc_id)
            if cached is not None:
                self._hit_count += 1
                return cached
            self._miss_count += 1
            generation = self._generation

        snapshot = self._store.get(self._collection, doc_id)
        if snapshot.exists:
            with self._lock:
                # Skip the fill if a change arrived while we were reading.
                if generation == self._generation:
                    self._entries[doc_id] = snapshot
        return snapshot

    def list(self) -> list[DocumentSnapshot]:
        """All documents in the collection, loading from the store once."""
        with self._lock:
            if self._all_loaded:
                self._hit_count += 1
                return list(self._entries.values())
            self._miss_count += 1
            generation = self._generation

        snapshots = self._store.query(self._collection)
        with self._lock:
            if generation == self._generation:
                self._entries = {s.id: s for s in snapshots}
                self._all_loaded = True
        return snapshots

    def invalidate(self, doc_id: str | None = None) -> None:
        with self._lock:
            if doc_id is None:
                self._entries.clear()
            else:
                self._entries.pop(doc_id, None)
            self._all_loaded = False
            self._generation += 1

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self.invalidate()

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hit_count + self._miss_count
            return {
                "collection": self._collection,
                "entries": len(self._entries),
                "hits": self._hit_count,
                "misses": self._miss_count,
                "hit_rate": self._hit_count / total if total else 0.0,
            }
