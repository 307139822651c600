"""
Document store layer.

Re-exports the store interface and its backends.
"""

from __future__ import annotations

from .base import (
    SERVER_TIMESTAMP,
    ChangeEvent,
    ChangeStream,
    DocumentSnapshot,
    DocumentStore,
    FieldFilter,
    Subscription,
    Transaction,
)
from .cache import DocumentCache
from .memory import InMemoryDocumentStore

__all__ = [
    "SERVER_TIMESTAMP",
    "ChangeEvent",
    "ChangeStream",
    "DocumentCache",
    "DocumentSnapshot",
    "DocumentStore",
    "FieldFilter",
    "InMemoryDocumentStore",
    "Subscription",
    "Transaction",
]
