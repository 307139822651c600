"""
Notifications: broadcasts (``recipient_id`` is None) and direct messages.

Per-user state lives on the notification itself: ``read_by`` and
``deleted_by`` hold the ids of users who have read or hidden it.
"""

from __future__ import annotations

import logging
from typing import Any

from ..checks import ensure_admin, ensure_authenticated, ensure_identifier
from ..errors import DocumentNotFound, InvalidArgument, PermissionDenied
from ..models import Caller, Collections
from ..store import SERVER_TIMESTAMP, DocumentSnapshot, DocumentStore, FieldFilter, Transaction

logger = logging.getLogger(__name__)


def notification_document(message: str, recipient_id: str | None = None, title: str = "") -> dict[str, Any]:
    return {
        "title": title,
        "message": message,
        "recipient_id": recipient_id,
        "read_by": [],
        "deleted_by": [],
        "timestamp": SERVER_TIMESTAMP,
    }


def stage_notification(txn: Transaction, recipient_id: str, message: str, title: str = "") -> str:
    """Queue a direct notification inside another transaction."""
    return txn.create(Collections.NOTIFICATIONS, notification_document(message, recipient_id, title))


def _with_id(snapshot: DocumentSnapshot) -> dict[str, Any]:
    return {"id": snapshot.id, **(snapshot.data or {})}


class NotificationService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def broadcast(self, actor: Caller, message: str, title: str = "") -> str:
        ensure_admin(actor)
        if not message or not message.strip():
            raise InvalidArgument("Notification message is required")
        notification_id = self.store.create(
            Collections.NOTIFICATIONS, notification_document(message.strip(), None, title.strip())
        )
        logger.info(f"Broadcast {notification_id} sent by {actor.email or actor.user_id}")
        return notification_id

    def notify(self, recipient_id: str, message: str, title: str = "") -> str:
        recipient_id = ensure_identifier(recipient_id, "recipient id")
        return self.store.create(Collections.NOTIFICATIONS, notification_document(message, recipient_id, title))

    def _visible(self, caller: Caller) -> list[DocumentSnapshot]:
        snapshots = self.store.query(
            Collections.NOTIFICATIONS,
            [FieldFilter("recipient_id", "in", [caller.user_id, None])],
            order_by="timestamp",
            descending=True,
        )
        return [s for s in snapshots if caller.user_id not in (s.get("deleted_by") or [])]

    def list_for(self, caller: Caller) -> list[dict[str, Any]]:
        """Own direct notifications plus broadcasts, minus hidden ones, newest first."""
        caller = ensure_authenticated(caller)
        return [_with_id(s) for s in self._visible(caller)]

    def unread(self, caller: Caller) -> list[dict[str, Any]]:
        caller = ensure_authenticated(caller)
        return [_with_id(s) for s in self._visible(caller) if caller.user_id not in (s.get("read_by") or [])]

    def mark_all_read(self, caller: Caller) -> int:
        caller = ensure_authenticated(caller)
        pending = [n["id"] for n in self.unread(caller)]
        if not pending:
            return 0

        def body(txn: Transaction) -> int:
            marked = 0
            for notification_id in pending:
                snapshot = txn.get(Collections.NOTIFICATIONS, notification_id)
                read_by = list(snapshot.get("read_by") or [])
                if not snapshot.exists or caller.user_id in read_by:
                    continue
                txn.update(Collections.NOTIFICATIONS, notification_id, {"read_by": [*read_by, caller.user_id]})
                marked += 1
            return marked

        return self.store.run_transaction(body)

    def hide(self, caller: Caller, notification_id: str) -> None:
        """Remove a notification from the caller's list without touching anyone else's."""
        caller = ensure_authenticated(caller)
        notification_id = ensure_identifier(notification_id, "notification id")

        def body(txn: Transaction) -> None:
            snapshot = txn.get(Collections.NOTIFICATIONS, notification_id)
            if not snapshot.exists:
                raise DocumentNotFound(f"Notification {notification_id} not found")
            recipient = snapshot.get("recipient_id")
            if recipient not in (None, caller.user_id):
                raise PermissionDenied("Not your notification")
            deleted_by = list(snapshot.get("deleted_by") or [])
            if caller.user_id not in deleted_by:
                txn.update(Collections.NOTIFICATIONS, notification_id, {"deleted_by": [*deleted_by, caller.user_id]})

        self.store.run_transaction(body)

    def list_broadcasts(self, actor: Caller) -> list[dict[str, Any]]:
        ensure_admin(actor)
        snapshots = self.store.query(
            Collections.NOTIFICATIONS,
            [FieldFilter("recipient_id", "==", None)],
            order_by="timestamp",
            descending=True,
        )
        return [_with_id(s) for s in snapshots]

    def delete_broadcast(self, actor: Caller, notification_id: str) -> None:
        ensure_admin(actor)
        notification_id = ensure_identifier(notification_id, "notification id")
        snapshot = self.store.get(Collections.NOTIFICATIONS, notification_id)
        if not snapshot.exists:
            raise DocumentNotFound(f"Notification {notification_id} not found")
        if snapshot.get("recipient_id") is not None:
            raise InvalidArgument("Only broadcasts can be deleted here")
        self.store.delete(Collections.NOTIFICATIONS, notification_id)

    def clear_broadcasts(self, actor: Caller) -> int:
        ensure_admin(actor)

        def body(txn: Transaction) -> int:
            broadcasts = txn.query(Collections.NOTIFICATIONS, [FieldFilter("recipient_id", "==", None)])
            for snapshot in broadcasts:
                txn.delete(Collections.NOTIFICATIONS, snapshot.id)
            return len(broadcasts)

        cleared = self.store.run_transaction(body)
        logger.info(f"Cleared {cleared} broadcasts")
        return cleared
