"""Notice board."""

from __future__ import annotations

import logging
from typing import Any

from ..checks import ensure_admin, ensure_identifier
from ..errors import DocumentNotFound, InvalidArgument
from ..models import Caller, Collections
from ..store import SERVER_TIMESTAMP, DocumentStore, Transaction

logger = logging.getLogger(__name__)


class NoticeService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def post(self, actor: Caller, message: str) -> str:
        ensure_admin(actor)
        if not message or not message.strip():
            raise InvalidArgument("Please enter text")
        notice_id = self.store.create(
            Collections.NOTICES,
            {"message": message.strip(), "posted_by": actor.email, "timestamp": SERVER_TIMESTAMP},
        )
        logger.info(f"Notice {notice_id} posted by {actor.email or actor.user_id}")
        return notice_id

    def list(self, limit: int | None = None) -> list[dict[str, Any]]:
        snapshots = self.store.query(Collections.NOTICES, order_by="timestamp", descending=True, limit=limit)
        return [{"id": s.id, **(s.data or {})} for s in snapshots]

    def delete(self, actor: Caller, notice_id: str) -> None:
        ensure_admin(actor)
        notice_id = ensure_identifier(notice_id, "notice id")
        if not self.store.get(Collections.NOTICES, notice_id).exists:
            raise DocumentNotFound(f"Notice {notice_id} not found")
        self.store.delete(Collections.NOTICES, notice_id)

    def clear(self, actor: Caller) -> int:
        """Delete every notice in one atomic write."""
        ensure_admin(actor)

        def body(txn: Transaction) -> int:
            notices = txn.query(Collections.NOTICES)
            for snapshot in notices:
                txn.delete(Collections.NOTICES, snapshot.id)
            return len(notices)

        cleared = self.store.run_transaction(body)
        logger.info(f"Notice board cleared ({cleared} notices)")
        return cleared
