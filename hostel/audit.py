"""Append-only audit trail written alongside privileged mutations."""

from __future__ import annotations

from typing import Any

from .models import Caller, Collections
from .store import SERVER_TIMESTAMP, Transaction


class AuditAction:
    CREATE_OUTPASS = "CREATE_OUTPASS"
    CREATE_COMPLAINT = "CREATE_COMPLAINT"
    APPROVE_BOOKING = "APPROVE_BOOKING"
    CONFIRM_BOOKING = "CONFIRM_BOOKING"
    REJECT_BOOKING = "REJECT_BOOKING"
    FORCE_VACATE = "FORCE_VACATE"
    APPROVE_LEAVE = "APPROVE_LEAVE"
    GRANT_ADMIN = "GRANT_ADMIN"
    REVOKE_ADMIN = "REVOKE_ADMIN"
    ARCHIVE_USER = "ARCHIVE_USER"
    RESTORE_USER = "RESTORE_USER"


def record_audit(
    txn: Transaction,
    actor: Caller,
    action: str,
    target_id: str,
    target_type: str,
    details: dict[str, Any] | None = None,
) -> str:
    """Stage an audit entry in ``txn`` so it commits with the change it describes."""
    return txn.create(
        Collections.AUDIT_LOGS,
        {
            "action": action,
            "target_id": target_id,
            "target_type": target_type,
            "actor_id": actor.user_id,
            "actor_email": actor.email,
            "details": details or {},
            "timestamp": SERVER_TIMESTAMP,
        },
    )
