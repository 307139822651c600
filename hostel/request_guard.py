"""
Duplicate-request guard.

Outpasses and complaints are created through ``RequestGuard.create_request``.
When a duplicate check is given, the caller's existing requests of the same
kind are queried inside the transaction; the query result is part of the read
set, so two tabs submitting at once cannot both get through.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .audit import record_audit
from .checks import ensure_authenticated
from .errors import ActiveRequestExists, InvalidArgument
from .models import Caller, ComplaintStatus, OutpassStatus, RequestKind, parse_status
from .store import SERVER_TIMESTAMP, DocumentStore, FieldFilter, Transaction
from .store.base import DEFAULT_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

STATUS_ENUMS: dict[RequestKind, type[Enum]] = {
    RequestKind.OUTPASSES: OutpassStatus,
    RequestKind.COMPLAINTS: ComplaintStatus,
}

# Fields the guard fills from the verified caller; payload values are ignored.
OWNER_FIELDS = ("user_id", "user_email", "user_name", "timestamp")


@dataclass(frozen=True)
class DuplicateCheck:
    """Block creation while the caller owns a request whose ``field`` is in ``values``."""

    field: str
    values: tuple[Any, ...]

    @classmethod
    def of(cls, field: str, values: Iterable[Any]) -> DuplicateCheck:
        return cls(field, tuple(v.value if isinstance(v, Enum) else v for v in values))


@dataclass(frozen=True)
class CreateRequestResult:
    success: bool
    id: str | None = None
    error: str | None = None
    message: str | None = None

    def raise_for_error(self) -> CreateRequestResult:
        if not self.success:
            raise ActiveRequestExists(self.message)
        return self


def parse_kind(kind: RequestKind | str) -> RequestKind:
    try:
        return RequestKind(kind)
    except ValueError:
        raise InvalidArgument(f"Invalid collection: {kind}") from None


def singular(kind: RequestKind) -> str:
    # outpasses -> outpass, complaints -> complaint
    return kind.value[:-2] if kind.value.endswith("sses") else kind.value[:-1]


def audit_action_for(kind: RequestKind) -> str:
    return f"CREATE_{singular(kind).upper()}"


class RequestGuard:
    def __init__(self, store: DocumentStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.store = store
        self.max_attempts = max_attempts

    def create_request(
        self,
        caller: Caller,
        kind: RequestKind | str,
        payload: dict[str, Any],
        duplicate_check: DuplicateCheck | tuple[str, Iterable[Any]] | None = None,
    ) -> CreateRequestResult:
        """Write a new request owned by ``caller`` plus its audit entry.

        Returns a failed result with ``error="ACTIVE_REQUEST_EXISTS"`` instead of
        writing when the duplicate check finds a blocking request.
        """
        caller = ensure_authenticated(caller)
        kind = parse_kind(kind)
        if duplicate_check is not None and not isinstance(duplicate_check, DuplicateCheck):
            duplicate_check = DuplicateCheck.of(*duplicate_check)

        status = parse_status(STATUS_ENUMS[kind], payload.get("status") or "pending")
        document = {k: v for k, v in payload.items() if k not in OWNER_FIELDS}
        document.update(
            {
                "user_id": caller.user_id,
                "user_email": caller.email,
                "user_name": caller.name,
                "status": status.value,
                "timestamp": SERVER_TIMESTAMP,
            }
        )

        def body(txn: Transaction) -> CreateRequestResult:
            if duplicate_check is not None:
                existing = txn.query(
                    kind.value,
                    [
                        FieldFilter("user_id", "==", caller.user_id),
                        FieldFilter(duplicate_check.field, "in", list(duplicate_check.values)),
                    ],
                )
                if existing:
                    return CreateRequestResult(
                        success=False,
                        error=ActiveRequestExists.code,
                        message=ActiveRequestExists.default_message,
                    )

            request_id = txn.create(kind.value, document)
            record_audit(txn, caller, audit_action_for(kind), request_id, singular(kind))
            return CreateRequestResult(success=True, id=request_id)

        result = self.store.run_transaction(body, max_attempts=self.max_attempts)
        if result.success:
            logger.info(f"Created {kind.value} request {result.id} for {caller.user_id}")
        else:
            logger.info(f"Refused {kind.value} request for {caller.user_id}: {result.error}")
        return result
