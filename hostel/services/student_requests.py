"""
Outpass and complaint requests.

Creation goes through the duplicate-request guard; everything else is plain
reads and guarded status updates. Statuses move only along the tables below.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo

from ..checks import ensure_admin, ensure_authenticated, ensure_identifier
from ..errors import InvalidArgument, InvalidTransition, PermissionDenied, RequestNotFound
from ..models import Caller, ComplaintStatus, OutpassStatus, RequestKind, parse_status
from ..request_guard import STATUS_ENUMS, CreateRequestResult, DuplicateCheck, RequestGuard, parse_kind
from ..store import SERVER_TIMESTAMP, DocumentSnapshot, DocumentStore, FieldFilter, Transaction
from .notifications import stage_notification

logger = logging.getLogger(__name__)

OUTPASS_TRANSITIONS: dict[OutpassStatus, frozenset[OutpassStatus]] = {
    OutpassStatus.PENDING: frozenset({OutpassStatus.APPROVED, OutpassStatus.REJECTED}),
    OutpassStatus.APPROVED: frozenset(),
    OutpassStatus.REJECTED: frozenset(),
}

COMPLAINT_TRANSITIONS: dict[ComplaintStatus, frozenset[ComplaintStatus]] = {
    ComplaintStatus.PENDING: frozenset(
        {ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED, ComplaintStatus.REJECTED}
    ),
    ComplaintStatus.IN_PROGRESS: frozenset({ComplaintStatus.RESOLVED, ComplaintStatus.REJECTED}),
    ComplaintStatus.RESOLVED: frozenset(),
    ComplaintStatus.REJECTED: frozenset(),
}

ACTIVE_OUTPASS = DuplicateCheck.of("status", [OutpassStatus.PENDING, OutpassStatus.APPROVED])

MIN_TITLE_LENGTH = 5
MIN_PARENT_CONTACT_LENGTH = 10
DEFAULT_URGENCY = "Normal"


def pass_id_for(outpass_id: str) -> str:
    """Short gate-pass code shown on an approved outpass."""
    return outpass_id[:6].upper()


def _require_text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{label} is required")
    return value.strip()


def _with_id(snapshot: DocumentSnapshot) -> dict[str, Any]:
    return {"id": snapshot.id, **(snapshot.data or {})}


class RequestService:
    """Student-facing and admin-facing operations on outpasses and complaints."""

    def __init__(
        self,
        store: DocumentStore,
        guard: RequestGuard | None = None,
        grace_minutes: int = 15,
        tz: tzinfo | str = "UTC",
    ):
        self.store = store
        self.guard = guard or RequestGuard(store)
        self.grace = timedelta(minutes=grace_minutes)
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def _localize(self, value: datetime) -> datetime:
        return value.replace(tzinfo=self.tz) if value.tzinfo is None else value

    # ---- creation ----

    def create_outpass(
        self,
        caller: Caller,
        destination: str,
        from_date: datetime,
        to_date: datetime,
        reason: str,
        parent_contact: str,
        now: datetime | None = None,
    ) -> CreateRequestResult:
        """Validate and submit an outpass; at most one pending/approved per student."""
        ensure_authenticated(caller)
        destination = _require_text(destination, "Destination")
        reason = _require_text(reason, "Reason")
        parent_contact = _require_text(parent_contact, "Parent contact")
        if from_date is None or to_date is None:
            raise InvalidArgument("Departure and return times are required")

        departs = self._localize(from_date)
        returns = self._localize(to_date)
        now = self._localize(now) if now is not None else datetime.now(self.tz)
        if departs < now - self.grace:
            minutes = int(self.grace.total_seconds() // 60)
            raise InvalidArgument(f"Departure time cannot be more than {minutes} minutes in the past")
        if returns <= departs:
            raise InvalidArgument("Return time must be after departure time")
        if len(parent_contact) < MIN_PARENT_CONTACT_LENGTH:
            raise InvalidArgument("Please enter a valid parent contact number")

        payload = {
            "destination": destination,
            "from_date": departs.isoformat(),
            "to_date": returns.isoformat(),
            "reason": reason,
            "parent_contact": parent_contact,
            "status": OutpassStatus.PENDING.value,
        }
        return self.guard.create_request(caller, RequestKind.OUTPASSES, payload, ACTIVE_OUTPASS)

    @staticmethod
    def _complaint_fields(title: str, description: str, category: str, urgency: str | None) -> dict[str, Any]:
        title = _require_text(title, "Title")
        if len(title) < MIN_TITLE_LENGTH:
            raise InvalidArgument(f"Title must be at least {MIN_TITLE_LENGTH} characters.")
        return {
            "title": title,
            "description": _require_text(description, "Description"),
            "category": _require_text(category, "Category"),
            "urgency": (urgency or "").strip() or DEFAULT_URGENCY,
        }

    def create_complaint(
        self,
        caller: Caller,
        title: str,
        description: str,
        category: str,
        urgency: str | None = None,
    ) -> CreateRequestResult:
        ensure_authenticated(caller)
        payload = self._complaint_fields(title, description, category, urgency)
        payload["status"] = ComplaintStatus.PENDING.value
        return self.guard.create_request(caller, RequestKind.COMPLAINTS, payload)

    def update_complaint(
        self,
        caller: Caller,
        complaint_id: str,
        title: str,
        description: str,
        category: str,
        urgency: str | None = None,
    ) -> dict[str, Any]:
        """Owners may edit their complaint while it is still pending."""
        caller = ensure_authenticated(caller)
        complaint_id = ensure_identifier(complaint_id, "complaint id")
        changes = self._complaint_fields(title, description, category, urgency)

        def body(txn: Transaction) -> dict[str, Any]:
            snapshot = self._load(txn, RequestKind.COMPLAINTS, complaint_id)
            if snapshot.get("user_id") != caller.user_id:
                raise PermissionDenied("You can only edit your own complaints")
            if parse_status(ComplaintStatus, snapshot.get("status")) != ComplaintStatus.PENDING:
                raise InvalidTransition("Only pending complaints can be edited")
            txn.update(RequestKind.COMPLAINTS.value, complaint_id, changes)
            return {**_with_id(snapshot), **changes}

        return self.store.run_transaction(body)

    # ---- reads ----

    @staticmethod
    def _load(txn: Transaction, kind: RequestKind, request_id: str) -> DocumentSnapshot:
        snapshot = txn.get(kind.value, request_id)
        if not snapshot.exists:
            raise RequestNotFound(f"No {kind.value} request {request_id}")
        return snapshot

    def list_own(self, caller: Caller, kind: RequestKind | str) -> list[dict[str, Any]]:
        caller = ensure_authenticated(caller)
        kind = parse_kind(kind)
        snapshots = self.store.query(
            kind.value, [FieldFilter("user_id", "==", caller.user_id)], order_by="timestamp", descending=True
        )
        return [_with_id(s) for s in snapshots]

    def list_all(self, actor: Caller, kind: RequestKind | str, search: str | None = None) -> list[dict[str, Any]]:
        """Every request of ``kind``, newest first, optionally matched on student name or email."""
        ensure_admin(actor)
        kind = parse_kind(kind)
        requests = [_with_id(s) for s in self.store.query(kind.value, order_by="timestamp", descending=True)]
        if search:
            needle = search.strip().lower()
            requests = [
                r
                for r in requests
                if needle in str(r.get("user_name", "")).lower() or needle in str(r.get("user_email", "")).lower()
            ]
        return requests

    # ---- deletion and status ----

    def delete_request(self, caller: Caller, kind: RequestKind | str, request_id: str) -> None:
        """Owners may withdraw a pending request; admins may delete any."""
        caller = ensure_authenticated(caller)
        kind = parse_kind(kind)
        request_id = ensure_identifier(request_id, "request id")

        def body(txn: Transaction) -> None:
            snapshot = self._load(txn, kind, request_id)
            if not caller.is_admin:
                if snapshot.get("user_id") != caller.user_id:
                    raise PermissionDenied("You can only withdraw your own requests")
                status = parse_status(STATUS_ENUMS[kind], snapshot.get("status"))
                if status.value != "pending":
                    raise InvalidTransition("Only pending requests can be withdrawn")
            txn.delete(kind.value, request_id)

        self.store.run_transaction(body)
        logger.info(f"Deleted {kind.value} request {request_id} (by {caller.user_id})")

    def set_outpass_status(self, actor: Caller, outpass_id: str, status: OutpassStatus | str) -> dict[str, Any]:
        """Approve or reject a pending outpass and notify the student."""
        ensure_admin(actor)
        outpass_id = ensure_identifier(outpass_id, "outpass id")
        target = parse_status(OutpassStatus, status)

        def body(txn: Transaction) -> None:
            snapshot = self._load(txn, RequestKind.OUTPASSES, outpass_id)
            current = parse_status(OutpassStatus, snapshot.get("status"))
            _check(OUTPASS_TRANSITIONS, current, target)
            changes: dict[str, Any] = {"status": target.value}
            if target == OutpassStatus.APPROVED:
                changes["pass_id"] = pass_id_for(outpass_id)
                changes["approved_at"] = SERVER_TIMESTAMP
            txn.update(RequestKind.OUTPASSES.value, outpass_id, changes)
            stage_notification(txn, snapshot.get("user_id"), f"Outpass {target.value}", title="Outpass update")

        self.store.run_transaction(body)
        logger.info(f"Outpass {outpass_id} {target.value} by {actor.email or actor.user_id}")
        return _with_id(self.store.get(RequestKind.OUTPASSES.value, outpass_id))

    def set_complaint_status(self, actor: Caller, complaint_id: str, status: ComplaintStatus | str) -> dict[str, Any]:
        ensure_admin(actor)
        complaint_id = ensure_identifier(complaint_id, "complaint id")
        target = parse_status(ComplaintStatus, status)

        def body(txn: Transaction) -> dict[str, Any]:
            snapshot = self._load(txn, RequestKind.COMPLAINTS, complaint_id)
            current = parse_status(ComplaintStatus, snapshot.get("status"))
            _check(COMPLAINT_TRANSITIONS, current, target)
            txn.update(RequestKind.COMPLAINTS.value, complaint_id, {"status": target.value})
            return {**_with_id(snapshot), "status": target.value}

        result = self.store.run_transaction(body)
        logger.info(f"Complaint {complaint_id} marked {target.value}")
        return result


def _check(table: dict[Any, frozenset[Any]], current: Enum, target: Enum) -> None:
    if target not in table[current]:
        raise InvalidTransition(f"Cannot move from {current.value} to {target.value}")
