"""
Booking state transitions.

Admin transitions are the only code that mutates room bed state. Each runs
as one store transaction that also appends its audit entry, so a replay
after a conflict redoes the whole thing and a failure leaves nothing behind.

    pending --approve--> approved --confirm--> confirmed
    pending --reject--> rejected
    approved|confirmed --force_vacate--> vacated
    pending|approved|confirmed --request_leave--> (leave_request pending)
        --approve_leave--> vacated
    rejected|vacated --dismiss--> (deleted)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..audit import AuditAction, record_audit
from ..checks import ensure_admin, ensure_authenticated, ensure_identifier
from ..errors import BedUnavailable, BookingNotFound, InvalidArgument, InvalidTransition, RoomNotFound
from ..models import (
    ACTIVE_BOOKING_STATUSES,
    TERMINAL_BOOKING_STATUSES,
    BedStatus,
    Booking,
    BookingStatus,
    Caller,
    Collections,
    LeaveRequest,
    LeaveStatus,
    bed_claim_id,
    parse_status,
)
from ..store import SERVER_TIMESTAMP, DocumentStore, Transaction
from ..store.base import DEFAULT_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

# Statuses each transition may start from.
ALLOWED_FROM: dict[str, frozenset[BookingStatus]] = {
    "approve": frozenset({BookingStatus.PENDING}),
    "confirm": frozenset({BookingStatus.PENDING, BookingStatus.APPROVED}),
    "reject": frozenset({BookingStatus.PENDING}),
    "force_vacate": frozenset({BookingStatus.APPROVED, BookingStatus.CONFIRMED}),
    "request_leave": ACTIVE_BOOKING_STATUSES,
    "approve_leave": ACTIVE_BOOKING_STATUSES,
    "dismiss": TERMINAL_BOOKING_STATUSES,
}


def check_transition(action: str, status: BookingStatus | str) -> BookingStatus:
    """Return the parsed status, or raise if ``action`` is not allowed from it."""
    current = parse_status(BookingStatus, status)
    if current not in ALLOWED_FROM[action]:
        raise InvalidTransition(f"Cannot {action.replace('_', ' ')} a {current.value} booking")
    return current


def _load_booking(txn: Transaction, booking_id: str) -> Booking:
    snapshot = txn.get(Collections.BOOKINGS, booking_id)
    if not snapshot.exists:
        raise BookingNotFound(f"Booking {booking_id} not found")
    return Booking.from_document(booking_id, snapshot.data or {})


def _load_beds(txn: Transaction, room_id: str, bed_id: str) -> dict[str, Any]:
    room = txn.get(Collections.ROOMS, room_id)
    if not room.exists:
        raise RoomNotFound(f"Room {room_id} not found")
    beds: dict[str, Any] = dict(room.get("beds") or {})
    if bed_id not in beds:
        raise InvalidArgument(f"Room {room_id} has no bed {bed_id}")
    return beds


def _release_claim(txn: Transaction, room_id: str, bed_id: str, user_id: str) -> None:
    claim_id = bed_claim_id(room_id, bed_id)
    claim = txn.get(Collections.BED_CLAIMS, claim_id)
    if claim.exists and claim.get("user_id") == user_id:
        txn.delete(Collections.BED_CLAIMS, claim_id)


def _free_bed(txn: Transaction, room_id: str, bed_id: str, user_id: str) -> None:
    beds = _load_beds(txn, room_id, bed_id)
    occupant = (beds[bed_id] or {}).get("occupant_id")
    if occupant and occupant != user_id:
        raise InvalidArgument(f"Bed {bed_id} in room {room_id} is occupied by another student")
    beds[bed_id] = {"status": BedStatus.AVAILABLE.value, "occupant_id": None}
    txn.update(Collections.ROOMS, room_id, {"beds": beds})


class BookingTransitions:
    """Admin and student-side status changes on existing bookings."""

    def __init__(self, store: DocumentStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.store = store
        self.max_attempts = max_attempts

    def _run(self, body: Callable[[Transaction], Booking]) -> Booking:
        return self.store.run_transaction(body, max_attempts=self.max_attempts)

    # ---- admin ----

    def approve(self, actor: Caller, booking_id: str) -> Booking:
        """pending -> approved. The room is left alone."""
        actor = ensure_admin(actor)
        booking_id = ensure_identifier(booking_id, "booking id")

        def body(txn: Transaction) -> Booking:
            booking = _load_booking(txn, booking_id)
            check_transition("approve", booking.status)
            txn.update(Collections.BOOKINGS, booking_id, {"status": BookingStatus.APPROVED.value})
            record_audit(
                txn,
                actor,
                AuditAction.APPROVE_BOOKING,
                booking_id,
                "booking",
                {"room_id": booking.room_id, "bed_id": booking.bed_id},
            )
            return booking.model_copy(update={"status": BookingStatus.APPROVED})

        result = self._run(body)
        logger.info(f"Booking {booking_id} approved by {actor.email or actor.user_id}")
        return result

    def confirm(self, actor: Caller, booking_id: str) -> Booking:
        """Assign the bed: mark it taken by the booking's user and confirm the booking."""
        actor = ensure_admin(actor)
        booking_id = ensure_identifier(booking_id, "booking id")

        def body(txn: Transaction) -> Booking:
            booking = _load_booking(txn, booking_id)
            check_transition("confirm", booking.status)
            beds = _load_beds(txn, booking.room_id, booking.bed_id)
            bed = beds[booking.bed_id] or {}
            occupant = bed.get("occupant_id")
            if parse_status(BedStatus, bed.get("status")) == BedStatus.TAKEN and occupant != booking.user_id:
                raise BedUnavailable(f"Bed {booking.bed_id} is already occupied")

            beds[booking.bed_id] = {"status": BedStatus.TAKEN.value, "occupant_id": booking.user_id}
            txn.update(Collections.ROOMS, booking.room_id, {"beds": beds})
            txn.update(
                Collections.BOOKINGS,
                booking_id,
                {"status": BookingStatus.CONFIRMED.value, "approved_at": SERVER_TIMESTAMP},
            )
            # The bed is now taken; the arbitrator no longer needs the claim.
            _release_claim(txn, booking.room_id, booking.bed_id, booking.user_id)
            record_audit(
                txn,
                actor,
                AuditAction.CONFIRM_BOOKING,
                booking_id,
                "booking",
                {"room_id": booking.room_id, "bed_id": booking.bed_id},
            )
            return booking.model_copy(update={"status": BookingStatus.CONFIRMED})

        result = self._run(body)
        logger.info(f"Booking {booking_id} confirmed into room {result.room_number} bed {result.bed_id}")
        return result

    def reject(self, actor: Caller, booking_id: str) -> Booking:
        """pending -> rejected. The bed was never marked taken, only the claim goes."""
        actor = ensure_admin(actor)
        booking_id = ensure_identifier(booking_id, "booking id")

        def body(txn: Transaction) -> Booking:
            booking = _load_booking(txn, booking_id)
            check_transition("reject", booking.status)
            txn.update(Collections.BOOKINGS, booking_id, {"status": BookingStatus.REJECTED.value})
            _release_claim(txn, booking.room_id, booking.bed_id, booking.user_id)
            record_audit(txn, actor, AuditAction.REJECT_BOOKING, booking_id, "booking")
            return booking.model_copy(update={"status": BookingStatus.REJECTED})

        result = self._run(body)
        logger.info(f"Booking {booking_id} rejected by {actor.email or actor.user_id}")
        return result

    def force_vacate(self, actor: Caller, booking_id: str, room_id: str, bed_id: str) -> Booking:
        """Free ``bed_id`` in ``room_id`` and mark the booking vacated, atomically."""
        actor = ensure_admin(actor)
        booking_id = ensure_identifier(booking_id, "booking id")
        room_id = ensure_identifier(room_id, "room id")
        bed_id = ensure_identifier(bed_id, "bed id")

        def body(txn: Transaction) -> Booking:
            booking = _load_booking(txn, booking_id)
            check_transition("force_vacate", booking.status)
            if (room_id, bed_id) != (booking.room_id, booking.bed_id):
                raise InvalidArgument(
                    f"Booking {booking_id} holds room {booking.room_id} bed {booking.bed_id}, not {room_id}/{bed_id}"
                )
            _free_bed(txn, room_id, bed_id, booking.user_id)
            txn.update(Collections.BOOKINGS, booking_id, {"status": BookingStatus.VACATED.value})
            _release_claim(txn, booking.room_id, booking.bed_id, booking.user_id)
            record_audit(
                txn,
                actor,
                AuditAction.FORCE_VACATE,
                booking_id,
                "booking",
                {"room_id": room_id, "bed_id": bed_id},
            )
            return booking.model_copy(update={"status": BookingStatus.VACATED})

        result = self._run(body)
        logger.info(f"Booking {booking_id} vacated, room {room_id} bed {bed_id} is free")
        return result

    def approve_leave(self, actor: Caller, booking_id: str) -> Booking:
        """Grant a pending leave request by vacating the booking's own bed."""
        actor = ensure_admin(actor)
        booking_id = ensure_identifier(booking_id, "booking id")

        def body(txn: Transaction) -> Booking:
            booking = _load_booking(txn, booking_id)
            check_transition("approve_leave", booking.status)
            if booking.leave_request is None or booking.leave_request.status != LeaveStatus.PENDING:
                raise InvalidTransition("No pending leave request on this booking")

            _free_bed(txn, booking.room_id, booking.bed_id, booking.user_id)
            leave_request = {"status": LeaveStatus.APPROVED.value, "timestamp": booking.leave_request.timestamp}
            txn.update(
                Collections.BOOKINGS,
                booking_id,
                {"status": BookingStatus.VACATED.value, "leave_request": leave_request},
            )
            _release_claim(txn, booking.room_id, booking.bed_id, booking.user_id)
            record_audit(
                txn,
                actor,
                AuditAction.APPROVE_LEAVE,
                booking_id,
                "booking",
                {"room_id": booking.room_id, "bed_id": booking.bed_id},
            )
            return booking.model_copy(update={"status": BookingStatus.VACATED})

        result = self._run(body)
        logger.info(f"Leave approved for booking {booking_id}")
        return result

    # ---- student ----

    def request_leave(self, caller: Caller) -> Booking:
        """Flag the caller's active booking with a pending leave request."""
        caller = ensure_authenticated(caller)

        def body(txn: Transaction) -> Booking:
            booking = _load_booking(txn, caller.user_id)
            check_transition("request_leave", booking.status)
            if booking.leave_request is not None and booking.leave_request.status == LeaveStatus.PENDING:
                raise InvalidTransition("A leave request is already pending")
            txn.update(
                Collections.BOOKINGS,
                caller.user_id,
                {"leave_request": {"status": LeaveStatus.PENDING.value, "timestamp": SERVER_TIMESTAMP}},
            )
            return booking.model_copy(update={"leave_request": LeaveRequest(status=LeaveStatus.PENDING)})

        result = self._run(body)
        logger.info(f"Leave requested for booking {caller.user_id}")
        return result

    def dismiss(self, caller: Caller) -> None:
        """Delete the caller's own booking once it is rejected or vacated."""
        caller = ensure_authenticated(caller)

        def body(txn: Transaction) -> Booking:
            booking = _load_booking(txn, caller.user_id)
            check_transition("dismiss", booking.status)
            txn.delete(Collections.BOOKINGS, caller.user_id)
            return booking

        self._run(body)
        logger.debug(f"Booking {caller.user_id} dismissed by its owner")
