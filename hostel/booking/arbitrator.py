"""
Booking arbitrator.

Resolves the race between students claiming the same bed. Everything happens
inside one optimistic store transaction:

1. Read the room; the bed must exist and be ``available``.
2. Read the bed's claim; a claim held by another user's live booking for this
   same bed means someone got there first.
3. Read the caller's own booking (keyed by user id); an active one blocks.
4. Write the pending booking and the bed claim together.

Two students racing on one bed both write the same claim document, so the
store's read-set validation aborts one of them; on retry that one sees the
winner's claim and fails with BedUnavailable. The bed itself is only marked
``taken`` by an admin confirming the booking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..checks import ensure_authenticated, ensure_identifier
from ..errors import BedUnavailable, DuplicateActiveBooking, HostelError, RoomNotFound
from ..models import (
    ACTIVE_BOOKING_STATUSES,
    BedStatus,
    BookingStatus,
    Caller,
    Collections,
    bed_claim_id,
    parse_status,
)
from ..store import SERVER_TIMESTAMP, DocumentSnapshot, DocumentStore, Transaction
from ..store.base import DEFAULT_MAX_ATTEMPTS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingResult:
    """Acknowledgement of a recorded booking request."""

    booking_id: str
    room_id: str
    room_number: str
    bed_id: str
    status: BookingStatus = BookingStatus.PENDING
    success: bool = True


def booking_holds_bed(snapshot: DocumentSnapshot, room_id: str, bed_id: str) -> bool:
    """True if ``snapshot`` is an active booking for this exact bed."""
    if not snapshot.exists:
        return False
    status = parse_status(BookingStatus, snapshot.get("status"))
    return status in ACTIVE_BOOKING_STATUSES and snapshot.get("room_id") == room_id and snapshot.get("bed_id") == bed_id


class BookingArbitrator:
    """Records booking requests without ever double-granting a bed."""

    def __init__(self, store: DocumentStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.store = store
        self.max_attempts = max_attempts

    def attempt_booking(self, caller: Caller, room_id: str, bed_id: str) -> BookingResult:
        """Claim ``bed_id`` in ``room_id`` for ``caller``.

        Raises:
            Unauthenticated: no verified caller
            InvalidArgument: malformed room or bed id
            RoomNotFound: the room does not exist
            BedUnavailable: the bed is missing, taken or claimed by another live booking
            DuplicateActiveBooking: the caller already has a pending/approved/confirmed booking
            TransactionConflict: the store kept conflicting after every retry
        """
        caller = ensure_authenticated(caller)
        room_id = ensure_identifier(room_id, "room id")
        bed_id = ensure_identifier(bed_id, "bed id")

        def body(txn: Transaction) -> BookingResult:
            return self._claim(txn, caller, room_id, bed_id)

        try:
            result = self.store.run_transaction(body, max_attempts=self.max_attempts)
        except HostelError as e:
            logger.info(f"Booking by {caller.user_id} for {room_id}/{bed_id} refused: {e.code}")
            raise

        logger.info(f"Booking request recorded: {caller.user_id} -> room {result.room_number} bed {bed_id}")
        return result

    def _claim(self, txn: Transaction, caller: Caller, room_id: str, bed_id: str) -> BookingResult:
        room = txn.get(Collections.ROOMS, room_id)
        if not room.exists:
            raise RoomNotFound(f"Room {room_id} not found")

        beds: dict[str, Any] = room.get("beds") or {}
        bed = beds.get(bed_id)
        if not bed or parse_status(BedStatus, bed.get("status")) != BedStatus.AVAILABLE:
            raise BedUnavailable()

        claim_id = bed_claim_id(room_id, bed_id)
        claim = txn.get(Collections.BED_CLAIMS, claim_id)
        holder = claim.get("user_id")
        if holder and holder != caller.user_id:
            if booking_holds_bed(txn.get(Collections.BOOKINGS, holder), room_id, bed_id):
                raise BedUnavailable()

        own = txn.get(Collections.BOOKINGS, caller.user_id)
        if own.exists and parse_status(BookingStatus, own.get("status")) in ACTIVE_BOOKING_STATUSES:
            raise DuplicateActiveBooking()

        room_number = str(room.get("room_number", ""))
        txn.set(
            Collections.BOOKINGS,
            caller.user_id,
            {
                "user_id": caller.user_id,
                "user_email": caller.email,
                "user_name": caller.name,
                "room_id": room_id,
                "room_number": room_number,
                "bed_id": bed_id,
                "status": BookingStatus.PENDING.value,
                "timestamp": SERVER_TIMESTAMP,
            },
        )
        txn.set(
            Collections.BED_CLAIMS,
            claim_id,
            {
                "room_id": room_id,
                "bed_id": bed_id,
                "user_id": caller.user_id,
                "timestamp": SERVER_TIMESTAMP,
            },
        )
        return BookingResult(booking_id=caller.user_id, room_id=room_id, room_number=room_number, bed_id=bed_id)
