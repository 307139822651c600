"""Domain models for the hostel portal.

Statuses are closed enumerations. Documents coming out of the store are
parsed through ``parse_status`` so a typo in stored data surfaces as an
InvalidStatus error instead of silently falling through.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from .errors import InvalidStatus


class Collections:
    """Names of the document collections."""

    ROOMS = "rooms"
    BOOKINGS = "bookings"
    BED_CLAIMS = "bed_claims"
    OUTPASSES = "outpasses"
    COMPLAINTS = "complaints"
    AUDIT_LOGS = "audit_logs"
    NOTICES = "notices"
    NOTIFICATIONS = "notifications"
    MESS_MENU = "mess_menu"
    MEAL_RATINGS = "meal_ratings"
    USERS = "users"
    DELETED_USERS = "deleted_users"


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    VACATED = "vacated"


ACTIVE_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.CONFIRMED})
TERMINAL_BOOKING_STATUSES = frozenset({BookingStatus.REJECTED, BookingStatus.VACATED})


class BedStatus(str, Enum):
    AVAILABLE = "available"
    TAKEN = "taken"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class RequestKind(str, Enum):
    """Request collections accepted by the duplicate-request guard."""

    OUTPASSES = "outpasses"
    COMPLAINTS = "complaints"


class OutpassStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


class Meal(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    SNACKS = "snacks"
    DINNER = "dinner"


class MealRatingValue(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


WEEKDAYS = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")

E = TypeVar("E", bound=Enum)


def parse_status(enum_cls: type[E], value: Any) -> E:
    """Parse a raw status value into ``enum_cls`` or raise InvalidStatus."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidStatus(f"Unknown {enum_cls.__name__} value: {value!r}") from None


@dataclass(frozen=True)
class Caller:
    """The authenticated identity on whose behalf an operation runs.

    Only values taken from a validated token end up here, never anything the
    client asserted about itself.
    """

    user_id: str
    email: str = ""
    display_name: str = ""
    is_admin: bool = False

    @property
    def name(self) -> str:
        return self.display_name or "Student"


class Bed(BaseModel):
    status: BedStatus = BedStatus.AVAILABLE
    occupant_id: str | None = None


class Room(BaseModel):
    id: str
    room_number: str
    gender: str = ""
    hostel_name: str = ""
    beds: dict[str, Bed] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> Room:
        return cls(id=doc_id, **data)

    @property
    def available_beds(self) -> int:
        return sum(1 for bed in self.beds.values() if bed.status == BedStatus.AVAILABLE)

    @property
    def total_beds(self) -> int:
        return len(self.beds)

    @property
    def is_full(self) -> bool:
        return self.available_beds == 0


class LeaveRequest(BaseModel):
    status: LeaveStatus = LeaveStatus.PENDING
    timestamp: datetime | str | None = None


class Booking(BaseModel):
    """A user's room booking. The document id is always the user id."""

    id: str
    user_id: str
    user_email: str = ""
    user_name: str = ""
    room_id: str
    room_number: str = ""
    bed_id: str
    status: BookingStatus
    timestamp: datetime | str | None = None
    approved_at: datetime | str | None = None
    leave_request: LeaveRequest | None = None

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> Booking:
        payload = dict(data)
        payload["status"] = parse_status(BookingStatus, payload.get("status"))
        return cls(id=doc_id, **payload)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES


def derived_id(*parts: str) -> str:
    """Deterministic 15-character document id built from ``parts``.

    PocketBase record ids must match ``[a-z0-9]{15}``, so composite keys are
    hashed rather than joined.
    """
    digest = hashlib.sha256(":".join(parts).encode()).hexdigest()
    return digest[:15]


def bed_claim_id(room_id: str, bed_id: str) -> str:
    """Document id of the claim record for one bed slot."""
    return derived_id("bed", room_id, bed_id)
