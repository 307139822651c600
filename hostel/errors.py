"""Error classes for the hostel portal.

Every semantic failure is a HostelError subclass carrying a stable ``code``
that the HTTP layer maps to a status and a user-facing message.
"""

from __future__ import annotations


class HostelError(Exception):
    """Base exception for all hostel portal errors."""

    code = "HOSTEL_ERROR"
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(HostelError):
    """Raised when an identifier or payload field is malformed."""

    code = "INVALID_ARGUMENT"
    default_message = "Invalid argument"


class Unauthenticated(HostelError):
    """Raised when no verified caller identity is available."""

    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class PermissionDenied(HostelError):
    """Raised when the caller may not act on the target document."""

    code = "PERMISSION_DENIED"
    default_message = "You are not allowed to do that"


class NotFound(HostelError):
    """Raised when a referenced document does not exist."""

    code = "NOT_FOUND"
    default_message = "Not found"


class RoomNotFound(NotFound):
    code = "ROOM_NOT_FOUND"
    default_message = "Room not found"


class BookingNotFound(NotFound):
    code = "BOOKING_NOT_FOUND"
    default_message = "Booking not found"


class RequestNotFound(NotFound):
    code = "REQUEST_NOT_FOUND"
    default_message = "Request not found"


class BedUnavailable(HostelError):
    """Raised when the bed was claimed by someone else first."""

    code = "BED_UNAVAILABLE"
    default_message = "This bed has just been taken by someone else!"


class DuplicateActiveBooking(HostelError):
    code = "DUPLICATE_ACTIVE_BOOKING"
    default_message = "You already have an active or pending booking."


class ActiveRequestExists(HostelError):
    code = "ACTIVE_REQUEST_EXISTS"
    default_message = "You already have an active request of this type."


class InvalidStatus(HostelError):
    """Raised when a stored or submitted status is not a known value."""

    code = "INVALID_STATUS"
    default_message = "Unknown status"


class InvalidTransition(HostelError):
    """Raised when a status change is not allowed from the current status."""

    code = "INVALID_TRANSITION"
    default_message = "That action is not allowed in the current state"


class TransactionConflict(HostelError):
    """Raised when optimistic validation fails at commit.

    The transaction runner retries on this error; callers only see it once
    every attempt has been used up.
    """

    code = "TRANSACTION_CONFLICT"
    default_message = "The system is busy, please try again"


class DocumentNotFound(NotFound):
    """Raised by the store when updating or deleting a missing document."""

    code = "DOCUMENT_NOT_FOUND"
    default_message = "Document not found"
