"""Read-side views over rooms and bookings for the portal pages."""

from __future__ import annotations

from ..checks import ensure_admin, ensure_authenticated
from ..errors import RoomNotFound
from ..models import Booking, BookingStatus, Caller, Collections, LeaveStatus, Room, parse_status
from ..store import DocumentCache, DocumentStore, FieldFilter


class BookingViews:
    """Room listings come from a change-invalidated cache; bookings are read live."""

    def __init__(self, store: DocumentStore, room_cache: DocumentCache | None = None):
        self.store = store
        self.rooms = room_cache or DocumentCache(store, Collections.ROOMS)

    def list_rooms(self, gender: str | None = None, only_free: bool = False) -> list[Room]:
        rooms = [Room.from_document(s.id, s.data or {}) for s in self.rooms.list()]
        if gender:
            rooms = [r for r in rooms if r.gender.lower() == gender.lower()]
        if only_free:
            rooms = [r for r in rooms if not r.is_full]
        return sorted(rooms, key=lambda r: (r.hostel_name, r.room_number))

    def get_room(self, room_id: str) -> Room:
        snapshot = self.rooms.get(room_id)
        if not snapshot.exists:
            raise RoomNotFound(f"Room {room_id} not found")
        return Room.from_document(room_id, snapshot.data or {})

    def own_booking(self, caller: Caller) -> Booking | None:
        caller = ensure_authenticated(caller)
        snapshot = self.store.get(Collections.BOOKINGS, caller.user_id)
        if not snapshot.exists:
            return None
        return Booking.from_document(snapshot.id, snapshot.data or {})

    def list_bookings(
        self,
        actor: Caller,
        search: str | None = None,
        status: BookingStatus | str | None = None,
    ) -> list[Booking]:
        """All bookings, newest first, optionally narrowed by status and a text match
        on the student's email or the room number."""
        ensure_admin(actor)
        filters = []
        if status is not None:
            filters.append(FieldFilter("status", "==", parse_status(BookingStatus, status).value))
        snapshots = self.store.query(Collections.BOOKINGS, filters, order_by="timestamp", descending=True)
        bookings = [Booking.from_document(s.id, s.data or {}) for s in snapshots]

        if search:
            needle = search.strip().lower()
            bookings = [
                b
                for b in bookings
                if needle in b.user_email.lower() or needle in b.room_number.lower() or needle in b.user_name.lower()
            ]
        return bookings

    def pending_leave_requests(self, actor: Caller) -> list[Booking]:
        return [
            b
            for b in self.list_bookings(actor)
            if b.is_active and b.leave_request is not None and b.leave_request.status == LeaveStatus.PENDING
        ]
