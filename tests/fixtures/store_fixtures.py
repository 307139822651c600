"""
Helpers for building seeded in-memory stores in tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from hostel.models import Collections
from hostel.store import InMemoryDocumentStore


class FixedClock:
    """Deterministic store clock that advances one second per write."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def seed_room(
    store: InMemoryDocumentStore,
    room_id: str = "room101",
    room_number: str = "101",
    beds: dict[str, str] | None = None,
    gender: str = "male",
    hostel_name: str = "North Block",
) -> str:
    """Write a room whose beds have the given statuses (default: A and B available)."""
    beds = beds or {"A": "available", "B": "available"}
    store.set(
        Collections.ROOMS,
        room_id,
        {
            "room_number": room_number,
            "gender": gender,
            "hostel_name": hostel_name,
            "beds": {bed_id: {"status": status, "occupant_id": None} for bed_id, status in beds.items()},
        },
    )
    return room_id
