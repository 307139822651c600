"""Tests for the shared domain models."""

from __future__ import annotations

import re

import pytest

from hostel.errors import InvalidStatus
from hostel.models import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingStatus,
    Caller,
    Room,
    bed_claim_id,
    derived_id,
    parse_status,
)


class TestParseStatus:
    def test_known_value(self):
        assert parse_status(BookingStatus, "confirmed") is BookingStatus.CONFIRMED

    def test_enum_passes_through(self):
        assert parse_status(BookingStatus, BookingStatus.PENDING) is BookingStatus.PENDING

    @pytest.mark.parametrize("value", ["Confirmed", "", None, 3])
    def test_unknown_value(self, value):
        with pytest.raises(InvalidStatus):
            parse_status(BookingStatus, value)


class TestDerivedIds:
    def test_pocketbase_compatible(self):
        assert re.fullmatch(r"[a-z0-9]{15}", derived_id("rating", "student0000001", "monday", "lunch"))

    def test_deterministic(self):
        assert derived_id("a", "b") == derived_id("a", "b")
        assert derived_id("a", "b") != derived_id("b", "a")

    def test_claim_id_per_bed(self):
        assert bed_claim_id("room101", "A") != bed_claim_id("room101", "B")
        assert bed_claim_id("room101", "A") == derived_id("bed", "room101", "A")


class TestRoom:
    def test_counts(self):
        room = Room.from_document(
            "room101",
            {
                "room_number": "101",
                "beds": {"A": {"status": "taken", "occupant_id": "student0000001"}, "B": {"status": "available"}},
            },
        )

        assert room.total_beds == 2
        assert room.available_beds == 1
        assert room.is_full is False

    def test_room_without_beds_is_full(self):
        assert Room(id="room999", room_number="999").is_full is True


class TestBooking:
    def test_from_document(self):
        booking = Booking.from_document(
            "student0000001",
            {"user_id": "student0000001", "room_id": "room101", "bed_id": "A", "status": "approved"},
        )

        assert booking.status is BookingStatus.APPROVED
        assert booking.is_active is True

    def test_unknown_stored_status(self):
        with pytest.raises(InvalidStatus):
            Booking.from_document("x", {"user_id": "x", "room_id": "r", "bed_id": "A", "status": "booked"})

    def test_active_statuses(self):
        assert ACTIVE_BOOKING_STATUSES == {BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.CONFIRMED}


def test_caller_name_fallback():
    assert Caller(user_id="student0000001").name == "Student"
    assert Caller(user_id="student0000001", display_name="Asha").name == "Asha"
