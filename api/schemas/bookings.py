"""
Pydantic schemas for room and booking endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from hostel.booking import BookingResult
from hostel.models import Bed, Booking, Room


class BookingCreate(BaseModel):
    """Request model for a student's booking attempt."""

    room_id: str
    bed_id: str


class VacateRequest(BaseModel):
    """The room and bed an admin expects the booking to hold."""

    room_id: str = Field(..., min_length=1)
    bed_id: str = Field(..., min_length=1)


class BookingResultResponse(BaseModel):
    success: bool
    booking_id: str
    room_id: str
    room_number: str
    bed_id: str
    status: str

    @classmethod
    def from_result(cls, result: BookingResult) -> BookingResultResponse:
        return cls(
            success=result.success,
            booking_id=result.booking_id,
            room_id=result.room_id,
            room_number=result.room_number,
            bed_id=result.bed_id,
            status=result.status.value,
        )


class RoomResponse(BaseModel):
    """A room with its bed map and occupancy counts."""

    id: str
    room_number: str
    gender: str
    hostel_name: str
    beds: dict[str, Bed]
    available_beds: int
    total_beds: int
    is_full: bool

    @classmethod
    def from_room(cls, room: Room) -> RoomResponse:
        return cls(
            id=room.id,
            room_number=room.room_number,
            gender=room.gender,
            hostel_name=room.hostel_name,
            beds=room.beds,
            available_beds=room.available_beds,
            total_beds=room.total_beds,
            is_full=room.is_full,
        )


class BookingListResponse(BaseModel):
    bookings: list[Booking]
    total: int
