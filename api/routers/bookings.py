"""
Bookings Router - A student's own booking.

Booking attempts go through the arbitrator, which is the only code path
allowed to create a booking or claim a bed.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends

from hostel.auth_middleware import get_caller
from hostel.models import Booking, Caller

from ..dependencies import Services, get_services
from ..schemas import BookingCreate, BookingResultResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.post("", response_model=BookingResultResponse, status_code=201)
async def attempt_booking(
    request: BookingCreate,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> BookingResultResponse:
    """Ask for a bed. Fails with 409 when the bed is gone or the student already holds a booking."""
    result = await asyncio.to_thread(services.arbitrator.attempt_booking, caller, request.room_id, request.bed_id)
    return BookingResultResponse.from_result(result)


@router.get("/me", response_model=Booking | None)
async def get_own_booking(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> Booking | None:
    return await asyncio.to_thread(services.bookings.own_booking, caller)


@router.post("/me/leave", response_model=Booking)
async def request_leave(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> Booking:
    """Ask to leave the room. An admin still has to approve it."""
    return await asyncio.to_thread(services.transitions.request_leave, caller)


@router.delete("/me", status_code=204)
async def dismiss_booking(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> None:
    """Clear a rejected or vacated booking so a new one can be made."""
    await asyncio.to_thread(services.transitions.dismiss, caller)
