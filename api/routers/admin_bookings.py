"""
Admin Bookings Router - Booking review and bed assignment.

Every state change here runs as one store transaction together with its
audit entry and any bed or claim update.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query

from hostel.auth_middleware import get_admin_caller
from hostel.models import Booking, Caller

from ..dependencies import Services, get_services
from ..schemas import BookingListResponse, VacateRequest

router = APIRouter(prefix="/api/admin/bookings", tags=["admin"])


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    search: str | None = Query(None, description="Match on email, name or room number"),
    status: str | None = Query(None, description="Only bookings in this status"),
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> BookingListResponse:
    bookings = await asyncio.to_thread(services.bookings.list_bookings, actor, search, status)
    return BookingListResponse(bookings=bookings, total=len(bookings))


@router.get("/leave-requests", response_model=BookingListResponse)
async def list_leave_requests(
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> BookingListResponse:
    bookings = await asyncio.to_thread(services.bookings.pending_leave_requests, actor)
    return BookingListResponse(bookings=bookings, total=len(bookings))


@router.post("/{booking_id}/approve", response_model=Booking)
async def approve_booking(
    booking_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> Booking:
    return await asyncio.to_thread(services.transitions.approve, actor, booking_id)


@router.post("/{booking_id}/confirm", response_model=Booking)
async def confirm_booking(
    booking_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> Booking:
    """Confirm the booking and mark its bed taken."""
    return await asyncio.to_thread(services.transitions.confirm, actor, booking_id)


@router.post("/{booking_id}/reject", response_model=Booking)
async def reject_booking(
    booking_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> Booking:
    return await asyncio.to_thread(services.transitions.reject, actor, booking_id)


@router.post("/{booking_id}/vacate", response_model=Booking)
async def force_vacate(
    booking_id: str,
    request: VacateRequest,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> Booking:
    """Free the bed and close the booking in one step."""
    return await asyncio.to_thread(
        services.transitions.force_vacate, actor, booking_id, request.room_id, request.bed_id
    )


@router.post("/{booking_id}/approve-leave", response_model=Booking)
async def approve_leave(
    booking_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> Booking:
    return await asyncio.to_thread(services.transitions.approve_leave, actor, booking_id)
