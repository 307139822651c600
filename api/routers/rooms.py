"""
Rooms Router - Room and bed availability for students.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query

from hostel.auth_middleware import get_caller
from hostel.models import Caller

from ..dependencies import Services, get_services
from ..schemas import RoomResponse

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


@router.get("", response_model=list[RoomResponse])
async def list_rooms(
    gender: str | None = Query(None, description="Only rooms for this gender"),
    only_free: bool = Query(False, description="Hide rooms with no available bed"),
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> list[RoomResponse]:
    rooms = await asyncio.to_thread(services.bookings.list_rooms, gender, only_free)
    return [RoomResponse.from_room(room) for room in rooms]


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> RoomResponse:
    room = await asyncio.to_thread(services.bookings.get_room, room_id)
    return RoomResponse.from_room(room)
