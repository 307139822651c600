"""
Profile Router - The signed-in user's own profile and digital ID.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends

from hostel.auth_middleware import get_caller
from hostel.models import Caller

from ..dependencies import Services, get_services
from ..schemas import ProfileUpdate

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("")
async def get_profile(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return await asyncio.to_thread(services.profiles.get_profile, caller)


@router.patch("")
async def update_profile(
    request: ProfileUpdate,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    fields = request.model_dump(exclude_none=True)
    return await asyncio.to_thread(services.profiles.update_profile, caller, **fields)
