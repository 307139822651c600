"""
Mess Router - Weekly menu, featured meal and meal ratings.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends

from hostel.auth_middleware import get_admin_caller, get_caller
from hostel.models import Caller
from hostel.services.mess_menu import MenuItem

from ..dependencies import Services, get_services
from ..schemas import MealRatingCreate, MenuUpdate
from ..settings import get_settings

router = APIRouter(prefix="/api", tags=["mess"])


@router.get("/mess/menu")
async def get_menu(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, dict[str, MenuItem]]:
    return await asyncio.to_thread(services.mess.get_week)


@router.get("/mess/featured")
async def get_featured_meal(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """The meal being served now, or the next breakfast late in the evening."""
    now = datetime.now(ZoneInfo(get_settings().tz))
    return await asyncio.to_thread(services.mess.featured, now)


@router.post("/mess/ratings", status_code=201)
async def rate_meal(
    request: MealRatingCreate,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    rating_id = await asyncio.to_thread(services.mess.rate_meal, caller, request.day, request.meal, request.rating)
    return {"id": rating_id}


@router.get("/mess/ratings/me")
async def own_ratings(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    return await asyncio.to_thread(services.mess.own_ratings, caller)


@router.put("/admin/mess/menu", status_code=204)
async def set_menu(
    request: MenuUpdate,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> None:
    await asyncio.to_thread(services.mess.set_week, actor, request.menu)


@router.get("/admin/mess/ratings")
async def rating_summary(
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    """Like and dislike counts per day and meal."""
    return await asyncio.to_thread(services.mess.rating_summary, actor)
