"""
Notifications Router - Direct messages and broadcasts.

A notification with no recipient is a broadcast. Students hide entries
from their own list; only admins delete broadcasts outright.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends

from hostel.auth_middleware import get_admin_caller, get_caller
from hostel.models import Caller

from ..dependencies import Services, get_services
from ..schemas import CountResponse, NotificationCreate

router = APIRouter(prefix="/api", tags=["notifications"])


@router.get("/notifications")
async def list_notifications(
    unread_only: bool = False,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    if unread_only:
        return await asyncio.to_thread(services.notifications.unread, caller)
    return await asyncio.to_thread(services.notifications.list_for, caller)


@router.post("/notifications/read", response_model=CountResponse)
async def mark_all_read(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> CountResponse:
    count = await asyncio.to_thread(services.notifications.mark_all_read, caller)
    return CountResponse(count=count)


@router.delete("/notifications/{notification_id}", status_code=204)
async def hide_notification(
    notification_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> None:
    await asyncio.to_thread(services.notifications.hide, caller, notification_id)


@router.post("/admin/notifications", status_code=201)
async def send_notification(
    request: NotificationCreate,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    if request.recipient_id:
        notification_id = await asyncio.to_thread(
            services.notifications.notify, request.recipient_id, request.message, request.title
        )
    else:
        notification_id = await asyncio.to_thread(
            services.notifications.broadcast, actor, request.message, request.title
        )
    return {"id": notification_id}


@router.get("/admin/notifications")
async def list_broadcasts(
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await asyncio.to_thread(services.notifications.list_broadcasts, actor)


@router.delete("/admin/notifications/{notification_id}", status_code=204)
async def delete_broadcast(
    notification_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> None:
    await asyncio.to_thread(services.notifications.delete_broadcast, actor, notification_id)


@router.delete("/admin/notifications", response_model=CountResponse)
async def clear_broadcasts(
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> CountResponse:
    count = await asyncio.to_thread(services.notifications.clear_broadcasts, actor)
    return CountResponse(count=count)
