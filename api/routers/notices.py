"""
Notices Router - Notice board shown on every student's dashboard.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Query

from hostel.auth_middleware import get_admin_caller, get_caller
from hostel.models import Caller

from ..dependencies import Services, get_services
from ..schemas import CountResponse, NoticeCreate

router = APIRouter(prefix="/api", tags=["notices"])


@router.get("/notices")
async def list_notices(
    limit: int | None = Query(None, ge=1, le=200),
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await asyncio.to_thread(services.notices.list, limit)


@router.post("/admin/notices", status_code=201)
async def post_notice(
    request: NoticeCreate,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    notice_id = await asyncio.to_thread(services.notices.post, actor, request.message)
    return {"id": notice_id}


@router.delete("/admin/notices/{notice_id}", status_code=204)
async def delete_notice(
    notice_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> None:
    await asyncio.to_thread(services.notices.delete, actor, notice_id)


@router.delete("/admin/notices", response_model=CountResponse)
async def clear_notices(
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> CountResponse:
    count = await asyncio.to_thread(services.notices.clear, actor)
    return CountResponse(count=count)
