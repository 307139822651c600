"""
Outpasses Router - Student leave passes.

Creation goes through the duplicate-request guard: a student holding a
pending or approved outpass gets 409 ACTIVE_REQUEST_EXISTS.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Query

from hostel.auth_middleware import get_admin_caller, get_caller
from hostel.models import Caller, RequestKind

from ..dependencies import Services, get_services
from ..schemas import CreateRequestResponse, OutpassCreate, StatusUpdate

router = APIRouter(prefix="/api", tags=["outpasses"])


@router.post("/outpasses", response_model=CreateRequestResponse, status_code=201)
async def create_outpass(
    request: OutpassCreate,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> CreateRequestResponse:
    result = await asyncio.to_thread(
        services.requests.create_outpass,
        caller,
        request.destination,
        request.from_date,
        request.to_date,
        request.reason,
        request.parent_contact,
    )
    result.raise_for_error()
    return CreateRequestResponse(success=True, id=result.id or "")


@router.get("/outpasses")
async def list_own_outpasses(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await asyncio.to_thread(services.requests.list_own, caller, RequestKind.OUTPASSES)


@router.delete("/outpasses/{outpass_id}", status_code=204)
async def delete_outpass(
    outpass_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> None:
    """Withdraw a pending outpass (admins may delete any)."""
    await asyncio.to_thread(services.requests.delete_request, caller, RequestKind.OUTPASSES, outpass_id)


@router.get("/admin/outpasses")
async def list_all_outpasses(
    search: str | None = Query(None, description="Match on student name or email"),
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await asyncio.to_thread(services.requests.list_all, actor, RequestKind.OUTPASSES, search)


@router.put("/admin/outpasses/{outpass_id}/status")
async def set_outpass_status(
    outpass_id: str,
    request: StatusUpdate,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Approve or reject a pending outpass. The student is notified."""
    return await asyncio.to_thread(services.requests.set_outpass_status, actor, outpass_id, request.status)
