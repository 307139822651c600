"""
Complaints Router - Maintenance and welfare complaints.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Query

from hostel.auth_middleware import get_admin_caller, get_caller
from hostel.models import Caller, RequestKind

from ..dependencies import Services, get_services
from ..schemas import ComplaintCreate, CreateRequestResponse, StatusUpdate

router = APIRouter(prefix="/api", tags=["complaints"])


@router.post("/complaints", response_model=CreateRequestResponse, status_code=201)
async def create_complaint(
    request: ComplaintCreate,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> CreateRequestResponse:
    result = await asyncio.to_thread(
        services.requests.create_complaint,
        caller,
        request.title,
        request.description,
        request.category,
        request.urgency,
    )
    result.raise_for_error()
    return CreateRequestResponse(success=True, id=result.id or "")


@router.get("/complaints")
async def list_own_complaints(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await asyncio.to_thread(services.requests.list_own, caller, RequestKind.COMPLAINTS)


@router.put("/complaints/{complaint_id}")
async def update_complaint(
    complaint_id: str,
    request: ComplaintCreate,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Edit a complaint while it is still pending."""
    return await asyncio.to_thread(
        services.requests.update_complaint,
        caller,
        complaint_id,
        request.title,
        request.description,
        request.category,
        request.urgency,
    )


@router.delete("/complaints/{complaint_id}", status_code=204)
async def delete_complaint(
    complaint_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> None:
    await asyncio.to_thread(services.requests.delete_request, caller, RequestKind.COMPLAINTS, complaint_id)


@router.get("/admin/complaints")
async def list_all_complaints(
    search: str | None = Query(None, description="Match on student name or email"),
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await asyncio.to_thread(services.requests.list_all, actor, RequestKind.COMPLAINTS, search)


@router.put("/admin/complaints/{complaint_id}/status")
async def set_complaint_status(
    complaint_id: str,
    request: StatusUpdate,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return await asyncio.to_thread(services.requests.set_complaint_status, actor, complaint_id, request.status)
