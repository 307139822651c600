"""
Admin Users Router - Student lookup, roles and archiving.

Archived accounts move to ``deleted_users`` and can be restored later;
role changes and both moves are written to the audit log.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Query

from hostel.auth_middleware import get_admin_caller
from hostel.models import Caller

from ..dependencies import Services, get_services
from ..schemas import RoleUpdate

router = APIRouter(prefix="/api/admin/users", tags=["admin"])


@router.get("")
async def list_users(
    search: str | None = Query(None, description="Match on email or display name"),
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await asyncio.to_thread(services.profiles.list_users, actor, search)


@router.get("/archived")
async def list_archived_users(
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await asyncio.to_thread(services.profiles.list_archived, actor)


@router.get("/lookup")
async def lookup_by_id_suffix(
    last4: str = Query(..., description="Last four digits of the student id"),
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    """Find students for ID verification at the gate."""
    return await asyncio.to_thread(services.profiles.lookup_by_id_suffix, actor, last4)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return await asyncio.to_thread(services.profiles.lookup_by_uid, actor, user_id)


@router.put("/{user_id}/role")
async def set_role(
    user_id: str,
    request: RoleUpdate,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return await asyncio.to_thread(services.profiles.set_role, actor, user_id, request.role)


@router.post("/{user_id}/archive", status_code=204)
async def archive_user(
    user_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> None:
    await asyncio.to_thread(services.profiles.archive_user, actor, user_id)


@router.post("/{user_id}/restore", status_code=204)
async def restore_user(
    user_id: str,
    actor: Caller = Depends(get_admin_caller),
    services: Services = Depends(get_services),
) -> None:
    await asyncio.to_thread(services.profiles.restore_user, actor, user_id)
