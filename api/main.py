#!/usr/bin/env python3
"""
Hostel API - HTTP layer for the hostel management portal.

This FastAPI application is the backend-for-frontend for the portal pages. It
fronts the document store and is the only component allowed to run the
booking arbitrator and the admin transitions:
- Room listing and booking requests
- Admin booking approval, bed assignment and vacating
- Outpasses and complaints behind the duplicate-request guard
- Notices, notifications, mess menu and profiles
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hostel.auth_middleware import AuthMiddleware, AuthUser, get_current_user
from hostel.errors import (
    ActiveRequestExists,
    BedUnavailable,
    DuplicateActiveBooking,
    HostelError,
    InvalidArgument,
    InvalidStatus,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    TransactionConflict,
    Unauthenticated,
)
from hostel.logging_config import configure_logging

from .dependencies import auth_state, authenticate_pb, get_profile_service, pb, set_services
from .settings import get_settings

# Format: 2026-01-06T14:05:52Z [api] LEVEL message
configure_logging(source="api")

logger = logging.getLogger(__name__)

# Most specific class first; the first isinstance match wins.
STATUS_BY_ERROR: list[tuple[type[HostelError], int]] = [
    (InvalidArgument, 400),
    (Unauthenticated, 401),
    (PermissionDenied, 403),
    (NotFound, 404),
    (BedUnavailable, 409),
    (DuplicateActiveBooking, 409),
    (ActiveRequestExists, 409),
    (InvalidStatus, 422),
    (InvalidTransition, 409),
    (TransactionConflict, 503),
]


def status_for(exc: HostelError) -> int:
    for error_cls, status in STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle - startup and shutdown."""
    settings = get_settings()

    if settings.store_backend == "pocketbase" and not settings.skip_pb_auth:
        await authenticate_pb()
    else:
        logger.warning("Skipping PocketBase authentication")
        auth_state.pb_client = pb

    yield

    set_services(None)


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors and bare 401/403s to the portal's {detail, code} body."""

    @app.exception_handler(HostelError)
    async def hostel_error_handler(request: Request, exc: HostelError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {status} {exc.code}")
        return JSONResponse(status_code=status, content={"detail": exc.message, "code": exc.code})

    @app.exception_handler(401)
    async def unauthorized_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={
                "detail": str(exc.detail) if hasattr(exc, "detail") else "Unauthorized",
                "code": "UNAUTHENTICATED",
            },
        )

    @app.exception_handler(403)
    async def forbidden_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={
                "detail": str(exc.detail) if hasattr(exc, "detail") else "Forbidden",
                "code": "PERMISSION_DENIED",
            },
        )


def include_routers(app: FastAPI) -> None:
    from .routers import (
        admin_bookings,
        admin_users,
        bookings,
        complaints,
        mess,
        notices,
        notifications,
        outpasses,
        profile,
        rooms,
    )

    app.include_router(rooms.router)
    app.include_router(bookings.router)
    app.include_router(admin_bookings.router)
    app.include_router(outpasses.router)
    app.include_router(complaints.router)
    app.include_router(notices.router)
    app.include_router(notifications.router)
    app.include_router(mess.router)
    app.include_router(profile.router)
    app.include_router(admin_users.router)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Hostel API", description="Hostel management portal API", lifespan=lifespan)
    register_exception_handlers(app)

    settings = get_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    # Runs after CORS due to reverse order
    auth_mode = settings.get_effective_auth_mode()
    app.add_middleware(
        AuthMiddleware,
        auth_mode=auth_mode,
        pocketbase_url=settings.pocketbase_url,
        profile_provider=get_profile_service,
    )

    include_routers(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "service": "hostel-api"}

    @app.get("/api/config")
    async def get_auth_config() -> dict[str, Any]:
        """Authentication configuration for the frontend."""
        current_auth_mode = settings.get_effective_auth_mode()
        if current_auth_mode == "bypass":
            return {"auth_mode": "bypass"}
        return {"auth_mode": "production", "pocketbase_url": settings.pocketbase_url, "auth_collection": "users"}

    @app.get("/api/user/me")
    async def get_current_user_info(user: AuthUser = Depends(get_current_user)) -> dict[str, Any]:
        """Get current user information."""
        return user.to_dict()

    return app


# Create app instance for uvicorn
app = create_app()
