"""
Authentication middleware for the hostel API.

Two modes:
- bypass: every request is a built-in dev admin (local development only)
- production: a PocketBase user token is required; the role comes from the
  user's profile document, never from the token itself
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from fastapi import Depends, HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

from .jwt_auth import PocketBaseTokenValidator, extract_bearer_token
from .models import Caller, Role
from .services.profiles import ProfileService

logger = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset({"/health", "/api/health", "/api/config", "/docs", "/openapi.json"})
ADMIN_PREFIX = "/api/admin"

DEV_ADMIN_ID = "devadmin0000001"


def _is_docker_environment() -> bool:
    """Detect if running inside a Docker container."""
    if Path("/.dockerenv").exists():
        return True
    if os.getenv("DOCKER_CONTAINER") == "true":
        return True
    try:
        with open("/proc/1/cgroup") as f:
            return "docker" in f.read()
    except (FileNotFoundError, PermissionError):
        pass
    return False


def _is_github_actions() -> bool:
    return os.getenv("CI") == "true" and os.getenv("GITHUB_ACTIONS") == "true"


class AuthUser:
    """The authenticated user attached to ``request.state.user``."""

    def __init__(self, user_id: str, email: str, display_name: str, role: Role = Role.STUDENT):
        self.user_id = user_id
        self.email = email
        self.display_name = display_name
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_caller(self) -> Caller:
        return Caller(user_id=self.user_id, email=self.email, display_name=self.display_name, is_admin=self.is_admin)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role.value,
            "is_admin": self.is_admin,
        }


class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: Any,
        auth_mode: str,
        pocketbase_url: str = "http://127.0.0.1:8090",
        profile_provider: Callable[[], ProfileService] | None = None,
        token_validator: PocketBaseTokenValidator | None = None,
    ):
        super().__init__(app)
        self.auth_mode = auth_mode.lower()
        self.profile_provider = profile_provider

        if self.auth_mode not in ("bypass", "production"):
            raise ValueError(f"Invalid AUTH_MODE: {auth_mode}. Must be bypass or production")

        if self.auth_mode == "bypass" and _is_docker_environment() and not _is_github_actions():
            raise ValueError(
                "SECURITY ERROR: AUTH_MODE=bypass is not allowed in Docker containers. "
                "Docker deployments must use AUTH_MODE=production."
            )

        self.token_validator = None
        if self.auth_mode == "production":
            self.token_validator = token_validator or PocketBaseTokenValidator(pocketbase_url)

        logger.info(f"Authentication middleware initialized in {self.auth_mode} mode")

    async def _user_from_token(self, request: Request) -> AuthUser | None:
        token = extract_bearer_token(request.headers.get("Authorization"))
        if not token or self.token_validator is None:
            logger.debug("No bearer token found in Authorization header")
            return None

        claims = await asyncio.to_thread(self.token_validator.validate_token, token)
        if not claims or not claims.get("sub"):
            logger.warning(f"Token rejected for {request.url.path}")
            return None

        user = AuthUser(user_id=claims["sub"], email=claims.get("email", ""), display_name=claims.get("name", ""))
        if self.profile_provider is not None:
            profiles = self.profile_provider()
            try:
                await asyncio.to_thread(profiles.ensure_profile, user.user_id, user.email, user.display_name)
            except Exception as e:
                # A failed first-login sync must not lock the user out.
                logger.error(f"Failed to sync profile for {user.user_id}: {e}")
            user.role = await asyncio.to_thread(profiles.role_for, user.user_id, user.email)
        return user

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        user: AuthUser | None
        if self.auth_mode == "bypass":
            user = AuthUser(DEV_ADMIN_ID, "dev_admin@example.com", "Dev Admin", Role.ADMIN)
        else:
            user = await self._user_from_token(request)

        if user is None:
            if request.method == "OPTIONS":
                return await call_next(request)
            logger.warning(f"Unauthenticated request to {request.url.path} in {self.auth_mode} mode")
            # BaseHTTPMiddleware turns raised HTTPExceptions into 500s, so respond directly.
            return JSONResponse(
                status_code=401, content={"detail": "Authentication required", "code": "UNAUTHENTICATED"}
            )

        request.state.user = user

        if request.url.path.startswith(ADMIN_PREFIX) and not user.is_admin:
            logger.warning(f"Non-admin user {user.user_id} attempted to access {request.url.path}")
            return JSONResponse(
                status_code=403, content={"detail": "Admin access required", "code": "PERMISSION_DENIED"}
            )

        logger.debug(f"Authenticated request from {user.user_id} to {request.url.path}")
        return await call_next(request)


def get_current_user(request: Request) -> AuthUser:
    """
    Dependency to get the current authenticated user.

    Usage:
        @router.get("/me")
        async def me(user: AuthUser = Depends(get_current_user)):
            return user.to_dict()
    """
    if not hasattr(request.state, "user") or not request.state.user:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user: AuthUser = request.state.user
    return user


def require_admin(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Dependency to require the admin role."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")

    return user


def get_caller(user: AuthUser = Depends(get_current_user)) -> Caller:
    return user.to_caller()


def get_admin_caller(user: AuthUser = Depends(require_admin)) -> Caller:
    return user.to_caller()
