"""
Application settings using pydantic-settings.

Every environment variable the portal reads is declared here with its type
and default. Settings are loaded once and cached by ``get_settings()``.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def _is_docker_environment() -> bool:
    """Detect if running inside a Docker container."""
    if Path("/.dockerenv").exists():
        return True
    try:
        with open("/proc/1/cgroup") as f:
            return "docker" in f.read()
    except (FileNotFoundError, PermissionError):
        pass
    return False


def _is_github_actions() -> bool:
    """True only when both CI=true and GITHUB_ACTIONS=true are set."""
    return os.getenv("CI") == "true" and os.getenv("GITHUB_ACTIONS") == "true"


class Settings(BaseSettings):
    """
    Portal settings loaded from environment variables or a .env file.

    Defaults suit local development against a PocketBase on localhost.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # === Authentication ===
    auth_mode: str = Field(
        default="production",
        description="Authentication mode: 'production' (PocketBase tokens) or 'bypass' (dev only)",
    )
    super_admin_email: str = Field(
        default="",
        description="Email that is always treated as admin, whatever its profile says",
    )
    skip_pb_auth: bool = Field(
        default=False,
        description="Skip PocketBase superuser authentication on startup (for testing)",
    )

    # === Store ===
    store_backend: str = Field(
        default="pocketbase",
        description="Document store backend: 'pocketbase' or 'memory'",
    )
    transaction_max_attempts: int = Field(
        default=5,
        ge=1,
        le=25,
        description="How many times a conflicting transaction is attempted before giving up",
    )

    # === PocketBase ===
    pocketbase_url: str = Field(
        default="http://127.0.0.1:8090",
        description="PocketBase server URL",
    )
    pocketbase_admin_email: str = Field(
        default="admin@hostel.local",
        description="PocketBase superuser email used by the API",
    )
    pocketbase_admin_password: str = Field(
        default="",
        description="PocketBase superuser password (required - no default for security)",
    )

    # === Requests ===
    outpass_grace_minutes: int = Field(
        default=15,
        ge=0,
        description="How far in the past an outpass departure time may be",
    )

    # === CORS ===
    allowed_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="ALLOWED_ORIGINS",
        description="Allowed CORS origins (comma-separated)",
    )

    # === Docker Detection ===
    is_docker: bool = Field(default=False, description="Whether running in Docker container")
    docker_container: bool = Field(default=False, description="Explicit Docker container flag")

    # === System ===
    tz: str = Field(
        default="Asia/Kolkata",
        description="Timezone used to interpret outpass times and pick the featured meal",
    )

    @field_validator("pocketbase_admin_password", mode="after")
    @classmethod
    def validate_admin_password(cls, v: str) -> str:
        insecure_defaults = {"password", "admin", "123456", ""}
        if v in insecure_defaults:
            logger.warning(
                "SECURITY WARNING: POCKETBASE_ADMIN_PASSWORD is not set or uses an insecure default. "
                "Set a strong password in your .env file for production use."
            )
        return v

    @field_validator("is_docker", mode="before")
    @classmethod
    def parse_is_docker(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes")
        return False

    @field_validator("auth_mode", mode="after")
    @classmethod
    def validate_auth_mode(cls, v: str) -> str:
        v = v.lower()
        if v not in ("bypass", "production"):
            raise ValueError(f"Invalid AUTH_MODE: {v}. Must be 'bypass' or 'production'")
        return v

    @field_validator("store_backend", mode="after")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("pocketbase", "memory"):
            raise ValueError(f"Invalid STORE_BACKEND: {v}. Must be 'pocketbase' or 'memory'")
        return v

    @property
    def allowed_origins(self) -> list[str]:
        """Parse comma-separated origins string into list."""
        return [origin.strip() for origin in self.allowed_origins_str.split(",") if origin.strip()]

    def is_docker_environment(self) -> bool:
        return self.is_docker or self.docker_container or _is_docker_environment()

    def get_effective_auth_mode(self) -> str:
        """Auth mode actually in force: Docker always runs production, except under CI."""
        if self.is_docker_environment() and not _is_github_actions():
            return "production"
        return self.auth_mode


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance for the lifetime of the process."""
    return Settings()
