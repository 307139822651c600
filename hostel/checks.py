"""Argument and caller checks run before any store access."""

from __future__ import annotations

from typing import Any

from .errors import InvalidArgument, PermissionDenied, Unauthenticated
from .models import Caller


def ensure_authenticated(caller: Caller | None) -> Caller:
    if caller is None or not isinstance(caller.user_id, str) or not caller.user_id.strip():
        raise Unauthenticated()
    return caller


def ensure_admin(caller: Caller | None) -> Caller:
    caller = ensure_authenticated(caller)
    if not caller.is_admin:
        raise PermissionDenied("Admin access required")
    return caller


def ensure_identifier(value: Any, name: str) -> str:
    """Reject anything that is not a non-empty string id."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"Invalid {name}")
    if "/" in value:
        raise InvalidArgument(f"Invalid {name}: {value!r}")
    return value
