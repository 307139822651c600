"""
Shared dependencies for the Hostel API.

This module provides:
- PocketBase client management (global instance, authenticated as superuser on startup)
- Document store selection (PocketBase or in-memory)
- The service container handed to routers through FastAPI dependencies
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from hostel.booking import BookingArbitrator, BookingTransitions, BookingViews
from hostel.request_guard import RequestGuard
from hostel.services import MessMenuService, NoticeService, NotificationService, ProfileService, RequestService
from hostel.store import DocumentStore, InMemoryDocumentStore
from pocketbase import PocketBase

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

# ========================================
# PocketBase Client
# ========================================

# A single client authenticated as superuser on startup. The API is the only
# writer the portal trusts, so every store call goes through this client.
_settings = get_settings()
pb_url = _settings.pocketbase_url
pb = PocketBase(pb_url)


class AuthState:
    """Shared state object for the PocketBase client."""

    pb_client: PocketBase | None = None


auth_state = AuthState()


async def authenticate_pb() -> None:
    """Authenticate with PocketBase as superuser."""
    settings = get_settings()
    try:
        await asyncio.to_thread(
            pb.collection("_superusers").auth_with_password,
            settings.pocketbase_admin_email,
            settings.pocketbase_admin_password,
        )
        auth_state.pb_client = pb
        logger.info("Successfully authenticated with PocketBase")
    except Exception as e:
        logger.error(f"Failed to authenticate with PocketBase: {e}")
        raise


# ========================================
# Services
# ========================================


@dataclass
class Services:
    """Everything the routers need, wired to one document store."""

    store: DocumentStore
    arbitrator: BookingArbitrator
    transitions: BookingTransitions
    bookings: BookingViews
    guard: RequestGuard
    requests: RequestService
    notices: NoticeService
    notifications: NotificationService
    mess: MessMenuService
    profiles: ProfileService

    def close(self) -> None:
        self.bookings.rooms.close()


def build_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "memory":
        logger.warning("Using the in-memory document store; data is lost on restart")
        return InMemoryDocumentStore()

    from hostel.store.pocketbase_store import PocketBaseDocumentStore

    return PocketBaseDocumentStore(pb)


def build_services(store: DocumentStore, settings: Settings) -> Services:
    attempts = settings.transaction_max_attempts
    guard = RequestGuard(store, max_attempts=attempts)
    return Services(
        store=store,
        arbitrator=BookingArbitrator(store, max_attempts=attempts),
        transitions=BookingTransitions(store, max_attempts=attempts),
        bookings=BookingViews(store),
        guard=guard,
        requests=RequestService(store, guard, grace_minutes=settings.outpass_grace_minutes, tz=settings.tz),
        notices=NoticeService(store),
        notifications=NotificationService(store),
        mess=MessMenuService(store),
        profiles=ProfileService(store, super_admin_email=settings.super_admin_email),
    )


_services: Services | None = None


def get_services() -> Services:
    """FastAPI dependency returning the process-wide service container."""
    global _services
    if _services is None:
        settings = get_settings()
        _services = build_services(build_store(settings), settings)
    return _services


def set_services(services: Services | None) -> None:
    """Swap the service container (tests, or shutdown with None)."""
    global _services
    if _services is not None and _services is not services:
        _services.close()
    _services = services


def get_profile_service() -> ProfileService:
    return get_services().profiles


__all__ = [
    "pb",
    "pb_url",
    "auth_state",
    "authenticate_pb",
    "Services",
    "build_store",
    "build_services",
    "get_services",
    "set_services",
    "get_profile_service",
]
