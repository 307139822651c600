"""
Helpers for exercising the routers against an in-memory store.

The test app skips AuthMiddleware: the signed-in user is injected by
overriding ``get_current_user``, so ``require_admin`` still runs.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.dependencies import Services, build_services, get_services
from api.main import include_routers, register_exception_handlers
from api.settings import Settings
from hostel.auth_middleware import AuthUser, get_current_user
from hostel.models import Role
from hostel.store import InMemoryDocumentStore

from .store_fixtures import FixedClock, seed_room

STUDENT_USER = AuthUser("student0000001", "asha@example.com", "Asha")
OTHER_STUDENT_USER = AuthUser("student0000002", "ravi@example.com", "Ravi")
ADMIN_USER = AuthUser("warden000000001", "warden@example.com", "Warden", Role.ADMIN)


class ApiHarness:
    """A TestClient plus the services behind it and a switchable signed-in user."""

    def __init__(self, user: AuthUser = STUDENT_USER):
        self.store = InMemoryDocumentStore(clock=FixedClock())
        seed_room(self.store)
        self.services: Services = build_services(self.store, Settings(_env_file=None))
        self.user = user

        self.app = FastAPI()
        register_exception_handlers(self.app)
        include_routers(self.app)
        self.app.dependency_overrides[get_services] = lambda: self.services
        self.app.dependency_overrides[get_current_user] = lambda: self.user
        self.client = TestClient(self.app)

    def login(self, user: AuthUser) -> TestClient:
        self.user = user
        return self.client

    def close(self) -> None:
        self.client.close()
        self.services.close()
