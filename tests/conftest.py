"""
Root test configuration and fixtures for the hostel portal.

This conftest.py provides common fixtures for all test categories:
- an autouse PocketBase mock so nothing talks to a real server
- an in-memory document store seeded with a small hostel
- student and admin callers

Note: sys.path manipulation is handled here to ensure imports work correctly.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hostel.models import Caller  # noqa: E402
from hostel.store import InMemoryDocumentStore  # noqa: E402
from tests.fixtures.store_fixtures import FixedClock, seed_room  # noqa: E402


def create_mock_pocketbase():
    """Create a mock PocketBase instance."""
    mock_pb = Mock()

    mock_collection = Mock()
    mock_collection.auth_with_password = Mock(return_value=True)
    mock_collection.subscribe = Mock(return_value=Mock())
    mock_collection.unsubscribe = Mock()
    mock_pb.collection = Mock(return_value=mock_collection)

    # Store calls go through the raw send() API
    mock_pb.send = Mock(return_value={"items": [], "totalPages": 1})

    mock_pb.auth_store = Mock()
    mock_pb.auth_store.base_token = "mock-token"
    mock_pb.auth_store.base_model = Mock()

    return mock_pb


@pytest.fixture
def mock_pocketbase():
    """Create a mock PocketBase instance for tests that need it."""
    return create_mock_pocketbase()


@pytest.fixture(autouse=True)
def mock_all_external_services():
    """Automatically mock PocketBase to prevent real connections.

    Integration runs can set SKIP_MOCKING=true to talk to a live server.
    """
    if os.environ.get("SKIP_MOCKING") == "true":
        yield {}
        return

    mock_pb = create_mock_pocketbase()
    with patch("pocketbase.PocketBase") as mock_pb_class:
        mock_pb_class.return_value = mock_pb
        yield {"pocketbase": mock_pb}


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the cached Settings between tests to prevent state leakage."""
    yield
    from api.settings import get_settings

    get_settings.cache_clear()


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """An in-memory store holding one two-bed room (room101: beds A and B)."""
    store = InMemoryDocumentStore(clock=FixedClock())
    seed_room(store)
    return store


@pytest.fixture
def student() -> Caller:
    return Caller(user_id="student0000001", email="asha@example.com", display_name="Asha")


@pytest.fixture
def other_student() -> Caller:
    return Caller(user_id="student0000002", email="ravi@example.com", display_name="Ravi")


@pytest.fixture
def admin() -> Caller:
    return Caller(user_id="warden000000001", email="warden@example.com", display_name="Warden", is_admin=True)
