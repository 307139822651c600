"""Tests for the profile and admin user management endpoints."""

from __future__ import annotations

import pytest

from hostel.models import Collections
from tests.fixtures.api_fixtures import ADMIN_USER, OTHER_STUDENT_USER, STUDENT_USER, ApiHarness


@pytest.fixture
def api():
    harness = ApiHarness()
    profiles = harness.services.profiles
    profiles.ensure_profile(STUDENT_USER.user_id, STUDENT_USER.email, STUDENT_USER.display_name)
    profiles.ensure_profile(OTHER_STUDENT_USER.user_id, OTHER_STUDENT_USER.email, OTHER_STUDENT_USER.display_name)
    yield harness
    harness.close()


class TestProfileEndpoints:
    def test_get_own_profile(self, api):
        profile = api.client.get("/api/profile").json()

        assert profile["id"] == STUDENT_USER.user_id
        assert profile["email"] == STUDENT_USER.email
        assert profile["role"] == "student"

    def test_patch_only_given_fields(self, api):
        api.client.patch("/api/profile", json={"phone": "9876543210"})
        response = api.client.patch("/api/profile", json={"student_id": " 21BCE1234 "})

        assert response.status_code == 200
        body = response.json()
        assert body["phone"] == "9876543210"
        assert body["student_id"] == "21BCE1234"
        assert body["display_name"] == STUDENT_USER.display_name

    def test_role_is_not_editable(self, api):
        api.client.patch("/api/profile", json={"role": "admin"})

        assert api.client.get("/api/profile").json()["role"] == "student"


class TestAdminUserEndpoints:
    def test_list_and_search(self, api):
        client = api.login(ADMIN_USER)

        assert [u["email"] for u in client.get("/api/admin/users").json()] == [
            "asha@example.com",
            "ravi@example.com",
        ]
        assert [u["id"] for u in client.get("/api/admin/users", params={"search": "Ravi"}).json()] == [
            OTHER_STUDENT_USER.user_id
        ]

    def test_lookup_by_id_suffix(self, api):
        api.client.patch("/api/profile", json={"student_id": "21BCE1234"})
        client = api.login(ADMIN_USER)

        found = client.get("/api/admin/users/lookup", params={"last4": "1234"}).json()

        assert [u["id"] for u in found] == [STUDENT_USER.user_id]
        assert client.get("/api/admin/users/lookup", params={"last4": "12a4"}).status_code == 400

    def test_lookup_by_uid(self, api):
        client = api.login(ADMIN_USER)

        assert client.get(f"/api/admin/users/{STUDENT_USER.user_id}").json()["email"] == STUDENT_USER.email
        assert client.get("/api/admin/users/nobody").status_code == 404

    def test_grant_admin_is_audited(self, api):
        response = api.login(ADMIN_USER).put(f"/api/admin/users/{STUDENT_USER.user_id}/role", json={"role": "admin"})

        assert response.status_code == 200
        assert response.json()["role"] == "admin"
        assert api.services.profiles.role_for(STUDENT_USER.user_id) == "admin"
        [entry] = api.store.query(Collections.AUDIT_LOGS)
        assert entry.get("target_id") == STUDENT_USER.user_id

    def test_unknown_role_is_422(self, api):
        response = api.login(ADMIN_USER).put(f"/api/admin/users/{STUDENT_USER.user_id}/role", json={"role": "owner"})
        assert response.status_code == 422

    def test_archive_and_restore(self, api):
        client = api.login(ADMIN_USER)

        assert client.post(f"/api/admin/users/{STUDENT_USER.user_id}/archive").status_code == 204
        assert STUDENT_USER.user_id not in {u["id"] for u in client.get("/api/admin/users").json()}
        [archived] = client.get("/api/admin/users/archived").json()
        assert archived["id"] == STUDENT_USER.user_id
        assert archived["deleted_by"] == ADMIN_USER.email

        assert client.post(f"/api/admin/users/{STUDENT_USER.user_id}/restore").status_code == 204
        assert client.get("/api/admin/users/archived").json() == []
        restored = client.get(f"/api/admin/users/{STUDENT_USER.user_id}").json()
        assert "deleted_at" not in restored

    def test_student_cannot_manage_users(self, api):
        assert api.login(STUDENT_USER).get("/api/admin/users").status_code == 403
