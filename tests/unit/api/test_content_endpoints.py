"""Tests for the notice board, notification and mess endpoints."""

from __future__ import annotations

import pytest

from hostel.models import WEEKDAYS
from tests.fixtures.api_fixtures import ADMIN_USER, OTHER_STUDENT_USER, STUDENT_USER, ApiHarness


@pytest.fixture
def api():
    harness = ApiHarness()
    yield harness
    harness.close()


class TestNoticeEndpoints:
    def test_post_and_list_newest_first(self, api):
        client = api.login(ADMIN_USER)
        client.post("/api/admin/notices", json={"message": "Water off on Sunday"})
        response = client.post("/api/admin/notices", json={"message": "Fees due Friday"})

        assert response.status_code == 201
        notices = api.login(STUDENT_USER).get("/api/notices").json()
        assert [n["message"] for n in notices] == ["Fees due Friday", "Water off on Sunday"]
        assert notices[0]["posted_by"] == ADMIN_USER.email

    def test_limit(self, api):
        client = api.login(ADMIN_USER)
        for i in range(3):
            client.post("/api/admin/notices", json={"message": f"Notice {i}"})

        assert len(client.get("/api/notices", params={"limit": 2}).json()) == 2

    def test_blank_notice_is_400(self, api):
        response = api.login(ADMIN_USER).post("/api/admin/notices", json={"message": "   "})
        assert response.status_code == 400

    def test_student_cannot_post(self, api):
        assert api.client.post("/api/admin/notices", json={"message": "Party"}).status_code == 403

    def test_delete_and_clear(self, api):
        client = api.login(ADMIN_USER)
        first = client.post("/api/admin/notices", json={"message": "One"}).json()["id"]
        client.post("/api/admin/notices", json={"message": "Two"})

        assert client.delete(f"/api/admin/notices/{first}").status_code == 204
        assert client.delete(f"/api/admin/notices/{first}").status_code == 404
        assert client.delete("/api/admin/notices").json() == {"count": 1}
        assert client.get("/api/notices").json() == []


class TestNotificationEndpoints:
    def test_broadcast_and_direct(self, api):
        client = api.login(ADMIN_USER)
        client.post("/api/admin/notifications", json={"message": "Mess closed tonight"})
        client.post(
            "/api/admin/notifications",
            json={"message": "Please see the warden", "recipient_id": OTHER_STUDENT_USER.user_id},
        )

        mine = api.login(STUDENT_USER).get("/api/notifications").json()
        theirs = api.login(OTHER_STUDENT_USER).get("/api/notifications").json()

        assert [n["message"] for n in mine] == ["Mess closed tonight"]
        assert {n["message"] for n in theirs} == {"Mess closed tonight", "Please see the warden"}

    def test_mark_all_read(self, api):
        api.login(ADMIN_USER).post("/api/admin/notifications", json={"message": "Hello"})
        client = api.login(STUDENT_USER)

        assert len(client.get("/api/notifications", params={"unread_only": True}).json()) == 1
        assert client.post("/api/notifications/read").json() == {"count": 1}
        assert client.get("/api/notifications", params={"unread_only": True}).json() == []
        assert client.post("/api/notifications/read").json() == {"count": 0}

    def test_hide_only_affects_caller(self, api):
        notification_id = api.login(ADMIN_USER).post("/api/admin/notifications", json={"message": "Hi"}).json()["id"]

        assert api.login(STUDENT_USER).delete(f"/api/notifications/{notification_id}").status_code == 204

        assert api.login(STUDENT_USER).get("/api/notifications").json() == []
        assert len(api.login(OTHER_STUDENT_USER).get("/api/notifications").json()) == 1

    def test_admin_clears_broadcasts(self, api):
        client = api.login(ADMIN_USER)
        client.post("/api/admin/notifications", json={"message": "One"})
        client.post("/api/admin/notifications", json={"message": "Two"})

        assert len(client.get("/api/admin/notifications").json()) == 2
        assert client.delete("/api/admin/notifications").json() == {"count": 2}
        assert client.get("/api/admin/notifications").json() == []


class TestMessEndpoints:
    def test_empty_week(self, api):
        week = api.client.get("/api/mess/menu").json()

        assert list(week) == list(WEEKDAYS)
        assert week["monday"]["lunch"] == {"item": "", "is_special": False}

    def test_admin_sets_menu(self, api):
        menu = {"monday": {"lunch": {"item": "Rajma chawal", "is_special": True}}}

        response = api.login(ADMIN_USER).put("/api/admin/mess/menu", json={"menu": menu})

        assert response.status_code == 204
        week = api.login(STUDENT_USER).get("/api/mess/menu").json()
        assert week["monday"]["lunch"] == {"item": "Rajma chawal", "is_special": True}
        assert week["tuesday"]["lunch"]["item"] == ""

    def test_unknown_day_is_400(self, api):
        response = api.login(ADMIN_USER).put("/api/admin/mess/menu", json={"menu": {"funday": {}}})
        assert response.status_code == 400

    def test_featured_meal_shape(self, api):
        featured = api.client.get("/api/mess/featured").json()

        assert featured["day"] in WEEKDAYS
        assert featured["meal"] in {"breakfast", "lunch", "snacks", "dinner"}
        assert featured["item"] == "Not Scheduled"

    def test_rating_again_overwrites(self, api):
        client = api.client
        first = client.post("/api/mess/ratings", json={"day": "monday", "meal": "lunch", "rating": "like"})
        second = client.post("/api/mess/ratings", json={"day": "Monday", "meal": "lunch", "rating": "dislike"})

        assert first.status_code == 201
        assert first.json()["id"] == second.json()["id"]
        assert client.get("/api/mess/ratings/me").json() == {"monday-lunch": "dislike"}

    def test_rating_summary(self, api):
        api.login(STUDENT_USER).post("/api/mess/ratings", json={"day": "monday", "meal": "lunch", "rating": "like"})
        api.login(OTHER_STUDENT_USER).post(
            "/api/mess/ratings", json={"day": "monday", "meal": "lunch", "rating": "dislike"}
        )

        summary = api.login(ADMIN_USER).get("/api/admin/mess/ratings").json()

        assert summary == [{"day": "monday", "meal": "lunch", "likes": 1, "dislikes": 1}]

    def test_unknown_rating_is_422(self, api):
        response = api.client.post("/api/mess/ratings", json={"day": "monday", "meal": "lunch", "rating": "meh"})
        assert response.status_code == 422
