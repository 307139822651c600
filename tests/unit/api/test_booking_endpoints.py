"""Tests for the room, booking and admin booking endpoints."""

from __future__ import annotations

import pytest

from hostel.models import BedStatus, BookingStatus, Collections
from tests.fixtures.api_fixtures import ADMIN_USER, OTHER_STUDENT_USER, STUDENT_USER, ApiHarness


@pytest.fixture
def api():
    harness = ApiHarness()
    yield harness
    harness.close()


def book(api: ApiHarness, user=STUDENT_USER, bed_id: str = "A"):
    return api.login(user).post("/api/bookings", json={"room_id": "room101", "bed_id": bed_id})


class TestRoomEndpoints:
    def test_list_rooms(self, api):
        response = api.client.get("/api/rooms")

        assert response.status_code == 200
        [room] = response.json()
        assert room["id"] == "room101"
        assert room["available_beds"] == 2
        assert room["total_beds"] == 2
        assert room["is_full"] is False

    def test_gender_filter(self, api):
        assert api.client.get("/api/rooms", params={"gender": "female"}).json() == []

    def test_unknown_room_is_404(self, api):
        response = api.client.get("/api/rooms/room999")

        assert response.status_code == 404
        assert response.json()["code"] == "ROOM_NOT_FOUND"


class TestStudentBookingEndpoints:
    def test_booking_created(self, api):
        response = book(api)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["booking_id"] == STUDENT_USER.user_id
        assert body["room_number"] == "101"
        assert body["status"] == "pending"

    def test_bed_taken_by_someone_else_is_409(self, api):
        book(api)

        response = book(api, user=OTHER_STUDENT_USER)

        assert response.status_code == 409
        assert response.json() == {
            "detail": "This bed has just been taken by someone else!",
            "code": "BED_UNAVAILABLE",
        }

    def test_second_booking_is_409(self, api):
        book(api)

        response = book(api, bed_id="B")

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_ACTIVE_BOOKING"

    def test_empty_bed_id_is_400(self, api):
        response = api.client.post("/api/bookings", json={"room_id": "room101", "bed_id": " "})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ARGUMENT"

    def test_own_booking(self, api):
        assert api.client.get("/api/bookings/me").json() is None

        book(api)
        body = api.client.get("/api/bookings/me").json()

        assert body["room_id"] == "room101"
        assert body["bed_id"] == "A"
        assert body["status"] == "pending"

    def test_leave_request_on_pending_booking(self, api):
        book(api)

        response = api.client.post("/api/bookings/me/leave")

        assert response.status_code == 200
        assert response.json()["leave_request"]["status"] == "pending"

    def test_dismiss_active_booking_is_409(self, api):
        book(api)

        response = api.client.delete("/api/bookings/me")

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    def test_student_cannot_reach_admin_endpoints(self, api):
        response = api.client.get("/api/admin/bookings")

        assert response.status_code == 403
        assert response.json() == {"detail": "Admin access required", "code": "PERMISSION_DENIED"}


class TestAdminBookingEndpoints:
    def test_list_bookings(self, api):
        book(api)
        book(api, user=OTHER_STUDENT_USER, bed_id="B")

        body = api.login(ADMIN_USER).get("/api/admin/bookings", params={"search": "ravi"}).json()

        assert body["total"] == 1
        assert body["bookings"][0]["user_id"] == OTHER_STUDENT_USER.user_id

    def test_approve_then_confirm_marks_bed_taken(self, api):
        book(api)
        client = api.login(ADMIN_USER)

        approved = client.post(f"/api/admin/bookings/{STUDENT_USER.user_id}/approve")
        confirmed = client.post(f"/api/admin/bookings/{STUDENT_USER.user_id}/confirm")

        assert approved.json()["status"] == "approved"
        assert confirmed.json()["status"] == "confirmed"
        room = client.get("/api/rooms/room101").json()
        assert room["beds"]["A"] == {"status": "taken", "occupant_id": STUDENT_USER.user_id}
        assert room["available_beds"] == 1

    def test_reject_twice_is_409(self, api):
        book(api)
        client = api.login(ADMIN_USER)

        assert client.post(f"/api/admin/bookings/{STUDENT_USER.user_id}/reject").status_code == 200
        response = client.post(f"/api/admin/bookings/{STUDENT_USER.user_id}/reject")

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    def test_rejected_booking_frees_the_bed(self, api):
        book(api)
        api.login(ADMIN_USER).post(f"/api/admin/bookings/{STUDENT_USER.user_id}/reject")

        assert book(api, user=OTHER_STUDENT_USER).status_code == 201

    def test_unknown_booking_is_404(self, api):
        response = api.login(ADMIN_USER).post("/api/admin/bookings/nobody/approve")

        assert response.status_code == 404
        assert response.json()["code"] == "BOOKING_NOT_FOUND"

    def test_force_vacate(self, api):
        book(api)
        client = api.login(ADMIN_USER)
        client.post(f"/api/admin/bookings/{STUDENT_USER.user_id}/confirm")

        response = client.post(
            f"/api/admin/bookings/{STUDENT_USER.user_id}/vacate", json={"room_id": "room101", "bed_id": "A"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == BookingStatus.VACATED.value
        beds = api.store.get(Collections.ROOMS, "room101").get("beds")
        assert beds["A"]["status"] == BedStatus.AVAILABLE.value

    def test_leave_flow(self, api):
        book(api)
        api.login(ADMIN_USER).post(f"/api/admin/bookings/{STUDENT_USER.user_id}/confirm")
        api.login(STUDENT_USER).post("/api/bookings/me/leave")

        client = api.login(ADMIN_USER)
        pending = client.get("/api/admin/bookings/leave-requests").json()
        assert [b["user_id"] for b in pending["bookings"]] == [STUDENT_USER.user_id]

        response = client.post(f"/api/admin/bookings/{STUDENT_USER.user_id}/approve-leave")

        assert response.status_code == 200
        assert response.json()["status"] == "vacated"
        assert client.get("/api/admin/bookings/leave-requests").json()["total"] == 0
        assert api.login(STUDENT_USER).delete("/api/bookings/me").status_code == 204
