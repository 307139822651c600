"""Tests for notifications and the notice board."""

from __future__ import annotations

import pytest

from hostel.errors import DocumentNotFound, InvalidArgument, PermissionDenied
from hostel.models import Collections
from hostel.services import NoticeService, NotificationService


@pytest.fixture
def notifications(store):
    return NotificationService(store)


@pytest.fixture
def notices(store):
    return NoticeService(store)


class TestNotifications:
    def test_students_see_direct_and_broadcast(self, notifications, student, other_student, admin):
        notifications.broadcast(admin, "Water cut at 6pm", "Maintenance")
        notifications.notify(student.user_id, "Your outpass was approved")
        notifications.notify(other_student.user_id, "Not for Asha")

        messages = [n["message"] for n in notifications.list_for(student)]
        assert messages == ["Your outpass was approved", "Water cut at 6pm"]

    def test_broadcast_requires_admin(self, notifications, student):
        with pytest.raises(PermissionDenied):
            notifications.broadcast(student, "Free pizza")

    def test_broadcast_requires_message(self, notifications, admin):
        with pytest.raises(InvalidArgument):
            notifications.broadcast(admin, "   ")

    def test_mark_all_read(self, notifications, student, other_student, admin):
        notifications.broadcast(admin, "Hello")
        notifications.notify(student.user_id, "Direct")

        assert len(notifications.unread(student)) == 2
        assert notifications.mark_all_read(student) == 2
        assert notifications.unread(student) == []
        assert notifications.mark_all_read(student) == 0
        # Reading a broadcast is per user.
        assert len(notifications.unread(other_student)) == 1

    def test_hide_is_per_user(self, notifications, student, other_student, admin):
        broadcast_id = notifications.broadcast(admin, "Hello")
        notifications.hide(student, broadcast_id)

        assert notifications.list_for(student) == []
        assert len(notifications.list_for(other_student)) == 1

    def test_cannot_hide_someone_elses(self, notifications, student, other_student):
        direct = notifications.notify(other_student.user_id, "Private")
        with pytest.raises(PermissionDenied):
            notifications.hide(student, direct)

    def test_hide_missing(self, notifications, student):
        with pytest.raises(DocumentNotFound):
            notifications.hide(student, "ghost0000000000")

    def test_admin_manages_broadcasts(self, store, notifications, student, admin):
        first = notifications.broadcast(admin, "One")
        notifications.broadcast(admin, "Two")
        direct = notifications.notify(student.user_id, "Direct")

        assert len(notifications.list_broadcasts(admin)) == 2
        with pytest.raises(InvalidArgument):
            notifications.delete_broadcast(admin, direct)

        notifications.delete_broadcast(admin, first)
        assert notifications.clear_broadcasts(admin) == 1
        assert [s.id for s in store.query(Collections.NOTIFICATIONS)] == [direct]


class TestNotices:
    def test_post_and_list_newest_first(self, notices, student, admin):
        notices.post(admin, "Mess closed Sunday")
        notices.post(admin, "Fire drill Monday")

        listed = notices.list()
        assert [n["message"] for n in listed] == ["Fire drill Monday", "Mess closed Sunday"]
        assert listed[0]["posted_by"] == admin.email
        assert len(notices.list(limit=1)) == 1

    def test_post_requires_text(self, notices, admin):
        with pytest.raises(InvalidArgument, match="Please enter text"):
            notices.post(admin, "")

    def test_students_cannot_post(self, notices, student):
        with pytest.raises(PermissionDenied):
            notices.post(student, "Party in 101")

    def test_delete_and_clear(self, notices, admin):
        first = notices.post(admin, "One")
        notices.post(admin, "Two")
        notices.post(admin, "Three")

        notices.delete(admin, first)
        with pytest.raises(DocumentNotFound):
            notices.delete(admin, first)
        assert notices.clear(admin) == 2
        assert notices.list() == []
