"""Tests for profiles, roles, ID lookup and archiving."""

from __future__ import annotations

import pytest

from hostel.errors import DocumentNotFound, InvalidArgument, InvalidStatus, PermissionDenied
from hostel.models import Collections, Role
from hostel.services import ProfileService


@pytest.fixture
def profiles(store):
    return ProfileService(store, super_admin_email="Chief@Example.com")


@pytest.fixture
def enrolled(profiles, student, other_student):
    profiles.ensure_profile(student.user_id, student.email, student.display_name)
    profiles.ensure_profile(other_student.user_id, other_student.email, other_student.display_name)
    profiles.update_profile(student, student_id="2023CS1234")
    profiles.update_profile(other_student, student_id="2023EE5678")


class TestRoles:
    def test_new_users_are_students(self, profiles, student):
        assert profiles.ensure_profile(student.user_id, student.email) is True
        assert profiles.ensure_profile(student.user_id, student.email) is False
        assert profiles.role_for(student.user_id, student.email) == Role.STUDENT

    def test_unknown_user_is_student(self, profiles):
        assert profiles.role_for("nobody000000000") == Role.STUDENT

    def test_super_admin_email(self, profiles):
        assert profiles.role_for("someone00000000", "chief@example.com ") == Role.ADMIN

    def test_grant_and_revoke(self, store, profiles, student, admin, enrolled):
        profiles.set_role(admin, student.user_id, "admin")
        assert profiles.role_for(student.user_id) == Role.ADMIN
        profiles.set_role(admin, student.user_id, Role.STUDENT)
        assert profiles.role_for(student.user_id) == Role.STUDENT

        actions = [s.get("action") for s in store.query(Collections.AUDIT_LOGS, order_by="timestamp")]
        assert actions == ["GRANT_ADMIN", "REVOKE_ADMIN"]

    def test_bad_role(self, profiles, student, admin, enrolled):
        with pytest.raises(InvalidStatus):
            profiles.set_role(admin, student.user_id, "owner")

    def test_students_cannot_grant(self, profiles, student, enrolled):
        with pytest.raises(PermissionDenied):
            profiles.set_role(student, student.user_id, "admin")


class TestOwnProfile:
    def test_profile_before_first_sync(self, profiles, student):
        profile = profiles.get_profile(student)
        assert profile["id"] == student.user_id
        assert profile["role"] == "student"
        assert profile["email"] == student.email

    def test_update(self, profiles, student, enrolled):
        updated = profiles.update_profile(student, phone=" 9876543210 ", display_name=None)
        assert updated["phone"] == "9876543210"
        assert updated["display_name"] == "Asha"

    def test_role_cannot_be_self_assigned(self, profiles, student, enrolled):
        with pytest.raises(InvalidArgument, match="Cannot edit profile fields: role"):
            profiles.update_profile(student, role="admin")


class TestLookup:
    def test_by_suffix(self, profiles, student, admin, enrolled):
        matches = profiles.lookup_by_id_suffix(admin, "1234")
        assert [m["id"] for m in matches] == [student.user_id]
        assert profiles.lookup_by_id_suffix(admin, "0000") == []

    @pytest.mark.parametrize("last4", ["123", "12345", "abcd", ""])
    def test_suffix_must_be_four_digits(self, profiles, admin, last4):
        with pytest.raises(InvalidArgument, match="Enter exactly 4 digits"):
            profiles.lookup_by_id_suffix(admin, last4)

    def test_by_uid(self, profiles, student, admin, enrolled):
        assert profiles.lookup_by_uid(admin, student.user_id)["student_id"] == "2023CS1234"
        with pytest.raises(DocumentNotFound):
            profiles.lookup_by_uid(admin, "nobody000000000")

    def test_lookup_requires_admin(self, profiles, student):
        with pytest.raises(PermissionDenied):
            profiles.lookup_by_id_suffix(student, "1234")


class TestArchive:
    def test_list_users_search(self, profiles, admin, enrolled):
        assert [u["email"] for u in profiles.list_users(admin)] == ["asha@example.com", "ravi@example.com"]
        assert [u["display_name"] for u in profiles.list_users(admin, search="RAVI")] == ["Ravi"]

    def test_archive_and_restore(self, store, profiles, student, admin, enrolled):
        profiles.archive_user(admin, student.user_id)

        assert not store.get(Collections.USERS, student.user_id).exists
        archived = profiles.list_archived(admin)
        assert [a["id"] for a in archived] == [student.user_id]
        assert archived[0]["deleted_by"] == admin.email
        assert archived[0]["deleted_at"] is not None

        profiles.restore_user(admin, student.user_id)

        restored = store.get(Collections.USERS, student.user_id)
        assert restored.get("student_id") == "2023CS1234"
        assert restored.get("deleted_at") is None
        assert profiles.list_archived(admin) == []
        actions = [s.get("action") for s in store.query(Collections.AUDIT_LOGS, order_by="timestamp")]
        assert actions == ["ARCHIVE_USER", "RESTORE_USER"]

    def test_archive_missing(self, profiles, admin):
        with pytest.raises(DocumentNotFound):
            profiles.archive_user(admin, "nobody000000000")

    def test_restore_missing(self, profiles, admin):
        with pytest.raises(DocumentNotFound):
            profiles.restore_user(admin, "nobody000000000")
