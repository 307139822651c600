"""
User profiles, digital ID lookup and admin user management.

Profiles live in ``users`` keyed by user id. Archiving moves the document to
``deleted_users`` and restoring moves it back; both moves are one
transaction together with their audit entry.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ..audit import AuditAction, record_audit
from ..checks import ensure_admin, ensure_authenticated, ensure_identifier
from ..errors import DocumentNotFound, InvalidArgument
from ..models import Caller, Collections, Role, parse_status
from ..store import SERVER_TIMESTAMP, DocumentStore, Transaction

logger = logging.getLogger(__name__)

ID_SUFFIX_PATTERN = re.compile(r"^\d{4}$")
PROFILE_FIELDS = ("display_name", "phone", "photo_url", "student_id")
ARCHIVE_FIELDS = ("deleted_at", "deleted_by")


def _public(user_id: str, data: dict[str, Any]) -> dict[str, Any]:
    profile = {"id": user_id, "role": Role.STUDENT.value}
    profile.update({k: v for k, v in data.items() if k not in ARCHIVE_FIELDS})
    return profile


class ProfileService:
    def __init__(self, store: DocumentStore, super_admin_email: str = ""):
        self.store = store
        self.super_admin_email = super_admin_email.strip().lower()

    # ---- roles ----

    def role_for(self, user_id: str, email: str = "") -> Role:
        """Role from the profile document; the super-admin email is always admin."""
        if self.super_admin_email and email.strip().lower() == self.super_admin_email:
            return Role.ADMIN
        snapshot = self.store.get(Collections.USERS, user_id)
        if not snapshot.exists or not snapshot.get("role"):
            return Role.STUDENT
        return parse_status(Role, snapshot.get("role"))

    def set_role(self, actor: Caller, user_id: str, role: Role | str) -> dict[str, Any]:
        """Grant or revoke admin."""
        ensure_admin(actor)
        user_id = ensure_identifier(user_id, "user id")
        role = parse_status(Role, role)
        action = AuditAction.GRANT_ADMIN if role == Role.ADMIN else AuditAction.REVOKE_ADMIN

        def body(txn: Transaction) -> dict[str, Any]:
            snapshot = txn.get(Collections.USERS, user_id)
            if not snapshot.exists:
                raise DocumentNotFound(f"User {user_id} not found")
            txn.update(Collections.USERS, user_id, {"role": role.value})
            record_audit(txn, actor, action, user_id, "user", {"by": actor.email})
            return _public(user_id, {**(snapshot.data or {}), "role": role.value})

        profile = self.store.run_transaction(body)
        logger.info(f"{action} for {user_id} by {actor.email or actor.user_id}")
        return profile

    def ensure_profile(self, user_id: str, email: str, display_name: str = "") -> bool:
        """Create the profile document on first sign-in. Returns True if created."""

        def body(txn: Transaction) -> bool:
            if txn.get(Collections.USERS, user_id).exists:
                return False
            txn.set(
                Collections.USERS,
                user_id,
                {
                    "email": email,
                    "display_name": display_name,
                    "role": Role.STUDENT.value,
                    "created_at": SERVER_TIMESTAMP,
                },
            )
            return True

        created = self.store.run_transaction(body)
        if created:
            logger.info(f"Created profile for new user {email or user_id}")
        return created

    # ---- own profile ----

    def get_profile(self, caller: Caller) -> dict[str, Any]:
        caller = ensure_authenticated(caller)
        snapshot = self.store.get(Collections.USERS, caller.user_id)
        if not snapshot.exists:
            return _public(caller.user_id, {"email": caller.email, "display_name": caller.display_name})
        return _public(caller.user_id, snapshot.data or {})

    def update_profile(self, caller: Caller, **fields: Any) -> dict[str, Any]:
        """Merge the editable profile fields; unknown fields are rejected."""
        caller = ensure_authenticated(caller)
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise InvalidArgument(f"Cannot edit profile fields: {', '.join(sorted(unknown))}")
        changes = {k: (v.strip() if isinstance(v, str) else v) for k, v in fields.items() if v is not None}

        def body(txn: Transaction) -> dict[str, Any]:
            snapshot = txn.get(Collections.USERS, caller.user_id)
            data = dict(snapshot.data or {"email": caller.email, "role": Role.STUDENT.value})
            data.update(changes)
            data["updated_at"] = SERVER_TIMESTAMP
            txn.set(Collections.USERS, caller.user_id, data)
            return _public(caller.user_id, {**data, "updated_at": None})

        return self.store.run_transaction(body)

    # ---- ID lookup ----

    def lookup_by_uid(self, actor: Caller, user_id: str) -> dict[str, Any]:
        ensure_admin(actor)
        user_id = ensure_identifier(user_id, "user id")
        snapshot = self.store.get(Collections.USERS, user_id)
        if not snapshot.exists:
            raise DocumentNotFound(f"No student with id {user_id}")
        return _public(user_id, snapshot.data or {})

    def lookup_by_id_suffix(self, actor: Caller, last4: str) -> list[dict[str, Any]]:
        """Students whose student id ends with exactly these four digits."""
        ensure_admin(actor)
        last4 = (last4 or "").strip()
        if not ID_SUFFIX_PATTERN.match(last4):
            raise InvalidArgument("Enter exactly 4 digits")
        return [
            _public(s.id, s.data or {})
            for s in self.store.query(Collections.USERS)
            if str(s.get("student_id") or "").endswith(last4)
        ]

    # ---- admin user management ----

    def list_users(self, actor: Caller, search: str | None = None) -> list[dict[str, Any]]:
        ensure_admin(actor)
        users = [_public(s.id, s.data or {}) for s in self.store.query(Collections.USERS)]
        if search:
            needle = search.strip().lower()
            users = [
                u
                for u in users
                if needle in str(u.get("email", "")).lower() or needle in str(u.get("display_name", "")).lower()
            ]
        return sorted(users, key=lambda u: str(u.get("email", "")))

    def list_archived(self, actor: Caller) -> list[dict[str, Any]]:
        ensure_admin(actor)
        return [{"id": s.id, **(s.data or {})} for s in self.store.query(Collections.DELETED_USERS)]

    def archive_user(self, actor: Caller, user_id: str) -> None:
        ensure_admin(actor)
        user_id = ensure_identifier(user_id, "user id")

        def body(txn: Transaction) -> None:
            snapshot = txn.get(Collections.USERS, user_id)
            if not snapshot.exists:
                raise DocumentNotFound(f"User {user_id} not found")
            archived = {**(snapshot.data or {}), "deleted_at": SERVER_TIMESTAMP, "deleted_by": actor.email}
            txn.set(Collections.DELETED_USERS, user_id, archived)
            txn.delete(Collections.USERS, user_id)
            record_audit(txn, actor, AuditAction.ARCHIVE_USER, user_id, "user", {"by": actor.email})

        self.store.run_transaction(body)
        logger.info(f"User {user_id} archived by {actor.email or actor.user_id}")

    def restore_user(self, actor: Caller, user_id: str) -> None:
        ensure_admin(actor)
        user_id = ensure_identifier(user_id, "user id")

        def body(txn: Transaction) -> None:
            snapshot = txn.get(Collections.DELETED_USERS, user_id)
            if not snapshot.exists:
                raise DocumentNotFound(f"No archived user {user_id}")
            restored = {k: v for k, v in (snapshot.data or {}).items() if k not in ARCHIVE_FIELDS}
            txn.set(Collections.USERS, user_id, restored)
            txn.delete(Collections.DELETED_USERS, user_id)
            record_audit(txn, actor, AuditAction.RESTORE_USER, user_id, "user", {"restored_by": actor.email})

        self.store.run_transaction(body)
        logger.info(f"User {user_id} restored by {actor.email or actor.user_id}")
