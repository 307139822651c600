"""
Pydantic schemas for profile and user administration endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    """Editable profile fields; omitted fields are left alone."""

    display_name: str | None = None
    phone: str | None = None
    photo_url: str | None = None
    student_id: str | None = None


class RoleUpdate(BaseModel):
    role: str = Field(..., min_length=1)
