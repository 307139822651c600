"""
Pydantic schemas for notices, notifications and the mess menu.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from hostel.services.mess_menu import MenuItem


class NoticeCreate(BaseModel):
    message: str = Field(..., min_length=1)


class NotificationCreate(BaseModel):
    """A broadcast when ``recipient_id`` is empty, otherwise a direct message."""

    message: str = Field(..., min_length=1)
    title: str = ""
    recipient_id: str | None = None


class MenuUpdate(BaseModel):
    """Weekly menu keyed by weekday, then by meal."""

    menu: dict[str, dict[str, MenuItem]]


class MealRatingCreate(BaseModel):
    day: str
    meal: str
    rating: str


class CountResponse(BaseModel):
    count: int
