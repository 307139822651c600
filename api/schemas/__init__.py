"""
Pydantic schemas for the Hostel API.

Re-exports all schemas for convenient importing.
"""

from __future__ import annotations

from .bookings import (
    BookingCreate,
    BookingListResponse,
    BookingResultResponse,
    RoomResponse,
    VacateRequest,
)
from .content import (
    CountResponse,
    MealRatingCreate,
    MenuUpdate,
    NoticeCreate,
    NotificationCreate,
)
from .requests import (
    ComplaintCreate,
    CreateRequestResponse,
    OutpassCreate,
    StatusUpdate,
)
from .users import ProfileUpdate, RoleUpdate

__all__ = [
    # Bookings
    "BookingCreate",
    "BookingListResponse",
    "BookingResultResponse",
    "RoomResponse",
    "VacateRequest",
    # Content
    "CountResponse",
    "MealRatingCreate",
    "MenuUpdate",
    "NoticeCreate",
    "NotificationCreate",
    # Requests
    "ComplaintCreate",
    "CreateRequestResponse",
    "OutpassCreate",
    "StatusUpdate",
    # Users
    "ProfileUpdate",
    "RoleUpdate",
]
