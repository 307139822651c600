"""
Hostel - core logic for the hostel management portal.

This package contains:
- store: document store abstraction (in-memory and PocketBase backends)
- booking: the booking arbitrator and admin booking transitions
- request_guard: the duplicate-request guard used by outpass and complaint creation
- services: notices, notifications, mess menu and user profiles
- auth_middleware / jwt_auth: request authentication for the API
"""

from hostel.booking import BookingArbitrator, BookingResult, BookingTransitions
from hostel.errors import HostelError
from hostel.models import Caller

__all__ = [
    "BookingArbitrator",
    "BookingResult",
    "BookingTransitions",
    "Caller",
    "HostelError",
]
