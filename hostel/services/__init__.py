"""CRUD services around the booking core."""

from .mess_menu import MessMenuService
from .notices import NoticeService
from .notifications import NotificationService
from .profiles import ProfileService
from .student_requests import RequestService

__all__ = [
    "MessMenuService",
    "NoticeService",
    "NotificationService",
    "ProfileService",
    "RequestService",
]
