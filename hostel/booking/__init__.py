"""Room booking: the contention-safe arbitrator plus admin transitions."""

from .arbitrator import BookingArbitrator, BookingResult
from .transitions import ALLOWED_FROM, BookingTransitions, check_transition
from .views import BookingViews

__all__ = [
    "ALLOWED_FROM",
    "BookingArbitrator",
    "BookingResult",
    "BookingTransitions",
    "BookingViews",
    "check_transition",
]
