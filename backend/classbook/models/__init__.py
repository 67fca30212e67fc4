"""SQLAlchemy models; importing this package registers every mapper."""

from .booking import Booking, BookingStatus, PaymentType
from .group_class import GroupClass
from .webhook_event import WebhookEvent

__all__ = [
    "Booking",
    "BookingStatus",
    "GroupClass",
    "PaymentType",
    "WebhookEvent",
]
