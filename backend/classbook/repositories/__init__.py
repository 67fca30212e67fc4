from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .class_repository import ClassRepository
from .factory import RepositoryFactory
from .webhook_event_repository import WebhookEventRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "ClassRepository",
    "RepositoryFactory",
    "WebhookEventRepository",
]
