# backend/classbook/repositories/factory.py
"""
Repository Factory

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .class_repository import ClassRepository
    from .webhook_event_repository import WebhookEventRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_class_repository(db: Session) -> "ClassRepository":
        """Create repository for classes and their capacity counters."""
        from .class_repository import ClassRepository

        return ClassRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_webhook_event_repository(db: Session) -> "WebhookEventRepository":
        """Create repository for the webhook event ledger."""
        from .webhook_event_repository import WebhookEventRepository

        return WebhookEventRepository(db)
