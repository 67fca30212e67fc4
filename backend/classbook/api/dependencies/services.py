# backend/classbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.booking_service import BookingService
from ...services.class_service import ClassService
from ...services.notification_service import NotificationService
from ...services.payment_gateway import PaymentGateway, StripePaymentGateway
from ...services.webhook_service import WebhookService
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_payment_gateway_singleton() -> StripePaymentGateway:
    """Stripe client configuration is process-wide, so one gateway is shared."""
    return StripePaymentGateway()


def get_payment_gateway() -> PaymentGateway:
    return get_payment_gateway_singleton()


@lru_cache(maxsize=1)
def get_notification_service_singleton() -> NotificationService:
    return NotificationService()


def get_notification_service() -> NotificationService:
    """Get notification service instance for dependency injection."""
    return get_notification_service_singleton()


def get_class_service(db: Session = Depends(get_db)) -> ClassService:
    return ClassService(db)


def get_booking_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notification_service: NotificationService = Depends(get_notification_service),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        gateway: Payment gateway adapter
        notification_service: Best-effort customer notifications

    Returns:
        BookingService instance
    """
    return BookingService(db, gateway, notification_service)


def get_webhook_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> WebhookService:
    return WebhookService(db, gateway)
