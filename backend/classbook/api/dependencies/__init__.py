# backend/classbook/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_admin_username_optional, require_admin
from .database import get_db
from .services import (
    get_booking_service,
    get_class_service,
    get_notification_service,
    get_payment_gateway,
    get_webhook_service,
)

__all__ = [
    # Auth
    "get_admin_username_optional",
    "require_admin",
    # Database
    "get_db",
    # Services
    "get_booking_service",
    "get_class_service",
    "get_notification_service",
    "get_payment_gateway",
    "get_webhook_service",
]
