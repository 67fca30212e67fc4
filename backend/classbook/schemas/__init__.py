# backend/classbook/schemas/__init__.py
"""Pydantic request/response schemas."""

from .admin import AdminActionResponse, AdminLoginRequest, AdminSessionStatus
from .base import CamelModel, LocalizedText, Money, StrictRequestModel
from .booking import (
    BookingCancelRequest,
    BookingCancelResponse,
    BookingConfirmRequest,
    BookingEnvelope,
    BookingResponse,
    PaymentIntentCreate,
    PaymentIntentResponse,
    RefundSummary,
)
from .group_class import (
    GroupClassCreate,
    GroupClassEnvelope,
    GroupClassResponse,
    GroupClassUpdate,
)
from .public import FrontendConfig, HealthResponse, WebhookAck

__all__ = [
    "AdminActionResponse",
    "AdminLoginRequest",
    "AdminSessionStatus",
    "BookingCancelRequest",
    "BookingCancelResponse",
    "BookingConfirmRequest",
    "BookingEnvelope",
    "BookingResponse",
    "CamelModel",
    "FrontendConfig",
    "GroupClassCreate",
    "GroupClassEnvelope",
    "GroupClassResponse",
    "GroupClassUpdate",
    "HealthResponse",
    "LocalizedText",
    "Money",
    "PaymentIntentCreate",
    "PaymentIntentResponse",
    "RefundSummary",
    "StrictRequestModel",
    "WebhookAck",
]
