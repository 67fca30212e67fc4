# backend/classbook/schemas/booking.py
"""
Booking schemas: quote, confirm and cancel requests plus booking responses.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from ..core.constants import MAX_NAME_LENGTH, MAX_PARTICIPANTS_PER_BOOKING, MAX_PHONE_LENGTH
from .base import CamelModel, LocalizedText, Money, StrictRequestModel

PaymentTypeLiteral = Literal["full", "partial"]


class PaymentIntentCreate(StrictRequestModel):
    """Quote request: what the customer wants to book and how they pay."""

    class_id: str = Field(..., min_length=1)
    participants: int = Field(..., ge=1, le=MAX_PARTICIPANTS_PER_BOOKING)
    payment_type: PaymentTypeLiteral = "full"
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    phone: Optional[str] = Field(default=None, max_length=MAX_PHONE_LENGTH)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class PaymentIntentResponse(CamelModel):
    client_secret: Optional[str] = None
    payment_intent_id: str
    payment_type: PaymentTypeLiteral
    total_price: Money
    paid_amount: Money
    remaining_amount: Money
    amount_cents: int


class BookingConfirmRequest(StrictRequestModel):
    """
    Confirm request.

    Only the payment intent id is required; the remaining fields are checked
    against what was recorded on the payment at quote time.
    """

    payment_intent_id: str = Field(..., min_length=1)
    class_id: Optional[str] = None
    participants: Optional[int] = Field(default=None, ge=1, le=MAX_PARTICIPANTS_PER_BOOKING)
    payment_type: Optional[PaymentTypeLiteral] = None
    name: Optional[str] = Field(default=None, max_length=MAX_NAME_LENGTH)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=MAX_PHONE_LENGTH)


class BookingCancelRequest(StrictRequestModel):
    booking_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)


class BookingResponse(CamelModel):
    id: str
    class_id: Optional[str] = None
    class_title: LocalizedText = Field(alias="className")
    customer_name: str
    email: str
    phone: str
    participants: int
    payment_type: PaymentTypeLiteral
    total_price: Money
    paid_amount: Money
    remaining_amount: Money
    status: str
    payment_intent_id: str
    refund_id: Optional[str] = None
    refund_status: Optional[str] = None
    needs_capacity_reconciliation: bool = False
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class BookingEnvelope(CamelModel):
    success: bool = True
    booking: BookingResponse
    message: str


class RefundSummary(CamelModel):
    id: Optional[str] = None
    amount: Money
    status: Optional[str] = None


class BookingCancelResponse(CamelModel):
    success: bool = True
    message: str
    booking: BookingResponse
    refund: RefundSummary
