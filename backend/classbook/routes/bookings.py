# backend/classbook/routes/bookings.py
"""
Booking endpoints: quote, confirm, cancel and booking lookups.

The customer-facing flow is
1. POST /api/create-payment-intent  -> client secret for the payment form
2. (customer pays with the payment provider)
3. POST /api/confirm-booking        -> booking is persisted, spots are taken
4. POST /api/cancel-booking         -> refund of the amount paid, spots released
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends

from ..api.dependencies import get_booking_service, require_admin
from ..core.exceptions import DomainException
from ..errors import handle_domain_exception
from ..schemas.booking import (
    BookingCancelRequest,
    BookingCancelResponse,
    BookingConfirmRequest,
    BookingEnvelope,
    BookingResponse,
    PaymentIntentCreate,
    PaymentIntentResponse,
    RefundSummary,
)
from ..services.booking_service import BookingService
from ..services.payment_amounts import from_minor_units

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["bookings"])


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    payload: PaymentIntentCreate,
    booking_service: BookingService = Depends(get_booking_service),
) -> PaymentIntentResponse:
    """Quote a booking and open a payment for the amount due now."""
    try:
        quote = await asyncio.to_thread(
            booking_service.create_payment_intent,
            payload.class_id,
            payload.participants,
            payload.payment_type,
            str(payload.email),
            payload.name,
            payload.phone,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return PaymentIntentResponse(
        client_secret=quote.client_secret,
        payment_intent_id=quote.payment_intent_id,
        payment_type=quote.amounts.payment_type,
        total_price=quote.amounts.total_price,
        paid_amount=quote.amounts.paid_amount,
        remaining_amount=quote.amounts.remaining_amount,
        amount_cents=quote.amounts.amount_cents,
    )


@router.post("/confirm-booking", response_model=BookingEnvelope)
async def confirm_booking(
    payload: BookingConfirmRequest,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingEnvelope:
    """Confirm a paid booking. Repeating the call returns the same booking."""
    try:
        result = await asyncio.to_thread(
            booking_service.confirm_booking,
            payload.payment_intent_id,
            class_id=payload.class_id,
            participants=payload.participants,
            payment_type=payload.payment_type,
            name=payload.name,
            email=str(payload.email) if payload.email else None,
            phone=payload.phone,
        )
    except DomainException as e:
        handle_domain_exception(e)

    message = (
        "Booking confirmed successfully" if result.created else "Booking already confirmed"
    )
    return BookingEnvelope(booking=BookingResponse.model_validate(result.booking), message=message)


@router.post("/cancel-booking", response_model=BookingCancelResponse)
async def cancel_booking(
    payload: BookingCancelRequest,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCancelResponse:
    """Cancel a booking; the email must match the one used to book."""
    try:
        result = await asyncio.to_thread(
            booking_service.cancel_booking, payload.booking_id, payload.email
        )
    except DomainException as e:
        handle_domain_exception(e)

    refund = result.refund
    return BookingCancelResponse(
        message="Booking cancelled and refund processed",
        booking=BookingResponse.model_validate(result.booking),
        refund=RefundSummary(
            id=refund.id if refund else None,
            amount=from_minor_units(refund.amount) if refund else result.booking.paid_amount,
            status=refund.status if refund else None,
        ),
    )


@router.get("/bookings", response_model=List[BookingResponse])
async def list_bookings(
    admin: str = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    """All bookings, newest first (admin)."""
    bookings = await asyncio.to_thread(booking_service.list_bookings)
    return [BookingResponse.model_validate(booking) for booking in bookings]


@router.get("/bookings/email/{email}", response_model=List[BookingResponse])
async def list_bookings_for_email(
    email: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    try:
        bookings = await asyncio.to_thread(booking_service.list_bookings_for_email, email)
    except DomainException as e:
        handle_domain_exception(e)
    return [BookingResponse.model_validate(booking) for booking in bookings]
