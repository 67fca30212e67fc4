# backend/classbook/services/booking_service.py
"""
Booking Service

Orchestrates the booking lifecycle:
- Quote: compute amounts and create a gateway authorization (nothing reserved)
- Confirm: verify the authorization, reserve capacity and persist the booking
- Cancel: refund exactly what was collected and release the reservation

A booking row exists only from confirmation onwards. Gateway calls happen
outside database transactions so no row or counter lock is held during a
network round-trip; a failed gateway call aborts the transition before any
state is written. When a confirmation cannot be completed after the customer
has paid, the payment is refunded before the error surfaces.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    MAX_PARTICIPANTS_PER_BOOKING,
    PAYMENT_INTENT_SUCCEEDED,
    PAYMENT_TYPES,
)
from ..core.exceptions import (
    CapacityExceededException,
    DomainException,
    NotFoundException,
    PaymentNotCompletedException,
    PolicyViolationException,
    RepositoryException,
    ServiceException,
    UpstreamPaymentException,
    ValidationException,
)
from ..core.timezone_utils import class_start_datetime, hours_until, utc_now
from ..models.booking import Booking, BookingStatus
from ..models.group_class import GroupClass
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .capacity_ledger import CapacityLedger
from .notification_service import NotificationService, pick_localized
from .payment_amounts import PaymentAmounts, calculate_amounts, to_minor_units
from .payment_gateway import PaymentAuthorization, PaymentGateway, RefundResult

logger = logging.getLogger(__name__)

# Keys written into the authorization's metadata at quote time
META_CLASS_ID = "class_id"
META_PARTICIPANTS = "participants"
META_PAYMENT_TYPE = "payment_type"
META_CUSTOMER_NAME = "customer_name"
META_CUSTOMER_EMAIL = "customer_email"
META_CUSTOMER_PHONE = "customer_phone"


def normalize_email(email: Optional[str]) -> str:
    """Emails are matched case-insensitively, ignoring surrounding whitespace."""
    return (email or "").strip().lower()


@dataclass
class PaymentQuote:
    client_secret: Optional[str]
    payment_intent_id: str
    amounts: PaymentAmounts


@dataclass
class ConfirmResult:
    booking: Booking
    created: bool


@dataclass
class CancelResult:
    booking: Booking
    refund: Optional[RefundResult]
    capacity_reconciliation_needed: bool = False


@dataclass
class _BookingDetails:
    class_id: str
    participants: int
    payment_type: str
    customer_name: str
    email: str
    phone: str


class BookingService(BaseService):
    """Quote, confirm and cancel bookings against the capacity ledger."""

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway,
        notification_service: Optional[NotificationService] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(db)
        self.gateway = gateway
        self.notification_service = notification_service
        self.now_fn = now_fn or utc_now
        self.class_repository = RepositoryFactory.create_class_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.ledger = CapacityLedger(db)

    # ------------------------------------------------------------------
    # Quote
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_payment_intent")
    def create_payment_intent(
        self,
        class_id: str,
        participants: int,
        payment_type: str,
        email: str,
        name: str,
        phone: Optional[str] = None,
    ) -> PaymentQuote:
        """
        Quote a booking and create the gateway authorization for the amount due now.

        The availability check is advisory only; the authoritative capacity
        check happens when the booking is confirmed.

        Raises:
            ValidationException: Bad participant count or payment type, or an
                amount due below the card minimum
            NotFoundException: Unknown class
            CapacityExceededException: Not enough spots right now
            UpstreamPaymentException: Gateway failure
        """
        self._validate_participants(participants)
        self._validate_payment_type(payment_type)

        group_class = self._get_class_or_404(class_id)
        available = group_class.available_spots
        if participants > available:
            raise CapacityExceededException(class_id, requested=participants, available=available)

        amounts = calculate_amounts(
            group_class.price, participants, payment_type, settings.deposit_rate
        )
        if amounts.amount_cents < settings.stripe_minimum_charge_cents:
            raise ValidationException(
                "Amount due is below the minimum card payment",
                code="AMOUNT_BELOW_MINIMUM",
                details={
                    "amount_cents": amounts.amount_cents,
                    "minimum_cents": settings.stripe_minimum_charge_cents,
                },
            )
        customer_email = normalize_email(email)

        metadata: Dict[str, str] = {
            META_CLASS_ID: group_class.id,
            META_PARTICIPANTS: str(participants),
            META_PAYMENT_TYPE: payment_type,
            META_CUSTOMER_NAME: (name or "").strip(),
            META_CUSTOMER_EMAIL: customer_email,
            META_CUSTOMER_PHONE: (phone or "").strip(),
            "total_price": str(amounts.total_price),
            "paid_amount": str(amounts.paid_amount),
            "remaining_amount": str(amounts.remaining_amount),
        }
        title = pick_localized(group_class.title, settings.default_locales[0])
        deposit_note = " (deposit)" if payment_type == "partial" else ""

        authorization = self.gateway.create_authorization(
            amount_cents=amounts.amount_cents,
            metadata=metadata,
            receipt_email=customer_email or None,
            description=f"Booking: {title} for {participants}{deposit_note}",
        )

        self.logger.info(
            "booking_quoted",
            extra={
                "class_id": class_id,
                "participants": participants,
                "payment_type": payment_type,
                "payment_intent_id": authorization.id,
                "amount_cents": amounts.amount_cents,
            },
        )
        return PaymentQuote(
            client_secret=authorization.client_secret,
            payment_intent_id=authorization.id,
            amounts=amounts,
        )

    # ------------------------------------------------------------------
    # Confirm
    # ------------------------------------------------------------------

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(
        self,
        payment_intent_id: str,
        *,
        class_id: Optional[str] = None,
        participants: Optional[int] = None,
        payment_type: Optional[str] = None,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> ConfirmResult:
        """
        Turn a succeeded authorization into a confirmed booking.

        Idempotent on ``payment_intent_id``: confirming the same payment twice
        returns the existing booking. The authorization metadata written at
        quote time is authoritative for class, participants and payment type;
        values in the request must agree with it.

        Raises:
            ValidationException: Missing or conflicting booking details
            PaymentNotCompletedException: Authorization has not succeeded
            NotFoundException: Class no longer exists (payment refunded)
            CapacityExceededException: Class is full (payment refunded)
            UpstreamPaymentException: Gateway failure or amount mismatch
        """
        payment_intent_id = (payment_intent_id or "").strip()
        if not payment_intent_id:
            raise ValidationException("Payment intent id is required")

        existing = self.booking_repository.get_by_payment_intent(payment_intent_id)
        if existing is not None:
            self.logger.info(
                "booking_confirm_replayed",
                extra={"booking_id": existing.id, "payment_intent_id": payment_intent_id},
            )
            return ConfirmResult(booking=existing, created=False)

        authorization = self.gateway.retrieve_authorization(payment_intent_id)
        if authorization.status != PAYMENT_INTENT_SUCCEEDED:
            raise PaymentNotCompletedException(payment_intent_id, authorization.status)

        try:
            details = self._resolve_booking_details(
                authorization,
                class_id=class_id,
                participants=participants,
                payment_type=payment_type,
                name=name,
                email=email,
                phone=phone,
            )
        except ValidationException as e:
            # The payment has been taken; it stays for manual reconciliation.
            self.logger.warning(
                f"Paid confirmation rejected for {payment_intent_id}: {e.message}",
                extra={
                    "payment_intent_id": payment_intent_id,
                    "amount_cents": authorization.amount,
                    "error_code": e.code,
                    "error_details": e.details,
                },
            )
            raise

        group_class = self.class_repository.get_by_id(details.class_id)
        if group_class is None:
            self._refund_failed_confirmation(payment_intent_id, "class_not_found")
            raise NotFoundException(
                "Class not found. Payment refunded.", details={"class_id": details.class_id}
            )

        amounts = calculate_amounts(
            group_class.price, details.participants, details.payment_type, settings.deposit_rate
        )
        if authorization.amount != amounts.amount_cents:
            self._refund_failed_confirmation(payment_intent_id, "amount_mismatch")
            raise UpstreamPaymentException(
                "Payment amount does not match the booking. Payment refunded.",
                code="PAYMENT_AMOUNT_MISMATCH",
                details={
                    "expected_amount": amounts.amount_cents,
                    "authorized_amount": authorization.amount,
                },
            )

        try:
            with self.transaction():
                self.ledger.reserve(group_class.id, details.participants)
                booking = self.booking_repository.create(
                    class_id=group_class.id,
                    class_title=dict(group_class.title or {}),
                    customer_name=details.customer_name,
                    email=details.email,
                    phone=details.phone,
                    participants=details.participants,
                    payment_type=amounts.payment_type,
                    total_price=amounts.total_price,
                    paid_amount=amounts.paid_amount,
                    remaining_amount=amounts.remaining_amount,
                    status=BookingStatus.CONFIRMED.value,
                    payment_intent_id=payment_intent_id,
                )
        except (CapacityExceededException, NotFoundException):
            # A concurrent confirm of the same payment may have taken the spots.
            existing = self._confirmed_elsewhere(payment_intent_id)
            if existing is not None:
                return ConfirmResult(booking=existing, created=False)
            self._refund_failed_confirmation(payment_intent_id, "capacity_unavailable")
            raise
        except ServiceException as e:
            if isinstance(e.__cause__, IntegrityError):
                # A concurrent confirm of the same payment won the insert.
                existing = self._confirmed_elsewhere(payment_intent_id)
                if existing is not None:
                    return ConfirmResult(booking=existing, created=False)
            self._refund_failed_confirmation(payment_intent_id, "persist_failed")
            raise
        except RepositoryException:
            self._refund_failed_confirmation(payment_intent_id, "persist_failed")
            raise

        self.logger.info(
            "booking_confirmed",
            extra={
                "booking_id": booking.id,
                "class_id": group_class.id,
                "participants": booking.participants,
                "payment_type": booking.payment_type,
                "payment_intent_id": payment_intent_id,
            },
        )
        self._notify_confirmation(booking, group_class)
        return ConfirmResult(booking=booking, created=True)

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, email: str) -> CancelResult:
        """
        Cancel a booking on behalf of the customer who made it.

        Phase 1 validates ownership, status and the cancellation window.
        Phase 2 refunds exactly the amount collected (no transaction open).
        Phase 3 records the cancellation and releases the reservation together.

        Raises:
            NotFoundException: Unknown booking, or email does not match
            PolicyViolationException: Already cancelled, or too close to class start
            UpstreamPaymentException: Refund failed; the booking stays confirmed
        """
        # ========== PHASE 1: validate ==========
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None or normalize_email(booking.email) != normalize_email(email):
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})

        if booking.is_cancelled:
            raise PolicyViolationException(
                "Booking already cancelled",
                code="BOOKING_ALREADY_CANCELLED",
                details={"booking_id": booking_id},
            )

        group_class = self.class_repository.get_by_id(booking.class_id) if booking.class_id else None
        if group_class is None:
            raise NotFoundException("Class not found", details={"class_id": booking.class_id})

        self._check_cancellation_window(group_class)

        # ========== PHASE 2: refund (no transaction) ==========
        refund: Optional[RefundResult] = None
        refund_cents = to_minor_units(booking.paid_amount)
        if refund_cents > 0:
            refund = self.gateway.refund(
                booking.payment_intent_id,
                amount_cents=refund_cents,
                idempotency_key=f"cancel-{booking.id}",
                reason="customer_cancellation",
            )

        # ========== PHASE 3: record cancellation + release ==========
        reconciliation_needed = self._finalize_cancellation(booking, group_class, refund)

        self.booking_repository.refresh(booking)
        self.logger.info(
            "booking_cancelled",
            extra={
                "booking_id": booking.id,
                "class_id": group_class.id,
                "participants": booking.participants,
                "refund_id": refund.id if refund else None,
                "refund_amount": refund_cents,
            },
        )
        self._notify_cancellation(booking)
        return CancelResult(
            booking=booking,
            refund=refund,
            capacity_reconciliation_needed=reconciliation_needed,
        )

    def _finalize_cancellation(
        self, booking: Booking, group_class: GroupClass, refund: Optional[RefundResult]
    ) -> bool:
        """Record the cancellation and release its spots; returns the reconciliation flag."""
        cancelled_at = self.now_fn()
        refund_id = refund.id if refund else None
        refund_status = refund.status if refund else None

        try:
            with self.transaction():
                if not self.booking_repository.mark_cancelled(
                    booking.id,
                    cancelled_at=cancelled_at,
                    refund_id=refund_id,
                    refund_status=refund_status,
                ):
                    # Lost a race with another cancellation; it released the spots.
                    raise PolicyViolationException(
                        "Booking already cancelled",
                        code="BOOKING_ALREADY_CANCELLED",
                        details={"booking_id": booking.id},
                    )
                release = self.ledger.release(group_class.id, booking.participants)
                if release.clamped:
                    self.booking_repository.flag_for_reconciliation(booking.id)
                return release.clamped
        except (ServiceException, RepositoryException) as e:
            # The refund already went through: the cancellation must still be recorded.
            self.logger.error(
                f"Capacity release failed for booking {booking.id}, flagging for reconciliation: {str(e)}"
            )
            with self.transaction():
                if self.booking_repository.mark_cancelled(
                    booking.id,
                    cancelled_at=cancelled_at,
                    refund_id=refund_id,
                    refund_status=refund_status,
                ):
                    self.booking_repository.flag_for_reconciliation(booking.id)
            return True

    def _check_cancellation_window(self, group_class: GroupClass) -> None:
        start = class_start_datetime(group_class.class_date, group_class.start_time)
        window = settings.cancellation_window_hours
        remaining_hours = hours_until(start, self.now_fn())
        if remaining_hours < window:
            raise PolicyViolationException(
                f"Cannot cancel less than {window} hours before the class",
                code="CANCELLATION_WINDOW_CLOSED",
                details={
                    "hours_until_class": round(remaining_hours, 2),
                    "required_hours": window,
                },
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @BaseService.measure_operation("list_bookings")
    def list_bookings(self) -> List[Booking]:
        return self.booking_repository.list_recent()

    @BaseService.measure_operation("list_bookings_for_email")
    def list_bookings_for_email(self, email: str) -> List[Booking]:
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationException("Email is required")
        return self.booking_repository.list_by_email(normalized)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_class_or_404(self, class_id: str) -> GroupClass:
        group_class = self.class_repository.get_by_id(class_id)
        if group_class is None:
            raise NotFoundException("Class not found", details={"class_id": class_id})
        return group_class

    @staticmethod
    def _validate_participants(participants: int) -> None:
        if (
            not isinstance(participants, int)
            or isinstance(participants, bool)
            or participants < 1
            or participants > MAX_PARTICIPANTS_PER_BOOKING
        ):
            raise ValidationException(
                f"Participants must be between 1 and {MAX_PARTICIPANTS_PER_BOOKING}",
                details={"participants": participants},
            )

    @staticmethod
    def _validate_payment_type(payment_type: str) -> None:
        if payment_type not in PAYMENT_TYPES:
            raise ValidationException(
                "Payment type must be 'full' or 'partial'",
                details={"payment_type": payment_type},
            )

    def _resolve_booking_details(
        self,
        authorization: PaymentAuthorization,
        *,
        class_id: Optional[str],
        participants: Optional[int],
        payment_type: Optional[str],
        name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
    ) -> _BookingDetails:
        metadata = authorization.metadata or {}

        meta_participants: Optional[int] = None
        raw_participants = metadata.get(META_PARTICIPANTS)
        if raw_participants:
            try:
                meta_participants = int(raw_participants)
            except ValueError:
                meta_participants = None

        resolved_class_id = metadata.get(META_CLASS_ID) or class_id
        resolved_participants = meta_participants if meta_participants is not None else participants
        resolved_payment_type = metadata.get(META_PAYMENT_TYPE) or payment_type or "full"

        mismatched = [
            field
            for field, requested, authorized in (
                ("classId", class_id, metadata.get(META_CLASS_ID)),
                ("participants", participants, meta_participants),
                ("paymentType", payment_type, metadata.get(META_PAYMENT_TYPE)),
            )
            if requested is not None and authorized is not None and requested != authorized
        ]
        if mismatched:
            raise ValidationException(
                "Booking details do not match the payment",
                code="PAYMENT_DETAILS_MISMATCH",
                details={"fields": mismatched},
            )

        if not resolved_class_id or resolved_participants is None:
            raise ValidationException(
                "Class and participants are required to confirm a booking",
                details={"payment_intent_id": authorization.id},
            )
        self._validate_participants(resolved_participants)
        self._validate_payment_type(resolved_payment_type)

        customer_email = normalize_email(email) or normalize_email(metadata.get(META_CUSTOMER_EMAIL))
        customer_name = (name or metadata.get(META_CUSTOMER_NAME) or "").strip()
        if not customer_email or not customer_name:
            raise ValidationException("Customer name and email are required")

        return _BookingDetails(
            class_id=resolved_class_id,
            participants=resolved_participants,
            payment_type=resolved_payment_type,
            customer_name=customer_name,
            email=customer_email,
            phone=(phone or metadata.get(META_CUSTOMER_PHONE) or "").strip(),
        )

    def _confirmed_elsewhere(self, payment_intent_id: str) -> Optional[Booking]:
        booking = self.booking_repository.get_by_payment_intent(payment_intent_id)
        if booking is not None:
            self.logger.info(
                "booking_confirm_raced",
                extra={"booking_id": booking.id, "payment_intent_id": payment_intent_id},
            )
        return booking

    def _refund_failed_confirmation(self, payment_intent_id: str, reason: str) -> None:
        """Give the customer their money back when a paid confirmation cannot complete."""
        try:
            self.gateway.refund(
                payment_intent_id,
                idempotency_key=f"confirm-failed-{payment_intent_id}",
                reason=reason,
            )
        except DomainException as e:
            self.logger.error(
                f"Compensating refund failed for {payment_intent_id} ({reason}): {e.message}"
            )
            return
        self.logger.warning(
            "confirmation_refunded",
            extra={"payment_intent_id": payment_intent_id, "reason": reason},
        )

    def _notify_confirmation(self, booking: Booking, group_class: GroupClass) -> None:
        if self.notification_service is None:
            return
        try:
            self.notification_service.send_booking_confirmation(booking, group_class)
        except Exception as e:
            self.logger.error(f"Confirmation notification failed for {booking.id}: {str(e)}")

    def _notify_cancellation(self, booking: Booking) -> None:
        if self.notification_service is None:
            return
        try:
            self.notification_service.send_booking_cancellation(booking)
        except Exception as e:
            self.logger.error(f"Cancellation notification failed for {booking.id}: {str(e)}")
