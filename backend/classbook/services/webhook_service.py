# backend/classbook/services/webhook_service.py
"""
Webhook Service

Verifies and processes payment gateway events. Every verified event is
recorded in the webhook event ledger first, so redelivered events are
acknowledged without being processed twice. Events whose processing failed
are processed again when the gateway redelivers them.
"""

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException, ValidationException
from ..models.webhook_event import WebhookEvent
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)

STATUS_PROCESSED = "processed"
STATUS_IGNORED = "ignored"
STATUS_FAILED = "failed"


@dataclass
class WebhookOutcome:
    event_id: str
    event_type: str
    status: str
    duplicate: bool = False


class WebhookService(BaseService):
    """Intake for signed gateway events."""

    def __init__(self, db: Session, gateway: PaymentGateway):
        super().__init__(db)
        self.gateway = gateway
        self.event_repository = RepositoryFactory.create_webhook_event_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self._handlers: Dict[str, Callable[[Dict[str, Any]], str]] = {
            "payment_intent.succeeded": self._handle_payment_succeeded,
            "payment_intent.payment_failed": self._handle_payment_failed,
            "payment_intent.canceled": self._handle_payment_canceled,
            "charge.refunded": self._handle_charge_refunded,
        }

    @BaseService.measure_operation("handle_webhook")
    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> WebhookOutcome:
        """
        Verify, record and dispatch one webhook delivery.

        Raises:
            ValidationException: Missing signature header or malformed event
            UpstreamPaymentException: Signature verification failed
        """
        if not signature:
            raise ValidationException("Missing Stripe-Signature header", code="MISSING_SIGNATURE")

        event = self._validate_event(self.gateway.construct_webhook_event(payload, signature))
        event_id = event["id"]
        event_type = event["type"]
        data_object = _data_object(event)

        record = self._record_event(event_id, event_type, data_object, event)
        if record is None:
            self.logger.info(
                "webhook_duplicate_ignored",
                extra={"event_id": event_id, "event_type": event_type},
            )
            return WebhookOutcome(event_id, event_type, status="duplicate", duplicate=True)

        handler = self._handlers.get(event_type)
        if handler is None:
            self.logger.info(f"Unhandled event type {event_type}")
            with self.transaction():
                self.event_repository.mark_processed(record, STATUS_IGNORED)
            return WebhookOutcome(event_id, event_type, status=STATUS_IGNORED)

        try:
            with self.transaction():
                handler(data_object)
                self.event_repository.mark_processed(record, STATUS_PROCESSED)
        except Exception as e:
            self.logger.error(f"Webhook {event_id} ({event_type}) failed: {str(e)}")
            with self.transaction():
                record = self.event_repository.get_by_event_id(event_id)
                if record is not None:
                    self.event_repository.mark_processed(record, STATUS_FAILED, error=str(e))
            raise

        return WebhookOutcome(event_id, event_type, status=STATUS_PROCESSED)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_event(event: Any) -> Dict[str, Any]:
        if not isinstance(event, Mapping) or not event.get("id") or not event.get("type"):
            raise ValidationException("Invalid webhook payload", code="INVALID_PAYLOAD")
        return dict(event)

    def _record_event(
        self,
        event_id: str,
        event_type: str,
        data_object: Dict[str, Any],
        event: Dict[str, Any],
    ) -> Optional[WebhookEvent]:
        """Return the ledger row to process, or None for an already handled event."""
        payment_intent_id = _payment_intent_id(event_type, data_object)
        try:
            with self.transaction():
                existing = self.event_repository.get_by_event_id(event_id)
                if existing is not None:
                    if existing.status != STATUS_FAILED:
                        return None
                    return existing
                return self.event_repository.record_received(
                    event_id=event_id,
                    event_type=event_type,
                    payment_intent_id=payment_intent_id,
                    payload=event,
                )
        except ServiceException as e:
            if isinstance(e.__cause__, IntegrityError):
                # Concurrent delivery of the same event recorded it first.
                return None
            raise

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _handle_payment_succeeded(self, intent: Dict[str, Any]) -> str:
        payment_intent_id = intent.get("id")
        booking = (
            self.booking_repository.get_by_payment_intent(payment_intent_id)
            if payment_intent_id
            else None
        )
        self.logger.info(
            "payment_succeeded",
            extra={
                "payment_intent_id": payment_intent_id,
                "booking_id": booking.id if booking else None,
            },
        )
        return STATUS_PROCESSED

    def _handle_payment_failed(self, intent: Dict[str, Any]) -> str:
        error = intent.get("last_payment_error") or {}
        self.logger.warning(
            "payment_failed",
            extra={
                "payment_intent_id": intent.get("id"),
                "failure_message": error.get("message") if isinstance(error, dict) else None,
            },
        )
        return STATUS_PROCESSED

    def _handle_payment_canceled(self, intent: Dict[str, Any]) -> str:
        self.logger.info("payment_canceled", extra={"payment_intent_id": intent.get("id")})
        return STATUS_PROCESSED

    def _handle_charge_refunded(self, charge: Dict[str, Any]) -> str:
        """Mark the refund on the matching booking as settled."""
        payment_intent_id = charge.get("payment_intent")
        if not payment_intent_id:
            return STATUS_PROCESSED

        booking = self.booking_repository.get_by_payment_intent(payment_intent_id)
        if booking is None:
            self.logger.info(
                "refund_for_unknown_booking", extra={"payment_intent_id": payment_intent_id}
            )
            return STATUS_PROCESSED

        if booking.refund_id and booking.refund_status != "succeeded":
            self.booking_repository.update(booking.id, refund_status="succeeded")
        self.logger.info(
            "refund_processed",
            extra={"payment_intent_id": payment_intent_id, "booking_id": booking.id},
        )
        return STATUS_PROCESSED


def _data_object(event: Mapping[str, Any]) -> Dict[str, Any]:
    data = event.get("data")
    data_object = data.get("object") if isinstance(data, Mapping) else None
    return dict(data_object) if isinstance(data_object, Mapping) else {}


def _payment_intent_id(event_type: str, data_object: Dict[str, Any]) -> Optional[str]:
    if event_type.startswith("payment_intent."):
        return data_object.get("id")
    intent = data_object.get("payment_intent")
    return intent if isinstance(intent, str) else None
