# backend/classbook/services/payment_gateway.py
"""
Stripe payment gateway adapter.

Wraps the handful of Stripe API calls the booking lifecycle needs:
- PaymentIntent creation (the authorization handed to the client at quote time)
- PaymentIntent retrieval (verification at confirm time)
- Refunds (compensation on failed confirms, cancellations)
- Webhook signature verification

Every Stripe failure is logged and re-raised as UpstreamPaymentException so the
lifecycle can abort the transition without partial state changes.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Mapping, Optional, Protocol

import stripe

from ..core.config import settings
from ..core.exceptions import UpstreamPaymentException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


@dataclass
class PaymentAuthorization:
    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class RefundResult:
    id: str
    status: str
    amount: int


class PaymentGateway(Protocol):
    def create_authorization(
        self,
        *,
        amount_cents: int,
        metadata: Mapping[str, str],
        receipt_email: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PaymentAuthorization: ...

    def retrieve_authorization(self, payment_intent_id: str) -> PaymentAuthorization: ...

    def refund(
        self,
        payment_intent_id: str,
        *,
        amount_cents: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> RefundResult: ...

    def construct_webhook_event(self, payload: bytes, signature: str) -> Dict[str, Any]: ...


def _plain_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return dict(to_dict())
    if isinstance(obj, Mapping):
        return dict(obj)
    return {}


def _authorization_from_intent(intent: Any) -> PaymentAuthorization:
    return PaymentAuthorization(
        id=intent.id,
        status=intent.status,
        amount=int(intent.amount or 0),
        currency=str(getattr(intent, "currency", "") or settings.stripe_currency),
        client_secret=getattr(intent, "client_secret", None),
        metadata={k: str(v) for k, v in _plain_dict(getattr(intent, "metadata", None)).items()},
    )


class StripePaymentGateway:
    """Payment gateway backed by the Stripe API."""

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        if api_key is None and settings.stripe_secret_key is not None:
            api_key = settings.stripe_secret_key.get_secret_value()
        if webhook_secret is None and settings.stripe_webhook_secret is not None:
            webhook_secret = settings.stripe_webhook_secret.get_secret_value()

        self.webhook_secret = webhook_secret or None
        self.stripe_configured = False
        if api_key:
            stripe.api_key = api_key
            stripe.max_network_retries = settings.stripe_max_network_retries
            try:
                stripe.default_http_client = stripe.http_client.RequestsClient(
                    timeout=settings.stripe_timeout_seconds
                )
            except AttributeError:
                # Non-fatal if client customization isn't available
                self.logger.debug("Stripe HTTP client customization unavailable")
            self.stripe_configured = True
            self.logger.info("Stripe gateway configured successfully")
        else:
            self.logger.warning("Stripe secret key not configured - payment calls will fail")

    def _check_stripe_configured(self) -> None:
        if not self.stripe_configured:
            raise UpstreamPaymentException(
                "Payment gateway not configured. Please check STRIPE_SECRET_KEY.",
                code="PAYMENT_GATEWAY_NOT_CONFIGURED",
            )

    def create_authorization(
        self,
        *,
        amount_cents: int,
        metadata: Mapping[str, str],
        receipt_email: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PaymentAuthorization:
        self._check_stripe_configured()
        kwargs: Dict[str, Any] = {
            "amount": amount_cents,
            "currency": settings.stripe_currency,
            "metadata": dict(metadata),
        }
        if receipt_email:
            kwargs["receipt_email"] = receipt_email
        if description:
            kwargs["description"] = description

        try:
            intent = stripe.PaymentIntent.create(**kwargs)
        except stripe.StripeError as e:
            prometheus_metrics.record_gateway_call("create_authorization", "error")
            self.logger.error(f"Stripe error creating payment intent: {str(e)}")
            raise UpstreamPaymentException(f"Failed to create payment: {e.user_message or e}") from e

        prometheus_metrics.record_gateway_call("create_authorization", "success")
        self.logger.info(
            "payment_intent_created",
            extra={"payment_intent_id": intent.id, "amount": amount_cents},
        )
        return _authorization_from_intent(intent)

    def retrieve_authorization(self, payment_intent_id: str) -> PaymentAuthorization:
        self._check_stripe_configured()
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.InvalidRequestError as e:
            prometheus_metrics.record_gateway_call("retrieve_authorization", "invalid")
            self.logger.warning(f"Unknown payment intent {payment_intent_id}: {str(e)}")
            raise UpstreamPaymentException(
                "Payment not found",
                code="PAYMENT_NOT_FOUND",
                details={"payment_intent_id": payment_intent_id},
                status_code=400,
            ) from e
        except stripe.StripeError as e:
            prometheus_metrics.record_gateway_call("retrieve_authorization", "error")
            self.logger.error(f"Stripe error retrieving payment intent: {str(e)}")
            raise UpstreamPaymentException(f"Failed to verify payment: {str(e)}") from e

        prometheus_metrics.record_gateway_call("retrieve_authorization", "success")
        return _authorization_from_intent(intent)

    def refund(
        self,
        payment_intent_id: str,
        *,
        amount_cents: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """Refund a succeeded payment; ``amount_cents=None`` refunds everything captured."""
        self._check_stripe_configured()
        kwargs: Dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount_cents is not None:
            kwargs["amount"] = amount_cents
        if reason:
            kwargs["metadata"] = {"reason": reason}
        if idempotency_key:
            kwargs["idempotency_key"] = idempotency_key

        try:
            refund = stripe.Refund.create(**kwargs)
        except stripe.StripeError as e:
            prometheus_metrics.record_gateway_call("refund", "error")
            self.logger.error(f"Stripe error refunding {payment_intent_id}: {str(e)}")
            raise UpstreamPaymentException(f"Failed to refund payment: {str(e)}") from e

        prometheus_metrics.record_gateway_call("refund", "success")
        self.logger.info(
            "refund_created",
            extra={
                "payment_intent_id": payment_intent_id,
                "refund_id": refund.id,
                "amount": refund.amount,
                "status": refund.status,
            },
        )
        return RefundResult(id=refund.id, status=refund.status, amount=int(refund.amount or 0))

    def construct_webhook_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify the Stripe-Signature header and return the parsed event."""
        if not self.webhook_secret:
            raise UpstreamPaymentException(
                "Webhook secret not configured", code="WEBHOOK_NOT_CONFIGURED"
            )
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            self.logger.warning(f"Invalid webhook signature: {str(e)}")
            raise UpstreamPaymentException(
                "Invalid webhook signature", code="INVALID_SIGNATURE", status_code=400
            ) from e
        except ValueError as e:
            self.logger.warning(f"Invalid webhook payload: {str(e)}")
            raise UpstreamPaymentException(
                "Invalid webhook payload", code="INVALID_PAYLOAD", status_code=400
            ) from e
        return _plain_dict(event)
