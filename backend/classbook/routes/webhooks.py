# backend/classbook/routes/webhooks.py
"""
Stripe Webhook Endpoint

Receives signed payment events. The raw body is needed for signature
verification, so the payload is read from the request directly.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from ..api.dependencies import get_webhook_service
from ..core.exceptions import DomainException
from ..errors import handle_domain_exception
from ..schemas.public import WebhookAck
from ..services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    webhook_service: WebhookService = Depends(get_webhook_service),
) -> WebhookAck:
    """
    Handle Stripe payment events.

    Processes:
    - payment_intent.succeeded
    - payment_intent.payment_failed
    - payment_intent.canceled
    - charge.refunded

    Other event types are acknowledged without processing.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        outcome = await asyncio.to_thread(webhook_service.handle_webhook, payload, signature)
    except DomainException as e:
        logger.warning(f"Webhook rejected: {e.message}")
        handle_domain_exception(e)

    return WebhookAck(received=True, duplicate=outcome.duplicate)
