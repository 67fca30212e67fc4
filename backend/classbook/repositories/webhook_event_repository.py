"""Repository for the webhook event ledger."""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..models.webhook_event import WebhookEvent
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class WebhookEventRepository(BaseRepository[WebhookEvent]):
    def __init__(self, db: Session):
        super().__init__(db, WebhookEvent)

    def get_by_event_id(self, event_id: str) -> Optional[WebhookEvent]:
        return self.find_one_by(event_id=event_id)

    def record_received(
        self,
        *,
        event_id: str,
        event_type: str,
        payment_intent_id: Optional[str],
        payload: Optional[Dict[str, Any]],
    ) -> WebhookEvent:
        return self.create(
            event_id=event_id,
            event_type=event_type,
            payment_intent_id=payment_intent_id,
            payload=payload,
            status="received",
        )

    def mark_processed(self, event: WebhookEvent, status: str, error: Optional[str] = None) -> None:
        event.status = status
        event.error = error
        event.processed_at = datetime.now(timezone.utc)
        self.db.flush()
