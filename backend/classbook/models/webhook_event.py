# backend/classbook/models/webhook_event.py
"""Ledger of verified payment gateway webhook events."""

from sqlalchemy import JSON, Column, DateTime, String, Text
from sqlalchemy.sql import func
import ulid

from ..database import Base


class WebhookEvent(Base):
    """One row per gateway event id; duplicates are acknowledged, not reprocessed."""

    __tablename__ = "webhook_events"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    event_id = Column(String(255), nullable=False, unique=True, index=True)
    event_type = Column(String(100), nullable=False, index=True)
    payment_intent_id = Column(String(255), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="received")
    error = Column(Text, nullable=True)
    payload = Column(JSON, nullable=True)

    received_at = Column(DateTime(timezone=True), server_default=func.now())
    processed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<WebhookEvent {self.event_id} {self.event_type} {self.status}>"
