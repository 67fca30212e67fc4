# backend/classbook/schemas/public.py
"""Schemas for unauthenticated service endpoints."""

from .base import CamelModel


class FrontendConfig(CamelModel):
    api_url: str
    stripe_public_key: str


class HealthResponse(CamelModel):
    status: str
    database: str
    version: str
    environment: str


class WebhookAck(CamelModel):
    received: bool = True
    duplicate: bool = False
