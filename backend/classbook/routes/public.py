# backend/classbook/routes/public.py
"""
Unauthenticated service endpoints: frontend config, health and metrics.
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..core.config import settings
from ..core.constants import API_VERSION
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..schemas.public import FrontendConfig, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])


@router.get("/config", response_model=FrontendConfig)
def frontend_config() -> FrontendConfig:
    """Settings the browser client needs before it can talk to the API."""
    return FrontendConfig(
        api_url=settings.api_base_url,
        stripe_public_key=settings.stripe_publishable_key,
    )


@router.get("/api/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
        status = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"
        status = "degraded"

    return HealthResponse(
        status=status,
        database=database,
        version=API_VERSION,
        environment=settings.environment,
    )


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
