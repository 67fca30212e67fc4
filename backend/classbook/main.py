# backend/classbook/main.py
"""
FastAPI application for the class booking backend.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .database import create_tables
from .errors import register_error_handlers
from .routes import admin, bookings, classes, public, webhooks

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Keep library chatter out of the application log
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("stripe").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    create_tables()
    if not settings.stripe_configured:
        logger.warning("STRIPE_SECRET_KEY is not set - payment endpoints will fail")
    if not settings.admin_password_hash:
        logger.warning("ADMIN_PASSWORD_HASH is not set - admin login is disabled")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)
logger.info("CORS allow_origins=%s allow_credentials=%s", [settings.frontend_url], True)

app.include_router(public.router)
app.include_router(classes.router)
app.include_router(bookings.router)
app.include_router(admin.router)
app.include_router(webhooks.router)

__all__ = ["app"]
