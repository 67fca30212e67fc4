# backend/classbook/core/config.py
from decimal import Decimal
import logging
import os
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    BRAND_NAME,
    DEFAULT_CANCELLATION_WINDOW_HOURS,
    DEFAULT_DEPOSIT_RATE,
    DEFAULT_LOCALES,
)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "production"] = "development"
    log_level: str = Field(default="INFO", description="Root log level")

    # Persistence
    database_url: str = Field(
        default="sqlite:///./classbook.db",
        description="SQLAlchemy database URL (SQLite or PostgreSQL)",
    )
    database_echo: bool = False

    # Stripe
    stripe_secret_key: Optional[SecretStr] = Field(default=None, description="Stripe API key")
    stripe_publishable_key: str = Field(default="", description="Key handed to the frontend")
    stripe_webhook_secret: Optional[SecretStr] = Field(
        default=None, description="Signing secret for the /webhook endpoint"
    )
    stripe_currency: str = "eur"
    stripe_timeout_seconds: int = 8
    stripe_max_network_retries: int = 1
    # Smallest charge the gateway accepts, in minor units (0.50 EUR)
    stripe_minimum_charge_cents: int = 50

    # Booking policy
    deposit_rate: Decimal = Field(
        default=Decimal(DEFAULT_DEPOSIT_RATE),
        description="Share of the total collected up front for partial payments",
    )
    cancellation_window_hours: int = Field(
        default=DEFAULT_CANCELLATION_WINDOW_HOURS,
        description="Minimum hours before class start for a self-service cancellation",
    )
    school_timezone: str = Field(
        default="Europe/Riga",
        description="Timezone the class schedule (date + time) is expressed in",
    )
    default_locales: List[str] = Field(default_factory=lambda: list(DEFAULT_LOCALES))

    # Admin session
    admin_username: str = "admin"
    admin_password_hash: str = Field(default="", description="bcrypt hash of the admin password")
    session_secret_key: SecretStr = Field(
        default=SecretStr("dev-session-secret-change-me"),
        description="Secret used to sign admin session tokens",
    )
    session_algorithm: str = "HS256"
    session_cookie_name: str = "classbook_admin"
    session_cookie_secure: bool = False
    session_max_age_seconds: int = 24 * 60 * 60

    # Frontend
    frontend_url: str = "http://localhost:3001"
    api_base_url: str = "/api"

    # Email
    resend_api_key: Optional[str] = None
    from_email: str = "bookings@cookingschool.example"
    from_name: str = BRAND_NAME
    owner_email: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_locales", mode="before")
    @classmethod
    def _parse_locales(cls, value: object) -> object:
        if isinstance(value, str):
            return [token.strip() for token in value.split(",") if token.strip()]
        return value

    @field_validator("deposit_rate")
    @classmethod
    def _check_deposit_rate(cls, value: Decimal) -> Decimal:
        if value <= 0 or value > 1:
            raise ValueError("deposit_rate must be in (0, 1]")
        return value

    @field_validator("session_cookie_secure", mode="before")
    @classmethod
    def _coerce_cookie_secure(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return value

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key and self.stripe_secret_key.get_secret_value())


settings = Settings()
