# backend/classbook/auth.py
"""
Admin authentication.

A single administrator account is configured through settings
(``ADMIN_USERNAME`` and a bcrypt ``ADMIN_PASSWORD_HASH``). A successful login
issues a signed session token that travels in an HTTP-only cookie.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWTError
from passlib.context import CryptContext

from .core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ADMIN_ROLE = "admin"

# Pre-computed bcrypt hash for timing attack prevention.
# Verified against when the username does not match so both paths cost the same.
DUMMY_HASH_FOR_TIMING_ATTACK = "$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/X4.V4ferVKnNaOuJi"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password
        hashed_password: The hashed password to compare against

    Returns:
        bool: True if password matches, False otherwise
    """
    if not hashed_password:
        return False
    try:
        return bool(pwd_context.verify(plain_password, hashed_password))
    except (ValueError, TypeError) as e:
        logger.error(f"Error verifying password: {str(e)}")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return str(pwd_context.hash(password))


def authenticate_admin(username: str, password: str) -> bool:
    """Check credentials against the configured admin account."""
    if username != settings.admin_username:
        verify_password(password, DUMMY_HASH_FOR_TIMING_ATTACK)
        return False
    return verify_password(password, settings.admin_password_hash)


def create_session_token(username: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed admin session token.

    Args:
        username: Admin username stored as the ``sub`` claim
        expires_delta: Optional lifetime (defaults to the session max age)
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(seconds=settings.session_max_age_seconds)
    )
    to_encode: Dict[str, Any] = {"sub": username, "role": ADMIN_ROLE, "exp": expire}
    return jwt.encode(
        to_encode,
        settings.session_secret_key.get_secret_value(),
        algorithm=settings.session_algorithm,
    )


def decode_session_token(token: Optional[str]) -> Optional[str]:
    """Return the admin username for a valid session token, else None."""
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.session_secret_key.get_secret_value(),
            algorithms=[settings.session_algorithm],
        )
    except PyJWTError as e:
        logger.debug(f"Rejected admin session token: {str(e)}")
        return None

    if payload.get("role") != ADMIN_ROLE:
        return None
    username = payload.get("sub")
    return username if isinstance(username, str) and username else None
