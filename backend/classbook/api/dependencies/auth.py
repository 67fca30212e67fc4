# backend/classbook/api/dependencies/auth.py
"""
Admin session dependencies.

The admin session is a signed token in an HTTP-only cookie; see
``classbook.auth`` for issuing and verifying it.
"""

import logging
from typing import Optional

from fastapi import Request

from ...auth import decode_session_token
from ...core.config import settings
from ...core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)


def get_admin_username_optional(request: Request) -> Optional[str]:
    """Return the logged-in admin's username, or None without a valid session."""
    return decode_session_token(request.cookies.get(settings.session_cookie_name))


def require_admin(request: Request) -> str:
    """
    Require a valid admin session.

    Raises:
        UnauthorizedException: No cookie, or the token is invalid or expired
    """
    username = get_admin_username_optional(request)
    if username is None:
        logger.info(
            "admin_session_rejected",
            extra={"path": request.url.path, "has_cookie": settings.session_cookie_name in request.cookies},
        )
        raise UnauthorizedException("Unauthorized")
    return username
