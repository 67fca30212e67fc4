"""Cookie utilities for the admin session."""
from __future__ import annotations

from typing import Optional

from fastapi import Response

from ..core.config import settings


def set_session_cookie(response: Response, value: str, *, max_age: Optional[int] = None) -> str:
    """Set the HTTP-only admin session cookie and return its name."""
    cookie_name = settings.session_cookie_name
    response.set_cookie(
        key=cookie_name,
        value=value,
        httponly=True,
        samesite="lax",
        secure=bool(settings.session_cookie_secure),
        path="/",
        max_age=max_age if max_age is not None else settings.session_max_age_seconds,
    )
    return cookie_name


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=bool(settings.session_cookie_secure),
    )
