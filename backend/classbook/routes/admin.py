# backend/classbook/routes/admin.py
"""
Admin session endpoints.

Login sets an HTTP-only cookie holding a signed session token; the admin
endpoints elsewhere check it through the ``require_admin`` dependency.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response

from ..api.dependencies import get_admin_username_optional
from ..auth import authenticate_admin, create_session_token
from ..core.exceptions import UnauthorizedException
from ..schemas.admin import AdminActionResponse, AdminLoginRequest, AdminSessionStatus
from ..utils.cookies import clear_session_cookie, set_session_cookie

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/login", response_model=AdminActionResponse)
async def login(payload: AdminLoginRequest, response: Response) -> AdminActionResponse:
    # bcrypt is CPU-bound; keep it off the event loop
    authenticated = await asyncio.to_thread(
        authenticate_admin, payload.username, payload.password
    )
    if not authenticated:
        logger.warning("Failed admin login for %s", payload.username)
        raise UnauthorizedException("Invalid credentials")

    set_session_cookie(response, create_session_token(payload.username))
    logger.info("Admin %s logged in", payload.username)
    return AdminActionResponse(message="Logged in successfully")


@router.post("/logout", response_model=AdminActionResponse)
async def logout(response: Response) -> AdminActionResponse:
    clear_session_cookie(response)
    return AdminActionResponse(message="Logged out successfully")


@router.get("/check", response_model=AdminSessionStatus, response_model_exclude_none=True)
async def check_session(
    username: Optional[str] = Depends(get_admin_username_optional),
) -> AdminSessionStatus:
    if username is None:
        return AdminSessionStatus(authenticated=False)
    return AdminSessionStatus(authenticated=True, username=username)
