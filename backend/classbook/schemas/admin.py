# backend/classbook/schemas/admin.py
"""Admin session schemas."""

from typing import Optional

from pydantic import Field

from .base import CamelModel, StrictRequestModel


class AdminLoginRequest(StrictRequestModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)


class AdminActionResponse(CamelModel):
    success: bool = True
    message: str


class AdminSessionStatus(CamelModel):
    authenticated: bool
    username: Optional[str] = None
