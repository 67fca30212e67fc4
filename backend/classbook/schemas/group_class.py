# backend/classbook/schemas/group_class.py
"""
Group class schemas.

Dates and start times travel as ``date`` ("YYYY-MM-DD") and ``time``
("HH:MM") in the school's timezone, matching the public schedule format.
"""

from datetime import date, datetime, time
from typing import Any, List, Literal, Optional

from pydantic import Field, field_serializer, field_validator, model_validator

from ..core.constants import DEFAULT_AUDIENCE_TYPE, DEFAULT_LOCALES
from .base import CamelModel, LocalizedText, Money, StrictRequestModel, has_text

AudienceType = Literal["mixed", "adults", "kids"]


def _parse_start_time(value: object) -> object:
    if isinstance(value, str):
        try:
            parts = value.strip().split(":")
            return time(int(parts[0]), int(parts[1]))
        except (ValueError, IndexError):
            raise ValueError(f"Invalid time format: {value}. Expected HH:MM format.")
    return value


class GroupClassCreate(StrictRequestModel):
    """Admin payload for scheduling a new class."""

    title: LocalizedText
    description: LocalizedText = Field(default_factory=dict)
    instructor: LocalizedText = Field(default_factory=dict)
    languages: List[str] = Field(default_factory=lambda: list(DEFAULT_LOCALES))
    class_date: date = Field(..., alias="date")
    start_time: time = Field(..., alias="time")
    duration: str = Field(default="", max_length=100)
    price: Money
    capacity: int = Field(..., ge=1)
    audience_type: AudienceType = DEFAULT_AUDIENCE_TYPE

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        return _parse_start_time(v)

    @field_validator("title")
    @classmethod
    def require_title(cls, v: dict) -> dict:
        if not has_text(v):
            raise ValueError("Title is required")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Money) -> Money:
        if v < 0:
            raise ValueError("Price cannot be negative")
        return v


class GroupClassUpdate(StrictRequestModel):
    """Partial update; only fields present in the payload change."""

    title: Optional[LocalizedText] = None
    description: Optional[LocalizedText] = None
    instructor: Optional[LocalizedText] = None
    languages: Optional[List[str]] = None
    class_date: Optional[date] = Field(default=None, alias="date")
    start_time: Optional[time] = Field(default=None, alias="time")
    duration: Optional[str] = Field(default=None, max_length=100)
    price: Optional[Money] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    audience_type: Optional[AudienceType] = None

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        return _parse_start_time(v)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Optional[Money]) -> Optional[Money]:
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative")
        return v

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "GroupClassUpdate":
        nulls = [name for name in self.model_fields_set if getattr(self, name) is None]
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(sorted(nulls))}")
        if self.title is not None and not has_text(self.title):
            raise ValueError("Title is required")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, by_alias=False)


class GroupClassResponse(CamelModel):
    id: str
    title: LocalizedText
    description: LocalizedText
    instructor: LocalizedText
    languages: List[str]
    class_date: date = Field(alias="date")
    start_time: time = Field(alias="time")
    duration: str
    price: Money
    capacity: int
    booked: int
    available_spots: int
    audience_type: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("start_time")
    def serialize_start_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class GroupClassEnvelope(CamelModel):
    success: bool = True
    group_class: GroupClassResponse = Field(alias="class")
    message: str
