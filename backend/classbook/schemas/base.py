"""
Base schemas with standardized field types for consistent API responses.

Payloads use camelCase on the wire (``classId``, ``paidAmount``) and accept
snake_case field names as well.
"""
from decimal import Decimal
from typing import Annotated, Any, Dict

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_core import core_schema

from ..core.config import settings


class CamelModel(BaseModel):
    """Base model with camelCase aliases and standardized JSON encoding"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        from_attributes=True,
    )


class StrictRequestModel(CamelModel):
    """Request body base: unknown fields are rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        validate_default=True,
    )


class Money(Decimal):
    """Money field that always serializes as float"""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_money(value: Any) -> Decimal:
            if isinstance(value, bool):
                raise ValueError("Cannot convert bool to Money")
            if isinstance(value, (int, float)):
                return Decimal(str(value))
            if isinstance(value, str):
                return Decimal(value.strip())
            if isinstance(value, Decimal):
                return value
            raise ValueError(f"Cannot convert {type(value)} to Money")

        return core_schema.no_info_after_validator_function(
            validate_money,
            core_schema.union_schema(
                [
                    core_schema.is_instance_schema(Decimal),
                    core_schema.int_schema(),
                    core_schema.float_schema(),
                    core_schema.str_schema(),
                ]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                float,
                info_arg=False,
                return_schema=core_schema.float_schema(),
            ),
        )


def coerce_localized_text(value: Any) -> Any:
    """
    Normalize localized text to a locale -> string mapping.

    A plain string is copied into every configured locale so the rest of the
    system only ever sees the mapping shape.
    """
    if isinstance(value, str):
        return {locale: value for locale in settings.default_locales}
    if isinstance(value, dict):
        return {str(locale): "" if text is None else str(text) for locale, text in value.items()}
    return value


LocalizedText = Annotated[Dict[str, str], BeforeValidator(coerce_localized_text)]


def has_text(value: Dict[str, str]) -> bool:
    return any(text.strip() for text in value.values())
