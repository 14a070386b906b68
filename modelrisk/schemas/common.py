"""Common schemas for ModelRisk API."""

from datetime import datetime
from typing import Any

from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class RequestSchema(BaseSchema):
    """
    Base for request bodies.

    Accepts both the browser's camelCase keys and snake_case keys.
    Responses are always serialized in snake_case.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        alias_generator=AliasGenerator(validation_alias=to_camel),
    )


class TimestampMixin(BaseModel):
    """Mixin for timestamp fields."""

    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseSchema):
    """Simple message response."""

    message: str
    details: dict[str, Any] | None = None
