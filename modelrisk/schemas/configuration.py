"""Rule set configuration schemas for ModelRisk API."""

from datetime import datetime
from typing import Any

from pydantic import Field

from .common import BaseSchema


class ConfigValidationResult(BaseSchema):
    """Outcome of validating one configuration file."""

    valid: bool
    errors: list[str] = Field(default_factory=list)


class ConfigValidation(BaseSchema):
    rules: ConfigValidationResult
    artifacts: ConfigValidationResult


class ConfigResponse(BaseSchema):
    """Current rules and artifact catalog with their validation results."""

    rules: dict[str, Any]
    artifacts: dict[str, Any]
    validation: ConfigValidation
    last_updated: datetime = Field(..., serialization_alias="lastUpdated")
