"""Test fixtures package."""

from .factories import (
    create_finding_data,
    create_high_risk_use_case_data,
    create_inventory_model_data,
    create_use_case_data,
    create_validation_data,
    to_camel_payload,
)

__all__ = [
    "create_finding_data",
    "create_high_risk_use_case_data",
    "create_inventory_model_data",
    "create_use_case_data",
    "create_validation_data",
    "to_camel_payload",
]
