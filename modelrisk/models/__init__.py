"""SQLAlchemy models for ModelRisk.

This module exports all database models and their associated enums
for use throughout the application.
"""

from .attachment import Attachment
from .audit_event import AuditEvent, AuditEventType
from .base import Base
from .decision import Decision, IsModel, RiskTier
from .inventory import InventoryModel, InventoryStatus
from .use_case import UseCase, UseCaseStatus
from .validation import (
    FindingSeverity,
    RemediationStatus,
    Validation,
    ValidationFinding,
    ValidationResult,
)

__all__ = [
    # Base
    "Base",

    # UseCase
    "UseCase",
    "UseCaseStatus",

    # Decision
    "Decision",
    "RiskTier",
    "IsModel",

    # AuditEvent
    "AuditEvent",
    "AuditEventType",

    # Attachment
    "Attachment",

    # Inventory
    "InventoryModel",
    "InventoryStatus",

    # Validation
    "Validation",
    "ValidationResult",
    "ValidationFinding",
    "FindingSeverity",
    "RemediationStatus",
]
