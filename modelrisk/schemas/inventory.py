"""Inventory, validation and finding schemas for ModelRisk API."""

from datetime import date, datetime
from typing import Literal

from pydantic import Field, computed_field

from modelrisk.models.decision import RiskTier
from modelrisk.models.inventory import InventoryStatus
from modelrisk.models.validation import (
    FindingSeverity,
    RemediationStatus,
    ValidationResult,
)
from modelrisk.utils.presentation import (
    get_remediation_status_color,
    get_severity_color,
    get_tier_badge_color,
)

from .common import BaseSchema, RequestSchema, TimestampMixin


# =============================================================================
# Findings
# =============================================================================


class FindingCreate(RequestSchema):
    """Schema for recording a validation finding."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Finding title",
        examples=["Population stability not monitored"],
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=10000,
        description="Detailed finding description",
    )
    severity: FindingSeverity | None = Field(
        default=None,
        description="Finding severity; Medium when omitted",
        examples=[FindingSeverity.HIGH],
    )
    category: str | None = Field(
        default=None,
        max_length=50,
        examples=["Data Quality", "Conceptual Soundness", "Monitoring"],
    )
    remediation_due_date: date | None = None


class FindingUpdate(RequestSchema):
    """Schema for editing a finding. Only the fields sent are changed."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1, max_length=10000)
    severity: FindingSeverity | None = None
    category: str | None = Field(default=None, max_length=50)
    remediation_status: RemediationStatus | None = Field(
        default=None,
        description="Open, In Progress or Accepted; use the remediate action for Remediated",
    )
    remediation_notes: str | None = Field(default=None, max_length=10000)
    remediation_due_date: date | None = None


class RemediateRequest(RequestSchema):
    """Schema for marking a finding as remediated."""

    remediation_notes: str | None = Field(
        default=None,
        max_length=10000,
        description="What was done to address the finding",
    )
    remediated_by: str | None = Field(
        default=None,
        max_length=255,
        description="Remediator; the caller identity is used when omitted",
    )


class SignOffRequest(RequestSchema):
    """Schema for MRM sign-off on a finding."""

    sign_off_notes: str | None = Field(default=None, max_length=10000)
    sign_off_by: str | None = Field(
        default=None,
        max_length=255,
        description="Signer; the caller identity is used when omitted",
    )


class FindingResponse(BaseSchema, TimestampMixin):
    """Schema for a validation finding."""

    id: str
    validation_id: str
    finding_number: str
    title: str
    description: str
    severity: FindingSeverity
    category: str | None = None
    remediation_status: RemediationStatus
    remediation_due_date: date | None = None
    remediation_notes: str | None = None
    remediated_at: datetime | None = None
    remediated_by: str | None = None
    mrm_signed_off: bool = False
    mrm_sign_off_date: datetime | None = None
    mrm_sign_off_by: str | None = None
    mrm_sign_off_notes: str | None = None

    @computed_field
    @property
    def severity_color(self) -> str:
        return get_severity_color(self.severity)

    @computed_field
    @property
    def remediation_status_color(self) -> str:
        return get_remediation_status_color(self.remediation_status)


class FindingActionResponse(BaseSchema):
    """Schema returned by finding create, update, remediate and sign-off."""

    success: bool = True
    finding: FindingResponse


class FindingListResponse(BaseSchema):
    """Schema for the findings of one validation."""

    findings: list[FindingResponse]
    count: int


# =============================================================================
# Validations and inventory
# =============================================================================


class ValidationResponse(BaseSchema, TimestampMixin):
    """Schema for a validation with its findings."""

    id: str
    inventory_model_id: str
    validation_type: str
    validation_date: date
    validated_by: str
    status: str
    overall_result: ValidationResult | None = None
    summary_notes: str | None = None
    findings: list[FindingResponse] = Field(default_factory=list)


ValidationType = Literal["Initial", "Periodic", "Triggered", "Ad-hoc"]
ValidationRunStatus = Literal["In Progress", "Completed", "Cancelled"]


class ValidationCreate(RequestSchema):
    """Schema for recording a completed validation."""

    validation_type: ValidationType | None = Field(
        default=None,
        description="Periodic when omitted",
    )
    validation_date: date | None = Field(default=None, description="Today when omitted")
    validated_by: str | None = Field(
        default=None,
        max_length=255,
        description="Validator; the caller identity is used when omitted",
    )
    overall_result: ValidationResult | None = None
    summary_notes: str | None = Field(default=None, max_length=10000)


class ValidationUpdate(RequestSchema):
    """Schema for editing a validation. Only the fields sent are changed."""

    validation_type: ValidationType | None = None
    validation_date: date | None = None
    validated_by: str | None = Field(default=None, min_length=1, max_length=255)
    status: ValidationRunStatus | None = None
    overall_result: ValidationResult | None = None
    summary_notes: str | None = Field(default=None, max_length=10000)


class ValidationActionResponse(BaseSchema):
    """Schema returned by validation create and update."""

    success: bool = True
    validation: ValidationResponse


class ValidationListResponse(BaseSchema):
    """Schema for the validations of one inventory model."""

    validations: list[ValidationResponse]
    count: int


class ValidationStatusDisplay(BaseSchema):
    """Label, color class and icon for a validation status."""

    label: str
    color: str
    icon: str


class InventoryModelResponse(BaseSchema, TimestampMixin):
    """Schema for an inventory model with computed validation fields."""

    id: str
    inventory_number: str
    name: str
    use_case_id: str | None = None
    tier: RiskTier
    validation_frequency_months: int
    added_by: str | None = None
    production_date: date | None = None
    validated_before_production: bool = False
    last_validation_date: date | None = None
    next_validation_date: date | None = None
    status: InventoryStatus

    validation_status: str
    validation_status_display: ValidationStatusDisplay
    open_findings_count: int = 0
    overdue_findings_count: int = 0
    total_findings_count: int = 0
    is_ai_enabled: bool = False
    is_vendor_model: bool = False
    vendor_name: str | None = None

    @computed_field
    @property
    def tier_color(self) -> str:
        return get_tier_badge_color(self.tier)


class InventoryModelDetail(InventoryModelResponse):
    """Schema for one inventory model including its validations."""

    validations: list[ValidationResponse] = Field(default_factory=list)


class InventoryListResponse(BaseSchema):
    """Schema for the inventory list."""

    inventory_models: list[InventoryModelResponse]
    count: int


class InventoryCreate(RequestSchema):
    """Schema for adding an approved use case to the inventory."""

    use_case_id: str = Field(..., min_length=1)
    production_date: date | None = None
    validated_before_production: bool = False
    initial_validation_date: date | None = Field(
        default=None,
        description="Records a Satisfactory initial validation on this date",
    )


class InventoryModelActionResponse(BaseSchema):
    """Schema returned when a model is added to the inventory."""

    success: bool = True
    inventory_model: InventoryModelDetail


class ValidationScheduleCounts(BaseSchema):
    overdue: int = 0
    upcoming: int = 0
    current: int = 0


class InventoryStats(BaseSchema):
    """Schema for inventory dashboard counts."""

    total_models: int
    by_tier: dict[str, int]
    by_status: dict[str, int]
    validation_status: ValidationScheduleCounts
    open_findings: int
    ai_enabled: int
    vendor_models: int
