"""Use case and decision schemas for ModelRisk API."""

from datetime import datetime
from typing import Any

from pydantic import Field, computed_field

from modelrisk.models.decision import IsModel, RiskTier
from modelrisk.models.use_case import UseCaseStatus
from modelrisk.services.rules_engine import get_artifact_details
from modelrisk.utils.presentation import get_status_color, get_tier_badge_color

from .attachment import AttachmentResponse
from .audit import AuditEventResponse
from .common import BaseSchema, RequestSchema, TimestampMixin

# Columns a PATCH may omit but never clear
NON_NULLABLE_INTAKE_FIELDS = frozenset({
    "title",
    "vendor_involved",
    "contains_pii",
    "contains_npi",
    "sensitive_attributes_used",
    "retention_policy_defined",
    "access_controls_defined",
    "model_definition_trigger",
    "explainability_required",
    "retraining",
    "fallback_plan_defined",
})


class UseCaseBase(BaseSchema):
    """Intake fields shared by requests and responses."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Use case title",
        examples=["Credit line increase scoring"],
    )
    business_line: str | None = Field(default=None, max_length=255)
    description: str | None = None
    ai_type: str | None = Field(
        default=None,
        description="Kind of AI involved",
        examples=["Traditional ML", "GenAI", "Rules", "Hybrid"],
    )
    usage_type: str | None = Field(default=None, examples=["Decisioning", "Advisory"])
    human_in_loop: str | None = Field(default=None, examples=["Required", "Optional", "None"])
    customer_impact: str | None = Field(default=None, examples=["Direct", "Indirect", "None"])
    regulatory_domains: list[str] = Field(
        default_factory=list,
        examples=[["Fair Lending", "BSA/AML"]],
    )
    deployment: str | None = None
    vendor_involved: bool = False
    vendor_name: str | None = Field(default=None, max_length=255)
    intended_users: str | None = None
    downstream_decisions: str | None = None
    contains_pii: bool = False
    contains_npi: bool = False
    sensitive_attributes_used: bool = False
    training_data_source: str | None = None
    retention_policy_defined: bool = False
    access_controls_defined: bool = False
    model_definition_trigger: bool = False
    explainability_required: bool = False
    change_frequency: str | None = None
    retraining: bool = False
    fallback_plan_defined: bool = False
    monitoring_cadence: str | None = None


class UseCaseCreate(RequestSchema, UseCaseBase):
    """Schema for use case intake."""

    created_by: str | None = Field(
        default=None,
        max_length=255,
        description="Submitter name; the caller identity is used when omitted",
    )

    def intake_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"created_by"})


class UseCaseUpdate(RequestSchema):
    """
    Schema for editing intake fields. Only the fields sent are changed.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    business_line: str | None = Field(default=None, max_length=255)
    description: str | None = None
    ai_type: str | None = None
    usage_type: str | None = None
    human_in_loop: str | None = None
    customer_impact: str | None = None
    regulatory_domains: list[str] | None = None
    deployment: str | None = None
    vendor_involved: bool | None = None
    vendor_name: str | None = Field(default=None, max_length=255)
    intended_users: str | None = None
    downstream_decisions: str | None = None
    contains_pii: bool | None = None
    contains_npi: bool | None = None
    sensitive_attributes_used: bool | None = None
    training_data_source: str | None = None
    retention_policy_defined: bool | None = None
    access_controls_defined: bool | None = None
    model_definition_trigger: bool | None = None
    explainability_required: bool | None = None
    change_frequency: str | None = None
    retraining: bool | None = None
    fallback_plan_defined: bool | None = None
    monitoring_cadence: str | None = None
    updated_by: str | None = Field(
        default=None,
        max_length=255,
        description="Editor; the caller identity is used when omitted",
    )

    def changes(self) -> dict[str, Any]:
        """Fields the client sent, minus nulls on required columns."""
        data = self.model_dump(exclude_unset=True, exclude={"updated_by"})
        return {
            field: value for field, value in data.items()
            if value is not None or field not in NON_NULLABLE_INTAKE_FIELDS
        }


class TierPreviewRequest(RequestSchema, UseCaseBase):
    """Intake answers to tier without saving. Title is optional here."""

    title: str | None = Field(default=None, max_length=255)


class TierInfo(BaseSchema):
    name: str | None = None
    description: str | None = None
    color: str | None = None


class TierPreviewResponse(BaseSchema):
    """Schema for a live tier preview."""

    tier: RiskTier
    tier_info: TierInfo
    is_model: IsModel
    triggered_rules: list[dict[str, Any]] = Field(default_factory=list)
    required_artifacts: list[dict[str, Any]] = Field(default_factory=list)
    risk_flags: list[str] = Field(default_factory=list)
    is_preview: bool = True


class SendBackRequest(RequestSchema):
    """Schema for sending a use case back to its owner."""

    notes: str | None = Field(
        default=None,
        max_length=5000,
        description="Reviewer notes for the model owner",
    )


class DecisionResponse(BaseSchema, TimestampMixin):
    """Schema for a generated risk decision."""

    id: str
    use_case_id: str
    is_model: IsModel
    tier: RiskTier
    triggered_rules: list[dict[str, Any]] = Field(default_factory=list)
    rationale_summary: str | None = None
    required_artifacts: list[str] = Field(default_factory=list)
    missing_evidence: list[str] = Field(default_factory=list)
    risk_flags: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def tier_color(self) -> str:
        return get_tier_badge_color(self.tier)

    @computed_field
    @property
    def required_artifact_details(self) -> list[dict[str, Any]]:
        return get_artifact_details(self.required_artifacts)


class UseCaseBrief(UseCaseBase, TimestampMixin):
    """Schema for use cases in list views."""

    id: str
    status: UseCaseStatus
    created_by: str
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    reviewer_notes: str | None = None
    decision: DecisionResponse | None = None
    attachments: list[AttachmentResponse] = Field(default_factory=list)

    @computed_field
    @property
    def status_color(self) -> str:
        return get_status_color(self.status)


class UseCaseResponse(UseCaseBrief):
    """Schema for a single use case with its audit trail."""

    audit_events: list[AuditEventResponse] = Field(default_factory=list)


class UseCaseStats(BaseSchema):
    """Counts shown above the use case list."""

    total: int = 0
    draft: int = 0
    submitted: int = 0
    approved: int = 0
    high_tier: int = 0


class UseCaseListResponse(BaseSchema):
    """Schema for the use case list."""

    use_cases: list[UseCaseBrief]
    stats: UseCaseStats
