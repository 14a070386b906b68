"""Initial schema - use cases, decisions, audit trail, inventory and findings

Revision ID: 001
Revises: None
Create Date: 2026-10-17

"""
from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Enum types are created once up front; risk_tier_enum is shared by two tables
use_case_status_enum = postgresql.ENUM(
    "Draft", "Submitted", "Under Review", "Approved", "Rejected", "Sent Back",
    name="use_case_status_enum", create_type=False,
)
risk_tier_enum = postgresql.ENUM("T1", "T2", "T3", name="risk_tier_enum", create_type=False)
is_model_enum = postgresql.ENUM("Yes", "No", "Model-like", name="is_model_enum", create_type=False)
inventory_status_enum = postgresql.ENUM(
    "Active", "Retired", "Suspended", name="inventory_status_enum", create_type=False,
)
validation_result_enum = postgresql.ENUM(
    "Satisfactory", "Satisfactory with Findings", "Unsatisfactory",
    name="validation_result_enum", create_type=False,
)
finding_severity_enum = postgresql.ENUM(
    "Critical", "High", "Medium", "Low", name="finding_severity_enum", create_type=False,
)
remediation_status_enum = postgresql.ENUM(
    "Open", "In Progress", "Remediated", "Accepted",
    name="remediation_status_enum", create_type=False,
)

ENUMS = (
    use_case_status_enum,
    risk_tier_enum,
    is_model_enum,
    inventory_status_enum,
    validation_result_enum,
    finding_severity_enum,
    remediation_status_enum,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "use_cases",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("business_line", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ai_type", sa.String(50), nullable=True),
        sa.Column("usage_type", sa.String(50), nullable=True),
        sa.Column("human_in_loop", sa.String(50), nullable=True),
        sa.Column("customer_impact", sa.String(50), nullable=True),
        sa.Column("regulatory_domains", postgresql.JSONB(), nullable=True),
        sa.Column("deployment", sa.String(50), nullable=True),
        sa.Column("vendor_involved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("vendor_name", sa.String(255), nullable=True),
        sa.Column("intended_users", sa.Text(), nullable=True),
        sa.Column("downstream_decisions", sa.Text(), nullable=True),
        sa.Column("contains_pii", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("contains_npi", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sensitive_attributes_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("training_data_source", sa.String(50), nullable=True),
        sa.Column("retention_policy_defined", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("access_controls_defined", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("model_definition_trigger", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("explainability_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("change_frequency", sa.String(50), nullable=True),
        sa.Column("retraining", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fallback_plan_defined", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("monitoring_cadence", sa.String(50), nullable=True),
        sa.Column("status", use_case_status_enum, nullable=False, server_default="Draft"),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewer_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_use_cases_business_line", "use_cases", ["business_line"])
    op.create_index("ix_use_cases_status", "use_cases", ["status"])

    op.create_table(
        "decisions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "use_case_id",
            sa.String(36),
            sa.ForeignKey("use_cases.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("is_model", is_model_enum, nullable=False),
        sa.Column("tier", risk_tier_enum, nullable=False),
        sa.Column("triggered_rules", postgresql.JSONB(), nullable=False),
        sa.Column("rationale_summary", sa.Text(), nullable=True),
        sa.Column("required_artifacts", postgresql.JSONB(), nullable=False),
        sa.Column("missing_evidence", postgresql.JSONB(), nullable=False),
        sa.Column("risk_flags", postgresql.JSONB(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_decisions_tier", "decisions", ["tier"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "use_case_id",
            sa.String(36),
            sa.ForeignKey("use_cases.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False, server_default="Other"),
        sa.Column("artifact_id", sa.String(100), nullable=True),
        sa.Column("storage_path", sa.String(512), nullable=False),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("mime_type", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_attachments_use_case_id", "attachments", ["use_case_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "use_case_id",
            sa.String(36),
            sa.ForeignKey("use_cases.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("actor", sa.String(255), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_audit_events_use_case_id", "audit_events", ["use_case_id"])
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])
    op.create_index("ix_audit_events_timestamp", "audit_events", ["timestamp"])

    op.create_table(
        "inventory_models",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("inventory_number", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "use_case_id",
            sa.String(36),
            sa.ForeignKey("use_cases.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column("tier", risk_tier_enum, nullable=False),
        sa.Column("validation_frequency_months", sa.Integer(), nullable=False, server_default="36"),
        sa.Column("added_by", sa.String(255), nullable=True),
        sa.Column("production_date", sa.Date(), nullable=True),
        sa.Column("validated_before_production", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_validation_date", sa.Date(), nullable=True),
        sa.Column("next_validation_date", sa.Date(), nullable=True),
        sa.Column("status", inventory_status_enum, nullable=False, server_default="Active"),
        *_timestamps(),
    )
    op.create_index(
        "ix_inventory_models_inventory_number", "inventory_models", ["inventory_number"], unique=True
    )
    op.create_index("ix_inventory_models_tier", "inventory_models", ["tier"])
    op.create_index("ix_inventory_models_next_validation_date", "inventory_models", ["next_validation_date"])

    op.create_table(
        "validations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "inventory_model_id",
            sa.String(36),
            sa.ForeignKey("inventory_models.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("validation_type", sa.String(20), nullable=False, server_default="Periodic"),
        sa.Column("validation_date", sa.Date(), nullable=False),
        sa.Column("validated_by", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Completed"),
        sa.Column("overall_result", validation_result_enum, nullable=True),
        sa.Column("summary_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_validations_inventory_model_id", "validations", ["inventory_model_id"])

    op.create_table(
        "validation_findings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "validation_id",
            sa.String(36),
            sa.ForeignKey("validations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("finding_number", sa.String(10), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", finding_severity_enum, nullable=False, server_default="Medium"),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("remediation_status", remediation_status_enum, nullable=False, server_default="Open"),
        sa.Column("remediation_due_date", sa.Date(), nullable=True),
        sa.Column("remediation_notes", sa.Text(), nullable=True),
        sa.Column("remediated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remediated_by", sa.String(255), nullable=True),
        sa.Column("mrm_signed_off", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("mrm_sign_off_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("mrm_sign_off_by", sa.String(255), nullable=True),
        sa.Column("mrm_sign_off_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_validation_findings_validation_id", "validation_findings", ["validation_id"])
    op.create_index("ix_validation_findings_severity", "validation_findings", ["severity"])
    op.create_index(
        "ix_validation_findings_remediation_status", "validation_findings", ["remediation_status"]
    )


def downgrade() -> None:
    op.drop_table("validation_findings")
    op.drop_table("validations")
    op.drop_table("inventory_models")
    op.drop_table("audit_events")
    op.drop_table("attachments")
    op.drop_table("decisions")
    op.drop_table("use_cases")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
