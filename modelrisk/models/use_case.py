"""UseCase model for ModelRisk."""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, enum_values

if TYPE_CHECKING:
    from .attachment import Attachment
    from .audit_event import AuditEvent
    from .decision import Decision


class UseCaseStatus(str, enum.Enum):
    """Enumeration of use case lifecycle states."""
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    SENT_BACK = "Sent Back"


class UseCase(Base):
    """UseCase model representing a proposed AI/model use.

    Attributes:
        id: String UUID primary key (inherited from Base)
        title: Short name of the use case
        business_line: Owning business line
        description: Free-text description of the use
        ai_type: Model type (Traditional ML, GenAI, Rules, Hybrid)
        usage_type: Decisioning, Advisory or Automation
        human_in_loop: Required, Optional or None
        customer_impact: Direct, Indirect or None
        regulatory_domains: List of regulatory domains touched
        deployment: Deployment surface
        status: Current lifecycle state
        created_by: Identity that created the intake
        reviewed_by: Identity of the last reviewer action
        reviewed_at: Timestamp of the last reviewer action
        reviewer_notes: Notes left when sending back
        created_at: Timestamp when the use case was created (inherited)
        updated_at: Timestamp when the use case was last updated (inherited)
    """

    __tablename__ = "use_cases"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    business_line: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    ai_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    usage_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    human_in_loop: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_impact: Mapped[str | None] = mapped_column(String(50), nullable=True)

    regulatory_domains: Mapped[list[str] | None] = mapped_column(
        JSONType,
        nullable=True,
    )

    deployment: Mapped[str | None] = mapped_column(String(50), nullable=True)
    vendor_involved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    vendor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    intended_users: Mapped[str | None] = mapped_column(Text, nullable=True)
    downstream_decisions: Mapped[str | None] = mapped_column(Text, nullable=True)

    contains_pii: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    contains_npi: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sensitive_attributes_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    training_data_source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    retention_policy_defined: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    access_controls_defined: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    model_definition_trigger: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    explainability_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    change_frequency: Mapped[str | None] = mapped_column(String(50), nullable=True)
    retraining: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fallback_plan_defined: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    monitoring_cadence: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[UseCaseStatus] = mapped_column(
        Enum(
            UseCaseStatus,
            name="use_case_status_enum",
            values_callable=enum_values,
            length=32,
        ),
        default=UseCaseStatus.DRAFT,
        nullable=False,
        index=True,
    )

    created_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    reviewed_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    reviewer_notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    decision: Mapped[Optional["Decision"]] = relationship(
        "Decision",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    attachments: Mapped[list["Attachment"]] = relationship(
        "Attachment",
        cascade="all, delete-orphan",
        order_by="desc(Attachment.created_at)",
        lazy="selectin",
    )

    audit_events: Mapped[list["AuditEvent"]] = relationship(
        "AuditEvent",
        order_by="desc(AuditEvent.timestamp)",
        lazy="selectin",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<UseCase(id={self.id}, title='{self.title}', status={self.status.value})>"
