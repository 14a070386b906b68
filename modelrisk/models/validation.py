"""Validation and ValidationFinding models for ModelRisk."""

import enum
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, enum_values

if TYPE_CHECKING:
    from .inventory import InventoryModel


class ValidationResult(str, enum.Enum):
    """Enumeration of overall validation outcomes."""
    SATISFACTORY = "Satisfactory"
    SATISFACTORY_WITH_FINDINGS = "Satisfactory with Findings"
    UNSATISFACTORY = "Unsatisfactory"


class FindingSeverity(str, enum.Enum):
    """Enumeration of finding severity levels."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RemediationStatus(str, enum.Enum):
    """Enumeration of finding remediation statuses."""
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    REMEDIATED = "Remediated"
    ACCEPTED = "Accepted"


class Validation(Base):
    """Validation model representing one validation exercise on a model.

    Attributes:
        id: String UUID primary key (inherited from Base)
        inventory_model_id: Inventory model being validated
        validation_type: Initial, Periodic, Triggered or Ad-hoc
        validation_date: Date the validation was performed
        validated_by: Validator identity
        status: In Progress, Completed or Cancelled
        overall_result: Overall outcome once completed
        summary_notes: Free-text summary
    """

    __tablename__ = "validations"

    inventory_model_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("inventory_models.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    validation_type: Mapped[str] = mapped_column(
        String(20),
        default="Periodic",
        nullable=False,
    )

    validation_date: Mapped[date] = mapped_column(Date, nullable=False)

    validated_by: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default="Completed",
        nullable=False,
    )

    overall_result: Mapped[ValidationResult | None] = mapped_column(
        Enum(
            ValidationResult,
            name="validation_result_enum",
            values_callable=enum_values,
            length=32,
        ),
        nullable=True,
    )

    summary_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    inventory_model: Mapped["InventoryModel"] = relationship(
        "InventoryModel",
        back_populates="validations",
        lazy="selectin",
    )

    findings: Mapped[list["ValidationFinding"]] = relationship(
        "ValidationFinding",
        back_populates="validation",
        cascade="all, delete-orphan",
        order_by="ValidationFinding.finding_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Validation(id={self.id}, type='{self.validation_type}', date={self.validation_date})>"


class ValidationFinding(Base):
    """ValidationFinding model: a flaw identified during a validation.

    Attributes:
        id: String UUID primary key (inherited from Base)
        validation_id: Validation that raised the finding
        finding_number: Sequential number within the validation (F-NNN)
        title: Brief title
        description: Detailed description
        severity: Critical, High, Medium or Low
        category: Performance, Documentation, Controls, Data Quality or Other
        remediation_status: Open, In Progress, Remediated or Accepted
        remediation_due_date: Date remediation is due
        remediation_notes: Notes supplied when remediating
        remediated_at: When the finding was remediated
        remediated_by: Who remediated it
        mrm_signed_off: Whether model risk management signed off
        mrm_sign_off_date: When it was signed off
        mrm_sign_off_by: Who signed it off
        mrm_sign_off_notes: Sign-off notes
    """

    __tablename__ = "validation_findings"

    validation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("validations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    finding_number: Mapped[str] = mapped_column(String(10), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    severity: Mapped[FindingSeverity] = mapped_column(
        Enum(
            FindingSeverity,
            name="finding_severity_enum",
            values_callable=enum_values,
            length=16,
        ),
        default=FindingSeverity.MEDIUM,
        nullable=False,
        index=True,
    )

    category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    remediation_status: Mapped[RemediationStatus] = mapped_column(
        Enum(
            RemediationStatus,
            name="remediation_status_enum",
            values_callable=enum_values,
            length=16,
        ),
        default=RemediationStatus.OPEN,
        nullable=False,
        index=True,
    )

    remediation_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    remediation_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    remediated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    remediated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    mrm_signed_off: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mrm_sign_off_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    mrm_sign_off_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mrm_sign_off_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    validation: Mapped["Validation"] = relationship(
        "Validation",
        back_populates="findings",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<ValidationFinding(id={self.id}, number='{self.finding_number}', "
            f"status={self.remediation_status.value})>"
        )
