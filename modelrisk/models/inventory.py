"""InventoryModel model for ModelRisk."""

import enum
from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, enum_values
from .decision import RiskTier

if TYPE_CHECKING:
    from .use_case import UseCase
    from .validation import Validation


class InventoryStatus(str, enum.Enum):
    """Enumeration of inventory entry statuses."""
    ACTIVE = "Active"
    RETIRED = "Retired"
    SUSPENDED = "Suspended"


class InventoryModel(Base):
    """InventoryModel representing an approved model in the inventory.

    Attributes:
        id: String UUID primary key (inherited from Base)
        inventory_number: Human-readable number (MDL-YYYY-NNN)
        name: Display name of the model
        use_case_id: Use case the model was approved from, if any
        tier: Risk tier at approval
        validation_frequency_months: Months between periodic validations
        added_by: Identity that added the model to inventory
        production_date: Date the model went live
        validated_before_production: Whether an initial validation preceded go-live
        last_validation_date: Date of the latest validation
        next_validation_date: Date the next validation falls due
        status: Inventory status (Active, Retired, Suspended)
    """

    __tablename__ = "inventory_models"

    inventory_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    use_case_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("use_cases.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )

    tier: Mapped[RiskTier] = mapped_column(
        Enum(RiskTier, name="risk_tier_enum", values_callable=enum_values, length=8),
        nullable=False,
        index=True,
    )

    validation_frequency_months: Mapped[int] = mapped_column(
        Integer,
        default=36,
        nullable=False,
    )

    added_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    production_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    validated_before_production: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    last_validation_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    next_validation_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        index=True,
    )

    status: Mapped[InventoryStatus] = mapped_column(
        Enum(
            InventoryStatus,
            name="inventory_status_enum",
            values_callable=enum_values,
            length=16,
        ),
        default=InventoryStatus.ACTIVE,
        nullable=False,
    )

    # Relationships
    use_case: Mapped[Optional["UseCase"]] = relationship(
        "UseCase",
        lazy="selectin",
    )

    validations: Mapped[list["Validation"]] = relationship(
        "Validation",
        back_populates="inventory_model",
        cascade="all, delete-orphan",
        order_by="desc(Validation.validation_date)",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<InventoryModel(id={self.id}, inventory_number='{self.inventory_number}')>"
