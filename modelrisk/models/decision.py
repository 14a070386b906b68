"""Decision model for ModelRisk."""

import enum
from typing import Any

from sqlalchemy import Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, enum_values


class RiskTier(str, enum.Enum):
    """Enumeration of risk tiers, T3 being the most severe."""
    T1 = "T1"
    T2 = "T2"
    T3 = "T3"


class IsModel(str, enum.Enum):
    """Outcome of the model-definition test."""
    YES = "Yes"
    NO = "No"
    MODEL_LIKE = "Model-like"


class Decision(Base):
    """Decision model holding the risk-tiering result for a use case.

    Attributes:
        id: String UUID primary key (inherited from Base)
        use_case_id: Owning use case (one decision per use case)
        is_model: Whether the use case meets the model definition
        tier: Assigned risk tier
        triggered_rules: Rules that fired, as id/name/tier/criteria dicts
        rationale_summary: Human-readable explanation of the result
        required_artifacts: Artifact ids the owner must supply
        missing_evidence: Required artifacts not yet evidenced
        risk_flags: Risk flags raised by triggered rules
    """

    __tablename__ = "decisions"

    use_case_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("use_cases.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    is_model: Mapped[IsModel] = mapped_column(
        Enum(IsModel, name="is_model_enum", values_callable=enum_values, length=16),
        default=IsModel.NO,
        nullable=False,
    )

    tier: Mapped[RiskTier] = mapped_column(
        Enum(RiskTier, name="risk_tier_enum", values_callable=enum_values, length=8),
        nullable=False,
        index=True,
    )

    triggered_rules: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )

    rationale_summary: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    required_artifacts: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    missing_evidence: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    risk_flags: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<Decision(id={self.id}, use_case_id={self.use_case_id}, tier={self.tier.value})>"
