"""Inventory service for approved models and their validation schedule."""

import logging
from datetime import date
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from modelrisk.errors import (
    AlreadyDoneError,
    InvalidStateError,
    NotFoundError,
    UpstreamFailureError,
)
from modelrisk.models.base import generate_id
from modelrisk.models.decision import RiskTier
from modelrisk.models.inventory import InventoryModel, InventoryStatus
from modelrisk.models.use_case import UseCase, UseCaseStatus
from modelrisk.models.validation import Validation, ValidationResult
from modelrisk.services.finding_service import FindingService
from modelrisk.utils.presentation import (
    ValidationStatus,
    calculate_next_validation_date,
    calculate_validation_status,
    generate_inventory_number,
    get_validation_frequency,
    get_validation_status_display,
)

logger = logging.getLogger(__name__)

AI_ENABLED_TYPES = frozenset({"GenAI", "Hybrid"})

NOT_APPROVED_MESSAGE = "Only approved use cases can be added to inventory"
ALREADY_IN_INVENTORY_MESSAGE = "Use case is already in the inventory"
NO_DECISION_MESSAGE = "Use case must have a decision before being added to inventory"
INITIAL_VALIDATION_NOTES = "Initial validation completed prior to inventory entry."


class InventoryService:
    """Service for the model inventory."""

    def summarize(self, model: InventoryModel, today: date | None = None) -> dict[str, Any]:
        """
        Compute display fields for an inventory model.

        Returns:
            Dict with validation_status, validation_status_display,
            open/overdue/total findings counts and use case flags
        """
        validation_status = calculate_validation_status(model.next_validation_date, today)
        findings = [f for validation in model.validations for f in validation.findings]
        use_case = model.use_case

        return {
            "validation_status": validation_status.value,
            "validation_status_display": get_validation_status_display(validation_status),
            "open_findings_count": sum(1 for f in findings if FindingService.is_open(f)),
            "overdue_findings_count": sum(
                1 for f in findings if FindingService.is_overdue(f, today)
            ),
            "total_findings_count": len(findings),
            "is_ai_enabled": bool(use_case and use_case.ai_type in AI_ENABLED_TYPES),
            "is_vendor_model": bool(use_case and use_case.vendor_involved),
            "vendor_name": use_case.vendor_name if use_case else None,
        }

    async def list_models(
        self,
        db: AsyncSession,
        tier: str | None = None,
        status: str | None = None,
        validation_status: str | None = None,
        search: str | None = None,
    ) -> list[tuple[InventoryModel, dict[str, Any]]]:
        """
        List inventory models, newest first, each paired with its summary.

        ``validation_status`` and ``search`` are applied after the computed
        fields are known.
        """
        query = (
            select(InventoryModel)
            .order_by(InventoryModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        if tier:
            query = query.where(InventoryModel.tier == RiskTier(tier))
        if status:
            query = query.where(InventoryModel.status == InventoryStatus(status))

        result = await db.execute(query)
        entries = [(model, self.summarize(model)) for model in result.scalars().all()]

        if validation_status:
            entries = [e for e in entries if e[1]["validation_status"] == validation_status]

        if search:
            needle = search.lower()
            entries = [
                (model, summary) for model, summary in entries
                if needle in model.name.lower()
                or needle in model.inventory_number.lower()
                or (model.use_case and needle in (model.use_case.business_line or "").lower())
            ]

        return entries

    async def get_model(
        self,
        db: AsyncSession,
        inventory_model_id: str,
    ) -> tuple[InventoryModel, dict[str, Any]]:
        """
        Get one inventory model with validations, findings and summary.

        Raises:
            NotFoundError: If the id is unknown
        """
        result = await db.execute(
            select(InventoryModel)
            .where(InventoryModel.id == inventory_model_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            raise NotFoundError("Inventory model", inventory_model_id)
        return model, self.summarize(model)

    async def add_to_inventory(
        self,
        db: AsyncSession,
        data: dict[str, Any],
        actor: str,
    ) -> InventoryModel:
        """
        Add an approved use case to the inventory.

        The entry takes its tier from the decision and is numbered after the
        existing entries. When an initial validation date is given, a
        Satisfactory initial validation is recorded on that date and the
        schedule runs from it; otherwise from the production date, or today.

        Args:
            db: Database session
            data: use_case_id, production_date, validated_before_production,
                initial_validation_date
            actor: Identity recorded as adder and initial validator

        Raises:
            NotFoundError: Unknown use case
            InvalidStateError: Not approved, or no decision
            AlreadyDoneError: Use case already in the inventory
            UpstreamFailureError: Database failure (rolled back)
        """
        use_case_id = data["use_case_id"]
        use_case = await db.get(UseCase, use_case_id, populate_existing=True)
        if use_case is None:
            raise NotFoundError("Use case", use_case_id)
        if use_case.status != UseCaseStatus.APPROVED:
            raise InvalidStateError(NOT_APPROVED_MESSAGE, current_status=use_case.status.value)
        if await self._find_by_use_case(db, use_case_id) is not None:
            raise AlreadyDoneError(ALREADY_IN_INVENTORY_MESSAGE)
        if use_case.decision is None:
            raise InvalidStateError(NO_DECISION_MESSAGE, current_status=use_case.status.value)

        tier = use_case.decision.tier
        production_date = data.get("production_date")
        initial_validation_date = data.get("initial_validation_date")
        schedule_start = initial_validation_date or production_date or date.today()

        count = await db.scalar(select(func.count()).select_from(InventoryModel))
        inventory_model_id = generate_id()
        model = InventoryModel(
            id=inventory_model_id,
            inventory_number=generate_inventory_number((count or 0) + 1),
            name=use_case.title,
            use_case_id=use_case.id,
            tier=tier,
            validation_frequency_months=get_validation_frequency(tier),
            added_by=actor,
            production_date=production_date,
            validated_before_production=bool(data.get("validated_before_production")),
            last_validation_date=initial_validation_date,
            next_validation_date=calculate_next_validation_date(schedule_start, tier),
            status=InventoryStatus.ACTIVE,
        )

        try:
            db.add(model)
            if initial_validation_date:
                db.add(Validation(
                    id=generate_id(),
                    inventory_model_id=inventory_model_id,
                    validation_type="Initial",
                    validation_date=initial_validation_date,
                    validated_by=actor,
                    status="Completed",
                    overall_result=ValidationResult.SATISFACTORY,
                    summary_notes=INITIAL_VALIDATION_NOTES,
                ))
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if await self._find_by_use_case(db, use_case_id) is not None:
                raise AlreadyDoneError(ALREADY_IN_INVENTORY_MESSAGE) from e
            logger.error(f"Failed to add use case {use_case_id} to inventory: {e}")
            raise UpstreamFailureError("Failed to add to inventory", e) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to add use case {use_case_id} to inventory: {e}")
            raise UpstreamFailureError("Failed to add to inventory", e) from e

        logger.info(f"Use case {use_case_id} added to inventory as {model.inventory_number}")
        model, _ = await self.get_model(db, inventory_model_id)
        return model

    async def _find_by_use_case(self, db: AsyncSession, use_case_id: str) -> InventoryModel | None:
        result = await db.execute(
            select(InventoryModel).where(InventoryModel.use_case_id == use_case_id)
        )
        return result.scalar_one_or_none()

    async def stats(self, db: AsyncSession, today: date | None = None) -> dict[str, Any]:
        """Counts by tier, status and validation schedule, plus open findings."""
        result = await db.execute(
            select(InventoryModel).execution_options(populate_existing=True)
        )
        models = list(result.scalars().all())
        summaries = [self.summarize(model, today) for model in models]

        by_tier = {tier.value: 0 for tier in RiskTier}
        by_status = {status.value: 0 for status in InventoryStatus}
        schedule = {status.value: 0 for status in ValidationStatus}
        for model, summary in zip(models, summaries):
            by_tier[RiskTier(model.tier).value] += 1
            by_status[InventoryStatus(model.status).value] += 1
            schedule[summary["validation_status"]] += 1

        return {
            "total_models": len(models),
            "by_tier": by_tier,
            "by_status": by_status,
            "validation_status": schedule,
            "open_findings": sum(s["open_findings_count"] for s in summaries),
            "ai_enabled": sum(1 for s in summaries if s["is_ai_enabled"]),
            "vendor_models": sum(1 for s in summaries if s["is_vendor_model"]),
        }


# Singleton instance
inventory_service = InventoryService()
