"""Validation service: validation exercises on inventory models."""

import logging
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from modelrisk.errors import NotFoundError, UpstreamFailureError
from modelrisk.models.base import generate_id
from modelrisk.models.inventory import InventoryModel
from modelrisk.models.validation import Validation, ValidationResult
from modelrisk.utils.presentation import calculate_next_validation_date

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "validation_type",
    "validation_date",
    "validated_by",
    "status",
    "overall_result",
    "summary_notes",
)

# Columns that may be left out of an update but never cleared
NON_NULLABLE_FIELDS = frozenset({"validation_type", "validation_date", "validated_by", "status"})


class ValidationService:
    """Service for validations.

    Lookups are scoped to the inventory model in the URL.
    """

    async def _get_inventory_model(self, db: AsyncSession, inventory_model_id: str) -> InventoryModel:
        model = await db.get(InventoryModel, inventory_model_id)
        if model is None:
            raise NotFoundError("Inventory model", inventory_model_id)
        return model

    async def get_validation(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        validation_id: str,
        refresh: bool = False,
    ) -> Validation:
        """
        Get a validation with its findings.

        Raises:
            NotFoundError: If the validation does not belong to this model
        """
        query = select(Validation).where(
            Validation.id == validation_id,
            Validation.inventory_model_id == inventory_model_id,
        )
        if refresh:
            query = query.execution_options(populate_existing=True)

        result = await db.execute(query)
        validation = result.scalar_one_or_none()
        if validation is None:
            raise NotFoundError("Validation", validation_id)
        return validation

    async def list_validations(self, db: AsyncSession, inventory_model_id: str) -> list[Validation]:
        """List validations of a model, most recent first."""
        await self._get_inventory_model(db, inventory_model_id)
        result = await db.execute(
            select(Validation)
            .where(Validation.inventory_model_id == inventory_model_id)
            .order_by(Validation.validation_date.desc())
        )
        return list(result.scalars().all())

    async def create_validation(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        data: dict[str, Any],
        actor: str,
    ) -> Validation:
        """
        Record a completed validation and reschedule the model.

        The model's last validation date becomes the validation date and
        the next one is pushed out by the tier's frequency.

        Args:
            db: Database session
            inventory_model_id: Model that was validated
            data: validation_type, validation_date, validated_by,
                overall_result, summary_notes (all optional)
            actor: Validator recorded when ``validated_by`` is omitted

        Raises:
            NotFoundError: Unknown inventory model
            UpstreamFailureError: Database failure (rolled back)
        """
        model = await self._get_inventory_model(db, inventory_model_id)
        validation_date: date = data.get("validation_date") or date.today()
        overall_result = data.get("overall_result")
        validation_id = generate_id()

        validation = Validation(
            id=validation_id,
            inventory_model_id=model.id,
            validation_type=data.get("validation_type") or "Periodic",
            validation_date=validation_date,
            validated_by=data.get("validated_by") or actor,
            status="Completed",
            overall_result=ValidationResult(overall_result) if overall_result else None,
            summary_notes=data.get("summary_notes"),
        )

        try:
            db.add(validation)
            model.last_validation_date = validation_date
            model.next_validation_date = calculate_next_validation_date(validation_date, model.tier)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to create validation for {inventory_model_id}: {e}")
            raise UpstreamFailureError("Failed to create validation", e) from e

        logger.info(
            f"Validation {validation_id} recorded for {model.inventory_number}; "
            f"next due {model.next_validation_date}"
        )
        return await self.get_validation(db, inventory_model_id, validation_id, refresh=True)

    async def update_validation(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        validation_id: str,
        changes: dict[str, Any],
    ) -> Validation:
        """
        Update a validation's details. The model schedule is left alone.

        Raises:
            NotFoundError: Unknown validation under this model
            UpstreamFailureError: Database failure (rolled back)
        """
        validation = await self.get_validation(db, inventory_model_id, validation_id)

        try:
            for field in UPDATABLE_FIELDS:
                if field not in changes:
                    continue
                value = changes[field]
                if value is None and field in NON_NULLABLE_FIELDS:
                    continue
                if field == "overall_result" and value is not None:
                    value = ValidationResult(value)
                setattr(validation, field, value)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to update validation {validation_id}: {e}")
            raise UpstreamFailureError("Failed to update validation", e) from e

        return await self.get_validation(db, inventory_model_id, validation_id, refresh=True)


# Singleton instance
validation_service = ValidationService()
