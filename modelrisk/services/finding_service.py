"""Finding service: validation findings, remediation and MRM sign-off."""

import logging
from datetime import date
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from modelrisk.errors import (
    AlreadyDoneError,
    InvalidStateError,
    NotFoundError,
    UpstreamFailureError,
)
from modelrisk.models.base import generate_id, utcnow
from modelrisk.models.validation import (
    FindingSeverity,
    RemediationStatus,
    Validation,
    ValidationFinding,
    ValidationResult,
)
from modelrisk.services import lifecycle
from modelrisk.services.validation_service import validation_service
from modelrisk.utils.metrics import record_finding_action

logger = logging.getLogger(__name__)

UPDATABLE_FINDING_FIELDS = frozenset({
    "title",
    "description",
    "severity",
    "category",
    "remediation_status",
    "remediation_notes",
    "remediation_due_date",
})
NON_NULLABLE_FINDING_FIELDS = frozenset({"title", "description", "severity", "remediation_status"})


def format_finding_number(sequence: int) -> str:
    """Format a finding number, e.g. 3 -> 'F-003'."""
    return f"F-{sequence:03d}"


class FindingService:
    """Service for validation findings.

    Every lookup is scoped to the validation and its inventory model, so a
    finding id presented under the wrong parent is reported as not found.
    """

    async def get_finding(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        validation_id: str,
        finding_id: str,
        refresh: bool = False,
    ) -> ValidationFinding:
        """
        Get a finding within its validation and inventory model.

        Raises:
            NotFoundError: If the finding does not exist under this parent
        """
        query = (
            select(ValidationFinding)
            .join(Validation, ValidationFinding.validation_id == Validation.id)
            .where(
                ValidationFinding.id == finding_id,
                ValidationFinding.validation_id == validation_id,
                Validation.inventory_model_id == inventory_model_id,
            )
        )
        if refresh:
            query = query.execution_options(populate_existing=True)

        result = await db.execute(query)
        finding = result.scalar_one_or_none()
        if finding is None:
            raise NotFoundError("Finding", finding_id)
        return finding

    async def list_findings(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        validation_id: str,
    ) -> list[ValidationFinding]:
        """List findings of a validation ordered by finding number."""
        await validation_service.get_validation(db, inventory_model_id, validation_id)
        result = await db.execute(
            select(ValidationFinding)
            .where(ValidationFinding.validation_id == validation_id)
            .order_by(ValidationFinding.finding_number)
        )
        return list(result.scalars().all())

    async def create_finding(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        validation_id: str,
        data: dict[str, Any],
    ) -> ValidationFinding:
        """
        Record a new finding on a validation.

        The finding is numbered after the existing ones, starts Open, and
        defaults to Medium severity. A Satisfactory validation becomes
        Satisfactory with Findings.

        Args:
            db: Database session
            inventory_model_id: Parent inventory model
            validation_id: Parent validation
            data: title, description, severity, category, remediation_due_date
        """
        validation = await validation_service.get_validation(db, inventory_model_id, validation_id)
        existing = await db.scalar(
            select(func.count())
            .select_from(ValidationFinding)
            .where(ValidationFinding.validation_id == validation.id)
        )
        finding_id = generate_id()

        finding = ValidationFinding(
            id=finding_id,
            validation_id=validation.id,
            finding_number=format_finding_number((existing or 0) + 1),
            title=data["title"],
            description=data["description"],
            severity=FindingSeverity(data.get("severity") or FindingSeverity.MEDIUM),
            category=data.get("category"),
            remediation_status=RemediationStatus.OPEN,
            remediation_due_date=data.get("remediation_due_date"),
        )

        try:
            db.add(finding)
            if validation.overall_result == ValidationResult.SATISFACTORY:
                validation.overall_result = ValidationResult.SATISFACTORY_WITH_FINDINGS
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to create finding on validation {validation_id}: {e}")
            raise UpstreamFailureError("Failed to create finding", e) from e

        logger.info(f"Created finding {finding.finding_number} on validation {validation_id}")
        return await self.get_finding(
            db, inventory_model_id, validation_id, finding_id, refresh=True
        )

    async def remediate(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        validation_id: str,
        finding_id: str,
        notes: str | None,
        remediated_by: str,
    ) -> ValidationFinding:
        """
        Mark a finding as remediated.

        Args:
            db: Database session
            inventory_model_id: Parent inventory model
            validation_id: Parent validation
            finding_id: Finding to remediate
            notes: Remediation notes
            remediated_by: Identity recorded as remediator

        Raises:
            NotFoundError: Unknown finding under this parent
            AlreadyDoneError: Finding is already remediated (nothing written)
            UpstreamFailureError: Database failure (rolled back)
        """
        finding = await self.get_finding(db, inventory_model_id, validation_id, finding_id)
        try:
            lifecycle.check_remediation(finding.remediation_status)
        except AlreadyDoneError:
            record_finding_action("remediate", success=False)
            raise

        try:
            result = await db.execute(
                update(ValidationFinding)
                .where(
                    ValidationFinding.id == finding_id,
                    ValidationFinding.remediation_status != RemediationStatus.REMEDIATED,
                )
                .values(
                    remediation_status=RemediationStatus.REMEDIATED,
                    remediation_notes=notes,
                    remediated_at=utcnow(),
                    remediated_by=remediated_by,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                record_finding_action("remediate", success=False)
                raise AlreadyDoneError(lifecycle.ALREADY_REMEDIATED_MESSAGE)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to remediate finding {finding_id}: {e}")
            raise UpstreamFailureError("Failed to remediate finding", e) from e

        record_finding_action("remediate", success=True)
        logger.info(f"Finding {finding_id} remediated by {remediated_by}")
        return await self.get_finding(
            db, inventory_model_id, validation_id, finding_id, refresh=True
        )

    async def sign_off(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        validation_id: str,
        finding_id: str,
        notes: str | None,
        signed_off_by: str,
    ) -> ValidationFinding:
        """
        Record MRM sign-off on a remediated or accepted finding.

        Raises:
            NotFoundError: Unknown finding under this parent
            AlreadyDoneError: Already signed off
            InvalidStateError: Not yet remediated or accepted
            UpstreamFailureError: Database failure (rolled back)
        """
        finding = await self.get_finding(db, inventory_model_id, validation_id, finding_id)
        try:
            lifecycle.check_sign_off(finding.remediation_status, finding.mrm_signed_off)
        except (AlreadyDoneError, InvalidStateError):
            record_finding_action("sign_off", success=False)
            raise

        try:
            result = await db.execute(
                update(ValidationFinding)
                .where(
                    ValidationFinding.id == finding_id,
                    ValidationFinding.mrm_signed_off.is_(False),
                    ValidationFinding.remediation_status.in_(list(lifecycle.SIGNABLE_STATUSES)),
                )
                .values(
                    mrm_signed_off=True,
                    mrm_sign_off_date=utcnow(),
                    mrm_sign_off_by=signed_off_by,
                    mrm_sign_off_notes=notes,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                record_finding_action("sign_off", success=False)
                raise AlreadyDoneError(lifecycle.ALREADY_SIGNED_OFF_MESSAGE)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to sign off finding {finding_id}: {e}")
            raise UpstreamFailureError("Failed to sign off finding", e) from e

        record_finding_action("sign_off", success=True)
        logger.info(f"Finding {finding_id} signed off by {signed_off_by}")
        return await self.get_finding(
            db, inventory_model_id, validation_id, finding_id, refresh=True
        )

    async def update_finding(
        self,
        db: AsyncSession,
        inventory_model_id: str,
        validation_id: str,
        finding_id: str,
        changes: dict[str, Any],
    ) -> ValidationFinding:
        """
        Edit a finding that has not been signed off.

        Moving a finding to Accepted here makes it eligible for sign-off.
        Remediated can only be reached through :meth:`remediate`.

        Raises:
            NotFoundError: Unknown finding under this parent
            AlreadyDoneError: Finding has been signed off
            InvalidStateError: The edit would mark it Remediated
            UpstreamFailureError: Database failure (rolled back)
        """
        finding = await self.get_finding(db, inventory_model_id, validation_id, finding_id)
        values = {
            field: value for field, value in changes.items()
            if field in UPDATABLE_FINDING_FIELDS
            and not (value is None and field in NON_NULLABLE_FINDING_FIELDS)
        }
        if "severity" in values:
            values["severity"] = FindingSeverity(values["severity"])
        if "remediation_status" in values:
            values["remediation_status"] = RemediationStatus(values["remediation_status"])
        try:
            lifecycle.check_finding_update(finding.mrm_signed_off, values.get("remediation_status"))
        except (AlreadyDoneError, InvalidStateError):
            record_finding_action("update", success=False)
            raise

        if not values:
            return finding

        try:
            result = await db.execute(
                update(ValidationFinding)
                .where(
                    ValidationFinding.id == finding_id,
                    ValidationFinding.mrm_signed_off.is_(False),
                )
                .values(**values, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                record_finding_action("update", success=False)
                raise AlreadyDoneError(lifecycle.ALREADY_SIGNED_OFF_MESSAGE)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to update finding {finding_id}: {e}")
            raise UpstreamFailureError("Failed to update finding", e) from e

        record_finding_action("update", success=True)
        logger.info(f"Finding {finding_id} updated: {sorted(values)}")
        return await self.get_finding(
            db, inventory_model_id, validation_id, finding_id, refresh=True
        )

    @staticmethod
    def is_open(finding: ValidationFinding) -> bool:
        return finding.remediation_status in (RemediationStatus.OPEN, RemediationStatus.IN_PROGRESS)

    @staticmethod
    def is_overdue(finding: ValidationFinding, today: date | None = None) -> bool:
        """True if an open finding is past its remediation due date."""
        today = today or date.today()
        return (
            FindingService.is_open(finding)
            and finding.remediation_due_date is not None
            and finding.remediation_due_date < today
        )


# Singleton instance
finding_service = FindingService()
