"""Use case service: intake, risk decisions and the review lifecycle."""

import json
import logging
from datetime import datetime
from typing import Any

from minio.error import S3Error
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from modelrisk.errors import InvalidStateError, NotFoundError, UpstreamFailureError
from modelrisk.models.attachment import Attachment
from modelrisk.models.audit_event import AuditEvent, AuditEventType
from modelrisk.models.base import generate_id, utcnow
from modelrisk.models.decision import Decision, IsModel, RiskTier
from modelrisk.models.use_case import UseCase, UseCaseStatus
from modelrisk.services import lifecycle
from modelrisk.services.audit_service import audit_service
from modelrisk.services.lifecycle import ReviewAction
from modelrisk.services.rules_engine import evaluate_use_case
from modelrisk.services.storage_service import StorageService
from modelrisk.utils.metrics import DECISIONS_GENERATED, record_transition

logger = logging.getLogger(__name__)


class UseCaseService:
    """Service for managing use cases and their review lifecycle."""

    async def get_use_case(
        self,
        db: AsyncSession,
        use_case_id: str,
        refresh: bool = False,
    ) -> UseCase:
        """
        Get a use case with its decision, attachments and audit events.

        Args:
            db: Database session
            use_case_id: Use case id
            refresh: Reload attributes already present in the session

        Raises:
            NotFoundError: If no use case has this id
        """
        query = select(UseCase).where(UseCase.id == use_case_id)
        if refresh:
            query = query.execution_options(populate_existing=True)

        result = await db.execute(query)
        use_case = result.scalar_one_or_none()
        if use_case is None:
            raise NotFoundError("Use case", use_case_id)
        return use_case

    async def list_use_cases(
        self,
        db: AsyncSession,
        status: str | None = None,
        tier: str | None = None,
        search: str | None = None,
    ) -> dict[str, Any]:
        """
        List use cases, most recently updated first, with summary stats.

        ``status`` and ``search`` narrow both the list and the stats;
        ``tier`` only narrows the list.

        Returns:
            Dict with ``use_cases`` and ``stats``
        """
        query = select(UseCase).order_by(UseCase.updated_at.desc())

        if status and status != "all":
            query = query.where(UseCase.status == UseCaseStatus(status))

        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    UseCase.title.ilike(pattern),
                    UseCase.description.ilike(pattern),
                    UseCase.business_line.ilike(pattern),
                )
            )

        result = await db.execute(query)
        use_cases = list(result.scalars().all())

        filtered = use_cases
        if tier and tier != "all":
            filtered = [uc for uc in use_cases if uc.decision and uc.decision.tier.value == tier]

        stats = {
            "total": len(use_cases),
            "draft": sum(1 for uc in use_cases if uc.status == UseCaseStatus.DRAFT),
            "submitted": sum(1 for uc in use_cases if uc.status == UseCaseStatus.SUBMITTED),
            "approved": sum(1 for uc in use_cases if uc.status == UseCaseStatus.APPROVED),
            "high_tier": sum(1 for uc in use_cases if uc.decision and uc.decision.tier.value == "T3"),
        }

        return {"use_cases": filtered, "stats": stats}

    async def create_use_case(
        self,
        db: AsyncSession,
        data: dict[str, Any],
        actor: str,
    ) -> UseCase:
        """
        Create a use case in Draft and record a Created audit event.

        Args:
            db: Database session
            data: Intake fields
            actor: Identity creating the use case
        """
        use_case = UseCase(
            id=generate_id(),
            **data,
            status=UseCaseStatus.DRAFT,
            created_by=actor,
        )

        try:
            db.add(use_case)
            audit_service.record(
                db,
                use_case.id,
                actor,
                AuditEventType.CREATED,
                json.dumps({"title": use_case.title}),
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to create use case: {e}")
            raise UpstreamFailureError("Failed to create use case", e) from e

        logger.info(f"Created use case {use_case.id}: {use_case.title}")
        return await self.get_use_case(db, use_case.id, refresh=True)

    async def generate_decision(
        self,
        db: AsyncSession,
        use_case_id: str,
        actor: str,
    ) -> tuple[Decision, dict[str, Any]]:
        """
        Run the rules engine and upsert the use case's Decision.

        Returns:
            Tuple of the stored Decision and the raw engine result
        """
        use_case = await self.get_use_case(db, use_case_id, refresh=True)
        result = evaluate_use_case(use_case)

        try:
            decision = use_case.decision
            if decision is None:
                decision = Decision(use_case_id=use_case.id)
                use_case.decision = decision

            decision.is_model = IsModel(result["is_model"])
            decision.tier = RiskTier(result["tier"])
            decision.triggered_rules = result["triggered_rules"]
            decision.rationale_summary = result["rationale_summary"]
            decision.required_artifacts = result["required_artifacts"]
            decision.missing_evidence = result["missing_evidence"]
            decision.risk_flags = result["risk_flags"]

            audit_service.record(
                db,
                use_case.id,
                actor,
                AuditEventType.DECISION_GENERATED,
                json.dumps({
                    "tier": result["tier"],
                    "isModel": result["is_model"],
                    "triggeredRulesCount": len(result["triggered_rules"]),
                }),
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to generate decision for {use_case_id}: {e}")
            raise UpstreamFailureError("Failed to generate decision", e) from e

        DECISIONS_GENERATED.labels(tier=result["tier"]).inc()
        logger.info(f"Generated decision for {use_case_id}: tier {result['tier']}")
        return decision, result

    async def get_decision(self, db: AsyncSession, use_case_id: str) -> Decision:
        result = await db.execute(select(Decision).where(Decision.use_case_id == use_case_id))
        decision = result.scalar_one_or_none()
        if decision is None:
            raise NotFoundError("Decision", use_case_id)
        return decision

    async def _transition(
        self,
        db: AsyncSession,
        use_case: UseCase,
        action: ReviewAction,
        actor: str,
        values: dict[str, Any],
        event_type: AuditEventType,
        details: str,
    ) -> UseCase:
        """
        Apply a guarded status change and its audit event in one transaction.

        The UPDATE only matches while the row is still in a legal source
        state, so a concurrent reviewer who moved it first wins and this
        call fails with InvalidStateError.
        """
        target = lifecycle.TRANSITIONS[action][1]
        sources = list(lifecycle.source_states(action))
        use_case_id = use_case.id

        try:
            result = await db.execute(
                update(UseCase)
                .where(UseCase.id == use_case_id, UseCase.status.in_(sources))
                .values(status=target, updated_at=utcnow(), **values)
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                await db.rollback()
                record_transition(action.value, success=False)
                logger.warning(f"{action.value} on {use_case_id} lost a race; status changed concurrently")
                message = (
                    lifecycle.NOT_SUBMITTABLE_MESSAGE
                    if action == ReviewAction.SUBMIT
                    else lifecycle.NOT_REVIEWABLE_MESSAGE
                )
                raise InvalidStateError(message)

            audit_service.record(db, use_case_id, actor, event_type, details)
            await db.commit()

        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to {action.value} use case {use_case_id}: {e}")
            raise UpstreamFailureError(f"Failed to {action.value} use case", e) from e

        record_transition(action.value, success=True)
        logger.info(f"Use case {use_case_id}: {action.value} -> {target.value} by {actor}")
        return await self.get_use_case(db, use_case_id, refresh=True)

    async def _checked(
        self,
        db: AsyncSession,
        use_case_id: str,
        action: ReviewAction,
    ) -> UseCase:
        use_case = await self.get_use_case(db, use_case_id, refresh=True)
        try:
            lifecycle.check_transition(
                use_case.status,
                action,
                has_decision=use_case.decision is not None,
            )
        except InvalidStateError:
            record_transition(action.value, success=False)
            raise
        return use_case

    async def submit(self, db: AsyncSession, use_case_id: str, actor: str) -> UseCase:
        """Move a Draft use case to Submitted."""
        use_case = await self._checked(db, use_case_id, ReviewAction.SUBMIT)
        return await self._transition(
            db,
            use_case,
            ReviewAction.SUBMIT,
            actor,
            values={},
            event_type=AuditEventType.SUBMITTED,
            details=lifecycle.submission_details(),
        )

    async def approve(self, db: AsyncSession, use_case_id: str, reviewer: str) -> UseCase:
        """
        Approve a reviewable use case that has a Decision.

        Raises:
            NotFoundError: Unknown id
            InvalidStateError: Not reviewable, no decision, or lost a race
            UpstreamFailureError: Database failure (rolled back)
        """
        use_case = await self._checked(db, use_case_id, ReviewAction.APPROVE)
        reviewed_at: datetime = utcnow()
        return await self._transition(
            db,
            use_case,
            ReviewAction.APPROVE,
            reviewer,
            values={"reviewed_by": reviewer, "reviewed_at": reviewed_at},
            event_type=AuditEventType.APPROVED,
            details=lifecycle.approval_details(use_case.decision.tier.value),
        )

    async def send_back(
        self,
        db: AsyncSession,
        use_case_id: str,
        reviewer: str,
        notes: str | None = None,
    ) -> UseCase:
        """
        Send a reviewable use case back to its owner.

        Raises:
            NotFoundError: Unknown id
            InvalidStateError: Not reviewable, or lost a race
            UpstreamFailureError: Database failure (rolled back)
        """
        use_case = await self._checked(db, use_case_id, ReviewAction.SEND_BACK)
        return await self._transition(
            db,
            use_case,
            ReviewAction.SEND_BACK,
            reviewer,
            values={
                "reviewed_by": reviewer,
                "reviewed_at": utcnow(),
                "reviewer_notes": notes or lifecycle.DEFAULT_SEND_BACK_NOTES,
            },
            event_type=AuditEventType.SENT_BACK,
            details=lifecycle.send_back_details(notes),
        )

    # =========================================================================
    # Editing
    # =========================================================================

    async def update_use_case(
        self,
        db: AsyncSession,
        use_case_id: str,
        changes: dict[str, Any],
        actor: str,
    ) -> UseCase:
        """
        Update intake fields of a Draft or Sent Back use case.

        The Updated audit event lists the changed field names. An empty
        change set writes nothing.

        Raises:
            NotFoundError: Unknown id
            InvalidStateError: Use case is under review or decided
            UpstreamFailureError: Database failure (rolled back)
        """
        use_case = await self.get_use_case(db, use_case_id, refresh=True)
        lifecycle.check_editable(use_case.status)
        if not changes:
            return use_case

        try:
            result = await db.execute(
                update(UseCase)
                .where(
                    UseCase.id == use_case_id,
                    UseCase.status.in_(list(lifecycle.EDITABLE_STATUSES)),
                )
                .values(**changes, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                raise InvalidStateError(lifecycle.NOT_EDITABLE_MESSAGE)

            audit_service.record(
                db, use_case_id, actor, AuditEventType.UPDATED, json.dumps(sorted(changes))
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to update use case {use_case_id}: {e}")
            raise UpstreamFailureError("Failed to update use case", e) from e

        logger.info(f"Use case {use_case_id} updated by {actor}: {sorted(changes)}")
        return await self.get_use_case(db, use_case_id, refresh=True)

    async def delete_use_case(
        self,
        db: AsyncSession,
        storage: StorageService,
        use_case_id: str,
        actor: str,
    ) -> None:
        """
        Delete a Draft or Sent Back use case with its decision, attachments
        and audit trail.

        Stored attachment objects are removed after the commit; a storage
        failure there is logged and does not undo the delete.

        Raises:
            NotFoundError: Unknown id
            InvalidStateError: Use case is under review or decided
            UpstreamFailureError: Database failure (rolled back)
        """
        use_case = await self.get_use_case(db, use_case_id, refresh=True)
        lifecycle.check_editable(use_case.status)
        storage_paths = [a.storage_path for a in use_case.attachments]

        try:
            for child in (Decision, Attachment, AuditEvent):
                await db.execute(
                    delete(child)
                    .where(child.use_case_id == use_case_id)
                    .execution_options(synchronize_session=False)
                )
            result = await db.execute(
                delete(UseCase)
                .where(
                    UseCase.id == use_case_id,
                    UseCase.status.in_(list(lifecycle.EDITABLE_STATUSES)),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                raise InvalidStateError(lifecycle.NOT_EDITABLE_MESSAGE)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to delete use case {use_case_id}: {e}")
            raise UpstreamFailureError("Failed to delete use case", e) from e

        db.expunge(use_case)

        for path in storage_paths:
            try:
                await storage.delete_file(path)
            except S3Error as e:
                logger.warning(f"Failed to remove stored object {path}: {e}")

        logger.info(f"Use case {use_case_id} deleted by {actor}")


# Singleton instance
use_case_service = UseCaseService()
