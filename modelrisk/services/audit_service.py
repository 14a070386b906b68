"""Audit service for the append-only use case event trail."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modelrisk.models.audit_event import AuditEvent, AuditEventType

logger = logging.getLogger(__name__)


class AuditService:
    """Service for recording and reading use case audit events.

    ``record`` only adds the event to the session. Callers commit it in the
    same transaction as the change it describes.
    """

    def record(
        self,
        db: AsyncSession,
        use_case_id: str,
        actor: str,
        event_type: AuditEventType | str,
        details: str | None = None,
    ) -> AuditEvent:
        """
        Add an audit event to the current transaction.

        Args:
            db: Database session
            use_case_id: Use case the event belongs to
            actor: Identity that performed the action
            event_type: Type of action
            details: Human-readable or JSON detail string

        Returns:
            The pending AuditEvent
        """
        event = AuditEvent(
            use_case_id=use_case_id,
            actor=actor,
            event_type=getattr(event_type, "value", event_type),
            details=details,
        )
        db.add(event)

        logger.debug(f"Audit event: {event.event_type} on {use_case_id} by {actor}")
        return event

    async def list_events(
        self,
        db: AsyncSession,
        use_case_id: str,
        limit: int | None = None,
    ) -> list[AuditEvent]:
        """
        List audit events for a use case, newest first.

        Args:
            db: Database session
            use_case_id: Use case to list events for
            limit: Optional cap on the number of events

        Returns:
            List of AuditEvent rows
        """
        query = (
            select(AuditEvent)
            .where(AuditEvent.use_case_id == use_case_id)
            .order_by(AuditEvent.timestamp.desc())
        )
        if limit:
            query = query.limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())


# Singleton instance
audit_service = AuditService()
