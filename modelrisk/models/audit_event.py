"""AuditEvent model for ModelRisk."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class AuditEventType(str, enum.Enum):
    """Enumeration of audit event types recorded against a use case."""
    CREATED = "Created"
    UPDATED = "Updated"
    SUBMITTED = "Submitted"
    DECISION_GENERATED = "DecisionGenerated"
    APPROVED = "Approved"
    SENT_BACK = "SentBack"
    ATTACHMENT_UPLOADED = "AttachmentUploaded"
    ATTACHMENT_DELETED = "AttachmentDeleted"


class AuditEvent(Base):
    """AuditEvent model: the append-only trail of use case actions.

    Rows are only ever inserted; nothing in the service layer updates or
    deletes them.

    Attributes:
        id: String UUID primary key (inherited from Base)
        use_case_id: Use case the event belongs to
        actor: Identity that performed the action
        event_type: Type of action (see AuditEventType)
        details: Human-readable or JSON-encoded detail string
        timestamp: When the action happened
    """

    __tablename__ = "audit_events"

    use_case_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("use_cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    actor: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    event_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )

    details: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditEvent(id={self.id}, event_type='{self.event_type}', actor='{self.actor}')>"
