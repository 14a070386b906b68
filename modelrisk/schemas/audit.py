"""Audit event schemas for ModelRisk API."""

from datetime import datetime

from .common import BaseSchema


class AuditEventResponse(BaseSchema):
    """Schema for an audit trail entry."""

    id: str
    use_case_id: str
    actor: str
    event_type: str
    details: str | None = None
    timestamp: datetime
