"""Audit trail router for ModelRisk API."""

import logging

from fastapi import APIRouter, HTTPException, Path, Query
from fastapi import status as http_status

from modelrisk.database import DbSession
from modelrisk.schemas.audit import AuditEventResponse
from modelrisk.services.audit_service import audit_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get(
    "/{use_case_id}",
    response_model=list[AuditEventResponse],
    summary="Get audit trail",
    description="List audit events for a use case, newest first.",
)
async def get_audit_trail(
    db: DbSession,
    use_case_id: str = Path(..., description="Use case ID"),
    limit: int | None = Query(None, ge=1, le=500, description="Maximum events to return"),
) -> list[AuditEventResponse]:
    """
    Get the audit trail for a use case.

    An unknown use case yields an empty list.
    """
    try:
        events = await audit_service.list_events(db, use_case_id, limit=limit)
        return [AuditEventResponse.model_validate(e) for e in events]

    except Exception as e:
        logger.error(f"Failed to fetch audit trail for {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch audit trail",
        )
