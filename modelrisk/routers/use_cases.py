"""Use cases router for ModelRisk API.

This module provides endpoints for use case intake and editing, risk
decisions and the review lifecycle (submit, approve, send back).
"""

import logging

from fastapi import APIRouter, HTTPException, Path, Query, Request
from fastapi import status as http_status

from modelrisk.config import get_settings
from modelrisk.database import DbSession
from modelrisk.dependencies import ModelOwner, Reviewer, Storage, Submitter
from modelrisk.errors import ModelRiskError
from modelrisk.models.decision import RiskTier
from modelrisk.models.use_case import UseCaseStatus
from modelrisk.schemas.common import MessageResponse
from modelrisk.schemas.use_case import (
    DecisionResponse,
    SendBackRequest,
    UseCaseBrief,
    UseCaseCreate,
    UseCaseListResponse,
    UseCaseResponse,
    UseCaseStats,
    UseCaseUpdate,
)
from modelrisk.services.use_case_service import use_case_service
from modelrisk.utils.rate_limit import GENERAL_RATE_LIMIT, REVIEW_RATE_LIMIT, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/usecases", tags=["use-cases"])

STATUS_FILTERS = {s.value for s in UseCaseStatus} | {"all"}
TIER_FILTERS = {t.value for t in RiskTier} | {"all"}


# =============================================================================
# Intake
# =============================================================================


@router.get(
    "",
    response_model=UseCaseListResponse,
    summary="List use cases",
    description="List use cases, most recently updated first, with summary counts.",
)
async def list_use_cases(
    db: DbSession,
    status: str | None = Query(None, description="Filter by status, or 'all'"),
    tier: str | None = Query(None, description="Filter by decision tier, or 'all'"),
    search: str | None = Query(None, description="Search title, description and business line"),
) -> UseCaseListResponse:
    """
    List use cases.

    - **status**: Draft, Submitted, Under Review, Approved, Rejected, Sent Back
    - **tier**: T1, T2, T3 (only use cases with a decision match)
    - **search**: Case-insensitive substring match
    """
    if status and status not in STATUS_FILTERS:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status filter: {status}",
        )
    if tier and tier not in TIER_FILTERS:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid tier filter: {tier}",
        )

    try:
        result = await use_case_service.list_use_cases(db, status=status, tier=tier, search=search)
        return UseCaseListResponse(
            use_cases=[UseCaseBrief.model_validate(uc) for uc in result["use_cases"]],
            stats=UseCaseStats(**result["stats"]),
        )

    except Exception as e:
        logger.error(f"Failed to list use cases: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch use cases",
        )


@router.post(
    "",
    response_model=UseCaseResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Create a use case",
    description="Record a new use case in Draft status.",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def create_use_case(
    request: Request,
    use_case_data: UseCaseCreate,
    db: DbSession,
    submitter: Submitter,
) -> UseCaseResponse:
    """
    Create a use case from the intake form.

    The creator is ``createdBy`` from the body when given, otherwise the
    caller identity.
    """
    actor = use_case_data.created_by or submitter
    try:
        use_case = await use_case_service.create_use_case(db, use_case_data.intake_fields(), actor)
        return UseCaseResponse.model_validate(use_case)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to create use case: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create use case: {e!s}",
        )


@router.get(
    "/{use_case_id}",
    response_model=UseCaseResponse,
    summary="Get use case",
    description="Get a use case with its decision, attachments and audit trail.",
)
async def get_use_case(
    db: DbSession,
    use_case_id: str = Path(..., description="Use case ID"),
) -> UseCaseResponse:
    try:
        use_case = await use_case_service.get_use_case(db, use_case_id)
        return UseCaseResponse.model_validate(use_case)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to get use case {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch use case",
        )


@router.put(
    "/{use_case_id}",
    response_model=UseCaseResponse,
    summary="Update use case",
    description="Change intake fields of a Draft or Sent Back use case.",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def update_use_case(
    request: Request,
    body: UseCaseUpdate,
    db: DbSession,
    submitter: Submitter,
    use_case_id: str = Path(..., description="Use case ID"),
) -> UseCaseResponse:
    """
    Update a use case.

    Only the fields sent are changed. The edit is recorded in the audit
    trail under ``updatedBy`` from the body, or the caller identity.
    """
    try:
        use_case = await use_case_service.update_use_case(
            db, use_case_id, body.changes(), actor=body.updated_by or submitter
        )
        return UseCaseResponse.model_validate(use_case)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to update use case {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update use case: {e!s}",
        )


@router.delete(
    "/{use_case_id}",
    response_model=MessageResponse,
    summary="Delete use case",
    description="Delete a Draft or Sent Back use case with its decision, attachments and audit trail.",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def delete_use_case(
    request: Request,
    db: DbSession,
    storage: Storage,
    submitter: Submitter,
    use_case_id: str = Path(..., description="Use case ID"),
) -> MessageResponse:
    try:
        await use_case_service.delete_use_case(db, storage, use_case_id, actor=submitter)
        return MessageResponse(message="Use case deleted")

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to delete use case {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete use case: {e!s}",
        )


# =============================================================================
# Review lifecycle
# =============================================================================


@router.post(
    "/{use_case_id}/submit",
    response_model=UseCaseResponse,
    summary="Submit use case",
    description="Submit a Draft use case for MRM review.",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def submit_use_case(
    request: Request,
    db: DbSession,
    owner: ModelOwner,
    use_case_id: str = Path(..., description="Use case ID"),
) -> UseCaseResponse:
    try:
        use_case = await use_case_service.submit(db, use_case_id, owner)
        return UseCaseResponse.model_validate(use_case)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to submit use case {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to submit use case: {e!s}",
        )


@router.post(
    "/{use_case_id}/approve",
    response_model=UseCaseResponse,
    summary="Approve use case",
    description="Approve a submitted or under-review use case that has a decision.",
)
@limiter.limit(REVIEW_RATE_LIMIT)
async def approve_use_case(
    request: Request,
    db: DbSession,
    reviewer: Reviewer,
    use_case_id: str = Path(..., description="Use case ID"),
) -> UseCaseResponse:
    """
    Approve a use case.

    Returns 400 when the use case is not Submitted or Under Review, when
    no decision has been generated, or when another reviewer acted first.
    """
    try:
        use_case = await use_case_service.approve(db, use_case_id, reviewer)
        return UseCaseResponse.model_validate(use_case)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to approve use case {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to approve use case: {e!s}",
        )


@router.post(
    "/{use_case_id}/send-back",
    response_model=UseCaseResponse,
    summary="Send use case back",
    description="Return a submitted or under-review use case to its owner with notes.",
)
@limiter.limit(REVIEW_RATE_LIMIT)
async def send_back_use_case(
    request: Request,
    db: DbSession,
    reviewer: Reviewer,
    body: SendBackRequest | None = None,
    use_case_id: str = Path(..., description="Use case ID"),
) -> UseCaseResponse:
    notes = body.notes if body else None
    try:
        use_case = await use_case_service.send_back(db, use_case_id, reviewer, notes)
        return UseCaseResponse.model_validate(use_case)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to send back use case {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to send back use case: {e!s}",
        )


# =============================================================================
# Decisions
# =============================================================================


@router.get(
    "/{use_case_id}/decision",
    response_model=DecisionResponse,
    summary="Get decision",
)
async def get_decision(
    db: DbSession,
    use_case_id: str = Path(..., description="Use case ID"),
) -> DecisionResponse:
    try:
        decision = await use_case_service.get_decision(db, use_case_id)
        return DecisionResponse.model_validate(decision)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to get decision for {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch decision",
        )


@router.post(
    "/{use_case_id}/decision",
    response_model=DecisionResponse,
    summary="Generate decision",
    description="Run the risk rules against the use case and store the resulting decision.",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def generate_decision(
    request: Request,
    db: DbSession,
    use_case_id: str = Path(..., description="Use case ID"),
) -> DecisionResponse:
    """
    Generate (or regenerate) the risk decision for a use case.

    Re-running replaces the previous decision and appends a new
    DecisionGenerated audit event.
    """
    try:
        decision, _ = await use_case_service.generate_decision(
            db, use_case_id, get_settings().system_actor
        )
        return DecisionResponse.model_validate(decision)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to generate decision for {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate decision: {e!s}",
        )
