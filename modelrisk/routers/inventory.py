"""Inventory router for ModelRisk API.

This module provides the model inventory, its validations and the
findings workflow: recording findings, remediation by the model owner
and MRM sign-off.
"""

import logging

from fastapi import APIRouter, HTTPException, Path, Query, Request
from fastapi import status as http_status

from modelrisk.database import DbSession
from modelrisk.dependencies import ModelOwner, Reviewer
from modelrisk.errors import ModelRiskError
from modelrisk.models.decision import RiskTier
from modelrisk.models.inventory import InventoryStatus
from modelrisk.schemas.inventory import (
    FindingActionResponse,
    FindingCreate,
    FindingListResponse,
    FindingResponse,
    FindingUpdate,
    InventoryCreate,
    InventoryListResponse,
    InventoryModelActionResponse,
    InventoryModelDetail,
    InventoryModelResponse,
    InventoryStats,
    RemediateRequest,
    SignOffRequest,
    ValidationActionResponse,
    ValidationCreate,
    ValidationListResponse,
    ValidationResponse,
    ValidationUpdate,
)
from modelrisk.services.finding_service import finding_service
from modelrisk.services.inventory_service import inventory_service
from modelrisk.services.validation_service import validation_service
from modelrisk.utils.presentation import ValidationStatus
from modelrisk.utils.rate_limit import GENERAL_RATE_LIMIT, REVIEW_RATE_LIMIT, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["inventory"])

VALIDATIONS_PATH = "/{inventory_model_id}/validations"
FINDINGS_PATH = VALIDATIONS_PATH + "/{validation_id}/findings"


# =============================================================================
# Inventory models
# =============================================================================


@router.get(
    "",
    response_model=InventoryListResponse,
    summary="List inventory",
    description="List inventory models with validation status and findings counts.",
)
async def list_inventory(
    db: DbSession,
    tier: RiskTier | None = Query(None, description="Filter by risk tier"),
    status: InventoryStatus | None = Query(None, description="Filter by inventory status"),
    validation_status: ValidationStatus | None = Query(
        None,
        alias="validationStatus",
        description="Filter by overdue, upcoming or current",
    ),
    search: str | None = Query(None, description="Search name, inventory number and business line"),
) -> InventoryListResponse:
    try:
        entries = await inventory_service.list_models(
            db,
            tier=tier.value if tier else None,
            status=status.value if status else None,
            validation_status=validation_status.value if validation_status else None,
            search=search,
        )
        models = [
            build_response(InventoryModelResponse, model, summary)
            for model, summary in entries
        ]
        return InventoryListResponse(inventory_models=models, count=len(models))

    except Exception as e:
        logger.error(f"Failed to list inventory: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch inventory",
        )


@router.post(
    "",
    response_model=InventoryModelActionResponse,
    summary="Add to inventory",
    description="Add an approved use case with a decision to the model inventory.",
)
@limiter.limit(REVIEW_RATE_LIMIT)
async def add_to_inventory(
    request: Request,
    body: InventoryCreate,
    db: DbSession,
    reviewer: Reviewer,
) -> InventoryModelActionResponse:
    """
    Add a use case to the inventory.

    The entry is numbered MDL-YYYY-NNN and scheduled for validation by its
    tier. An ``initialValidationDate`` also records an initial validation.
    """
    try:
        model = await inventory_service.add_to_inventory(db, body.model_dump(), actor=reviewer)
        return InventoryModelActionResponse(
            inventory_model=build_detail(model, inventory_service.summarize(model))
        )

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to add use case {body.use_case_id} to inventory: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to add to inventory: {e!s}",
        )


@router.get(
    "/stats",
    response_model=InventoryStats,
    summary="Inventory statistics",
    description="Counts by tier, status and validation schedule.",
)
async def get_inventory_stats(db: DbSession) -> InventoryStats:
    try:
        return InventoryStats(**await inventory_service.stats(db))

    except Exception as e:
        logger.error(f"Failed to compute inventory stats: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch inventory stats",
        )


@router.get(
    "/{inventory_model_id}",
    response_model=InventoryModelDetail,
    summary="Get inventory model",
    description="Get an inventory model with its validations and findings.",
)
async def get_inventory_model(
    db: DbSession,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
) -> InventoryModelDetail:
    try:
        model, summary = await inventory_service.get_model(db, inventory_model_id)
        return build_detail(model, summary)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to get inventory model {inventory_model_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch inventory model",
        )


def build_response(schema, model, summary: dict, **extra):
    """Combine an inventory model row with its computed summary fields."""
    columns = {
        name: getattr(model, name)
        for name in schema.model_fields
        if name not in summary and name not in extra
    }
    return schema(**columns, **summary, **extra)


def build_detail(model, summary: dict) -> InventoryModelDetail:
    return build_response(
        InventoryModelDetail,
        model,
        summary,
        validations=[ValidationResponse.model_validate(v) for v in model.validations],
    )


# =============================================================================
# Validations
# =============================================================================


@router.get(
    VALIDATIONS_PATH,
    response_model=ValidationListResponse,
    summary="List validations",
)
async def list_validations(
    db: DbSession,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
) -> ValidationListResponse:
    try:
        validations = await validation_service.list_validations(db, inventory_model_id)
        return ValidationListResponse(
            validations=[ValidationResponse.model_validate(v) for v in validations],
            count=len(validations),
        )

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to list validations for {inventory_model_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch validations: {e!s}",
        )


@router.post(
    VALIDATIONS_PATH,
    response_model=ValidationActionResponse,
    summary="Record validation",
    description="Record a completed validation and move the next due date out by the tier's frequency.",
)
@limiter.limit(REVIEW_RATE_LIMIT)
async def create_validation(
    request: Request,
    body: ValidationCreate,
    db: DbSession,
    reviewer: Reviewer,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
) -> ValidationActionResponse:
    try:
        validation = await validation_service.create_validation(
            db, inventory_model_id, body.model_dump(), actor=reviewer
        )
        return ValidationActionResponse(validation=ValidationResponse.model_validate(validation))

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to create validation for {inventory_model_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create validation: {e!s}",
        )


@router.get(
    VALIDATIONS_PATH + "/{validation_id}",
    response_model=ValidationResponse,
    summary="Get validation",
)
async def get_validation(
    db: DbSession,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
    validation_id: str = Path(..., description="Validation ID"),
) -> ValidationResponse:
    try:
        validation = await validation_service.get_validation(db, inventory_model_id, validation_id)
        return ValidationResponse.model_validate(validation)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to get validation {validation_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch validation: {e!s}",
        )


@router.patch(
    VALIDATIONS_PATH + "/{validation_id}",
    response_model=ValidationActionResponse,
    summary="Update validation",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def update_validation(
    request: Request,
    body: ValidationUpdate,
    db: DbSession,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
    validation_id: str = Path(..., description="Validation ID"),
) -> ValidationActionResponse:
    """Change the fields sent in the body. The model's schedule is not recomputed."""
    try:
        validation = await validation_service.update_validation(
            db, inventory_model_id, validation_id, body.model_dump(exclude_unset=True)
        )
        return ValidationActionResponse(validation=ValidationResponse.model_validate(validation))

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to update validation {validation_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update validation: {e!s}",
        )


# =============================================================================
# Findings
# =============================================================================


@router.get(
    FINDINGS_PATH,
    response_model=FindingListResponse,
    summary="List findings",
)
async def list_findings(
    db: DbSession,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
    validation_id: str = Path(..., description="Validation ID"),
) -> FindingListResponse:
    try:
        findings = await finding_service.list_findings(db, inventory_model_id, validation_id)
        return FindingListResponse(
            findings=[FindingResponse.model_validate(f) for f in findings],
            count=len(findings),
        )

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to list findings for validation {validation_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch findings: {e!s}",
        )


@router.post(
    FINDINGS_PATH,
    response_model=FindingActionResponse,
    summary="Create finding",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def create_finding(
    request: Request,
    finding_data: FindingCreate,
    db: DbSession,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
    validation_id: str = Path(..., description="Validation ID"),
) -> FindingActionResponse:
    """
    Record a finding on a validation.

    Findings are numbered F-001, F-002, ... within the validation.
    """
    try:
        finding = await finding_service.create_finding(
            db,
            inventory_model_id,
            validation_id,
            finding_data.model_dump(),
        )
        return FindingActionResponse(finding=FindingResponse.model_validate(finding))

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to create finding on validation {validation_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create finding: {e!s}",
        )


@router.get(
    FINDINGS_PATH + "/{finding_id}",
    response_model=FindingResponse,
    summary="Get finding",
)
async def get_finding(
    db: DbSession,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
    validation_id: str = Path(..., description="Validation ID"),
    finding_id: str = Path(..., description="Finding ID"),
) -> FindingResponse:
    try:
        finding = await finding_service.get_finding(
            db, inventory_model_id, validation_id, finding_id
        )
        return FindingResponse.model_validate(finding)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to get finding {finding_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch finding: {e!s}",
        )


@router.patch(
    FINDINGS_PATH + "/{finding_id}",
    response_model=FindingActionResponse,
    summary="Update finding",
    description="Edit a finding that has not been signed off.",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def update_finding(
    request: Request,
    body: FindingUpdate,
    db: DbSession,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
    validation_id: str = Path(..., description="Validation ID"),
    finding_id: str = Path(..., description="Finding ID"),
) -> FindingActionResponse:
    """
    Update a finding.

    Setting ``remediationStatus`` to Accepted makes the finding eligible
    for sign-off. Remediated is only reachable through the remediate action.
    """
    try:
        finding = await finding_service.update_finding(
            db,
            inventory_model_id,
            validation_id,
            finding_id,
            body.model_dump(exclude_unset=True),
        )
        return FindingActionResponse(finding=FindingResponse.model_validate(finding))

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to update finding {finding_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update finding: {e!s}",
        )


@router.post(
    FINDINGS_PATH + "/{finding_id}/remediate",
    response_model=FindingActionResponse,
    summary="Remediate finding",
    description="Mark a finding as remediated. Fails with 400 if it already is.",
)
@limiter.limit(REVIEW_RATE_LIMIT)
async def remediate_finding(
    request: Request,
    body: RemediateRequest,
    db: DbSession,
    owner: ModelOwner,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
    validation_id: str = Path(..., description="Validation ID"),
    finding_id: str = Path(..., description="Finding ID"),
) -> FindingActionResponse:
    """
    Remediate a finding.

    The remediator is ``remediatedBy`` from the body when given, otherwise
    the caller identity.
    """
    try:
        finding = await finding_service.remediate(
            db,
            inventory_model_id,
            validation_id,
            finding_id,
            notes=body.remediation_notes,
            remediated_by=body.remediated_by or owner,
        )
        return FindingActionResponse(finding=FindingResponse.model_validate(finding))

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to remediate finding {finding_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to remediate finding: {e!s}",
        )


@router.post(
    FINDINGS_PATH + "/{finding_id}/sign-off",
    response_model=FindingActionResponse,
    summary="Sign off finding",
    description="Record MRM sign-off on a remediated or accepted finding.",
)
@limiter.limit(REVIEW_RATE_LIMIT)
async def sign_off_finding(
    request: Request,
    body: SignOffRequest,
    db: DbSession,
    reviewer: Reviewer,
    inventory_model_id: str = Path(..., description="Inventory model ID"),
    validation_id: str = Path(..., description="Validation ID"),
    finding_id: str = Path(..., description="Finding ID"),
) -> FindingActionResponse:
    try:
        finding = await finding_service.sign_off(
            db,
            inventory_model_id,
            validation_id,
            finding_id,
            notes=body.sign_off_notes,
            signed_off_by=body.sign_off_by or reviewer,
        )
        return FindingActionResponse(finding=FindingResponse.model_validate(finding))

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to sign off finding {finding_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to sign off finding: {e!s}",
        )
