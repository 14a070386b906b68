"""Tier preview router for ModelRisk API.

Lets the intake form show the tier a use case would receive while it is
still being filled in. Nothing is persisted.
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi import status as http_status

from modelrisk.errors import ModelRiskError
from modelrisk.schemas.use_case import TierPreviewRequest, TierPreviewResponse
from modelrisk.services.rules_engine import preview_tier
from modelrisk.utils.rate_limit import GENERAL_RATE_LIMIT, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tier-preview", tags=["use-cases"])


@router.post(
    "",
    response_model=TierPreviewResponse,
    summary="Preview tier",
    description="Evaluate intake answers against the rule set without saving them.",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def tier_preview(request: Request, body: TierPreviewRequest) -> TierPreviewResponse:
    try:
        return TierPreviewResponse(**preview_tier(body.model_dump()))

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to preview tier: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to preview tier: {e!s}",
        )
