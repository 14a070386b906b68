"""Configuration router for ModelRisk API.

Serves the risk-tiering rule set and artifact catalog to the front end,
together with the result of validating each file.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException
from fastapi import status as http_status

from modelrisk.schemas.configuration import ConfigResponse
from modelrisk.services.config_loader import (
    load_artifacts_config,
    load_rules_config,
    validate_artifacts_config,
    validate_rules_config,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/config", tags=["configuration"])


@router.get(
    "",
    response_model=ConfigResponse,
    summary="Get configuration",
    description="Current rules and artifact catalog with validation results.",
)
async def get_configuration() -> ConfigResponse:
    """
    Get the active configuration.

    Validation problems are reported in ``validation`` rather than failing
    the request; only an unreadable file yields a 500.
    """
    try:
        rules = load_rules_config()
        artifacts = load_artifacts_config()

        return ConfigResponse(
            rules=rules,
            artifacts=artifacts,
            validation={
                "rules": validate_rules_config(rules),
                "artifacts": validate_artifacts_config(artifacts),
            },
            last_updated=datetime.now(timezone.utc),
        )

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load configuration",
        )
