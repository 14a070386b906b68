"""ModelRisk API Routers.

This module exports all API routers for the ModelRisk application.
"""

from .attachments import router as attachments_router
from .audit import router as audit_router
from .configuration import router as configuration_router
from .health import router as health_router
from .inventory import router as inventory_router
from .tier_preview import router as tier_preview_router
from .use_cases import router as use_cases_router

__all__ = [
    "attachments_router",
    "audit_router",
    "configuration_router",
    "health_router",
    "inventory_router",
    "tier_preview_router",
    "use_cases_router",
]
