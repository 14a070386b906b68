"""
Health check router for ModelRisk API.

Provides endpoints for monitoring service health and readiness.
"""

from typing import Any

from fastapi import APIRouter
from sqlalchemy import text

from modelrisk.config import get_settings
from modelrisk.database import DbSession
from modelrisk.dependencies import Storage

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """
    Liveness check endpoint.

    Use this endpoint for container health checks and load balancer probes.
    """
    return {
        "status": "healthy",
        "service": "modelrisk-api",
        "version": settings.app_version,
    }


@router.get("/ready")
async def readiness_check(db: DbSession, storage: Storage) -> dict[str, Any]:
    """
    Readiness check endpoint.

    Verifies that the database and object storage are reachable. The
    database is critical; storage being down only degrades attachments.

    Returns:
        dict: Readiness status with component health details.
    """
    checks: dict[str, str] = {}

    # Check database connectivity (via PgBouncer if enabled)
    try:
        await db.execute(text("SELECT 1"))
        if settings.pgbouncer_enabled:
            checks["database"] = "healthy (via pgbouncer)"
        else:
            checks["database"] = "healthy (direct)"
    except Exception as e:
        checks["database"] = f"unhealthy: {e!s}"

    # Check MinIO connectivity (non-critical)
    try:
        if await storage.ping():
            checks["storage"] = "healthy"
        else:
            checks["storage"] = "unavailable (attachments degraded)"
    except Exception as e:
        checks["storage"] = f"unavailable: {e!s}"

    db_healthy = checks["database"].startswith("healthy")
    overall_status = "ready" if db_healthy else "not_ready"

    return {
        "status": overall_status,
        "checks": checks,
        "connection_mode": "pgbouncer" if settings.pgbouncer_enabled else "direct",
    }
