"""
ModelRisk API - Main FastAPI Application.

This module initializes the FastAPI application with all routers,
middleware, and startup/shutdown events.

Production Features:
- Rate limiting (slowapi)
- Security headers (OWASP)
- Structured logging (structlog) with request ids
- Prometheus metrics
- Sentry error tracking
- CORS hardening
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from modelrisk.config import get_settings
from modelrisk.database import _engine
from modelrisk.services.storage_service import storage_service
from modelrisk.utils.logging import RequestLoggingMiddleware, configure_logging, get_logger
from modelrisk.utils.metrics import setup_prometheus
from modelrisk.utils.rate_limit import limiter
from modelrisk.utils.sentry import setup_sentry

# Initialize structured logging
configure_logging()
logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.

    Source: https://owasp.org/www-project-secure-headers/
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        settings = get_settings()

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        # HSTS only makes sense behind HTTPS
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # JSON API: nothing should be rendered or framed
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup:
        - Ensures the MinIO attachments bucket exists (non-fatal)

    Shutdown:
        - Disposes the database engine
    """
    logger.info("Starting ModelRisk API...")
    try:
        if await storage_service.ping():
            logger.info("MinIO initialization complete")
        else:
            logger.warning("MinIO bucket not reachable; attachments unavailable")
    except Exception as e:
        logger.warning(f"MinIO initialization skipped: {e}")

    yield

    logger.info("Shutting down ModelRisk API...")
    await _engine.dispose()


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    # Initialize Sentry before app creation for early error capture
    # Source: https://docs.sentry.io/platforms/python/integrations/fastapi/
    if setup_sentry(settings):
        logger.info("Sentry error tracking enabled")

    # Docs are disabled in production
    docs_url = None if settings.is_production else "/docs"
    redoc_url = None if settings.is_production else "/redoc"
    openapi_url = None if settings.is_production else "/openapi.json"

    app = FastAPI(
        title="ModelRisk API",
        description="Model risk management: use case intake, risk tiering, review and validation findings",
        version=settings.app_version,
        lifespan=lifespan,
        debug=settings.debug,
        redirect_slashes=False,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
    )

    # Add rate limiter state and exception handler
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(SecurityHeadersMiddleware)

    # Source: https://owasp.org/www-project-web-security-testing-guide/latest/4-Web_Application_Security_Testing/11-Client-side_Testing/07-Testing_Cross_Origin_Resource_Sharing
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    # Outermost, so logged durations cover the whole stack
    app.add_middleware(RequestLoggingMiddleware)

    from modelrisk.routers import (
        attachments,
        audit,
        configuration,
        health,
        inventory,
        tier_preview,
        use_cases,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(configuration.router, prefix="/api/v1", tags=["Configuration"])
    app.include_router(use_cases.router, prefix="/api/v1", tags=["Use Cases"])
    app.include_router(tier_preview.router, prefix="/api/v1", tags=["Use Cases"])
    app.include_router(attachments.router, prefix="/api/v1", tags=["Attachments"])
    app.include_router(audit.router, prefix="/api/v1", tags=["Audit"])
    app.include_router(inventory.router, prefix="/api/v1", tags=["Inventory"])

    # Setup Prometheus metrics (exposes /metrics endpoint)
    setup_prometheus(app)

    return app


# Create the application instance
app = create_application()
