"""
Structured logging configuration for the ModelRisk API.

Uses structlog over the standard library so that module loggers created
with ``logging.getLogger(__name__)`` and structlog loggers share one output.
Source: https://www.structlog.org/en/stable/

Production emits JSON lines; development emits coloured console output.
Every request gets a short correlation id, bound into the log context and
echoed back in the ``X-Request-ID`` response header.
"""

import logging
import sys
import time
import uuid

import structlog
from structlog.types import Processor

from modelrisk.config import get_settings

REQUEST_ID_HEADER = b"x-request-id"


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    Source: https://www.structlog.org/en/stable/standard-library.html
    """
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        shared_processors.append(structlog.processors.JSONRenderer())
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=logging.INFO,
        )
    else:
        shared_processors.append(structlog.dev.ConsoleRenderer(colors=True))
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            stream=sys.stdout,
            level=logging.DEBUG if settings.debug else logging.INFO,
        )

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Use case approved", use_case_id="...", tier="T3")
    """
    return structlog.get_logger(name)


def bind_request_context(request_id: str) -> None:
    structlog.contextvars.bind_contextvars(request_id=request_id)


def bind_actor(actor: str) -> None:
    """Attach the authenticated identity to log calls for the rest of the request."""
    structlog.contextvars.bind_contextvars(actor=actor)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


class RequestLoggingMiddleware:
    """
    ASGI middleware adding request logging and correlation ids.

    An incoming ``X-Request-ID`` header is reused; otherwise a short id is
    generated. Source: OWASP Logging Cheat Sheet
    """

    def __init__(self, app):
        self.app = app
        self.logger = get_logger(__name__)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = dict(scope.get("headers") or []).get(REQUEST_ID_HEADER)
        request_id = incoming.decode("latin-1")[:64] if incoming else uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        bind_request_context(request_id=request_id)
        self.logger.info(
            "Request started",
            method=scope.get("method", ""),
            path=scope.get("path", ""),
            client=(scope.get("client") or ("unknown", 0))[0],
        )

        response_status = 500

        async def send_wrapper(message):
            nonlocal response_status
            if message["type"] == "http.response.start":
                response_status = message["status"]
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER, request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.logger.info(
                "Request completed",
                method=scope.get("method", ""),
                path=scope.get("path", ""),
                status=response_status,
                duration_ms=round(duration_ms, 2),
            )
            clear_request_context()
