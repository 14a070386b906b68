"""
Sentry error tracking setup for ModelRisk.

Sentry is optional and controlled via the SENTRY_DSN environment variable.
When enabled it captures unhandled exceptions with request context, keeps
SQLAlchemy and log breadcrumbs, and tags events with the acting reviewer.

Source: https://docs.sentry.io/platforms/python/
"""

import logging
from typing import TYPE_CHECKING

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

if TYPE_CHECKING:
    from modelrisk.config import Settings

logger = logging.getLogger(__name__)


def setup_sentry(settings: "Settings") -> bool:
    """
    Initialize Sentry error tracking.

    Args:
        settings: Application settings containing Sentry configuration.

    Returns:
        bool: True if Sentry was initialized, False if disabled (no DSN).
    """
    if not settings.sentry_enabled:
        logger.debug("Sentry disabled (no DSN configured)")
        return False

    release = f"modelrisk@{settings.app_version}"
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        release=release,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            # INFO level for breadcrumbs, ERROR level for events
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR,
            ),
        ],
        attach_stacktrace=True,
        send_default_pii=False,
    )

    logger.info(
        f"Sentry initialized: environment={settings.sentry_environment}, "
        f"release={release}, "
        f"traces_sample_rate={settings.sentry_traces_sample_rate}"
    )
    return True


def set_user_context(identity: str | None, role: str | None = None) -> None:
    """
    Attach the acting identity to subsequent Sentry events.

    Args:
        identity: Reviewer or owner identity from the bearer token.
        role: Optional role claim.
    """
    if identity:
        sentry_sdk.set_user({"id": identity, "role": role})
    else:
        sentry_sdk.set_user(None)
