"""Utility modules for the ModelRisk API."""

from modelrisk.utils.sentry import (
    set_user_context,
    setup_sentry,
)

__all__ = [
    "setup_sentry",
    "set_user_context",
]
