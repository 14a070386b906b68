"""
Rate limiting utilities for the ModelRisk API.

Uses slowapi for rate limiting based on client IP address.
Source: OWASP API Security Top 10 - API4:2023 Unrestricted Resource Consumption

Limits are configured via environment:
- RATE_LIMIT_PER_MINUTE: general mutating endpoints
- RATE_LIMIT_REVIEW_PER_MINUTE: MRM actions and remediation
- RATE_LIMIT_ENABLED=false switches limiting off (tests, local runs)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from modelrisk.config import settings

# Shared across all routers
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def get_general_rate_limit() -> str:
    """Get the general rate limit string based on environment."""
    return f"{settings.effective_rate_limit_per_minute}/minute"


def get_review_rate_limit() -> str:
    """Get the rate limit string for review and remediation actions."""
    return f"{settings.effective_rate_limit_review_per_minute}/minute"


# Evaluated at import time
GENERAL_RATE_LIMIT = get_general_rate_limit()
REVIEW_RATE_LIMIT = get_review_rate_limit()
