"""
Prometheus metrics configuration for the ModelRisk API.

Uses prometheus-fastapi-instrumentator for automatic HTTP metrics collection.
Source: https://github.com/trallnag/prometheus-fastapi-instrumentator

Metrics exposed at /metrics endpoint:
- HTTP request count by method, path, status
- HTTP request latency histogram
- HTTP requests in progress
- Use case lifecycle transitions and finding remediations
"""

from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator, metrics

from modelrisk.config import get_settings

# Incremented by the service layer after a successful commit
LIFECYCLE_TRANSITIONS = Counter(
    "modelrisk_lifecycle_transitions_total",
    "Use case lifecycle transitions",
    ["action", "outcome"],  # outcome: success, rejected
)

FINDING_ACTIONS = Counter(
    "modelrisk_finding_actions_total",
    "Validation finding remediations and sign-offs",
    ["action", "outcome"],
)

DECISIONS_GENERATED = Counter(
    "modelrisk_decisions_generated_total",
    "Risk tiering decisions generated",
    ["tier"],
)

ATTACHMENTS_UPLOADED = Counter(
    "modelrisk_attachments_uploaded_total",
    "Attachment files uploaded",
    ["attachment_type"],
)


def setup_prometheus(app) -> Instrumentator:
    """
    Configure Prometheus metrics for the FastAPI application.

    Args:
        app: FastAPI application instance

    Returns:
        Instrumentator: Configured Prometheus instrumentator
    """
    settings = get_settings()

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/health", "/metrics"],
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.add(
        metrics.default(
            metric_namespace="modelrisk",
            metric_subsystem="api",
            latency_lowr_buckets=[0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0],
        )
    )

    instrumentator.instrument(app)

    # Expose /metrics outside production, or in production with debug on
    if not settings.is_production or settings.debug:
        instrumentator.expose(app, endpoint="/metrics", include_in_schema=False)

    return instrumentator


def record_transition(action: str, success: bool) -> None:
    LIFECYCLE_TRANSITIONS.labels(action=action, outcome="success" if success else "rejected").inc()


def record_finding_action(action: str, success: bool) -> None:
    FINDING_ACTIONS.labels(action=action, outcome="success" if success else "rejected").inc()
