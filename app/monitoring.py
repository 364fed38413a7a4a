"""Prometheus metrics instrumentation for application monitoring."""

from prometheus_fastapi_instrumentator import Instrumentator
from fastapi import FastAPI
from .config import settings


def setup_monitoring(app: FastAPI) -> None:
    """Instrument request metrics and expose /metrics when ENABLE_METRICS is on."""
    if not settings.ENABLE_METRICS:
        return

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health"],
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )

    # Idea ids in paths are templated (/api/ideas/{idea_id}) so label cardinality stays bounded
    instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
