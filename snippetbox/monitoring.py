"""Prometheus metrics instrumentation for application monitoring."""

from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from fastapi import FastAPI


def setup_monitoring(app: FastAPI) -> None:
    """Configure and expose Prometheus metrics endpoint.

    Each application gets its own registry so several apps can live in one
    process. The in-progress gauge is left off: the instrumentator always
    registers it on the global registry.
    """
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=False,
        excluded_handlers=["/metrics", "/static.*"],
        env_var_name="ENABLE_METRICS",
        registry=CollectorRegistry(),
    )

    # Instrument the app and expose /metrics endpoint
    instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
