"""
Prometheus metrics for the time clock.
"""
import os
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator


session_transitions_total = Counter(
    "timeclock_session_transitions_total",
    "Completed work session transitions",
    ["transition"],
)

store_errors_total = Counter(
    "timeclock_store_errors_total",
    "Failed store calls by status category",
    ["category"],
)

missed_clock_out_alerts_total = Counter(
    "timeclock_missed_clock_out_alerts_total",
    "Possible missed clock-out notifications raised",
)


def setup_metrics(app):
    """
    Setup Prometheus metrics for FastAPI app.
    Only enables if METRICS_ENABLED environment variable is set to true.

    Args:
        app: FastAPI application instance
    """
    metrics_enabled = os.getenv("METRICS_ENABLED", "").lower() in ("true", "1", "yes")

    if not metrics_enabled:
        return

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
        excluded_handlers=["/metrics"],
    )
    instrumentator.instrument(app).expose(app, include_in_schema=False)
