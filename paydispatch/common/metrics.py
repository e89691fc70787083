"""Prometheus metric definitions for the dispatcher."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


transactions_received_total = Counter(
    "transactions_received_total",
    "Transaction records accepted for dispatch",
    ["service", "category"],
)
transition_outcomes_total = Counter(
    "transition_outcomes_total",
    "Account lifecycle outcomes by action",
    ["service", "action", "outcome"],
)
dispatch_failures_total = Counter(
    "dispatch_failures_total",
    "Transaction records rejected with a hard failure",
    ["service", "error_type"],
)
notifications_sent_total = Counter(
    "notifications_sent_total",
    "Soft-failure notifications delivered",
    ["service", "channel"],
)
dispatch_latency_seconds = Histogram(
    "dispatch_latency_seconds",
    "Time spent processing one transaction record",
    ["service"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
