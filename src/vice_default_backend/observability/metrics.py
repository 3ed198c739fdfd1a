"""Prometheus metrics for the default backend.

Metric naming follows Prometheus conventions. The HTTP metrics share names
with the other cluster services so the same dashboards apply.

Usage::

    from vice_default_backend.observability.metrics import ROUTING_OUTCOMES_TOTAL

    ROUTING_OUTCOMES_TOTAL.labels(outcome="loading").inc()
"""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# ---------------------------------------------------------------------------
# HTTP request metrics
# ---------------------------------------------------------------------------

HTTP_REQUESTS_TOTAL = Counter(
    "http_server_requests_total",
    "Total HTTP requests by method, path pattern, and status code.",
    labelnames=["method", "path", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_server_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_FLIGHT = Gauge(
    "http_server_requests_in_flight",
    "Number of HTTP requests currently being processed.",
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Routing metrics
# ---------------------------------------------------------------------------

ROUTING_OUTCOMES_TOTAL = Counter(
    "default_backend_routing_outcomes_total",
    "Routing decisions by outcome (loading, landing, not_found, error).",
    labelnames=["outcome"],
    registry=REGISTRY,
)

LOOKUP_DURATION_SECONDS = Histogram(
    "default_backend_lookup_duration_seconds",
    "Subdomain existence lookup latency in seconds.",
    labelnames=["backend"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)


def metrics_text() -> tuple[bytes, str]:
    """Generate Prometheus exposition text and content-type header."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
