"""Prometheus metrics for the payment gateway service.

Everything lives in a dedicated registry served by ``GET /metrics``:
inbound HTTP traffic, outbound processor calls, webhook outcomes and
recorded transactions. Label values are bounded (route templates,
provider and operation names), never raw paths or IDs.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

REGISTRY = CollectorRegistry()

APP_INFO = Info("paygate_app", "Payment gateway build information", registry=REGISTRY)

# Inbound HTTP

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "HTTP requests by route template and status",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency by route template",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "HTTP requests being served",
    ["method"],
    registry=REGISTRY,
)

# Outbound processor calls; processors can take tens of seconds to answer

GATEWAY_REQUESTS_TOTAL = Counter(
    "gateway_requests_total",
    "Processor calls by outcome (success / error)",
    ["provider", "operation", "outcome"],
    registry=REGISTRY,
)

GATEWAY_REQUEST_DURATION_SECONDS = Histogram(
    "gateway_request_duration_seconds",
    "Processor call latency",
    ["provider", "operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)

# Webhooks and the transaction store

WEBHOOK_EVENTS_TOTAL = Counter(
    "webhook_events_total",
    "Inbound webhook events by outcome",
    ["provider", "outcome"],
    registry=REGISTRY,
)

TRANSACTIONS_RECORDED_TOTAL = Counter(
    "transactions_recorded_total",
    "Transactions written to the store",
    ["provider"],
    registry=REGISTRY,
)


def get_metrics() -> bytes:
    """Render the registry in the Prometheus text format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def set_app_info(version: str, environment: str) -> None:
    APP_INFO.info({"version": version, "environment": environment})
