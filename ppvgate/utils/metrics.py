"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
checkouts_total = Counter(
    "ppv_checkouts_total",
    "Checkout attempts by outcome",
    ["outcome"],  # created or an ErrorKind value
)

notifications_total = Counter(
    "ppv_notifications_total",
    "Processor notifications by type and result",
    ["type", "result"],
)

purchases_completed_total = Counter(
    "ppv_purchases_completed_total",
    "Ledger pending -> completed transitions",
)

purchases_failed_total = Counter(
    "ppv_purchases_failed_total",
    "Ledger pending -> failed transitions",
    ["reason"],
)

access_grants_total = Counter(
    "ppv_access_grants_total",
    "Stream provider access grants",
    ["status"],  # success, error, queued
)

stream_authorizations_total = Counter(
    "ppv_stream_authorizations_total",
    "Stream gate decisions",
    ["outcome"],
)

outbound_requests_total = Counter(
    "outbound_requests_total",
    "Calls to external collaborators",
    ["target", "status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
outbound_request_duration_seconds = Histogram(
    "outbound_request_duration_seconds",
    "External collaborator call duration (including retries)",
    ["target"],
    buckets=[0.1, 0.25, 0.5, 1, 2, 5, 10, 30],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "Inbound request duration",
    ["method", "status_code"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)

# Gauges
stale_pending_purchases = Gauge(
    "ppv_stale_pending_purchases",
    "Pending purchase records older than the stale threshold",
)

ungranted_completed_purchases = Gauge(
    "ppv_ungranted_completed_purchases",
    "Completed purchases still waiting for a stream provider grant",
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
