"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
content_issued_total = Counter(
    "content_issued_total",
    "Total number of content keys issued",
    ["kind"],
)

key_collisions_total = Counter(
    "key_collisions_total",
    "Total key collisions detected at issuance",
)

deliveries_total = Counter(
    "deliveries_total",
    "Delivery attempts by outcome",
    ["outcome"],  # delivered, gated, not_found, failed
)

tickets_processed_total = Counter(
    "tickets_processed_total",
    "Delivery tickets processed by the deletion loop",
    ["result"],  # completed, partial
)

messages_deleted_total = Counter(
    "messages_deleted_total",
    "Delivered messages deleted",
    ["result"],  # ok, already_gone, error
)

content_deactivated_total = Counter(
    "content_deactivated_total",
    "Content records deactivated because the source post was deleted",
)

telegram_requests_total = Counter(
    "telegram_requests_total",
    "Total Telegram API requests",
    ["method", "status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
telegram_request_duration_seconds = Histogram(
    "telegram_request_duration_seconds",
    "Telegram API request duration",
    ["method"],
    buckets=[0.1, 0.5, 1, 2, 5, 10],
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
