"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
image_requests_total = Counter(
    "image_requests_total",
    "Image delivery requests",
    ["action", "tier", "status"],  # status: ok, denied, not_found, error
)

signed_url_cache_total = Counter(
    "signed_url_cache_total",
    "Signed URL cache lookups",
    ["status"],  # HIT, MISS, ERROR
)

signed_urls_issued_total = Counter(
    "signed_urls_issued_total",
    "Fresh signed URLs requested from object storage",
)

watermark_renders_total = Counter(
    "watermark_renders_total",
    "Watermark overlays rendered",
    ["kind", "renderer"],  # renderer: truetype, badge, fallback
)

forensic_log_failures_total = Counter(
    "forensic_log_failures_total",
    "Forensic access records that could not be dispatched or written",
    ["stage"],  # dispatch, write
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
image_delivery_duration_seconds = Histogram(
    "image_delivery_duration_seconds",
    "Image delivery resolution duration",
    ["action"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)

watermark_render_duration_seconds = Histogram(
    "watermark_render_duration_seconds",
    "Dynamic watermark compositing duration",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10],
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
