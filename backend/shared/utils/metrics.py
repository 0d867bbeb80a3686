"""
Metrics collection for the resolver.
Wraps prometheus_client; collectors are module-level so every adapter shares them.
"""
from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
SOURCE_REQUESTS = Counter(
    "fa_source_requests_total",
    "Total outbound HTTP requests per data source",
    ["source", "status"],
)
SOURCE_FETCHES = Counter(
    "fa_source_fetches_total",
    "Adapter fetch outcomes (present, absent, error, disabled)",
    ["source", "outcome"],
)
CACHE_LOOKUPS = Counter(
    "fa_cache_lookups_total",
    "Cache lookups by cache name and result",
    ["cache", "result"],
)
RESOLUTIONS = Counter(
    "fa_resolutions_total",
    "Completed resolutions by subject kind and terminal state",
    ["kind", "state"],
)

# ── Histograms ──────────────────────────────────────────────────────────
SOURCE_LATENCY = Histogram(
    "fa_source_latency_seconds",
    "Outbound request latency per data source",
    ["source"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
RESOLUTION_LATENCY = Histogram(
    "fa_resolution_latency_seconds",
    "End-to-end resolve() latency",
    ["kind"],
    buckets=(0.01, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0),
)
RESOLUTION_CONFIDENCE = Histogram(
    "fa_resolution_confidence",
    "Confidence score of returned records",
    ["kind"],
    buckets=(10, 25, 50, 60, 75, 80, 90, 100),
)

# ── Gauges ──────────────────────────────────────────────────────────────
CACHE_SIZE = Gauge(
    "fa_cache_entries",
    "Live entries per cache after the last sweep",
    ["cache"],
)


def start_metrics_server(port: int) -> None:
    """Expose /metrics for scraping."""
    start_http_server(port)
    logger.info("metrics_server_started", port=port)
