"""Exporter-side Prometheus metrics.

Module-level constants on a dedicated CollectorRegistry so the exposition
endpoint only serves query samples and exporter health (not python_gc_*,
process_*, etc.).
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

PREFIX = "sql_exporter_"

EXPORTER_REGISTRY = CollectorRegistry()

# --- Scrapes ---
SCRAPES_TOTAL = Counter(
    f"{PREFIX}scrapes_total",
    "Total query scrapes attempted",
    labelnames=["job", "query", "status"],
    registry=EXPORTER_REGISTRY,
)

SCRAPE_DURATION_SECONDS = Histogram(
    f"{PREFIX}scrape_duration_seconds",
    "Query scrape latency in seconds",
    labelnames=["job", "query"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=EXPORTER_REGISTRY,
)

# --- Cache ---
CACHED_SAMPLES = Gauge(
    f"{PREFIX}cached_samples",
    "Samples cached by the most recent successful scrape, summed over connections",
    labelnames=["job", "query"],
    registry=EXPORTER_REGISTRY,
)
