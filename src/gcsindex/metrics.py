"""Prometheus metrics definitions for gcs-index.

All custom metrics use the ``gcsindex_`` prefix for namespace isolation.
These are *application-level* metrics; the
``prometheus-fastapi-instrumentator`` package provides the HTTP-level ones
(request count, duration, sizes).

Counters reset to zero on restart. Prometheus handles gaps via ``rate()``.
"""

from __future__ import annotations

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# ---------------------------------------------------------------------------
# Request outcome counters
# ---------------------------------------------------------------------------
listings_total: Counter | None = None
listing_failures_total: Counter | None = None
objects_served_total: Counter | None = None  # labels: status

# ---------------------------------------------------------------------------
# README cache counters
# ---------------------------------------------------------------------------
readme_cache_hits_total: Counter | None = None
readme_cache_misses_total: Counter | None = None
readme_cache_evictions_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    This must be called once when metrics are enabled. When metrics are
    disabled in config the module-level references stay ``None`` and no
    collectors are registered in the global registry.
    """
    global _initialized
    global listings_total, listing_failures_total, objects_served_total
    global readme_cache_hits_total, readme_cache_misses_total, readme_cache_evictions_total

    if _initialized:
        return

    listings_total = Counter(
        "gcsindex_listings_total",
        "Total directory listings served",
    )
    listing_failures_total = Counter(
        "gcsindex_listing_failures_total",
        "Backend listings that failed part-way and were served partially",
    )
    objects_served_total = Counter(
        "gcsindex_objects_served_total",
        "Total object requests by outcome",
        ["status"],
    )
    readme_cache_hits_total = Counter(
        "gcsindex_readme_cache_hits_total",
        "README fetches answered from the cache",
    )
    readme_cache_misses_total = Counter(
        "gcsindex_readme_cache_misses_total",
        "README fetches that read the backend",
    )
    readme_cache_evictions_total = Counter(
        "gcsindex_readme_cache_evictions_total",
        "README cache entries evicted to stay within the byte budget",
    )

    _initialized = True


def inc(counter: Counter | None, **labels: str) -> None:
    """Increment a counter if metrics are enabled."""
    if counter is None:
        return
    if labels:
        counter.labels(**labels).inc()
    else:
        counter.inc()
