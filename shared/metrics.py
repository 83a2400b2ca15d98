"""
Shared metrics configuration for the cached serializer.
"""

from prometheus_client import Counter, Histogram, CollectorRegistry
from typing import Dict, Any, Optional
import time
from contextlib import contextmanager


class CacheMetrics:
    """Prometheus metrics for attribute resolution and invalidation.

    Metrics are only exported when a ``registry`` is given; without one the
    collectors still count, which keeps tests and embedded use free of
    duplicate-registration errors on the global registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None, prefix: str = "cached_serializer"):
        self.registry = registry
        self.prefix = prefix
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up resolution and eviction metrics."""
        self._metrics["resolutions_total"] = Counter(
            f"{self.prefix}_resolutions_total",
            "Total attribute resolutions",
            ["serializer", "attribute", "outcome"],
            registry=self.registry
        )

        self._metrics["compute_duration_seconds"] = Histogram(
            f"{self.prefix}_compute_duration_seconds",
            "Attribute compute duration in seconds",
            ["serializer", "attribute"],
            registry=self.registry
        )

        self._metrics["evictions_total"] = Counter(
            f"{self.prefix}_evictions_total",
            "Total cache evictions triggered by change events",
            ["attribute", "field"],
            registry=self.registry
        )

    def record_resolution(self, serializer: str, attribute: str, outcome: str):
        """Record one attribute resolution (``cached``, ``computed`` or ``forced``)."""
        self._metrics["resolutions_total"].labels(
            serializer=serializer,
            attribute=attribute,
            outcome=outcome
        ).inc()

    def record_eviction(self, attribute: str, field: str):
        """Record an eviction caused by a field change."""
        self._metrics["evictions_total"].labels(attribute=attribute, field=field).inc()

    @contextmanager
    def time_compute(self, serializer: str, attribute: str):
        """Context manager to time a compute call."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            self._metrics["compute_duration_seconds"].labels(
                serializer=serializer,
                attribute=attribute
            ).observe(duration)
