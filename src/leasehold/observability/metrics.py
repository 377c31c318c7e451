"""Prometheus metrics for lock operations.

Provides:
- Acquisition outcomes and time spent waiting for a grant
- Renewal and release outcomes
- Leases reclaimed by the expiry sweeper

Usage:
    from leasehold.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.lock_acquisitions_total.labels(result="granted").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

from leasehold.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        pass

    def observe(self, value: float) -> None:
        pass


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    lock_acquisitions_total: Any = field(default_factory=NoOpMetric)
    lock_acquire_wait_seconds: Any = field(default_factory=NoOpMetric)
    lock_renewals_total: Any = field(default_factory=NoOpMetric)
    lock_releases_total: Any = field(default_factory=NoOpMetric)
    leases_reclaimed_total: Any = field(default_factory=NoOpMetric)

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.lock_acquisitions_total = Counter(
            "leasehold_lock_acquisitions_total",
            "Lock acquisition outcomes",
            ["result"],
        )

        self.lock_acquire_wait_seconds = Histogram(
            "leasehold_lock_acquire_wait_seconds",
            "Time spent waiting for a lock grant in seconds",
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.lock_renewals_total = Counter(
            "leasehold_lock_renewals_total",
            "Lease renewal outcomes",
            ["result"],
        )

        self.lock_releases_total = Counter(
            "leasehold_lock_releases_total",
            "Lock release outcomes",
            ["result"],
        )

        self.leases_reclaimed_total = Counter(
            "leasehold_leases_reclaimed_total",
            "Expired leases removed by the sweeper",
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry
