"""Observability for leasehold.

Provides metrics and structured logging:
- Prometheus metrics for lock outcomes and sweeps
- JSON structured logging with correlation IDs and lock context
"""

from leasehold.observability.logging import (
    LogContext,
    configure_logging,
    correlation_id_var,
    owner_var,
    request_id_var,
    resource_var,
)
from leasehold.observability.metrics import (
    NoOpMetric,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "correlation_id_var",
    "resource_var",
    "owner_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "NoOpMetric",
]
