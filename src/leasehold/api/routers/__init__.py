"""API routers."""

from leasehold.api.routers import health, locks, metrics

__all__ = ["health", "locks", "metrics"]
