"""Health check endpoints.

Provides Kubernetes-compatible liveness and readiness probes:
- /health/live  - Liveness probe (always returns OK if process is running)
- /health/ready - Readiness probe (checks lease store connectivity)
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from leasehold.api.deps import get_lease_store, get_sweeper
from leasehold.store.base import LeaseStore
from leasehold.sweeper import ExpirySweeper

router = APIRouter(tags=["health"])

STORE_CHECK_TIMEOUT = 5.0  # seconds


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe.

    Returns OK if the process is running.
    """
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(
    store: LeaseStore = Depends(get_lease_store),
    sweeper: ExpirySweeper = Depends(get_sweeper),
) -> JSONResponse:
    """Readiness probe.

    Returns 200 if the lease store answers, 503 otherwise.
    """
    start = time.monotonic()
    message = None
    try:
        healthy = await asyncio.wait_for(store.ping(), timeout=STORE_CHECK_TIMEOUT)
        if not healthy:
            message = "Lease store check failed"
    except asyncio.TimeoutError:
        healthy = False
        message = "Lease store check timed out"
    latency = (time.monotonic() - start) * 1000

    store_check: dict[str, object] = {
        "status": "up" if healthy else "down",
        "backend": type(store).__name__,
        "latency_ms": round(latency, 2),
    }
    if message:
        store_check["message"] = message

    status = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY
    return JSONResponse(
        content={
            "status": status.value,
            "checks": {
                "store": store_check,
                "sweeper": {"running": sweeper.is_running},
            },
        },
        status_code=200 if healthy else 503,
    )
