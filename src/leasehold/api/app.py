"""FastAPI application factory for the lock service.

Creates the application with:
- Lock acquire/renew/release endpoints (/locks)
- Health probes and Prometheus metrics
- Lifecycle management for the lease store and expiry sweeper
- Consistent Result/Message error responses
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from leasehold.api.errors import (
    LockApiError,
    generic_exception_handler,
    lock_api_exception_handler,
    lock_error_handler,
    value_error_handler,
)
from leasehold.api.middleware import CorrelationMiddleware
from leasehold.api.routers import health, locks
from leasehold.api.routers import metrics as metrics_router
from leasehold.config import settings
from leasehold.errors import LockError
from leasehold.manager import LockManager, ManagerConfig
from leasehold.observability import configure_logging, get_metrics
from leasehold.store.base import LeaseStore
from leasehold.store.runtime import close_lease_store, get_lease_store
from leasehold.sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


def _wire(app: FastAPI, store: LeaseStore) -> None:
    """Attach the store and the components built on it to app state."""
    app.state.lease_store = store
    app.state.lock_manager = LockManager(store, ManagerConfig.from_settings())
    app.state.sweeper = ExpirySweeper(
        store,
        interval=settings.sweep_interval,
        batch_size=settings.sweep_batch_size,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Initialize Prometheus metrics
    - Open the configured lease store (unless one was injected)
    - Start the expiry sweeper
    On shutdown:
    - Stop the sweeper
    - Close the lease store if this app opened it
    """
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    get_metrics()

    logger.info(f"Starting {settings.app_name} ({settings.env})")

    owns_store = getattr(app.state, "lease_store", None) is None
    if owns_store:
        _wire(app, await get_lease_store())

    sweeper: ExpirySweeper = app.state.sweeper
    if app.state.start_sweeper:
        await sweeper.start()

    logger.info(f"{settings.app_name} startup complete")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await sweeper.stop()
    if owns_store:
        await close_lease_store()
    logger.info(f"{settings.app_name} shutdown complete")


def create_app(
    store: LeaseStore | None = None,
    start_sweeper: bool | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Lease store to serve; the configured backend is opened at
            startup when None
        start_sweeper: Run the expiry sweeper in the background
            (defaults to ``settings.enable_sweeper``)
    """
    app = FastAPI(
        title="leasehold",
        description="Lease-based distributed lock service with fencing tokens",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.start_sweeper = settings.enable_sweeper if start_sweeper is None else start_sweeper
    if store is not None:
        _wire(app, store)

    app.add_middleware(CorrelationMiddleware)

    # Register exception handlers
    app.add_exception_handler(LockApiError, cast(ExceptionHandler, lock_api_exception_handler))
    app.add_exception_handler(LockError, cast(ExceptionHandler, lock_error_handler))
    app.add_exception_handler(ValueError, cast(ExceptionHandler, value_error_handler))
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    # Include routers
    app.include_router(health.router)
    if settings.enable_metrics:
        app.include_router(metrics_router.router)
    app.include_router(locks.router)

    return app
