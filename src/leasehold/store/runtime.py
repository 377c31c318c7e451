"""Runtime wiring for the lease store."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from leasehold.config import settings
from leasehold.store.base import LeaseStore
from leasehold.store.memory import InMemoryLeaseStore
from leasehold.store.redis import RedisLeaseStore, close_redis, get_redis

logger = logging.getLogger(__name__)

_lease_store: LeaseStore | None = None


async def create_lease_store(backend: str | None = None) -> LeaseStore:
    """Create a lease store based on configuration."""
    backend = (backend or settings.store_backend).lower()

    if backend in {"memory", "inmemory", "in_memory"}:
        return InMemoryLeaseStore()

    if backend == "redis":
        return RedisLeaseStore(await get_redis(), key_prefix=settings.redis_key_prefix)

    raise ValueError("Unsupported store_backend. Supported values: memory, redis.")


async def get_lease_store() -> LeaseStore:
    """Get the singleton lease store instance."""
    global _lease_store
    if _lease_store is None:
        _lease_store = await create_lease_store()
        logger.info("Lease store ready (%s)", type(_lease_store).__name__)
    return _lease_store


async def close_lease_store() -> None:
    """Close the singleton lease store and its connections."""
    global _lease_store
    if _lease_store is None:
        return
    await _lease_store.close()
    if isinstance(_lease_store, RedisLeaseStore):
        await close_redis()
    logger.info("Lease store closed (%s)", type(_lease_store).__name__)
    _lease_store = None


@asynccontextmanager
async def open_lease_store(backend: str | None = None) -> AsyncIterator[LeaseStore]:
    """Open a short-lived lease store, closing it on exit.

    Used by one-shot tools such as the CLI; long-running services use the
    singleton from ``get_lease_store``.
    """
    store = await create_lease_store(backend)
    try:
        yield store
    finally:
        await store.close()
        if isinstance(store, RedisLeaseStore):
            await close_redis()
