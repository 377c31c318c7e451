"""Lock manager: the client-facing acquire/renew/release contract.

Builds on a ``LeaseStore`` and turns store outcomes into leases or errors:
- ``acquire`` retries with randomized exponential backoff until ``max_wait``
- ``renew`` and ``release`` raise ``LockLostError`` once ownership is gone,
  so a lost lock can never pass unnoticed

Every ``Lease`` carries a fencing token. Callers must attach it to each write
made under the lock so downstream storage can reject writes from a holder
whose lease was reclaimed (see ``leasehold.fencing``).

Example:
    manager = LockManager(InMemoryLeaseStore())

    lease = await manager.acquire("orders", ttl=30, max_wait=5)
    try:
        await write_orders(token=lease.fencing_token)
        lease = await manager.renew("orders", lease.owner)
    finally:
        await manager.release("orders", lease.owner)

    # Or as context manager
    async with manager.lock("orders", ttl=30) as lease:
        await write_orders(token=lease.fencing_token)
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from uuid import uuid4

from leasehold.config import Settings, settings
from leasehold.errors import (
    LeaseExpiredError,
    LockBusyError,
    LockLostError,
    LockTimeoutError,
    NotOwnerError,
    StoreUnavailableError,
)
from leasehold.observability.logging import LogContext
from leasehold.observability.metrics import get_metrics
from leasehold.store.base import LeaseStore, LockRecord, StoreResult, StoreStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Lease:
    """A granted lock as seen by its holder."""

    resource: str
    owner: str
    fencing_token: int
    expires_at: float

    @classmethod
    def from_record(cls, record: LockRecord) -> Lease:
        return cls(
            resource=record.resource,
            owner=record.owner,
            fencing_token=record.fencing_token,
            expires_at=record.expires_at,
        )

    def remaining(self, now: float | None = None) -> float:
        """Seconds left before the lease expires (never negative)."""
        if now is None:
            now = time.time()
        return max(0.0, self.expires_at - now)


@dataclass
class ManagerConfig:
    """Lock manager configuration (seconds)."""

    default_ttl: float = 30.0
    default_max_wait: float = 10.0
    backoff_base: float = 0.05
    backoff_max: float = 1.0
    instance_id: str = field(default_factory=lambda: uuid4().hex[:8])

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> ManagerConfig:
        config = config or settings
        return cls(
            default_ttl=config.default_ttl,
            default_max_wait=config.default_max_wait,
            backoff_base=config.backoff_base,
            backoff_max=config.backoff_max,
            instance_id=config.instance_id,
        )


class LockManager:
    """Acquire, renew and release leases on a shared store.

    The manager keeps no lock state of its own and holds no client-side lock
    around store calls; all mutual exclusion comes from the store.

    Args:
        store: Lease store used as the serialization point
        config: Defaults for ttl, wait and backoff
        rng: Random source for backoff jitter
    """

    def __init__(
        self,
        store: LeaseStore,
        config: ManagerConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.config = config or ManagerConfig()
        self._rng = rng or random.Random()
        self.metrics = get_metrics()

    def new_owner(self) -> str:
        """Generate a unique owner token for this instance."""
        return f"{self.config.instance_id}-{uuid4().hex}"

    def backoff_delay(self, attempt: int) -> float:
        """Randomized delay before retry ``attempt + 1``.

        Exponential in the attempt number, capped at ``backoff_max``, with the
        upper half of the window drawn at random.
        """
        ceiling = min(self.config.backoff_max, self.config.backoff_base * 2 ** (attempt - 1))
        return ceiling / 2 + self._rng.uniform(0, ceiling / 2)

    def _ttl(self, ttl: float | None) -> float:
        ttl = self.config.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        return ttl

    @staticmethod
    def _check_resource(resource: str) -> None:
        if not resource:
            raise ValueError("resource must be a non-empty string")

    async def try_acquire(
        self,
        resource: str,
        ttl: float | None = None,
        owner: str | None = None,
    ) -> Lease:
        """Make a single acquisition attempt.

        Raises:
            LockBusyError: Another owner holds a live lease
        """
        self._check_resource(resource)
        ttl = self._ttl(ttl)
        owner = owner or self.new_owner()

        result = await self.store.try_create(resource, owner, ttl)
        if not result.ok:
            self.metrics.lock_acquisitions_total.labels(result="busy").inc()
            raise LockBusyError(resource, result.record)

        self.metrics.lock_acquisitions_total.labels(result="granted").inc()
        return self._granted(result)

    async def acquire(
        self,
        resource: str,
        ttl: float | None = None,
        max_wait: float | None = None,
        owner: str | None = None,
    ) -> Lease:
        """Acquire a lease, retrying until ``max_wait`` seconds have passed.

        At least one attempt is always made. An unreachable store counts as a
        failed attempt and is retried like a busy lock.

        Args:
            resource: Name of the resource to lock
            ttl: Lease lifetime in seconds
            max_wait: Upper bound on time spent retrying
            owner: Owner token (generated if None)

        Returns:
            The granted lease

        Raises:
            LockTimeoutError: No attempt succeeded within ``max_wait``
        """
        self._check_resource(resource)
        ttl = self._ttl(ttl)
        max_wait = self.config.default_max_wait if max_wait is None else max_wait
        if max_wait < 0:
            raise ValueError(f"max_wait must not be negative, got {max_wait}")
        owner = owner or self.new_owner()

        start = time.monotonic()
        deadline = start + max_wait
        attempts = 0
        last_error: StoreUnavailableError | None = None

        while True:
            attempts += 1
            try:
                result = await self.store.try_create(resource, owner, ttl)
            except StoreUnavailableError as e:
                last_error = e
                self.metrics.lock_acquisitions_total.labels(result="unavailable").inc()
            else:
                if result.ok:
                    self.metrics.lock_acquisitions_total.labels(result="granted").inc()
                    self.metrics.lock_acquire_wait_seconds.observe(time.monotonic() - start)
                    return self._granted(result)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.backoff_delay(attempts), remaining))

        self.metrics.lock_acquisitions_total.labels(result="timeout").inc()
        logger.info(f"Timed out acquiring '{resource}' after {attempts} attempts")
        raise LockTimeoutError(resource, max_wait, attempts) from last_error

    def _granted(self, result: StoreResult) -> Lease:
        assert result.record is not None
        lease = Lease.from_record(result.record)
        with LogContext(resource=lease.resource, owner=lease.owner):
            logger.info(f"Acquired lock '{lease.resource}' (token {lease.fencing_token})")
        return lease

    async def renew(self, resource: str, owner: str, ttl: float | None = None) -> Lease:
        """Extend a held lease by ``ttl`` seconds from now.

        Raises:
            NotOwnerError: Another owner holds the lock
            LeaseExpiredError: The lease ran out before renewal
        """
        self._check_resource(resource)
        ttl = self._ttl(ttl)

        result = await self.store.renew(resource, owner, ttl)
        self.metrics.lock_renewals_total.labels(result=result.status.value).inc()
        if not result.ok:
            raise self._lost(resource, owner, result.status)

        assert result.record is not None
        logger.debug(f"Renewed lock '{resource}' until {result.record.expires_at:.3f}")
        return Lease.from_record(result.record)

    async def release(self, resource: str, owner: str) -> None:
        """Release a held lease.

        Raises:
            NotOwnerError: The caller no longer owns the lock
        """
        self._check_resource(resource)

        result = await self.store.release(resource, owner)
        self.metrics.lock_releases_total.labels(result=result.status.value).inc()
        if not result.ok:
            raise self._lost(resource, owner, result.status)

        with LogContext(resource=resource, owner=owner):
            logger.info(f"Released lock '{resource}'")

    def _lost(self, resource: str, owner: str, status: StoreStatus) -> LockLostError:
        error: LockLostError
        if status is StoreStatus.EXPIRED:
            error = LeaseExpiredError(resource, owner)
        else:
            error = NotOwnerError(resource, owner)
        with LogContext(resource=resource, owner=owner):
            logger.warning(str(error))
        return error

    @asynccontextmanager
    async def lock(
        self,
        resource: str,
        ttl: float | None = None,
        max_wait: float | None = None,
        owner: str | None = None,
    ) -> AsyncIterator[Lease]:
        """Hold a lock for the duration of the block.

        Releasing at exit raises ``LockLostError`` if the lease was lost
        while the block ran.
        """
        lease = await self.acquire(resource, ttl=ttl, max_wait=max_wait, owner=owner)
        try:
            yield lease
        finally:
            await self.release(lease.resource, lease.owner)

    async def holder(self, resource: str) -> LockRecord | None:
        """Get the live record for a resource, if held."""
        self._check_resource(resource)
        return await self.store.get(resource)

    async def list_locks(self) -> list[LockRecord]:
        """List all live locks."""
        return await self.store.list_records()
