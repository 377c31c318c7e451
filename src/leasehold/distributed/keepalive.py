"""Automatic lease renewal for long critical sections.

Example:
    lease = await manager.acquire("reindex", ttl=30)
    async with LeaseKeeper(manager, lease) as keeper:
        for batch in batches:
            keeper.check()  # Raises LockLostError if the lease was lost
            await process(batch, token=keeper.lease.fencing_token)
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

from leasehold.errors import LockLostError
from leasehold.manager import Lease, LockManager

logger = logging.getLogger(__name__)


class LeaseKeeper:
    """Renews a held lease in the background until stopped.

    Renewal happens every ``interval`` seconds, a third of the lease ttl by
    default. When a renewal reports the lease lost, the keeper stops, sets
    ``lost`` and remembers the error; ``check()`` re-raises it so the loss
    cannot be ignored.

    Args:
        manager: Lock manager that granted the lease
        lease: Lease to keep alive
        ttl: Lifetime requested on each renewal (defaults to the original)
        interval: Seconds between renewals
        release_on_exit: Release the lease when used as a context manager
    """

    def __init__(
        self,
        manager: LockManager,
        lease: Lease,
        ttl: float | None = None,
        interval: float | None = None,
        release_on_exit: bool = True,
    ) -> None:
        self.manager = manager
        self.lease = lease
        self.ttl = ttl if ttl is not None else max(lease.remaining(), 0.001)
        self.interval = interval if interval is not None else self.ttl / 3
        self.release_on_exit = release_on_exit

        self.lost = asyncio.Event()
        self.error: LockLostError | None = None
        self._task: asyncio.Task[None] | None = None

    def check(self) -> None:
        """Raise the stored ``LockLostError`` if the lease was lost."""
        if self.error is not None:
            raise self.error

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._renew_loop())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _renew_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.lease = await self.manager.renew(
                    self.lease.resource, self.lease.owner, self.ttl
                )
            except LockLostError as e:
                self.error = e
                self.lost.set()
                logger.warning(f"Keep-alive stopped, lease on '{self.lease.resource}' lost")
                return
            except Exception as e:
                # Transient store errors: try again next interval
                logger.error(f"Error renewing '{self.lease.resource}': {e}")

    async def __aenter__(self) -> "LeaseKeeper":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
        if self.release_on_exit and self.error is None:
            await self.manager.release(self.lease.resource, self.lease.owner)
