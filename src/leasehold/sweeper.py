"""Background reclamation of expired leases.

Stores already treat expired records as free; the sweeper removes them so
they stop occupying storage and stop showing up in listings. Each pass is
idempotent, and the check-then-delete for each record happens atomically
inside the store, so a lease renewed during a pass is never removed.

Example:
    sweeper = ExpirySweeper(store, interval=1.0)
    await sweeper.start()
    ...
    await sweeper.stop()
"""

from __future__ import annotations

import asyncio
import logging

from leasehold.observability.metrics import get_metrics
from leasehold.store.base import LeaseStore

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 1.0  # Seconds
DEFAULT_BATCH_SIZE = 100


class ExpirySweeper:
    """Periodically reclaims expired leases from a store.

    Args:
        store: Lease store to sweep
        interval: Seconds between passes
        batch_size: Maximum records reclaimed per pass
    """

    def __init__(
        self,
        store: LeaseStore,
        interval: float = DEFAULT_SWEEP_INTERVAL,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.store = store
        self.interval = interval
        self.batch_size = batch_size
        self.total_reclaimed = 0

        self._running = False
        self._task: asyncio.Task[None] | None = None
        self.metrics = get_metrics()

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_once(self) -> list[str]:
        """Run a single sweep pass.

        Returns:
            Resources whose expired leases were reclaimed
        """
        reclaimed = await self.store.reclaim_expired(limit=self.batch_size)
        if reclaimed:
            self.total_reclaimed += len(reclaimed)
            self.metrics.leases_reclaimed_total.inc(len(reclaimed))
            logger.info(f"Reclaimed {len(reclaimed)} expired lease(s): {', '.join(reclaimed)}")
        return reclaimed

    async def start(self) -> None:
        """Start sweeping in a background task."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Started expiry sweeper (every {self.interval}s)")

    async def stop(self) -> None:
        """Stop the background task and wait for it to finish."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped expiry sweeper")

    async def _sweep_loop(self) -> None:
        """Main sweep loop."""
        while self._running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in expiry sweep: {e}")

            await asyncio.sleep(self.interval)
