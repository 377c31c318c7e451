"""Leader election on top of the lock manager.

Ensures only one instance runs certain background tasks at a time. The
election uses a lease named ``leader:<name>``:
1. Leaders acquire the lease with a TTL
2. Leaders renew the lease periodically
3. If a leader dies, the lease expires and another instance can claim it

Each term carries the lease's fencing token, so work done by a deposed leader
can be rejected downstream.

Example:
    async with LeaderElection(manager, "cleanup-job") as leader:
        if leader.is_leader:
            await run_cleanup(token=leader.fencing_token)

    # Or as a continuous election
    election = LeaderElection(manager, "background-worker")
    await election.start()

    while running:
        if election.is_leader:
            await do_leader_work()
        await asyncio.sleep(1)

    await election.stop()
"""

from __future__ import annotations

import asyncio
import logging
import time
from types import TracebackType
from typing import Awaitable, Callable, ParamSpec, TypeVar

from leasehold.errors import LockBusyError, LockLostError
from leasehold.manager import Lease, LockManager

logger = logging.getLogger(__name__)

LEADER_PREFIX = "leader:"
DEFAULT_LEASE_TTL = 30.0  # Seconds
RENEWAL_INTERVAL = 10.0  # Renew well before the TTL runs out


class LeaderElection:
    """Lease-based leader election for singleton workers.

    Args:
        manager: Lock manager backing the election
        name: Name of the leadership role (e.g., "cleanup-worker")
        lease_ttl: Lease TTL in seconds
        renewal_interval: How often to renew or retry, in seconds
    """

    def __init__(
        self,
        manager: LockManager,
        name: str,
        lease_ttl: float = DEFAULT_LEASE_TTL,
        renewal_interval: float = RENEWAL_INTERVAL,
    ):
        self.manager = manager
        self.name = name
        self.lease_ttl = lease_ttl
        self.renewal_interval = renewal_interval
        self.instance_id = manager.new_owner()

        self._resource = f"{LEADER_PREFIX}{name}"
        self._lease: Lease | None = None
        # Local monotonic bound on the current term, taken before each grant or renewal
        self._term_ends = 0.0
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._on_elected: list[asyncio.Future[None]] = []

    @property
    def is_leader(self) -> bool:
        """Check if this instance holds an unexpired term."""
        return self._lease is not None and time.monotonic() < self._term_ends

    @property
    def fencing_token(self) -> int | None:
        """Fencing token of the current term, if leader."""
        return self._lease.fencing_token if self.is_leader and self._lease else None

    @property
    def resource(self) -> str:
        """The lock resource backing the election."""
        return self._resource

    async def start(self) -> None:
        """Start participating in leader election."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._election_loop())
        logger.info(f"Started leader election for '{self.name}' as {self.instance_id}")

    async def stop(self) -> None:
        """Stop participating, handing leadership over if held."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._lease is not None:
            await self._step_down()

        logger.info(f"Stopped leader election for '{self.name}'")

    async def _election_loop(self) -> None:
        """Main election loop."""
        while self._running:
            try:
                if self._lease is not None:
                    await self._renew()
                else:
                    await self._try_elect()

                await asyncio.sleep(self.renewal_interval)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in election loop for '{self.name}': {e}")
                self._lease = None
                await asyncio.sleep(self.renewal_interval)

    async def _try_elect(self) -> bool:
        started = time.monotonic()
        try:
            self._lease = await self.manager.try_acquire(
                self._resource, ttl=self.lease_ttl, owner=self.instance_id
            )
        except LockBusyError:
            return False
        self._term_ends = started + self.lease_ttl

        logger.info(f"Elected as leader for '{self.name}' (term {self._lease.fencing_token})")
        for future in self._on_elected:
            if not future.done():
                future.set_result(None)
        self._on_elected.clear()
        return True

    async def _renew(self) -> None:
        started = time.monotonic()
        try:
            self._lease = await self.manager.renew(
                self._resource, self.instance_id, ttl=self.lease_ttl
            )
            self._term_ends = started + self.lease_ttl
        except LockLostError:
            self._lease = None
            logger.warning(f"Lost leadership for '{self.name}'")

    async def _step_down(self) -> None:
        try:
            await self.manager.release(self._resource, self.instance_id)
            logger.info(f"Released leadership for '{self.name}'")
        except LockLostError:
            logger.warning(f"Leadership for '{self.name}' was already lost")
        finally:
            self._lease = None

    async def wait_for_leadership(self, timeout: float | None = None) -> bool:
        """Wait until this instance becomes the leader.

        Args:
            timeout: Maximum time to wait in seconds (None = wait forever)

        Returns:
            True if leadership was acquired, False if timeout
        """
        if self.is_leader:
            return True

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._on_elected.append(future)

        try:
            await asyncio.wait_for(future, timeout=timeout)
            return True
        except asyncio.TimeoutError:
            if future in self._on_elected:
                self._on_elected.remove(future)
            return False

    async def get_current_leader(self) -> str | None:
        """Get the owner token of the current leader."""
        record = await self.manager.holder(self._resource)
        return record.owner if record else None

    async def __aenter__(self) -> "LeaderElection":
        """Context manager entry - try to acquire leadership once."""
        await self._try_elect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit - release leadership if held."""
        if self._lease is not None:
            await self._step_down()


P = ParamSpec("P")
R = TypeVar("R")


def leader_only(
    manager: LockManager, name: str, lease_ttl: float = DEFAULT_LEASE_TTL
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R | None]]]:
    """Decorator that makes a function only run on the leader instance.

    Example:
        @leader_only(manager, "daily-report")
        async def generate_daily_report():
            # Only runs on the leader instance
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R | None]]:
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
            async with LeaderElection(manager, name, lease_ttl=lease_ttl) as election:
                if election.is_leader:
                    return await func(*args, **kwargs)
                else:
                    logger.debug(f"Skipping {func.__name__} - not leader for '{name}'")
                    return None

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper

    return decorator
