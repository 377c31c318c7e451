"""Tests for the expiry sweeper."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from leasehold.store.memory import InMemoryLeaseStore
from leasehold.sweeper import ExpirySweeper


class TestRunOnce:
    """Tests for a single sweep pass."""

    @pytest.mark.asyncio
    async def test_reclaims_expired(self, store: InMemoryLeaseStore, clock) -> None:
        await store.try_create("A", "a", ttl=1)
        await store.try_create("B", "b", ttl=10)
        clock.advance(2)
        sweeper = ExpirySweeper(store)

        reclaimed = await sweeper.run_once()

        assert reclaimed == ["A"]
        assert sweeper.total_reclaimed == 1
        assert [r.resource for r in await store.list_records(include_expired=True)] == ["B"]

    @pytest.mark.asyncio
    async def test_idempotent(self, store: InMemoryLeaseStore, clock) -> None:
        await store.try_create("A", "a", ttl=1)
        clock.advance(2)
        sweeper = ExpirySweeper(store)

        await sweeper.run_once()

        assert await sweeper.run_once() == []
        assert sweeper.total_reclaimed == 1

    @pytest.mark.asyncio
    async def test_renewed_lease_survives(self, store: InMemoryLeaseStore, clock) -> None:
        """A lease renewed before the pass is not reclaimed."""
        await store.try_create("A", "a", ttl=1)
        clock.advance(0.5)
        await store.renew("A", "a", ttl=10)
        clock.advance(1)

        assert await ExpirySweeper(store).run_once() == []
        assert (await store.get("A")).owner == "a"

    @pytest.mark.asyncio
    async def test_batch_size_limits_pass(self, store: InMemoryLeaseStore, clock) -> None:
        for name in ("A", "B", "C"):
            await store.try_create(name, "x", ttl=1)
        clock.advance(2)
        sweeper = ExpirySweeper(store, batch_size=2)

        assert len(await sweeper.run_once()) == 2
        assert len(await sweeper.run_once()) == 1


class TestLifecycle:
    """Tests for start and stop."""

    def test_rejects_non_positive_interval(self, store) -> None:
        with pytest.raises(ValueError, match="interval"):
            ExpirySweeper(store, interval=0)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, store: InMemoryLeaseStore, clock) -> None:
        await store.try_create("A", "a", ttl=1)
        clock.advance(2)
        sweeper = ExpirySweeper(store, interval=0.01)

        await sweeper.start()
        assert sweeper.is_running
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert not sweeper.is_running
        assert sweeper.total_reclaimed == 1

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, store) -> None:
        sweeper = ExpirySweeper(store, interval=0.01)

        await sweeper.start()
        task = sweeper._task
        await sweeper.start()

        assert sweeper._task is task
        await sweeper.stop()

    @pytest.mark.asyncio
    async def test_loop_survives_store_errors(self) -> None:
        """A failing pass is logged and the loop keeps going."""
        store = AsyncMock()
        store.reclaim_expired.side_effect = [RuntimeError("down"), ["A"]] + [[]] * 50
        sweeper = ExpirySweeper(store, interval=0.01)

        await sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert store.reclaim_expired.await_count >= 2
        assert sweeper.total_reclaimed == 1
