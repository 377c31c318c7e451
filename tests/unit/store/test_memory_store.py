"""Tests for the in-memory lease store."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from leasehold.store.base import LockRecord, StoreStatus
from leasehold.store.memory import InMemoryLeaseStore


class TestLockRecord:
    """Tests for LockRecord dataclass."""

    def test_expired_at_exact_deadline(self) -> None:
        """A record expires at expires_at exactly."""
        record = LockRecord("R", "a", 1, expires_at=100.0)

        assert record.is_expired(99.999) is False
        assert record.is_expired(100.0) is True

    def test_from_dict(self) -> None:
        """Record deserializes from dictionary with string numbers."""
        record = LockRecord.from_dict(
            {"resource": "R", "owner": "a", "fencing_token": "3", "expires_at": "12.5"}
        )

        assert record == LockRecord("R", "a", 3, 12.5)


class TestTryCreate:
    """Tests for InMemoryLeaseStore.try_create."""

    @pytest.mark.asyncio
    async def test_create_on_free_resource(self, store: InMemoryLeaseStore, clock) -> None:
        """First create succeeds with token 1."""
        result = await store.try_create("R", "a", ttl=5)

        assert result.ok
        assert result.record == LockRecord("R", "a", 1, clock.now + 5)

    @pytest.mark.asyncio
    async def test_busy_while_held(self, store: InMemoryLeaseStore) -> None:
        """Second create is busy and reports the holder."""
        await store.try_create("R", "a", ttl=5)

        result = await store.try_create("R", "b", ttl=5)

        assert result.status is StoreStatus.BUSY
        assert result.record is not None
        assert result.record.owner == "a"

    @pytest.mark.asyncio
    async def test_same_owner_is_also_busy(self, store: InMemoryLeaseStore) -> None:
        """Locks are not reentrant."""
        await store.try_create("R", "a", ttl=5)

        result = await store.try_create("R", "a", ttl=5)

        assert result.status is StoreStatus.BUSY

    @pytest.mark.asyncio
    async def test_expired_record_is_replaced(self, store: InMemoryLeaseStore, clock) -> None:
        """An expired record does not block a new owner."""
        await store.try_create("R", "a", ttl=5)
        clock.advance(5)

        result = await store.try_create("R", "b", ttl=5)

        assert result.ok
        assert result.record.owner == "b"
        assert result.record.fencing_token == 2

    @pytest.mark.asyncio
    async def test_tokens_survive_release(self, store: InMemoryLeaseStore) -> None:
        """Fencing counter is not reset when the record is deleted."""
        first = await store.try_create("R", "a", ttl=5)
        await store.release("R", "a")

        second = await store.try_create("R", "b", ttl=5)

        assert second.record.fencing_token == first.record.fencing_token + 1

    @pytest.mark.asyncio
    async def test_tokens_are_per_resource(self, store: InMemoryLeaseStore) -> None:
        """Each resource has its own token sequence."""
        r = await store.try_create("R", "a", ttl=5)
        s = await store.try_create("S", "a", ttl=5)

        assert r.record.fencing_token == 1
        assert s.record.fencing_token == 1

    def test_threads_race_for_one_grant(self) -> None:
        """Exactly one of many concurrent threads is granted the lock."""
        store = InMemoryLeaseStore()

        def attempt(i: int) -> bool:
            return asyncio.run(store.try_create("R", f"owner-{i}", ttl=30)).ok

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(32)))

        assert results.count(True) == 1


class TestRenew:
    """Tests for InMemoryLeaseStore.renew."""

    @pytest.mark.asyncio
    async def test_renew_extends_from_now(self, store: InMemoryLeaseStore, clock) -> None:
        """Renew moves expires_at to now + ttl and keeps the token."""
        await store.try_create("R", "a", ttl=5)
        clock.advance(3)

        result = await store.renew("R", "a", ttl=10)

        assert result.ok
        assert result.record.expires_at == clock.now + 10
        assert result.record.fencing_token == 1

    @pytest.mark.asyncio
    async def test_renew_by_other_owner(self, store: InMemoryLeaseStore) -> None:
        """Another owner cannot renew."""
        await store.try_create("R", "a", ttl=5)

        result = await store.renew("R", "b", ttl=5)

        assert result.status is StoreStatus.NOT_OWNER

    @pytest.mark.asyncio
    async def test_renew_after_expiry(self, store: InMemoryLeaseStore, clock) -> None:
        """An expired lease is never extended."""
        await store.try_create("R", "a", ttl=5)
        clock.advance(6)

        result = await store.renew("R", "a", ttl=5)

        assert result.status is StoreStatus.EXPIRED
        assert await store.get("R") is None

    @pytest.mark.asyncio
    async def test_renew_missing_record(self, store: InMemoryLeaseStore) -> None:
        """Renewing a record that no longer exists reports expiry."""
        result = await store.renew("R", "a", ttl=5)

        assert result.status is StoreStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_renew_after_takeover(self, store: InMemoryLeaseStore, clock) -> None:
        """Once another owner took over, the old owner is not the owner."""
        await store.try_create("R", "a", ttl=5)
        clock.advance(6)
        await store.try_create("R", "b", ttl=5)

        result = await store.renew("R", "a", ttl=5)

        assert result.status is StoreStatus.NOT_OWNER


class TestRelease:
    """Tests for InMemoryLeaseStore.release."""

    @pytest.mark.asyncio
    async def test_release_frees_resource(self, store: InMemoryLeaseStore) -> None:
        """Release by the owner removes the record."""
        await store.try_create("R", "a", ttl=5)

        result = await store.release("R", "a")

        assert result.ok
        assert await store.get("R") is None

    @pytest.mark.asyncio
    async def test_release_by_non_owner(self, store: InMemoryLeaseStore) -> None:
        """Release by another owner fails and keeps the record."""
        await store.try_create("R", "a", ttl=5)

        result = await store.release("R", "b")

        assert result.status is StoreStatus.NOT_OWNER
        assert (await store.get("R")).owner == "a"

    @pytest.mark.asyncio
    async def test_release_unheld(self, store: InMemoryLeaseStore) -> None:
        """Releasing a free resource fails."""
        result = await store.release("R", "a")

        assert result.status is StoreStatus.NOT_OWNER

    @pytest.mark.asyncio
    async def test_release_after_expiry(self, store: InMemoryLeaseStore, clock) -> None:
        """Releasing an expired lease fails but clears the stale record."""
        await store.try_create("R", "a", ttl=5)
        clock.advance(5)

        result = await store.release("R", "a")

        assert result.status is StoreStatus.NOT_OWNER
        assert await store.list_records(include_expired=True) == []


class TestInspection:
    """Tests for get, list_records and reclaim_expired."""

    @pytest.mark.asyncio
    async def test_list_hides_expired(self, store: InMemoryLeaseStore, clock) -> None:
        """Expired records are listed only on request."""
        await store.try_create("A", "a", ttl=1)
        await store.try_create("B", "b", ttl=10)
        clock.advance(2)

        live = await store.list_records()
        everything = await store.list_records(include_expired=True)

        assert [r.resource for r in live] == ["B"]
        assert [r.resource for r in everything] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_reclaim_removes_only_expired(self, store: InMemoryLeaseStore, clock) -> None:
        """Reclaim deletes expired records and keeps live ones."""
        await store.try_create("A", "a", ttl=1)
        await store.try_create("B", "b", ttl=10)
        clock.advance(2)

        reclaimed = await store.reclaim_expired()

        assert reclaimed == ["A"]
        assert [r.resource for r in await store.list_records(include_expired=True)] == ["B"]

    @pytest.mark.asyncio
    async def test_reclaim_respects_limit(self, store: InMemoryLeaseStore, clock) -> None:
        """At most ``limit`` records are reclaimed per call."""
        for name in ("A", "B", "C"):
            await store.try_create(name, "x", ttl=1)
        clock.advance(2)

        first = await store.reclaim_expired(limit=2)
        second = await store.reclaim_expired(limit=2)

        assert len(first) == 2
        assert len(second) == 1

    @pytest.mark.asyncio
    async def test_ping(self, store: InMemoryLeaseStore) -> None:
        assert await store.ping() is True
