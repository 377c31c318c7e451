"""In-process lease store.

Suitable for single-process deployments and tests. Records and fencing
counters live in dictionaries guarded by one ``threading.Lock``; no operation
awaits while holding it, so calls are atomic for both threads and coroutines.

For multiple processes, use ``RedisLeaseStore`` instead.
"""

from __future__ import annotations

import logging
import threading
import time

from leasehold.store.base import Clock, LeaseStore, LockRecord, StoreResult, StoreStatus

logger = logging.getLogger(__name__)


class InMemoryLeaseStore(LeaseStore):
    """Dictionary-backed lease store.

    Args:
        clock: Source of epoch seconds (``time.time`` by default)
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or time.time
        self._records: dict[str, LockRecord] = {}
        self._tokens: dict[str, int] = {}
        self._mutex = threading.Lock()

    def _live(self, resource: str, now: float) -> LockRecord | None:
        record = self._records.get(resource)
        if record is None or record.is_expired(now):
            return None
        return record

    async def try_create(self, resource: str, owner: str, ttl: float) -> StoreResult:
        with self._mutex:
            now = self._clock()
            current = self._live(resource, now)
            if current is not None:
                return StoreResult(StoreStatus.BUSY, current)

            # Counter outlives the record so tokens are never reused
            token = self._tokens.get(resource, 0) + 1
            self._tokens[resource] = token
            record = LockRecord(resource, owner, token, now + ttl)
            self._records[resource] = record
            return StoreResult(StoreStatus.OK, record)

    async def renew(self, resource: str, owner: str, ttl: float) -> StoreResult:
        with self._mutex:
            now = self._clock()
            record = self._records.get(resource)
            if record is None:
                return StoreResult(StoreStatus.EXPIRED)
            if record.owner != owner:
                return StoreResult(StoreStatus.NOT_OWNER)
            if record.is_expired(now):
                return StoreResult(StoreStatus.EXPIRED)

            renewed = LockRecord(resource, owner, record.fencing_token, now + ttl)
            self._records[resource] = renewed
            return StoreResult(StoreStatus.OK, renewed)

    async def release(self, resource: str, owner: str) -> StoreResult:
        with self._mutex:
            now = self._clock()
            record = self._records.get(resource)
            if record is None or record.owner != owner:
                return StoreResult(StoreStatus.NOT_OWNER)

            del self._records[resource]
            if record.is_expired(now):
                return StoreResult(StoreStatus.NOT_OWNER)
            return StoreResult(StoreStatus.OK, record)

    async def get(self, resource: str) -> LockRecord | None:
        with self._mutex:
            return self._live(resource, self._clock())

    async def list_records(self, include_expired: bool = False) -> list[LockRecord]:
        with self._mutex:
            now = self._clock()
            records = sorted(self._records.values(), key=lambda r: r.resource)
        if include_expired:
            return records
        return [r for r in records if not r.is_expired(now)]

    async def reclaim_expired(self, limit: int = 100) -> list[str]:
        with self._mutex:
            now = self._clock()
            expired = [
                resource
                for resource, record in self._records.items()
                if record.is_expired(now)
            ][:limit]
            for resource in expired:
                del self._records[resource]
        return expired

    async def ping(self) -> bool:
        return True
