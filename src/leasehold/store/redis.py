"""Redis-backed lease store.

Stores each lock as a hash and keeps lease state consistent across any number
of processes:

- ``<prefix>lock:<resource>``: hash with ``owner``, ``token``, ``expires_at``
- ``<prefix>fence:<resource>``: ``INCR`` counter issuing fencing tokens
- ``<prefix>expiry``: sorted set of resources scored by ``expires_at``

Every mutation is a Lua script, so each operation is atomic on the server.
Scripts read the clock with ``TIME``, which makes Redis the only time source
that decides expiry; ``expires_at`` is kept in milliseconds.

Example:
    store = RedisLeaseStore(await get_redis())
    result = await store.try_create("orders", "worker-1", ttl=30)
    if result.ok:
        print(result.record.fencing_token)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, TypeVar, cast

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from leasehold.config import settings
from leasehold.errors import StoreUnavailableError
from leasehold.store.base import LeaseStore, LockRecord, StoreResult, StoreStatus

if TYPE_CHECKING:
    from redis.asyncio import Redis

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Module-level connection pool
_redis_client: Redis | None = None

# Script reply codes
_STATUS_CODES = {
    0: StoreStatus.BUSY,
    1: StoreStatus.OK,
    2: StoreStatus.NOT_OWNER,
    3: StoreStatus.EXPIRED,
}

_NOW_MS = """
local t = redis.call('TIME')
local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)
"""

# KEYS: lock, fence, expiry  ARGV: owner, ttl_ms, resource
TRY_CREATE_SCRIPT = (
    _NOW_MS
    + """
local cur = redis.call('HMGET', KEYS[1], 'owner', 'token', 'expires_at')
if cur[1] and tonumber(cur[3]) > now then
    return {0, cur[1], cur[2], cur[3]}
end
local token = redis.call('INCR', KEYS[2])
local expires_at = now + tonumber(ARGV[2])
redis.call('HSET', KEYS[1], 'owner', ARGV[1], 'token', token, 'expires_at', expires_at)
redis.call('ZADD', KEYS[3], expires_at, ARGV[3])
return {1, ARGV[1], token, expires_at}
"""
)

# KEYS: lock, expiry  ARGV: owner, ttl_ms, resource
RENEW_SCRIPT = (
    _NOW_MS
    + """
local cur = redis.call('HMGET', KEYS[1], 'owner', 'token', 'expires_at')
if not cur[1] then
    return {3}
end
if cur[1] ~= ARGV[1] then
    return {2}
end
if tonumber(cur[3]) <= now then
    return {3}
end
local expires_at = now + tonumber(ARGV[2])
redis.call('HSET', KEYS[1], 'expires_at', expires_at)
redis.call('ZADD', KEYS[2], expires_at, ARGV[3])
return {1, cur[1], cur[2], expires_at}
"""
)

# KEYS: lock, expiry  ARGV: owner, resource
RELEASE_SCRIPT = (
    _NOW_MS
    + """
local cur = redis.call('HMGET', KEYS[1], 'owner', 'token', 'expires_at')
if not cur[1] or cur[1] ~= ARGV[1] then
    return {2}
end
redis.call('DEL', KEYS[1])
redis.call('ZREM', KEYS[2], ARGV[2])
if tonumber(cur[3]) <= now then
    return {2}
end
return {1, cur[1], cur[2], cur[3]}
"""
)

# KEYS: expiry  ARGV: lock key prefix, limit
RECLAIM_SCRIPT = (
    _NOW_MS
    + """
local due = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', now, 'LIMIT', 0, tonumber(ARGV[2]))
local reclaimed = {}
for _, resource in ipairs(due) do
    local key = ARGV[1] .. resource
    local expires_at = redis.call('HGET', key, 'expires_at')
    if not expires_at then
        redis.call('ZREM', KEYS[1], resource)
    elseif tonumber(expires_at) <= now then
        redis.call('DEL', key)
        redis.call('ZREM', KEYS[1], resource)
        table.insert(reclaimed, resource)
    else
        redis.call('ZADD', KEYS[1], tonumber(expires_at), resource)
    end
end
return reclaimed
"""
)


async def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def _ttl_ms(ttl: float) -> int:
    """Lease ttl in whole milliseconds, rounded up so a lease never expires early."""
    return max(1, math.ceil(round(ttl * 1000, 3)))


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


def _await_redis(result: Awaitable[T] | T) -> Awaitable[T]:
    """Cast redis-py async results to an awaitable for mypy."""
    return cast(Awaitable[T], result)


class RedisLeaseStore(LeaseStore):
    """Lease store on a single Redis node.

    Args:
        client: Async Redis client (bytes responses)
        key_prefix: Namespace for all keys written by the store
    """

    def __init__(self, client: Redis, key_prefix: str | None = None):
        self.client = client
        self.key_prefix = key_prefix if key_prefix is not None else settings.redis_key_prefix
        self._expiry_key = f"{self.key_prefix}expiry"

        self._create_script = client.register_script(TRY_CREATE_SCRIPT)
        self._renew_script = client.register_script(RENEW_SCRIPT)
        self._release_script = client.register_script(RELEASE_SCRIPT)
        self._reclaim_script = client.register_script(RECLAIM_SCRIPT)

    def lock_key(self, resource: str) -> str:
        return f"{self.key_prefix}lock:{resource}"

    def fence_key(self, resource: str) -> str:
        return f"{self.key_prefix}fence:{resource}"

    async def _call(self, resource: str, awaitable: Awaitable[T]) -> T:
        """Await a Redis call, mapping connection failures to store errors."""
        try:
            return await awaitable
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning(f"Redis unavailable for '{resource}': {e}")
            raise StoreUnavailableError(resource, str(e)) from e

    def _result(self, resource: str, reply: list[Any]) -> StoreResult:
        status = _STATUS_CODES[int(reply[0])]
        if len(reply) < 4:
            return StoreResult(status)
        record = LockRecord(
            resource=resource,
            owner=_decode(reply[1]),
            fencing_token=int(reply[2]),
            expires_at=int(reply[3]) / 1000,
        )
        return StoreResult(status, record)

    async def try_create(self, resource: str, owner: str, ttl: float) -> StoreResult:
        reply = await self._call(
            resource,
            self._create_script(
                keys=[self.lock_key(resource), self.fence_key(resource), self._expiry_key],
                args=[owner, _ttl_ms(ttl), resource],
            ),
        )
        return self._result(resource, reply)

    async def renew(self, resource: str, owner: str, ttl: float) -> StoreResult:
        reply = await self._call(
            resource,
            self._renew_script(
                keys=[self.lock_key(resource), self._expiry_key],
                args=[owner, _ttl_ms(ttl), resource],
            ),
        )
        return self._result(resource, reply)

    async def release(self, resource: str, owner: str) -> StoreResult:
        reply = await self._call(
            resource,
            self._release_script(
                keys=[self.lock_key(resource), self._expiry_key],
                args=[owner, resource],
            ),
        )
        return self._result(resource, reply)

    async def _now(self, resource: str) -> float:
        seconds, microseconds = await self._call(resource, _await_redis(self.client.time()))
        return int(seconds) + int(microseconds) / 1_000_000

    def _record_from_fields(self, resource: str, fields: list[Any]) -> LockRecord | None:
        owner, token, expires_at = fields
        if owner is None:
            return None
        return LockRecord(
            resource=resource,
            owner=_decode(owner),
            fencing_token=int(token),
            expires_at=int(expires_at) / 1000,
        )

    async def get(self, resource: str) -> LockRecord | None:
        fields = await self._call(
            resource,
            _await_redis(self.client.hmget(self.lock_key(resource), "owner", "token", "expires_at")),
        )
        record = self._record_from_fields(resource, fields)
        if record is None or record.is_expired(await self._now(resource)):
            return None
        return record

    async def list_records(self, include_expired: bool = False) -> list[LockRecord]:
        members = await self._call("*", _await_redis(self.client.zrange(self._expiry_key, 0, -1)))
        resources = sorted(_decode(m) for m in members)
        if not resources:
            return []

        async with self.client.pipeline(transaction=False) as pipe:
            for resource in resources:
                pipe.hmget(self.lock_key(resource), "owner", "token", "expires_at")
            replies = await self._call("*", pipe.execute())

        records: list[LockRecord] = []
        for resource, fields in zip(resources, replies):
            record = self._record_from_fields(resource, fields)
            if record is not None:
                records.append(record)
        if include_expired:
            return records
        now = await self._now("*")
        return [r for r in records if not r.is_expired(now)]

    async def reclaim_expired(self, limit: int = 100) -> list[str]:
        reply = await self._call(
            "*",
            self._reclaim_script(
                keys=[self._expiry_key],
                args=[f"{self.key_prefix}lock:", limit],
            ),
        )
        return [_decode(resource) for resource in reply]

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisConnectionError, RedisTimeoutError):
            return False
