"""Lease stores: the atomic serialization point for lock state.

- InMemoryLeaseStore: for single-process deployments and tests
- RedisLeaseStore: for multiple processes sharing one Redis node
"""

from leasehold.store.base import LeaseStore, LockRecord, StoreResult, StoreStatus
from leasehold.store.memory import InMemoryLeaseStore
from leasehold.store.redis import RedisLeaseStore, close_redis, get_redis
from leasehold.store.runtime import (
    close_lease_store,
    create_lease_store,
    get_lease_store,
    open_lease_store,
)

__all__ = [
    "LeaseStore",
    "LockRecord",
    "StoreResult",
    "StoreStatus",
    "InMemoryLeaseStore",
    "RedisLeaseStore",
    "get_redis",
    "close_redis",
    "create_lease_store",
    "get_lease_store",
    "close_lease_store",
    "open_lease_store",
]
