"""leasehold: lease-based distributed locks with fencing tokens.

Example:
    from leasehold import InMemoryLeaseStore, LockManager

    manager = LockManager(InMemoryLeaseStore())
    async with manager.lock("orders", ttl=30) as lease:
        await save(order, fencing_token=lease.fencing_token)
"""

from leasehold.errors import (
    LeaseExpiredError,
    LockBusyError,
    LockError,
    LockLostError,
    LockTimeoutError,
    NotOwnerError,
    StaleTokenError,
    StoreUnavailableError,
)
from leasehold.fencing import FencedResource
from leasehold.manager import Lease, LockManager, ManagerConfig
from leasehold.store import (
    InMemoryLeaseStore,
    LeaseStore,
    LockRecord,
    RedisLeaseStore,
    StoreResult,
    StoreStatus,
)
from leasehold.sweeper import ExpirySweeper

__version__ = "0.1.0"

__all__ = [
    "LockManager",
    "ManagerConfig",
    "Lease",
    "LeaseStore",
    "InMemoryLeaseStore",
    "RedisLeaseStore",
    "LockRecord",
    "StoreResult",
    "StoreStatus",
    "ExpirySweeper",
    "FencedResource",
    "LockError",
    "LockBusyError",
    "LockTimeoutError",
    "LockLostError",
    "NotOwnerError",
    "LeaseExpiredError",
    "StoreUnavailableError",
    "StaleTokenError",
]
