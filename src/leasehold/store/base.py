"""Lease store interface and shared types.

A lease store holds at most one live ``LockRecord`` per resource and is the
single serialization point for lock state. Implementations must make every
operation atomic with respect to the others for the same resource.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

Clock = Callable[[], float]


class StoreStatus(str, Enum):
    """Outcome of a store operation."""

    OK = "ok"
    BUSY = "busy"
    NOT_OWNER = "not_owner"
    EXPIRED = "expired"


@dataclass(frozen=True)
class LockRecord:
    """A lease on a resource."""

    resource: str
    owner: str
    fencing_token: int
    expires_at: float  # Epoch seconds

    def is_expired(self, now: float | None = None) -> bool:
        """A record expires at ``expires_at`` exactly."""
        if now is None:
            now = time.time()
        return self.expires_at <= now

    def to_dict(self) -> dict[str, Any]:
        """Serialize record to dictionary."""
        return {
            "resource": self.resource,
            "owner": self.owner,
            "fencing_token": self.fencing_token,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LockRecord:
        """Deserialize record from dictionary."""
        return cls(
            resource=data["resource"],
            owner=data["owner"],
            fencing_token=int(data["fencing_token"]),
            expires_at=float(data["expires_at"]),
        )


@dataclass(frozen=True)
class StoreResult:
    """Status of a store operation plus the record it concerns, if any.

    For ``try_create`` a ``BUSY`` result carries the current holder's record.
    """

    status: StoreStatus
    record: LockRecord | None = None

    @property
    def ok(self) -> bool:
        return self.status is StoreStatus.OK


class LeaseStore(ABC):
    """Abstract lease store."""

    @abstractmethod
    async def try_create(self, resource: str, owner: str, ttl: float) -> StoreResult:
        """Create a record if no live record exists.

        Returns ``OK`` with the new record (carrying a fresh fencing token) or
        ``BUSY`` with the live record of the current holder.
        """

    @abstractmethod
    async def renew(self, resource: str, owner: str, ttl: float) -> StoreResult:
        """Extend the caller's live record to ``now + ttl``.

        Returns ``OK`` with the extended record, ``NOT_OWNER`` if another
        owner holds the record, or ``EXPIRED`` if the caller's lease already
        ran out or no record exists.
        """

    @abstractmethod
    async def release(self, resource: str, owner: str) -> StoreResult:
        """Delete the caller's live record.

        Returns ``OK`` or ``NOT_OWNER``.
        """

    @abstractmethod
    async def get(self, resource: str) -> LockRecord | None:
        """Get the live record for a resource."""

    @abstractmethod
    async def list_records(self, include_expired: bool = False) -> list[LockRecord]:
        """List records, live ones only unless ``include_expired``."""

    @abstractmethod
    async def reclaim_expired(self, limit: int = 100) -> list[str]:
        """Delete up to ``limit`` expired records.

        Each record is checked and deleted atomically, so a record renewed
        after the scan started is kept. Returns the reclaimed resources.
        """

    @abstractmethod
    async def ping(self) -> bool:
        """Check store connectivity."""

    async def close(self) -> None:
        """Release store resources."""
        return None
