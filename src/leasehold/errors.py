"""Lock error taxonomy.

Every failure a lock client can observe is a ``LockError``:

- ``LockBusyError``: the resource is held by someone else (single attempt)
- ``LockTimeoutError``: acquire gave up after ``max_wait``
- ``LockLostError``: the caller's ownership was invalidated, either because
  another owner holds the lock (``NotOwnerError``) or because the lease ran
  out (``LeaseExpiredError``). Work done under the lock must be treated as
  unsafe to commit.
- ``StoreUnavailableError``: the lease store could not be reached; transient
  and safe to retry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leasehold.store.base import LockRecord


class LockError(Exception):
    """Base class for lock failures."""

    code = "LockError"

    def __init__(self, resource: str, message: str):
        self.resource = resource
        super().__init__(message)


class LockBusyError(LockError):
    """The resource is currently held by another owner."""

    code = "Busy"

    def __init__(self, resource: str, holder: LockRecord | None = None):
        self.holder = holder
        super().__init__(resource, f"Lock '{resource}' is held by another owner")


class LockTimeoutError(LockError):
    """Acquire did not succeed within the allowed wait."""

    code = "Timeout"

    def __init__(self, resource: str, max_wait: float, attempts: int):
        self.max_wait = max_wait
        self.attempts = attempts
        super().__init__(
            resource,
            f"Timed out acquiring lock '{resource}' after {max_wait}s ({attempts} attempts)",
        )


class LockLostError(LockError):
    """Ownership of the lock was invalidated."""

    code = "Lost"

    def __init__(self, resource: str, owner: str, message: str | None = None):
        self.owner = owner
        super().__init__(resource, message or f"Lock '{resource}' was lost by {owner}")


class NotOwnerError(LockLostError):
    """The caller does not hold the lock."""

    code = "NotOwner"

    def __init__(self, resource: str, owner: str):
        super().__init__(resource, owner, f"Lock '{resource}' is not owned by {owner}")


class LeaseExpiredError(LockLostError):
    """The caller's lease expired before it was renewed."""

    code = "Expired"

    def __init__(self, resource: str, owner: str):
        super().__init__(resource, owner, f"Lease on '{resource}' held by {owner} has expired")


class StoreUnavailableError(LockError):
    """The lease store could not be reached."""

    code = "StoreUnavailable"

    def __init__(self, resource: str, cause: str):
        super().__init__(resource, f"Lease store unavailable: {cause}")


class StaleTokenError(Exception):
    """A write carried a fencing token older than one already accepted."""

    def __init__(self, resource: str, token: int, highest: int):
        self.resource = resource
        self.token = token
        self.highest = highest
        super().__init__(
            f"Rejected write to '{resource}' with stale fencing token {token} "
            f"(highest seen {highest})"
        )
