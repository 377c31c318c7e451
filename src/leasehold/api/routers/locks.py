"""API router for lock operations.

Provides endpoints for:
- Acquiring, renewing and releasing leases
- Inspecting live locks
- Triggering a sweep of expired leases

Error mapping (see ``leasehold.api.errors``):
- 423 Busy / Timeout: the resource is held
- 409 NotOwner / Expired: the caller's lease was lost
- 503 StoreUnavailable: retry later
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from leasehold.api.deps import get_lock_manager, get_sweeper
from leasehold.api.errors import NotFoundError
from leasehold.manager import Lease, LockManager
from leasehold.store.base import LockRecord
from leasehold.sweeper import ExpirySweeper

router = APIRouter(prefix="/locks", tags=["Locks"])


class AcquireRequest(BaseModel):
    """Request to acquire a lock."""

    ttl: float | None = Field(default=None, gt=0, description="Lease lifetime in seconds")
    max_wait: float | None = Field(
        default=None,
        ge=0,
        description="Seconds to keep retrying; 0 makes a single attempt",
    )
    owner: str | None = Field(default=None, min_length=1, description="Owner token")


class RenewRequest(BaseModel):
    """Request to extend a held lease."""

    owner: str = Field(..., min_length=1)
    ttl: float | None = Field(default=None, gt=0)


class ReleaseRequest(BaseModel):
    """Request to release a held lease."""

    owner: str = Field(..., min_length=1)


class LeaseResponse(BaseModel):
    """A lease, as granted or as currently stored."""

    resource: str
    owner: str
    fencing_token: int
    expires_at: float

    @classmethod
    def from_lease(cls, lease: Lease | LockRecord) -> LeaseResponse:
        return cls(
            resource=lease.resource,
            owner=lease.owner,
            fencing_token=lease.fencing_token,
            expires_at=lease.expires_at,
        )


class LockListResponse(BaseModel):
    """Live locks."""

    locks: list[LeaseResponse]
    total: int


class SweepResponse(BaseModel):
    """Result of a sweep pass."""

    reclaimed: list[str]


@router.get("", response_model=LockListResponse)
async def list_locks(manager: LockManager = Depends(get_lock_manager)) -> LockListResponse:
    """List all live locks."""
    records = await manager.list_locks()
    return LockListResponse(
        locks=[LeaseResponse.from_lease(r) for r in records],
        total=len(records),
    )


@router.post("/sweep", response_model=SweepResponse)
async def sweep(sweeper: ExpirySweeper = Depends(get_sweeper)) -> SweepResponse:
    """Run one pass of the expiry sweeper."""
    return SweepResponse(reclaimed=await sweeper.run_once())


@router.get("/{resource}", response_model=LeaseResponse)
async def get_lock(
    resource: str,
    manager: LockManager = Depends(get_lock_manager),
) -> LeaseResponse:
    """Get the live lock on a resource."""
    record = await manager.holder(resource)
    if record is None:
        raise NotFoundError(resource)
    return LeaseResponse.from_lease(record)


@router.post("/{resource}/acquire", response_model=LeaseResponse)
async def acquire_lock(
    resource: str,
    request: AcquireRequest,
    manager: LockManager = Depends(get_lock_manager),
) -> LeaseResponse:
    """Acquire a lock, waiting up to ``max_wait`` seconds."""
    if request.max_wait == 0:
        lease = await manager.try_acquire(resource, ttl=request.ttl, owner=request.owner)
    else:
        lease = await manager.acquire(
            resource,
            ttl=request.ttl,
            max_wait=request.max_wait,
            owner=request.owner,
        )
    return LeaseResponse.from_lease(lease)


@router.post("/{resource}/renew", response_model=LeaseResponse)
async def renew_lock(
    resource: str,
    request: RenewRequest,
    manager: LockManager = Depends(get_lock_manager),
) -> LeaseResponse:
    """Extend a held lease."""
    lease = await manager.renew(resource, request.owner, ttl=request.ttl)
    return LeaseResponse.from_lease(lease)


@router.post("/{resource}/release", status_code=204, response_class=Response)
async def release_lock(
    resource: str,
    request: ReleaseRequest,
    manager: LockManager = Depends(get_lock_manager),
) -> Response:
    """Release a held lease."""
    await manager.release(resource, request.owner)
    return Response(status_code=204)
