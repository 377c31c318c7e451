"""FastAPI dependencies resolving the components held in app state."""

from __future__ import annotations

from fastapi import Request

from leasehold.manager import LockManager
from leasehold.store.base import LeaseStore
from leasehold.sweeper import ExpirySweeper


def get_lock_manager(request: Request) -> LockManager:
    return request.app.state.lock_manager


def get_lease_store(request: Request) -> LeaseStore:
    return request.app.state.lease_store


def get_sweeper(request: Request) -> ExpirySweeper:
    return request.app.state.sweeper
