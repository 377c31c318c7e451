"""Global pytest configuration and fixtures.

Provides a controllable clock and lock components wired to the in-memory
store.
"""

from __future__ import annotations

import pytest

from leasehold.manager import LockManager, ManagerConfig
from leasehold.store.memory import InMemoryLeaseStore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: requires Docker to run a Redis container"
    )


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryLeaseStore:
    return InMemoryLeaseStore(clock=clock)


@pytest.fixture
def manager_config() -> ManagerConfig:
    return ManagerConfig(
        default_ttl=5.0,
        default_max_wait=0.2,
        backoff_base=0.001,
        backoff_max=0.01,
        instance_id="test",
    )


@pytest.fixture
def manager(store: InMemoryLeaseStore, manager_config: ManagerConfig) -> LockManager:
    return LockManager(store, manager_config)
