"""Fencing-token enforcement for downstream storage.

A lock alone cannot stop a holder that paused (GC, network partition) past
its lease from writing after someone else took over. Fencing closes that gap:
storage remembers the highest token it has accepted and refuses anything
lower.

Example:
    resource = FencedResource("orders-db")

    lease = await manager.acquire("orders")
    resource.write("total", 42, fencing_token=lease.fencing_token)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from leasehold.errors import StaleTokenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FencedWrite:
    """A write accepted by a fenced resource."""

    key: str
    value: Any
    fencing_token: int


class FencedResource:
    """Key/value storage that rejects writes with stale fencing tokens.

    Equal tokens are accepted, so one holder may write many times under the
    same lease.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._data: dict[str, Any] = {}
        self._highest_token = 0
        self._history: list[FencedWrite] = []
        self._mutex = threading.Lock()

    @property
    def highest_token(self) -> int:
        """Highest fencing token accepted so far (0 before any write)."""
        return self._highest_token

    @property
    def history(self) -> list[FencedWrite]:
        """Accepted writes in order."""
        return list(self._history)

    def check(self, fencing_token: int) -> None:
        """Raise ``StaleTokenError`` if a write with this token would be rejected."""
        if fencing_token < self._highest_token:
            raise StaleTokenError(self.name, fencing_token, self._highest_token)

    def write(self, key: str, value: Any, fencing_token: int) -> None:
        """Store ``value`` under ``key`` if the token is not stale.

        Raises:
            StaleTokenError: A newer holder has already written
        """
        with self._mutex:
            try:
                self.check(fencing_token)
            except StaleTokenError:
                logger.warning(
                    f"Rejected stale write to '{self.name}' "
                    f"(token {fencing_token} < {self._highest_token})"
                )
                raise
            self._highest_token = fencing_token
            self._data[key] = value
            self._history.append(FencedWrite(key, value, fencing_token))

    def read(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)
