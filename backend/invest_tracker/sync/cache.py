"""Short-lived cache of remote snapshots."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class CacheEntry:
    expires_at: float
    payload: Any


class SnapshotCache:
    """TTL cache keyed by scope (``"transactions"``, ``"splits"``)."""

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, scope: str) -> Any | None:
        entry = self._entries.get(scope)
        if not entry:
            return None
        if entry.expires_at <= self._clock():
            self._entries.pop(scope, None)
            return None
        return entry.payload

    def set(self, scope: str, payload: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[scope] = CacheEntry(expires_at=self._clock() + self.ttl_seconds, payload=payload)

    def invalidate(self, scope: str | None = None) -> None:
        if scope is None:
            self._entries.clear()
        else:
            self._entries.pop(scope, None)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CacheEntry", "SnapshotCache"]
