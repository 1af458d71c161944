from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Clock = Callable[[], float]


@dataclass(slots=True)
class CacheEntry:
    value: Any
    expires_at: float


class ResponseCache:
    """In-memory TTL cache for idempotent GET responses, keyed by URL.

    Entries expire lazily: staleness is checked on read and nothing is ever
    evicted proactively. There is no size bound.
    """

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is None or entry.expires_at <= self._clock():
            return False, None
        return True, entry.value

    def set(self, key: str, value: Any, ttl_ms: int) -> None:
        self._entries[key] = CacheEntry(
            value=value, expires_at=self._clock() + ttl_ms / 1000.0
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
