from __future__ import annotations

import asyncio
import time

from discourse_mcp.http.cache import Clock
from discourse_mcp.http.retry import Sleep


class RateLimiter:
    """Minimum start interval per operation key.

    Not a mutex: two callers that both wait out the interval may start
    together. Keys are logical operation names such as ``post`` or ``draft``.
    """

    def __init__(
        self, clock: Clock = time.monotonic, sleep: Sleep = asyncio.sleep
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._last_start: dict[str, float] = {}

    async def wait(self, key: str, interval_s: float = 1.0) -> None:
        last = self._last_start.get(key)
        if last is not None:
            elapsed = self._clock() - last
            if elapsed < interval_s:
                await self._sleep(interval_s - elapsed)
        self._last_start[key] = self._clock()

    def reset(self) -> None:
        self._last_start.clear()
