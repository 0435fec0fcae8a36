from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional


class RateLimiter:
    """Global politeness gate shared by every crawl worker.

    ``acquire()`` returns only once ``min_interval`` seconds have passed since
    the previous ``acquire()`` returned anywhere in the crawl, and records the
    new request time before releasing the caller. Callers queue up on a single
    lock, so fetch start times form a strict total order.

    Example:
        >>> limiter = RateLimiter(0.5)
        >>> await limiter.acquire()  # returns immediately
        >>> await limiter.acquire()  # waits ~0.5s
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval = max(0.0, float(min_interval))
        self._clock = clock
        self._sleep = sleep
        self._last_request_time: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def last_request_time(self) -> Optional[float]:
        return self._last_request_time

    async def acquire(self) -> None:
        if self.min_interval <= 0:
            self._last_request_time = self._clock()
            return

        async with self._lock:
            while True:
                now = self._clock()
                if self._last_request_time is None:
                    break
                wait = self._last_request_time + self.min_interval - now
                if wait <= 0:
                    break
                # Timers may fire slightly early, so loop and re-read the clock.
                await self._sleep(wait)
            self._last_request_time = now
