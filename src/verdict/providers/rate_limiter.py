"""Sliding-window rate limiter for outbound provider calls."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable

from verdict.core.logging import get_logger

logger = get_logger(__name__)


class SlidingWindowRateLimiter:
    """Grants at most ``max_calls`` acquisitions in any trailing window.

    Ensures we don't exceed the provider's rate limit even with parallel
    workers. Callers queue on an asyncio.Lock, which wakes waiters in FIFO
    order, so blocked callers are granted in request order.
    """

    def __init__(
        self,
        max_calls: int,
        window_seconds: float = 1.0,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        self._max_calls = max_calls
        self._window = window_seconds
        self._clock = clock
        self._sleep = sleep or asyncio.sleep
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()
        self.granted = 0

    @property
    def max_calls(self) -> int:
        return self._max_calls

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    def _expire(self, now: float) -> None:
        while self._calls and self._calls[0] <= now - self._window:
            self._calls.popleft()

    async def acquire(self) -> None:
        """Acquire permission to make a call, waiting if necessary."""
        async with self._lock:
            now = self._now()
            self._expire(now)

            while len(self._calls) >= self._max_calls:
                # Wait until the oldest call leaves the window
                sleep_time = self._window - (now - self._calls[0])
                if sleep_time > 0:
                    logger.debug("Rate limit reached, waiting", sleep_seconds=round(sleep_time, 3))
                    await self._sleep(sleep_time)
                now = self._now()
                self._expire(now)

            self._calls.append(now)
            self.granted += 1
