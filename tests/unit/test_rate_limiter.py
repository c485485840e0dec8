"""Tests for the sliding-window rate limiter."""

import asyncio
import math

import pytest

from helpers import FakeClock
from verdict.providers.rate_limiter import SlidingWindowRateLimiter


class TestSlidingWindowRateLimiter:
    """Tests for SlidingWindowRateLimiter."""

    def test_rejects_zero_limit(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            SlidingWindowRateLimiter(0)

    @pytest.mark.asyncio
    async def test_burst_within_limit_does_not_wait(self, fake_clock: FakeClock) -> None:
        limiter = SlidingWindowRateLimiter(5, clock=fake_clock, sleep=fake_clock.sleep)
        for _ in range(5):
            await limiter.acquire()

        assert fake_clock.sleeps == []
        assert limiter.granted == 5

    @pytest.mark.asyncio
    async def test_waits_for_oldest_call_to_leave_window(self, fake_clock: FakeClock) -> None:
        limiter = SlidingWindowRateLimiter(2, clock=fake_clock, sleep=fake_clock.sleep)
        await limiter.acquire()
        fake_clock.now = 0.25
        await limiter.acquire()
        await limiter.acquire()

        assert fake_clock.sleeps == [pytest.approx(0.75)]
        assert fake_clock.now == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_1000_calls_at_18_per_second(self, fake_clock: FakeClock) -> None:
        limiter = SlidingWindowRateLimiter(18, clock=fake_clock, sleep=fake_clock.sleep)
        for _ in range(1000):
            await limiter.acquire()

        assert limiter.granted == 1000
        assert fake_clock.now >= math.ceil(1000 / 18) - 1

    @pytest.mark.asyncio
    async def test_never_more_than_limit_in_any_window(self, fake_clock: FakeClock) -> None:
        limiter = SlidingWindowRateLimiter(
            3, window_seconds=1.0, clock=fake_clock, sleep=fake_clock.sleep
        )
        stamps: list[float] = []
        for _ in range(20):
            await limiter.acquire()
            stamps.append(fake_clock.now)

        for i, start in enumerate(stamps):
            in_window = [t for t in stamps[i:] if t < start + 1.0]
            assert len(in_window) <= 3

    @pytest.mark.asyncio
    async def test_concurrent_waiters_share_the_budget(self) -> None:
        limiter = SlidingWindowRateLimiter(4, window_seconds=0.05)
        loop = asyncio.get_running_loop()
        start = loop.time()

        await asyncio.gather(*(limiter.acquire() for _ in range(12)))

        assert limiter.granted == 12
        assert loop.time() - start >= 0.09
