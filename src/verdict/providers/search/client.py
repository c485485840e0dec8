"""Throttled client for the two-phase external search provider.

Every phase call (submit, fetch) takes a rate limiter slot first. Throttle
answers are retried on the same phase with exponential backoff and never
surface as an item failure; rejections return a SearchFailure so the caller
can move on to its next query candidate.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from verdict.core.exceptions import ThrottledTransient
from verdict.core.logging import get_logger
from verdict.providers.search.models import (
    FetchResponse,
    FetchStatus,
    SearchFailure,
    SubmitResponse,
    SubmitStatus,
)

if TYPE_CHECKING:
    from verdict.config import Settings
    from verdict.providers.base import SearchTransport
    from verdict.providers.rate_limiter import SlidingWindowRateLimiter

logger = get_logger(__name__)

_R = TypeVar("_R", SubmitResponse, FetchResponse)


class SearchClient:
    """Submit-then-fetch search with rate limiting and backoff.

    Usage:
        client = SearchClient(transport, limiter)
        result = await client.fetch_content("Oppenheimer 2023 movie")
        if isinstance(result, SearchFailure):
            ...
        await client.close()
    """

    def __init__(
        self,
        transport: SearchTransport,
        limiter: SlidingWindowRateLimiter,
        *,
        settle_delay: float = 5.0,
        fetch_attempts: int = 3,
        backoff_initial: float = 5.0,
        backoff_max: float = 60.0,
        max_throttle_retries: int = 8,
        cost_per_request: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._transport = transport
        self._limiter = limiter
        self._settle_delay = settle_delay
        self._fetch_attempts = max(1, fetch_attempts)
        self._backoff_initial = backoff_initial
        self._backoff_max = backoff_max
        self._max_throttle_retries = max_throttle_retries
        self._cost_per_request = cost_per_request
        self._sleep = sleep or asyncio.sleep
        self.request_count = 0
        self.throttle_count = 0

    @classmethod
    def from_settings(
        cls,
        transport: SearchTransport,
        limiter: SlidingWindowRateLimiter,
        settings: Settings,
    ) -> SearchClient:
        return cls(
            transport,
            limiter,
            settle_delay=settings.search_settle_delay_seconds,
            fetch_attempts=settings.search_fetch_attempts,
            backoff_initial=settings.search_backoff_initial_seconds,
            backoff_max=settings.search_backoff_max_seconds,
            max_throttle_retries=settings.search_max_throttle_retries,
            cost_per_request=settings.search_cost_per_request,
        )

    @property
    def estimated_cost(self) -> float:
        return self.request_count * self._cost_per_request

    def backoff_delay(self, consecutive_throttles: int) -> float:
        """Seed delay doubled per consecutive throttle, capped."""
        delay = self._backoff_initial * (2 ** max(0, consecutive_throttles - 1))
        return min(delay, self._backoff_max)

    async def _call(self, phase: str, call: Callable[[], Awaitable[_R]]) -> _R:
        """Run one phase call, retrying the same phase while throttled."""
        throttles = 0
        while True:
            await self._limiter.acquire()
            self.request_count += 1
            response = await call()
            if response.status.value != "throttled":
                return response

            throttles += 1
            self.throttle_count += 1
            if throttles > self._max_throttle_retries:
                raise ThrottledTransient(f"{phase} still throttled after {throttles} tries", phase)

            delay = self.backoff_delay(throttles)
            logger.debug("Search provider throttled", phase=phase, attempt=throttles, delay=delay)
            await self._sleep(delay)

    async def fetch_content(self, query: str) -> str | SearchFailure:
        """Fetch raw result content for a query.

        Args:
            query: Search string

        Returns:
            Raw content text, or a SearchFailure describing why there is none
        """
        try:
            submitted = await self._call("submit", lambda: self._transport.submit(query))
            if submitted.status is not SubmitStatus.accepted or not submitted.handle:
                logger.debug("Search task rejected", query=query, detail=submitted.detail)
                return SearchFailure(query, "rejected", submitted.detail)

            handle = submitted.handle
            for attempt in range(1, self._fetch_attempts + 1):
                await self._sleep(self._settle_delay)
                fetched = await self._call("fetch", lambda: self._transport.fetch(handle))

                if fetched.status is FetchStatus.content and fetched.content:
                    return fetched.content
                if fetched.status is not FetchStatus.not_ready:
                    logger.debug("Search result rejected", query=query, detail=fetched.detail)
                    return SearchFailure(query, "rejected", fetched.detail)

                logger.debug("Search result not ready", query=query, attempt=attempt)

            detail = f"not ready after {self._fetch_attempts} fetches"
            return SearchFailure(query, "not_ready", detail)

        except ThrottledTransient as e:
            logger.warning("Giving up on throttled query", query=query, phase=e.phase)
            return SearchFailure(query, "throttled", e.message)

    async def close(self) -> None:
        """Clean up resources."""
        await self._transport.close()
        logger.debug("SearchClient closed", requests=self.request_count)
