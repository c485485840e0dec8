"""Bounded-concurrency refresh of selected items.

Each item walks Selected -> Querying -> (Extracted | Exhausted | Throttled),
then Recorded unless throttled.
Query candidates are tried strictly in order and the first extracted
percentage wins. Workers pull the next item as soon as they are free, and
admission stops once the run's item cap is reached; items beyond the cap
stay due for the next run.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Iterable
from typing import TYPE_CHECKING

from verdict.core.exceptions import CandidateExhausted, CandidatesThrottled, StoreWriteError
from verdict.core.logging import get_logger
from verdict.providers.search.models import SearchFailure
from verdict.refresh.cache import RunCache
from verdict.refresh.extractor import extract_sentiment, find_all_percentages
from verdict.refresh.models import CatalogItem, RefreshOutcome
from verdict.refresh.queries import queries_for

if TYPE_CHECKING:
    from verdict.providers.search.client import SearchClient
    from verdict.refresh.recorder import UpdateRecorder

logger = get_logger(__name__)


class RefreshDispatcher:
    """Runs the per-item state machine across a pool of workers."""

    def __init__(
        self,
        client: SearchClient,
        recorder: UpdateRecorder,
        concurrency: int = 6,
        cache: RunCache | None = None,
    ) -> None:
        self._client = client
        self._recorder = recorder
        self._concurrency = max(1, concurrency)
        self._cache = cache if cache is not None else RunCache()
        self.admitted = 0

    async def _content(self, query: str) -> str | SearchFailure:
        cached = self._cache.get(query)
        if cached is not None:
            return cached
        result = await self._client.fetch_content(query)
        if isinstance(result, str):
            self._cache.put(query, result)
        return result

    async def find_percentage(self, item: CatalogItem) -> int:
        """Try the item's query candidates in order until one extracts.

        Raises:
            CandidatesThrottled: Nothing extracted and a candidate was throttled
            CandidateExhausted: No candidate yielded a percentage
        """
        attempted = 0
        throttled = False
        for query in queries_for(item):
            attempted += 1
            content = await self._content(query)
            if isinstance(content, SearchFailure):
                throttled = throttled or content.reason == "throttled"
                logger.debug(
                    "Query failed", item_id=str(item.id), query=query, reason=content.reason
                )
                continue

            result = extract_sentiment(content)
            if result.percentage is not None:
                logger.debug(
                    "Sentiment extracted",
                    item_id=str(item.id),
                    query=query,
                    rule=result.rule,
                    match=result.raw_match,
                )
                return result.percentage

            logger.debug(
                "No percentage in content",
                item_id=str(item.id),
                query=query,
                seen=find_all_percentages(content)[:5],
            )

        if throttled:
            raise CandidatesThrottled(item.id, attempted)
        raise CandidateExhausted(item.id, attempted)

    async def process_item(self, item: CatalogItem) -> RefreshOutcome:
        """Search, extract and record one item. Never raises for item-level failures.

        Throttling never fails an item: when it blocked every path the item
        is counted as throttled and nothing is written, so it stays due.
        """
        try:
            percentage: int | None = await self.find_percentage(item)
        except CandidatesThrottled as e:
            self._recorder.counters.count(RefreshOutcome.throttled)
            logger.warning(e.message, title=item.title)
            return RefreshOutcome.throttled
        except CandidateExhausted as e:
            logger.debug(e.message, title=item.title)
            percentage = None

        try:
            return await self._recorder.record(item, percentage)
        except StoreWriteError as e:
            counters = self._recorder.counters
            counters.store_errors += 1
            counters.count(RefreshOutcome.failed)
            logger.error(
                "Recording failed", item_id=str(item.id), title=item.title, error=e.message
            )
            return RefreshOutcome.failed

    async def dispatch(self, items: Iterable[CatalogItem], cap: int) -> int:
        """Process items with at most ``concurrency`` in flight.

        Args:
            items: Selected items, in priority order
            cap: Maximum number of items admitted in this run

        Returns:
            Number of items left unprocessed because the cap was reached
        """
        pending = deque(items)

        async def worker(worker_id: int) -> None:
            while pending and self.admitted < cap:
                item = pending.popleft()
                self.admitted += 1
                try:
                    await self.process_item(item)
                except Exception:
                    self._recorder.counters.count(RefreshOutcome.failed)
                    logger.exception("Item refresh failed", worker=worker_id, item_id=str(item.id))

        width = min(self._concurrency, len(pending), max(cap, 0))
        workers = [
            asyncio.create_task(worker(i), name=f"refresh-worker-{i}") for i in range(width)
        ]
        await asyncio.gather(*workers)

        if pending:
            logger.warning("Daily item cap reached", cap=cap, left_due=len(pending))
        return len(pending)
