"""One scheduled rating refresh run, end to end.

Wires tier reclassification, due-item selection, the dispatcher and the
recorder together, enforces the item cap and writes one summary per date.
"""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from verdict.config import get_settings
from verdict.core.constants import TEST_MODE_ITEM_LIMIT
from verdict.core.exceptions import (
    AttemptLimitReached,
    FatalSelectionError,
    ItemNotFoundError,
    RefreshError,
    SearchNotConfigured,
    StoreWriteError,
)
from verdict.core.logging import get_logger
from verdict.refresh.cache import RunCache
from verdict.refresh.dispatcher import RefreshDispatcher
from verdict.refresh.models import ItemRefreshResult, RunCounters, RunReport, RunSummary
from verdict.refresh.queries import queries_for
from verdict.refresh.recorder import UpdateRecorder
from verdict.refresh.selector import DueItemSelector

if TYPE_CHECKING:
    from uuid import UUID

    from verdict.config import Settings
    from verdict.providers.search.client import SearchClient
    from verdict.refresh.models import CatalogItem
    from verdict.storage.base import CatalogStore

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RefreshOrchestrator:
    """Top-level driver for rating refresh runs.

    Usage:
        orchestrator = RefreshOrchestrator(store, search_client)
        report = await orchestrator.run(limit=50)
    """

    def __init__(
        self,
        store: CatalogStore,
        client: SearchClient | None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._client = client
        self._settings = settings or get_settings()
        self._clock = clock
        self._selector = DueItemSelector(
            store, max_daily_attempts=self._settings.rating_fetch_daily_attempt_limit
        )
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def _selection_limit(self, limit: int | None) -> int:
        selection = limit if limit is not None else self._settings.rating_update_batch_size
        if self._settings.rating_update_test_mode:
            selection = min(selection, TEST_MODE_ITEM_LIMIT)
        return selection

    def _estimate_cost(self, items: list[CatalogItem]) -> float:
        """Worst case: every candidate submitted and fetched once."""
        requests = sum(len(queries_for(item)) * 2 for item in items)
        return requests * self._settings.search_cost_per_request

    async def run(self, limit: int | None = None, dry_run: bool = False) -> RunReport:
        """Execute one refresh run.

        Args:
            limit: Max due items to select (defaults to the configured batch size)
            dry_run: Select and estimate only; no provider calls, no writes

        Returns:
            RunReport describing what happened. ``report.error`` is set when
            the run aborted early.

        Raises:
            RefreshError: Another run is already in progress
        """
        if self._lock.locked():
            raise RefreshError("A refresh run is already in progress")

        async with self._lock:
            with structlog.contextvars.bound_contextvars(
                run_date=self._clock().date().isoformat(), dry_run=dry_run
            ):
                return await self._run(limit, dry_run)

    async def _run(self, limit: int | None, dry_run: bool) -> RunReport:
        settings = self._settings
        started = time.monotonic()
        now = self._clock()
        report = RunReport(run_date=now.date(), dry_run=dry_run)

        if not settings.rating_update_enabled:
            logger.info("Rating updates are disabled, skipping run")
            report.skipped = True
            return report

        counters = RunCounters()
        report.counters = counters
        recorder = UpdateRecorder(self._store, counters, clock=self._clock)
        cache = RunCache()

        try:
            if not dry_run:
                await self._selector.reclassify(now.date())
            items = await self._selector.select(self._selection_limit(limit), now, dry_run=dry_run)
        except (FatalSelectionError, StoreWriteError) as e:
            logger.error("Selection failed, aborting run", error=e.message)
            report.error = {"fatal_error": e.message}
            return await self._finish(report, recorder, started)

        report.selected = len(items)
        report.tier_breakdown = dict(Counter(int(item.tier or 0) for item in items))

        if dry_run:
            report.estimated_cost = self._estimate_cost(items)
            report.runtime_seconds = time.monotonic() - started
            logger.info(
                "Dry run complete",
                selected=report.selected,
                tiers=report.tier_breakdown,
                estimated_max_cost=round(report.estimated_cost, 4),
            )
            return report

        if not items:
            logger.info("No items due for update")
            return await self._finish(report, recorder, started)

        if self._client is None:
            report.error = {"fatal_error": "search provider not configured"}
            logger.error("Search provider not configured, aborting run")
            return await self._finish(report, recorder, started)

        dispatcher = RefreshDispatcher(
            self._client,
            recorder,
            concurrency=settings.refresh_concurrency,
            cache=cache,
        )
        requests_before = self._client.request_count
        throttles_before = self._client.throttle_count
        try:
            await dispatcher.dispatch(items, cap=settings.rating_update_daily_limit)
        finally:
            counters.requests = self._client.request_count - requests_before
            counters.cost = counters.requests * settings.search_cost_per_request
            counters.throttles = self._client.throttle_count - throttles_before

        if cache.hits:
            logger.debug("Run cache reused content", hits=cache.hits, entries=len(cache))

        return await self._finish(report, recorder, started)

    async def _finish(
        self, report: RunReport, recorder: UpdateRecorder, started: float
    ) -> RunReport:
        report.runtime_seconds = time.monotonic() - started
        try:
            await recorder.finalize(report.run_date, report.runtime_seconds, report.error)
        except StoreWriteError as e:
            logger.error("Run summary could not be written", error=e.message)
            report.error = {**(report.error or {}), "summary_error": e.message}

        counters = report.counters
        logger.info(
            "Rating refresh complete" if report.ok else "Rating refresh aborted",
            selected=report.selected,
            processed=counters.processed,
            updated=counters.updated,
            unchanged=counters.unchanged,
            failed=counters.failed,
            throttled=counters.throttled,
            api_calls=counters.requests,
            provider_throttles=counters.throttles,
            cost=round(counters.cost, 4),
            runtime_seconds=round(report.runtime_seconds, 1),
            items_per_minute=round(report.items_per_minute, 1),
        )
        return report

    # -------------------------------------------------------------------------
    # Pass-through operations for the CLI and API
    # -------------------------------------------------------------------------

    async def assign_tiers(self) -> int:
        """Reclassify every item's tier now, outside of a run."""
        return await self._selector.reclassify(self._clock().date())

    async def refresh_item(self, item_id: UUID, force: bool = False) -> ItemRefreshResult:
        """Refresh one item now, regardless of its tier cadence.

        Goes through the same search, extraction and recording path as a
        run, but writes no run summary and does not wait for the run lock.

        Args:
            item_id: Catalog item to refresh
            force: Ignore the per-day fetch attempt limit

        Raises:
            SearchNotConfigured: No search provider credentials
            ItemNotFoundError: No such item
            AttemptLimitReached: The item used up today's attempts
        """
        if self._client is None:
            raise SearchNotConfigured("Search provider not configured")

        item = await self._store.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(f"Catalog item {item_id} not found")

        limit = self._settings.rating_fetch_daily_attempt_limit
        if not force:
            attempts = await self._store.count_fetch_attempts(item_id, self._clock().date())
            if attempts >= limit:
                raise AttemptLimitReached(
                    f"{item.title} already had {attempts} fetch attempts today (limit {limit})"
                )

        recorder = UpdateRecorder(self._store, clock=self._clock)
        dispatcher = RefreshDispatcher(self._client, recorder, concurrency=1)
        requests_before = self._client.request_count
        outcome = await dispatcher.process_item(item)
        requests = self._client.request_count - requests_before

        refreshed = await self._store.get_item(item_id)
        result = ItemRefreshResult(
            item_id=item_id,
            title=item.title,
            outcome=outcome,
            previous=item.sentiment,
            current=refreshed.sentiment if refreshed is not None else item.sentiment,
            requests=requests,
        )
        logger.info("Single item refreshed", forced=force, **result.as_dict())
        return result

    async def tier_distribution(self) -> dict[int | None, int]:
        return await self._store.get_tier_distribution()

    async def run_history(self, limit: int) -> list[RunSummary]:
        return await self._store.list_run_summaries(limit)

    def describe(self) -> dict[str, Any]:
        settings = self._settings
        return {
            "enabled": settings.rating_update_enabled,
            "running": self.running,
            "batch_size": settings.rating_update_batch_size,
            "daily_limit": settings.rating_update_daily_limit,
            "concurrency": settings.refresh_concurrency,
            "daily_fetch_attempts": settings.rating_fetch_daily_attempt_limit,
            "rate_limit_per_second": settings.search_rate_limit_per_second,
            "search_configured": self._client is not None,
        }
