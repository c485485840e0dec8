"""Conditional sentiment writes, the fetch-attempt ledger and the run summary."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from verdict.core.exceptions import StoreWriteError
from verdict.core.logging import get_logger
from verdict.refresh.models import RefreshOutcome, RunCounters, RunSummary, SentimentUpdate

if TYPE_CHECKING:
    from datetime import date

    from verdict.refresh.models import CatalogItem
    from verdict.storage.base import CatalogStore

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UpdateRecorder:
    """Classifies each refresh and writes it through to the catalog store.

    One recorder per run: its counters belong to this process's run only and
    overwrite, never add to, an earlier summary for the same date. Every
    classified outcome also lands in the per-item fetch-attempt ledger, which
    the selector uses to cap retries per day.
    """

    def __init__(
        self,
        store: CatalogStore,
        counters: RunCounters | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self.counters = counters if counters is not None else RunCounters()
        self._clock = clock

    async def _note_attempt(self, item: CatalogItem, outcome: RefreshOutcome) -> None:
        """Append to the attempt ledger; a failed append never changes the outcome."""
        try:
            await self._store.record_fetch_attempt(item.id, outcome, self._clock())
        except StoreWriteError as e:
            self.counters.store_errors += 1
            logger.warning(
                "Fetch attempt not recorded, daily attempt cap may undercount",
                item_id=str(item.id),
                error=e.message,
            )

    async def record(self, item: CatalogItem, new_percentage: int | None) -> RefreshOutcome:
        """Record one item's refresh result.

        Args:
            item: The item as it was selected
            new_percentage: Extracted value, or None when nothing was found

        Returns:
            updated, unchanged or failed

        Raises:
            StoreWriteError: The sentiment write failed; counters are left untouched
        """
        if new_percentage is None:
            self.counters.count(RefreshOutcome.failed)
            logger.info("No rating found", item_id=str(item.id), title=item.title)
            await self._note_attempt(item, RefreshOutcome.failed)
            return RefreshOutcome.failed

        update = SentimentUpdate(
            item_id=item.id,
            new_value=new_percentage,
            previous_value=item.sentiment,
            refreshed_at=self._clock(),
        )
        await self._store.update_sentiment(update)

        if update.changed:
            outcome = RefreshOutcome.updated
            logger.info(
                "Rating updated",
                item_id=str(item.id),
                title=item.title,
                previous=item.sentiment,
                current=new_percentage,
            )
        else:
            outcome = RefreshOutcome.unchanged
            logger.debug(
                "Rating unchanged", item_id=str(item.id), title=item.title, value=new_percentage
            )

        self.counters.count(outcome)
        await self._note_attempt(item, outcome)
        return outcome

    async def finalize(
        self,
        run_date: date,
        runtime_seconds: float,
        error_details: dict[str, Any] | None = None,
    ) -> RunSummary:
        """Upsert this run's summary for ``run_date``.

        Raises:
            StoreWriteError: The summary could not be written
        """
        summary = RunSummary.from_counters(run_date, self.counters, runtime_seconds, error_details)
        await self._store.upsert_run_summary(summary)
        logger.debug("Run summary finalized", run_date=run_date.isoformat())
        return summary
