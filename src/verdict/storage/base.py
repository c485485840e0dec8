"""Catalog store protocol consumed by the refresh pipeline."""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from verdict.refresh.models import CatalogItem, RefreshOutcome, RunSummary, SentimentUpdate


@runtime_checkable
class CatalogStore(Protocol):
    """Read/write interface to the catalog and run log."""

    async def list_due_items(
        self, limit: int, now: datetime, max_daily_attempts: int | None = None
    ) -> list[CatalogItem]:
        """Items whose tier cadence has elapsed, tier asc then popularity desc.

        Read-only. Tier 5 items are never returned; items with no cached tier
        are ranked by the tier they would be classified into today. With
        ``max_daily_attempts`` set, items already attempted that many times on
        ``now``'s UTC date are left out.
        """
        ...

    async def get_item(self, item_id: UUID) -> CatalogItem | None:
        ...

    async def update_sentiment(self, update: SentimentUpdate) -> None:
        """Apply a sentiment refresh. Unchanged values only touch the timestamp."""
        ...

    async def record_fetch_attempt(
        self, item_id: UUID, outcome: RefreshOutcome, attempted_at: datetime
    ) -> None:
        """Append one row to the per-item fetch attempt ledger."""
        ...

    async def count_fetch_attempts(self, item_id: UUID, day: date) -> int:
        """Attempts logged for the item on the given UTC date."""
        ...

    async def upsert_run_summary(self, summary: RunSummary) -> None:
        """Write the run summary for its date, replacing any earlier one."""
        ...

    async def get_tier_distribution(self) -> dict[int | None, int]:
        """Item count per cached tier (None for unclassified items)."""
        ...

    async def list_items_for_tiering(self) -> list[CatalogItem]:
        """Every item with the fields tier classification needs."""
        ...

    async def update_tiers(self, assignments: dict[UUID, int]) -> int:
        """Persist tier assignments, returning how many rows changed."""
        ...

    async def list_run_summaries(self, limit: int) -> list[RunSummary]:
        """Most recent run summaries, newest first."""
        ...
