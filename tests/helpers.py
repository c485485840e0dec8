"""Builders and in-memory fakes shared by the unit and end-to-end tests."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID, uuid4

from verdict.config import Settings
from verdict.core.exceptions import StoreWriteError
from verdict.providers.search.models import (
    FetchResponse,
    FetchStatus,
    SubmitResponse,
    SubmitStatus,
)
from verdict.refresh.models import (
    CatalogItem,
    MediaKind,
    RefreshOutcome,
    RunSummary,
    SentimentUpdate,
)

NOW = datetime(2025, 6, 15, 3, 0, tzinfo=UTC)
TODAY = NOW.date()

# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_item(**overrides: Any) -> CatalogItem:
    defaults: dict[str, Any] = {
        "id": uuid4(),
        "tmdb_id": 27205,
        "title": "Inception",
        "release_date": date(2010, 7, 16),
        "kind": MediaKind.movie,
        "popularity": 50.0,
        "vote_count": 5_000,
        "sentiment": None,
        "tier": None,
        "last_refreshed_at": None,
    }
    defaults.update(overrides)
    return CatalogItem(**defaults)


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    values: dict[str, Any] = {
        "VERDICT_ENV": "development",
        "search_settle_delay_seconds": 0.0,
        "search_backoff_initial_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class InMemoryCatalogStore:
    """Stateful CatalogStore for verifying what the pipeline wrote."""

    def __init__(self, items: list[CatalogItem] | None = None) -> None:
        self.items: dict[UUID, CatalogItem] = {item.id: item for item in items or []}
        self.summaries: dict[date, RunSummary] = {}
        self.history: list[SentimentUpdate] = []
        self.attempts: list[tuple[UUID, RefreshOutcome, datetime]] = []
        self.check_counts: dict[UUID, int] = {}
        self.unchanged_counts: dict[UUID, int] = {}
        self.fail_listing: Exception | None = None
        self.fail_writes_for: set[UUID] = set()
        self.fail_attempt_writes = False

    async def list_due_items(
        self, limit: int, now: datetime, max_daily_attempts: int | None = None
    ) -> list[CatalogItem]:
        if self.fail_listing is not None:
            raise self.fail_listing
        due = [item for item in self.items.values() if item.tier != 5]
        if max_daily_attempts is not None:
            day = now.date()
            due = [item for item in due if self._attempts_on(item.id, day) < max_daily_attempts]
        return due

    def _attempts_on(self, item_id: UUID, day: date) -> int:
        return sum(1 for i, _, at in self.attempts if i == item_id and at.date() == day)

    async def get_item(self, item_id: UUID) -> CatalogItem | None:
        return self.items.get(item_id)

    async def record_fetch_attempt(
        self, item_id: UUID, outcome: RefreshOutcome, attempted_at: datetime
    ) -> None:
        if self.fail_attempt_writes:
            raise StoreWriteError(f"attempt write failed for {item_id}")
        self.attempts.append((item_id, outcome, attempted_at))

    async def count_fetch_attempts(self, item_id: UUID, day: date) -> int:
        return self._attempts_on(item_id, day)

    async def update_sentiment(self, update: SentimentUpdate) -> None:
        if update.item_id in self.fail_writes_for or update.item_id not in self.items:
            raise StoreWriteError(f"write failed for {update.item_id}")

        item = self.items[update.item_id]
        self.check_counts[item.id] = self.check_counts.get(item.id, 0) + 1
        if update.changed:
            self.history.append(update)
            self.unchanged_counts[item.id] = 0
            changes: dict[str, Any] = {
                "sentiment": update.new_value,
                "last_refreshed_at": update.refreshed_at,
            }
        else:
            self.unchanged_counts[item.id] = self.unchanged_counts.get(item.id, 0) + 1
            changes = {"last_refreshed_at": update.refreshed_at}
        self.items[item.id] = item.model_copy(update=changes)

    async def upsert_run_summary(self, summary: RunSummary) -> None:
        self.summaries[summary.run_date] = summary

    async def get_tier_distribution(self) -> dict[int | None, int]:
        distribution: dict[int | None, int] = {}
        for item in self.items.values():
            key = int(item.tier) if item.tier is not None else None
            distribution[key] = distribution.get(key, 0) + 1
        return distribution

    async def list_items_for_tiering(self) -> list[CatalogItem]:
        if self.fail_listing is not None:
            raise self.fail_listing
        return list(self.items.values())

    async def update_tiers(self, assignments: dict[UUID, int]) -> int:
        for item_id, tier in assignments.items():
            self.items[item_id] = self.items[item_id].model_copy(update={"tier": tier})
        return len(assignments)

    async def list_run_summaries(self, limit: int) -> list[RunSummary]:
        ordered = sorted(self.summaries.values(), key=lambda s: s.run_date, reverse=True)
        return ordered[:limit]


class ScriptedTransport:
    """SearchTransport that answers from a query -> content map.

    Queries missing from ``pages`` get a rejected submit. ``submit_script`` and
    ``fetch_script`` queue explicit responses that are served before falling
    back to the page map. ``throttle_all`` makes every submit come back throttled.
    """

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages = pages or {}
        self.submitted: list[str] = []
        self.fetched: list[str] = []
        self.submit_script: list[SubmitResponse] = []
        self.fetch_script: list[FetchResponse] = []
        self.throttle_all = False
        self.closed = False
        self._handles: dict[str, str] = {}

    async def submit(self, query: str) -> SubmitResponse:
        self.submitted.append(query)
        if self.throttle_all:
            return SubmitResponse(status=SubmitStatus.throttled)
        if self.submit_script:
            return self.submit_script.pop(0)
        if query not in self.pages:
            return SubmitResponse(status=SubmitStatus.rejected, detail="no results")
        handle = f"task-{len(self.submitted)}"
        self._handles[handle] = query
        return SubmitResponse(status=SubmitStatus.accepted, handle=handle)

    async def fetch(self, handle: str) -> FetchResponse:
        self.fetched.append(handle)
        if self.fetch_script:
            return self.fetch_script.pop(0)
        query = self._handles.get(handle)
        if query is None:
            return FetchResponse(status=FetchStatus.rejected, detail="unknown task")
        return FetchResponse(status=FetchStatus.content, content=self.pages[query])

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Monotonic clock advanced only by the paired sleep."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
