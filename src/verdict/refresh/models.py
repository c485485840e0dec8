"""Data models for the rating refresh pipeline.

This module defines the schemas for:
- Catalog items as read from the store
- Transient extraction output
- Per-item writes and per-run counters
- The per-date run summary and the orchestrator's report
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


# =============================================================================
# Catalog
# =============================================================================


class MediaKind(str, Enum):
    """Kind of catalog item."""

    movie = "movie"
    tv = "tv"

    @property
    def query_noun(self) -> str:
        return "movie" if self is MediaKind.movie else "tv show"


class RefreshTier(IntEnum):
    """Refresh cadence class. Lower numbers refresh more often."""

    NEW_RELEASE = 1
    RECENT = 2
    ESTABLISHED = 3
    CLASSIC = 4
    NEVER_UPDATE = 5


class CatalogItem(BaseModel):
    """A film or series as seen by the refresh pipeline."""

    id: UUID
    tmdb_id: int | None = None
    title: str
    release_date: date | None = None
    kind: MediaKind = MediaKind.movie
    popularity: float = 0.0
    vote_count: int = 0
    sentiment: int | None = Field(default=None, ge=0, le=100)
    tier: RefreshTier | None = None
    last_refreshed_at: datetime | None = None

    @property
    def release_year(self) -> int | None:
        return self.release_date.year if self.release_date else None


# =============================================================================
# Extraction
# =============================================================================


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Outcome of scanning one piece of content for a percentage.

    Attributes:
        percentage: Extracted value in [0, 100], or None when nothing matched.
        rule: Name of the rule that matched, kept for audit logging.
        raw_match: The matched substring of the cleaned text.
    """

    percentage: int | None = None
    rule: str | None = None
    raw_match: str | None = None

    @property
    def found(self) -> bool:
        return self.percentage is not None


# =============================================================================
# Recording
# =============================================================================


class RefreshOutcome(str, Enum):
    """How a single item's refresh was classified."""

    updated = "updated"
    unchanged = "unchanged"
    failed = "failed"
    # Nothing extracted and the provider throttled us; the item stays due
    throttled = "throttled"

    @property
    def success(self) -> bool:
        return self in (RefreshOutcome.updated, RefreshOutcome.unchanged)


@dataclass(frozen=True, slots=True)
class SentimentUpdate:
    """A conditional sentiment write for one item."""

    item_id: UUID
    new_value: int
    previous_value: int | None
    refreshed_at: datetime

    @property
    def changed(self) -> bool:
        return self.new_value != self.previous_value


@dataclass
class RunCounters:
    """In-memory counters for one process's run."""

    processed: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    throttled: int = 0
    store_errors: int = 0
    requests: int = 0
    throttles: int = 0
    cost: float = 0.0

    def count(self, outcome: RefreshOutcome) -> None:
        if outcome is RefreshOutcome.throttled:
            self.throttled += 1
            return
        self.processed += 1
        if outcome is RefreshOutcome.updated:
            self.updated += 1
        elif outcome is RefreshOutcome.unchanged:
            self.unchanged += 1
        else:
            self.failed += 1


class RunSummary(BaseModel):
    """One row per calendar date. Reruns on the same date overwrite it."""

    run_date: date
    items_processed: int = 0
    items_updated: int = 0
    items_unchanged: int = 0
    items_failed: int = 0
    api_calls_made: int = 0
    total_cost: float = 0.0
    runtime_seconds: int = 0
    error_details: dict[str, Any] | None = None

    @classmethod
    def from_counters(
        cls,
        run_date: date,
        counters: RunCounters,
        runtime_seconds: float,
        error_details: dict[str, Any] | None = None,
    ) -> RunSummary:
        return cls(
            run_date=run_date,
            items_processed=counters.processed,
            items_updated=counters.updated,
            items_unchanged=counters.unchanged,
            items_failed=counters.failed,
            api_calls_made=counters.requests,
            total_cost=round(counters.cost, 4),
            runtime_seconds=round(runtime_seconds),
            error_details=error_details,
        )


@dataclass
class RunReport:
    """What a single orchestrated run did, returned to the caller."""

    run_date: date
    dry_run: bool
    selected: int = 0
    tier_breakdown: dict[int, int] = field(default_factory=dict)
    counters: RunCounters = field(default_factory=RunCounters)
    runtime_seconds: float = 0.0
    estimated_cost: float = 0.0
    skipped: bool = False
    error: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def items_per_minute(self) -> float:
        if self.runtime_seconds <= 0:
            return 0.0
        return self.counters.processed / self.runtime_seconds * 60

    def as_dict(self) -> dict[str, Any]:
        return {
            "run_date": self.run_date.isoformat(),
            "dry_run": self.dry_run,
            "skipped": self.skipped,
            "selected": self.selected,
            "tier_breakdown": {str(k): v for k, v in sorted(self.tier_breakdown.items())},
            "processed": self.counters.processed,
            "updated": self.counters.updated,
            "unchanged": self.counters.unchanged,
            "failed": self.counters.failed,
            "throttled": self.counters.throttled,
            "store_errors": self.counters.store_errors,
            "api_calls": self.counters.requests,
            "provider_throttles": self.counters.throttles,
            "cost": round(self.counters.cost, 4),
            "estimated_cost": round(self.estimated_cost, 4),
            "runtime_seconds": round(self.runtime_seconds, 1),
            "error": self.error,
        }


@dataclass
class ItemRefreshResult:
    """Outcome of an on-demand refresh of one item."""

    item_id: UUID
    title: str
    outcome: RefreshOutcome
    previous: int | None
    current: int | None
    requests: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "item_id": str(self.item_id),
            "title": self.title,
            "outcome": self.outcome.value,
            "previous": self.previous,
            "current": self.current,
            "api_calls": self.requests,
        }
