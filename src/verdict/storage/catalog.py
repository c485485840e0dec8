"""PostgreSQL catalog store for the refresh pipeline."""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from importlib import resources
from typing import TYPE_CHECKING, Any
from uuid import UUID

import asyncpg
import orjson

from verdict.core.constants import (
    NEVER_UPDATE_MIN_AGE_MONTHS,
    NEVER_UPDATE_MIN_VOTES,
    TIER_CADENCES,
    TIER_ESTABLISHED_MAX_MONTHS,
    TIER_NEW_RELEASE_MAX_MONTHS,
    TIER_RECENT_MAX_MONTHS,
)
from verdict.core.exceptions import FatalSelectionError, StoreWriteError
from verdict.core.logging import get_logger
from verdict.refresh.models import (
    CatalogItem,
    MediaKind,
    RefreshOutcome,
    RefreshTier,
    RunSummary,
)

if TYPE_CHECKING:
    from verdict.refresh.models import SentimentUpdate
    from verdict.storage.database import Database

logger = get_logger(__name__)

_ITEM_COLUMNS = """
    m.id, m.tmdb_id, m.title, m.media_type, m.release_date, m.popularity,
    m.vote_count, m.also_liked_percentage, m.rating_update_tier, m.rating_last_updated
"""

_MEDIA_TYPES = {"MOVIE": MediaKind.movie, "TV_SHOW": MediaKind.tv}

# Tier 5 has no cadence and is filtered out before the cadence check
_CADENCE_DAYS = {
    tier: cadence.days for tier, cadence in TIER_CADENCES.items() if cadence is not None
}

# Whole calendar months between release and $3 (today), same as tiers.age_in_months
_AGE_MONTHS = """(
    (EXTRACT(YEAR FROM $3::date) - EXTRACT(YEAR FROM m.release_date)) * 12
    + (EXTRACT(MONTH FROM $3::date) - EXTRACT(MONTH FROM m.release_date))
)"""

_EFFECTIVE_TIER = f"""COALESCE(
    m.rating_update_tier,
    CASE
        WHEN m.release_date IS NULL THEN 4
        WHEN {_AGE_MONTHS} > {NEVER_UPDATE_MIN_AGE_MONTHS}
             AND COALESCE(m.vote_count, 0) > {NEVER_UPDATE_MIN_VOTES} THEN 5
        WHEN {_AGE_MONTHS} <= {TIER_NEW_RELEASE_MAX_MONTHS} THEN 1
        WHEN {_AGE_MONTHS} <= {TIER_RECENT_MAX_MONTHS} THEN 2
        WHEN {_AGE_MONTHS} <= {TIER_ESTABLISHED_MAX_MONTHS} THEN 3
        ELSE 4
    END
)"""

_CADENCE_CASE = "\n".join(
    f"                WHEN {tier} THEN {days}" for tier, days in sorted(_CADENCE_DAYS.items())
)

# $1 limit, $2 now, $3 today, $4 start of today (UTC), $5 daily attempt cap or NULL
_DUE_ITEMS_QUERY = f"""
    WITH classified AS (
        SELECT {_ITEM_COLUMNS}, {_EFFECTIVE_TIER} AS effective_tier
        FROM media_items m
    )
    SELECT c.*
    FROM classified c
    WHERE c.effective_tier <> 5
      AND (
        c.rating_last_updated IS NULL
        OR c.rating_last_updated < $2 - (
            CASE c.effective_tier
{_CADENCE_CASE}
            END
        ) * INTERVAL '1 day'
      )
      AND (
        $5::int IS NULL
        OR (
            SELECT COUNT(*) FROM rating_fetch_attempts a
            WHERE a.media_id = c.id
              AND a.attempted_at >= $4
              AND a.attempted_at < $4 + INTERVAL '1 day'
        ) < $5::int
      )
    ORDER BY c.effective_tier ASC, c.popularity DESC NULLS LAST
    LIMIT $1
"""


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=UTC)
    return start, start + timedelta(days=1)


def row_to_item(row: asyncpg.Record | dict[str, Any]) -> CatalogItem:
    """Map a media_items row onto a CatalogItem."""
    tier = row["rating_update_tier"]
    return CatalogItem(
        id=row["id"],
        tmdb_id=row["tmdb_id"],
        title=row["title"],
        release_date=row["release_date"],
        kind=_MEDIA_TYPES.get(str(row["media_type"]), MediaKind.movie),
        popularity=float(row["popularity"] or 0.0),
        vote_count=int(row["vote_count"] or 0),
        sentiment=row["also_liked_percentage"],
        tier=RefreshTier(tier) if tier is not None else None,
        last_refreshed_at=row["rating_last_updated"],
    )


def row_to_summary(row: asyncpg.Record | dict[str, Any]) -> RunSummary:
    error_details = row["error_details"]
    if isinstance(error_details, str):
        error_details = orjson.loads(error_details)
    return RunSummary(
        run_date=row["run_date"],
        items_processed=row["items_processed"],
        items_updated=row["items_updated"],
        items_unchanged=row["items_unchanged"],
        items_failed=row["items_failed"],
        api_calls_made=row["api_calls_made"],
        total_cost=float(row["total_cost"]),
        runtime_seconds=row["runtime_seconds"] or 0,
        error_details=error_details,
    )


class PostgresCatalogStore:
    """CatalogStore backed by the media_items / rating_* tables."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def apply_schema(self) -> None:
        """Create the refresh tables and tracking columns if missing."""
        sql = resources.files("verdict.storage").joinpath("schema.sql").read_text(encoding="utf-8")
        try:
            await self._db.execute(sql)
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise StoreWriteError(f"Schema migration failed: {e}") from e
        logger.info("Rating refresh schema applied")

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    async def list_due_items(
        self, limit: int, now: datetime, max_daily_attempts: int | None = None
    ) -> list[CatalogItem]:
        """Due items, tier ascending then popularity descending.

        Unclassified rows are ranked and filtered by the tier they would get
        today, so tier 5 and not-yet-due rows never take up the LIMIT.
        """
        day_start, _ = _day_bounds(now.date())
        try:
            rows = await self._db.fetch(
                _DUE_ITEMS_QUERY, limit, now, now.date(), day_start, max_daily_attempts
            )
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise FatalSelectionError(f"Could not list due items: {e}") from e
        return [row_to_item(row) for row in rows]

    async def get_item(self, item_id: UUID) -> CatalogItem | None:
        try:
            row = await self._db.fetchrow(
                f"SELECT {_ITEM_COLUMNS} FROM media_items m WHERE m.id = $1", item_id
            )
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise FatalSelectionError(f"Could not load catalog item {item_id}: {e}") from e
        return row_to_item(row) if row is not None else None

    async def count_fetch_attempts(self, item_id: UUID, day: date) -> int:
        start, end = _day_bounds(day)
        try:
            count = await self._db.fetchval(
                """
                SELECT COUNT(*) FROM rating_fetch_attempts
                WHERE media_id = $1 AND attempted_at >= $2 AND attempted_at < $3
                """,
                item_id,
                start,
                end,
            )
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise FatalSelectionError(f"Could not count fetch attempts: {e}") from e
        return int(count or 0)

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    async def update_sentiment(self, update: SentimentUpdate) -> None:
        """Write one refresh result; the history row shares the item's transaction.

        Raises:
            StoreWriteError: The write failed or the item no longer exists
        """
        try:
            async with self._db.transaction() as conn:
                if update.changed:
                    status = await conn.execute(
                        """
                        UPDATE media_items
                        SET also_liked_percentage = $2,
                            also_liked_previous = $3,
                            rating_last_updated = $4,
                            rating_check_count = rating_check_count + 1,
                            rating_unchanged_count = 0
                        WHERE id = $1
                        """,
                        update.item_id,
                        update.new_value,
                        update.previous_value,
                        update.refreshed_at,
                    )
                    if status == "UPDATE 0":
                        raise StoreWriteError(f"Catalog item {update.item_id} not found")
                    await conn.execute(
                        """
                        INSERT INTO rating_history
                            (media_id, previous_value, new_value, recorded_at)
                        VALUES ($1, $2, $3, $4)
                        """,
                        update.item_id,
                        update.previous_value,
                        update.new_value,
                        update.refreshed_at,
                    )
                else:
                    status = await conn.execute(
                        """
                        UPDATE media_items
                        SET rating_last_updated = $2,
                            rating_check_count = rating_check_count + 1,
                            rating_unchanged_count = rating_unchanged_count + 1
                        WHERE id = $1
                        """,
                        update.item_id,
                        update.refreshed_at,
                    )
                    if status == "UPDATE 0":
                        raise StoreWriteError(f"Catalog item {update.item_id} not found")
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise StoreWriteError(f"Sentiment write failed for {update.item_id}: {e}") from e

        logger.debug(
            "Sentiment recorded",
            item_id=str(update.item_id),
            new_value=update.new_value,
            previous_value=update.previous_value,
            changed=update.changed,
        )

    async def record_fetch_attempt(
        self, item_id: UUID, outcome: RefreshOutcome, attempted_at: datetime
    ) -> None:
        try:
            await self._db.execute(
                """
                INSERT INTO rating_fetch_attempts (media_id, attempted_at, outcome, success)
                VALUES ($1, $2, $3, $4)
                """,
                item_id,
                attempted_at,
                outcome.value,
                outcome.success,
            )
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise StoreWriteError(f"Fetch attempt write failed for {item_id}: {e}") from e

    async def upsert_run_summary(self, summary: RunSummary) -> None:
        query = """
            INSERT INTO rating_update_logs (
                run_date, items_processed, items_updated, items_unchanged, items_failed,
                api_calls_made, total_cost, runtime_seconds, error_details
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            ON CONFLICT (run_date) DO UPDATE SET
                items_processed = EXCLUDED.items_processed,
                items_updated = EXCLUDED.items_updated,
                items_unchanged = EXCLUDED.items_unchanged,
                items_failed = EXCLUDED.items_failed,
                api_calls_made = EXCLUDED.api_calls_made,
                total_cost = EXCLUDED.total_cost,
                runtime_seconds = EXCLUDED.runtime_seconds,
                error_details = EXCLUDED.error_details,
                updated_at = NOW()
        """
        error_json = (
            orjson.dumps(summary.error_details).decode("utf-8")
            if summary.error_details is not None
            else None
        )
        try:
            await self._db.execute(
                query,
                summary.run_date,
                summary.items_processed,
                summary.items_updated,
                summary.items_unchanged,
                summary.items_failed,
                summary.api_calls_made,
                Decimal(str(summary.total_cost)),
                summary.runtime_seconds,
                error_json,
            )
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise StoreWriteError(f"Run summary write failed for {summary.run_date}: {e}") from e
        logger.debug("Run summary upserted", run_date=summary.run_date.isoformat())

    # -------------------------------------------------------------------------
    # Tiers and reporting
    # -------------------------------------------------------------------------

    async def get_tier_distribution(self) -> dict[int | None, int]:
        rows = await self._db.fetch(
            """
            SELECT rating_update_tier AS tier, COUNT(*) AS count
            FROM media_items
            GROUP BY rating_update_tier
            ORDER BY rating_update_tier NULLS LAST
            """
        )
        return {row["tier"]: row["count"] for row in rows}

    async def list_items_for_tiering(self) -> list[CatalogItem]:
        try:
            rows = await self._db.fetch(f"SELECT {_ITEM_COLUMNS} FROM media_items m")
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise FatalSelectionError(f"Could not list catalog for tiering: {e}") from e
        return [row_to_item(row) for row in rows]

    async def update_tiers(self, assignments: dict[UUID, int]) -> int:
        if not assignments:
            return 0
        try:
            await self._db.executemany(
                "UPDATE media_items SET rating_update_tier = $2 WHERE id = $1",
                [(item_id, tier) for item_id, tier in assignments.items()],
            )
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            raise StoreWriteError(f"Tier update failed: {e}") from e
        logger.debug("Tiers updated", count=len(assignments))
        return len(assignments)

    async def list_run_summaries(self, limit: int) -> list[RunSummary]:
        rows = await self._db.fetch(
            """
            SELECT run_date, items_processed, items_updated, items_unchanged, items_failed,
                   api_calls_made, total_cost, runtime_seconds, error_details
            FROM rating_update_logs
            ORDER BY run_date DESC
            LIMIT $1
            """,
            limit,
        )
        return [row_to_summary(row) for row in rows]
