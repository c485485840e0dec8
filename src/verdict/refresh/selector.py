"""Due-item selection and lazy tier reclassification."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from verdict.core.exceptions import FatalSelectionError, StoreWriteError
from verdict.core.logging import get_logger
from verdict.refresh.models import CatalogItem, RefreshTier
from verdict.refresh.tiers import classify_item, effective_tier, is_due

if TYPE_CHECKING:
    from datetime import date, datetime
    from uuid import UUID

    from verdict.storage.base import CatalogStore

logger = get_logger(__name__)


class DueItemSelector:
    """Picks the items whose refresh window has elapsed.

    Selection is read-only. High-churn, high-visibility items come first:
    tier ascending, then popularity descending.
    """

    def __init__(self, store: CatalogStore, max_daily_attempts: int | None = None) -> None:
        self._store = store
        self._max_daily_attempts = max_daily_attempts

    async def select(self, limit: int, now: datetime, dry_run: bool = False) -> list[CatalogItem]:
        """Return at most ``limit`` due items.

        Args:
            limit: Maximum number of items to return
            now: Reference time for cadence checks
            dry_run: Capacity estimate only; nothing is written either way

        Returns:
            Due items with their effective tier filled in. Fewer than
            ``limit`` when fewer are due.

        Raises:
            FatalSelectionError: The store could not be read
        """
        if limit < 1:
            return []

        try:
            candidates = await self._store.list_due_items(
                limit, now, max_daily_attempts=self._max_daily_attempts
            )
        except FatalSelectionError:
            raise
        except Exception as e:
            raise FatalSelectionError(f"Could not list due items: {e}") from e

        today = now.date()
        due: list[CatalogItem] = []
        for item in candidates:
            tier = effective_tier(item, today)
            if not is_due(tier, item.last_refreshed_at, now):
                continue
            due.append(item if item.tier == tier else item.model_copy(update={"tier": tier}))

        due.sort(key=lambda i: (int(i.tier or RefreshTier.CLASSIC), -i.popularity))
        selected = due[:limit]

        logger.info(
            "Due items selected",
            count=len(selected),
            limit=limit,
            dry_run=dry_run,
            tiers=dict(sorted(Counter(int(i.tier or 0) for i in selected).items())),
        )
        return selected

    async def reclassify(self, today: date) -> int:
        """Recompute every item's tier and persist the ones that changed.

        Items cross age boundaries as time passes, so this runs right before
        selection rather than on its own timer.

        Raises:
            FatalSelectionError: The catalog could not be read
            StoreWriteError: The new tiers could not be written
        """
        try:
            items = await self._store.list_items_for_tiering()
        except FatalSelectionError:
            raise
        except Exception as e:
            raise FatalSelectionError(f"Could not list catalog for tiering: {e}") from e

        changes: dict[UUID, int] = {}
        distribution: Counter[int] = Counter()
        for item in items:
            tier = classify_item(item, today)
            distribution[int(tier)] += 1
            if item.tier != tier:
                changes[item.id] = int(tier)

        if changes:
            try:
                await self._store.update_tiers(changes)
            except StoreWriteError:
                raise
            except Exception as e:
                raise StoreWriteError(f"Tier update failed: {e}") from e

        logger.info(
            "Tiers reclassified",
            total=len(items),
            changed=len(changes),
            distribution=dict(sorted(distribution.items())),
        )
        return len(changes)
