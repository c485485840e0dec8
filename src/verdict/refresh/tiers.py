"""Refresh tier classification and cadence checks."""

from __future__ import annotations

from datetime import date, datetime

from verdict.core.constants import (
    NEVER_UPDATE_MIN_AGE_MONTHS,
    NEVER_UPDATE_MIN_VOTES,
    TIER_CADENCES,
    TIER_ESTABLISHED_MAX_MONTHS,
    TIER_NEW_RELEASE_MAX_MONTHS,
    TIER_RECENT_MAX_MONTHS,
)
from verdict.refresh.models import CatalogItem, RefreshTier


def age_in_months(release_date: date | None, today: date) -> int | None:
    """Whole calendar months between release and today (None when undated)."""
    if release_date is None:
        return None
    return (today.year - release_date.year) * 12 + (today.month - release_date.month)


def classify_tier(release_date: date | None, vote_count: int, today: date) -> RefreshTier:
    """Assign a refresh tier from item age and vote count.

    Undated items are treated as stale classics. Boundary ages land in the
    more frequent tier.
    """
    age = age_in_months(release_date, today)
    if age is None:
        return RefreshTier.CLASSIC

    if age > NEVER_UPDATE_MIN_AGE_MONTHS and vote_count > NEVER_UPDATE_MIN_VOTES:
        return RefreshTier.NEVER_UPDATE
    if age <= TIER_NEW_RELEASE_MAX_MONTHS:
        return RefreshTier.NEW_RELEASE
    if age <= TIER_RECENT_MAX_MONTHS:
        return RefreshTier.RECENT
    if age <= TIER_ESTABLISHED_MAX_MONTHS:
        return RefreshTier.ESTABLISHED
    return RefreshTier.CLASSIC


def classify_item(item: CatalogItem, today: date) -> RefreshTier:
    return classify_tier(item.release_date, item.vote_count, today)


def effective_tier(item: CatalogItem, today: date) -> RefreshTier:
    """Cached tier when present, otherwise computed on the fly."""
    if item.tier is not None:
        return item.tier
    return classify_item(item, today)


def is_due(tier: RefreshTier, last_refreshed_at: datetime | None, now: datetime) -> bool:
    """Whether the tier's cadence window has elapsed since the last refresh."""
    cadence = TIER_CADENCES[int(tier)]
    if cadence is None:
        return False
    if last_refreshed_at is None:
        return True
    return last_refreshed_at < now - cadence
