"""Rating refresh pipeline.

Pure parts (tiers, queries, extractor) have no I/O; the selector, dispatcher,
recorder and orchestrator talk to the catalog store and the search client.
"""

from verdict.refresh.extractor import clean_html, extract_sentiment
from verdict.refresh.models import (
    CatalogItem,
    ExtractionResult,
    MediaKind,
    RefreshOutcome,
    RefreshTier,
    RunCounters,
    RunReport,
    RunSummary,
    SentimentUpdate,
)
from verdict.refresh.queries import build_queries
from verdict.refresh.tiers import classify_tier, is_due

__all__ = [
    "CatalogItem",
    "ExtractionResult",
    "MediaKind",
    "RefreshOutcome",
    "RefreshTier",
    "RunCounters",
    "RunReport",
    "RunSummary",
    "SentimentUpdate",
    "build_queries",
    "classify_tier",
    "clean_html",
    "extract_sentiment",
    "is_due",
]
