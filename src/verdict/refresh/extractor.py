"""Audience sentiment extraction from raw search result content.

Search result pages carry a knowledge-panel line such as "87% liked this
movie". The extractor cleans the markup, then tries an ordered list of rules
(most specific first) and returns the first percentage in [0, 100].
Out-of-range values are skipped and matching continues. Never raises.
"""

from __future__ import annotations

import re

from verdict.core.constants import FALLBACK_LIKED_WINDOW_CHARS
from verdict.core.logging import get_logger
from verdict.refresh.models import ExtractionResult

logger = get_logger(__name__)

# =============================================================================
# Cleaning
# =============================================================================

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_ENTITY_RE = re.compile(r"&(?:[a-z][a-z0-9]*|#\d+|#x[0-9a-f]+);", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def clean_html(text: str) -> str:
    """Strip scripts, styles, comments, tags and entities; collapse whitespace."""
    cleaned = _SCRIPT_RE.sub(" ", text)
    cleaned = _STYLE_RE.sub(" ", cleaned)
    cleaned = _COMMENT_RE.sub(" ", cleaned)
    cleaned = _TAG_RE.sub(" ", cleaned)
    cleaned = _ENTITY_RE.sub(" ", cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


# =============================================================================
# Rules
# =============================================================================

# A percentage token: 1-3 digits not glued to a sign, decimal or thousands separator, or digits
_PCT = r"(?<![\w.,\-−])(\d{1,3})\s*%"

PERCENTAGE_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    (
        "liked_this_title",
        re.compile(_PCT + r"\s*liked\s+this\s+(?:film|movie|show|series|tv\s*show)", re.I),
    ),
    (
        "users_liked",
        re.compile(_PCT + r"\s*of\s+(?:google\s+)?(?:users|people|viewers)\s+liked", re.I),
    ),
    ("liked_it", re.compile(_PCT + r"\s*liked\s+it\b", re.I)),
    ("liked", re.compile(_PCT + r"\s*liked\b", re.I)),
    ("audience_score", re.compile(r"audience\s*score[:\s]*" + _PCT, re.I)),
    ("liked_by", re.compile(r"liked\s+by\s+" + _PCT, re.I)),
    ("percent_liked", re.compile(r"(?<![\w.,\-−])(\d{1,3})\s*percent\s+liked", re.I)),
)

FALLBACK_RULE = "fallback"
_FALLBACK_RE = re.compile(
    _PCT
    + rf"[^0-9]{{0,{FALLBACK_LIKED_WINDOW_CHARS}}}?\bliked\b"
    + rf"|\bliked\b[^0-9]{{0,{FALLBACK_LIKED_WINDOW_CHARS}}}?(?<![\w.,\-−])(\d{{1,3}})\s*%",
    re.I,
)


def _percentage(match: re.Match[str]) -> int | None:
    for group in match.groups():
        if group is None:
            continue
        value = int(group)
        if 0 <= value <= 100:
            return value
    return None


def _first_valid(pattern: re.Pattern[str], text: str) -> tuple[int, str] | None:
    for match in pattern.finditer(text):
        value = _percentage(match)
        if value is not None:
            return value, match.group(0)
    return None


def extract_sentiment(text: str | None) -> ExtractionResult:
    """Find the audience "liked" percentage in raw result content.

    Args:
        text: Raw HTML or plain text; cleaning is applied first

    Returns:
        ExtractionResult with the percentage and matching rule, or an empty
        result when no rule matched
    """
    if not text:
        return ExtractionResult()

    cleaned = clean_html(text)

    for name, pattern in PERCENTAGE_RULES:
        hit = _first_valid(pattern, cleaned)
        if hit is not None:
            return ExtractionResult(percentage=hit[0], rule=name, raw_match=hit[1])

    hit = _first_valid(_FALLBACK_RE, cleaned)
    if hit is not None:
        return ExtractionResult(percentage=hit[0], rule=FALLBACK_RULE, raw_match=hit[1])

    logger.debug("No sentiment percentage found", content_length=len(cleaned))
    return ExtractionResult()


def find_all_percentages(text: str) -> list[str]:
    """Every percentage with its trailing context, for debugging misses."""
    cleaned = clean_html(text)
    return [m.group(0).strip() for m in re.finditer(r"\d{1,3}\s*%[^0-9]{0,100}", cleaned)]
