"""Application-wide constants.

These are fixed values that don't change between environments.
For configurable values, see config.py Settings.
"""

from datetime import timedelta

# ─────────────────────────────────────────────────────────────
# Refresh tiers (product policy, tunable)
# ─────────────────────────────────────────────────────────────
TIER_NEW_RELEASE_MAX_MONTHS = 6
TIER_RECENT_MAX_MONTHS = 24
TIER_ESTABLISHED_MAX_MONTHS = 60
NEVER_UPDATE_MIN_AGE_MONTHS = 60  # strictly older than this
NEVER_UPDATE_MIN_VOTES = 10_000  # strictly more votes than this

TIER_CADENCES: dict[int, timedelta | None] = {
    1: timedelta(days=14),
    2: timedelta(days=30),
    3: timedelta(days=90),
    4: timedelta(days=180),
    5: None,  # never refreshed automatically
}

# ─────────────────────────────────────────────────────────────
# External search provider (DataForSEO)
# ─────────────────────────────────────────────────────────────
DEFAULT_DATAFORSEO_API_URL = "https://api.dataforseo.com/v3"
DATAFORSEO_LOCATION_US = 2840
DATAFORSEO_STATUS_OK = 20000
DATAFORSEO_STATUS_TASK_CREATED = 20100
DATAFORSEO_STATUS_RATE_LIMITED = 40202
DATAFORSEO_STATUS_TASK_HANDED = 40601
DATAFORSEO_STATUS_TASK_IN_QUEUE = 40602
DATAFORSEO_COST_PER_REQUEST = 0.0006  # USD, one task_post or task_get call
SEARCH_RATE_LIMIT_PER_SECOND = 18

# ─────────────────────────────────────────────────────────────
# Extraction
# ─────────────────────────────────────────────────────────────
FALLBACK_LIKED_WINDOW_CHARS = 50

# ─────────────────────────────────────────────────────────────
# Run limits
# ─────────────────────────────────────────────────────────────
TEST_MODE_ITEM_LIMIT = 10
DEFAULT_DAILY_FETCH_ATTEMPTS = 3
RUN_SUMMARY_HISTORY_DEFAULT = 30
