"""Provider factory for the external search stack.

Usage:
    from verdict.providers.factory import create_search_client

    client = create_search_client()
    content = await client.fetch_content("Dune 2021 movie")
    await client.close()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from verdict.config import get_settings
from verdict.core.logging import get_logger
from verdict.providers.rate_limiter import SlidingWindowRateLimiter
from verdict.providers.search.client import SearchClient
from verdict.providers.search.dataforseo import DataForSEOTransport

if TYPE_CHECKING:
    from verdict.config import Settings

logger = get_logger(__name__)


def create_search_client(settings: Settings | None = None) -> SearchClient:
    """Create a throttled search client based on settings.

    One rate limiter backs every worker of the process, so the provider sees
    a single request budget no matter how many items are in flight.

    Raises:
        ValueError: If DataForSEO credentials are missing
    """
    settings = settings or get_settings()
    if not settings.dataforseo_login or not settings.dataforseo_password:
        raise ValueError("DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD are required for refresh runs")

    transport = DataForSEOTransport(
        login=settings.dataforseo_login,
        password=settings.dataforseo_password.get_secret_value(),
        base_url=settings.dataforseo_base_url,
        location_code=settings.dataforseo_location_code,
        language_code=settings.dataforseo_language_code,
    )
    limiter = SlidingWindowRateLimiter(settings.search_rate_limit_per_second)

    logger.debug(
        "Creating DataForSEO search client",
        rate_limit=settings.search_rate_limit_per_second,
        concurrency=settings.refresh_concurrency,
    )
    return SearchClient.from_settings(transport, limiter, settings)
