"""Tests for the search provider factory."""

import pytest

from helpers import make_settings
from verdict.providers.factory import create_search_client
from verdict.providers.search.client import SearchClient
from verdict.providers.search.dataforseo import DataForSEOTransport


class TestCreateSearchClient:
    """Tests for create_search_client."""

    def test_missing_credentials(self) -> None:
        with pytest.raises(ValueError, match="DATAFORSEO_LOGIN"):
            create_search_client(make_settings(dataforseo_login=None, dataforseo_password=None))

    @pytest.mark.asyncio
    async def test_builds_throttled_client(self) -> None:
        settings = make_settings(
            dataforseo_login="ops@example.com",
            dataforseo_password="pw",
            search_rate_limit_per_second=12,
            search_fetch_attempts=2,
        )

        client = create_search_client(settings)

        assert isinstance(client, SearchClient)
        assert isinstance(client._transport, DataForSEOTransport)
        assert client._limiter.max_calls == 12
        assert client._fetch_attempts == 2
        await client.close()
