"""Shared fixtures for end-to-end tests.

The refresh scenarios run the whole pipeline (reclassification, selection,
search, extraction, recording) against a stateful in-memory catalog and a
scripted search provider. Tests marked ``integration`` call the real
DataForSEO API and need credentials.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from helpers import NOW, InMemoryCatalogStore, ScriptedTransport, make_settings
from verdict.providers.rate_limiter import SlidingWindowRateLimiter
from verdict.providers.search.client import SearchClient
from verdict.refresh.models import CatalogItem
from verdict.refresh.orchestrator import RefreshOrchestrator


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def build_orchestrator() -> Callable[..., tuple[RefreshOrchestrator, InMemoryCatalogStore]]:
    """Factory: catalog items + search pages -> orchestrator over in-memory state."""

    def build(
        items: list[CatalogItem],
        pages: dict[str, str],
        **settings_overrides: Any,
    ) -> tuple[RefreshOrchestrator, InMemoryCatalogStore]:
        settings = make_settings(**settings_overrides)
        store = InMemoryCatalogStore(items)
        client = SearchClient.from_settings(
            ScriptedTransport(pages), SlidingWindowRateLimiter(1000), settings
        )
        return RefreshOrchestrator(store, client, settings, clock=lambda: NOW), store

    return build
