"""Abstract provider protocols.

The search provider is an opaque two-phase boundary: submit a query and get a
task handle back, then fetch the handle's raw content once it has settled.
Concrete transports (DataForSEO today) implement this protocol so the search
client's throttling and retry policy stays provider-agnostic.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from verdict.providers.search.models import FetchResponse, SubmitResponse


@runtime_checkable
class SearchTransport(Protocol):
    """Protocol for a task-based search provider."""

    async def submit(self, query: str) -> SubmitResponse:
        """Submit a search task.

        Args:
            query: Search string

        Returns:
            SubmitResponse with status accepted (and a handle), throttled or rejected
        """
        ...

    async def fetch(self, handle: str) -> FetchResponse:
        """Fetch the content of a previously submitted task.

        Args:
            handle: Task handle returned by submit()

        Returns:
            FetchResponse with status content, not_ready, throttled or rejected
        """
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...
