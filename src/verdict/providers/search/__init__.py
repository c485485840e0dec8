"""External search provider: two-phase client and DataForSEO transport."""

from verdict.providers.search.client import SearchClient
from verdict.providers.search.dataforseo import DataForSEOTransport
from verdict.providers.search.models import (
    FetchResponse,
    FetchStatus,
    SearchFailure,
    SubmitResponse,
    SubmitStatus,
)

__all__ = [
    "DataForSEOTransport",
    "FetchResponse",
    "FetchStatus",
    "SearchClient",
    "SearchFailure",
    "SubmitResponse",
    "SubmitStatus",
]
