"""Models for the two-phase external search protocol."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel


class SubmitStatus(str, Enum):
    """Provider answer to a task submission."""

    accepted = "accepted"
    throttled = "throttled"
    rejected = "rejected"


class FetchStatus(str, Enum):
    """Provider answer to a result fetch."""

    content = "content"
    not_ready = "not_ready"
    throttled = "throttled"
    rejected = "rejected"


class SubmitResponse(BaseModel):
    """Result of submitting a query."""

    status: SubmitStatus
    handle: str | None = None
    detail: str | None = None


class FetchResponse(BaseModel):
    """Result of fetching a submitted task's content."""

    status: FetchStatus
    content: str | None = None
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class SearchFailure:
    """A query that produced no content. The caller moves to its next candidate."""

    query: str
    reason: str
    detail: str | None = None
