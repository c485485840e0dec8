"""Run-scoped content cache."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RunCache:
    """Provider content keyed by query, alive for exactly one run.

    Two catalog items can produce the same query string (remakes sharing a
    title and year); the second one reuses the first one's content instead
    of paying for another search. Only successful fetches are stored.
    """

    content: dict[str, str] = field(default_factory=dict)
    hits: int = 0

    def get(self, query: str) -> str | None:
        cached = self.content.get(query)
        if cached is not None:
            self.hits += 1
        return cached

    def put(self, query: str, text: str) -> None:
        self.content[query] = text

    def __len__(self) -> int:
        return len(self.content)
