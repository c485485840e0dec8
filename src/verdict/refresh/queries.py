"""Search query candidates for a catalog item.

Candidates run from most specific to the universal ``{title} {noun}``
fallback. The dispatcher stops at the first one that yields a percentage.
"""

from __future__ import annotations

from verdict.refresh.models import CatalogItem, MediaKind

# Fixed substitution table, no locale involved
_DIACRITICS = str.maketrans(
    {
        **dict.fromkeys("àáâäãå", "a"),
        **dict.fromkeys("ÀÁÂÄÃÅ", "A"),
        **dict.fromkeys("èéêë", "e"),
        **dict.fromkeys("ÈÉÊË", "E"),
        **dict.fromkeys("ìíîï", "i"),
        **dict.fromkeys("ÌÍÎÏ", "I"),
        **dict.fromkeys("òóôöõø", "o"),
        **dict.fromkeys("ÒÓÔÖÕØ", "O"),
        **dict.fromkeys("ùúûü", "u"),
        **dict.fromkeys("ÙÚÛÜ", "U"),
        **dict.fromkeys("ýÿ", "y"),
        "Ý": "Y",
        "ñ": "n",
        "Ñ": "N",
        "ç": "c",
        "Ç": "C",
    }
)


def normalize_diacritics(title: str) -> str:
    return title.translate(_DIACRITICS)


def build_queries(title: str, year: int | None, kind: MediaKind) -> list[str]:
    """Ordered, de-duplicated query strings, fallback last.

    Args:
        title: Item title as stored in the catalog
        year: Release year, if known
        kind: Movie or TV, selects the query noun

    Returns:
        Non-empty list whose last element is ``"{title} {noun}"``
    """
    title = " ".join(title.split())
    noun = kind.query_noun
    suffix = f"{year} {noun}" if year else noun
    fallback = f"{title} {noun}"

    specific = [f"{title} {suffix}"]

    normalized = normalize_diacritics(title)
    if normalized != title:
        specific.append(f"{normalized} {suffix}")

    if ":" in title:
        head = title.split(":", 1)[0].strip()
        if head:
            specific.append(f"{head} {suffix}")

    queries: list[str] = []
    for query in specific:
        if query != fallback and query not in queries:
            queries.append(query)
    queries.append(fallback)
    return queries


def queries_for(item: CatalogItem) -> list[str]:
    return build_queries(item.title, item.release_year, item.kind)
