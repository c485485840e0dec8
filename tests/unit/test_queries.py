"""Tests for search query candidate generation."""

import pytest

from helpers import make_item
from verdict.refresh.models import MediaKind
from verdict.refresh.queries import build_queries, normalize_diacritics, queries_for


class TestNormalizeDiacritics:
    """Tests for normalize_diacritics."""

    def test_folds_accents(self) -> None:
        assert normalize_diacritics("Amélie") == "Amelie"
        assert normalize_diacritics("Señor Ñandú") == "Senor Nandu"

    def test_ascii_untouched(self) -> None:
        assert normalize_diacritics("Heat") == "Heat"


class TestBuildQueries:
    """Tests for build_queries."""

    def test_simple_movie(self) -> None:
        assert build_queries("Heat", 1995, MediaKind.movie) == ["Heat 1995 movie", "Heat movie"]

    def test_tv_noun(self) -> None:
        assert build_queries("Severance", 2022, MediaKind.tv) == [
            "Severance 2022 tv show",
            "Severance tv show",
        ]

    def test_no_year_collapses_to_fallback(self) -> None:
        assert build_queries("Heat", None, MediaKind.movie) == ["Heat movie"]

    def test_diacritics_variant(self) -> None:
        assert build_queries("Amélie", 2001, MediaKind.movie) == [
            "Amélie 2001 movie",
            "Amelie 2001 movie",
            "Amélie movie",
        ]

    def test_colon_head_variant(self) -> None:
        queries = build_queries("Dune: Part Two", 2024, MediaKind.movie)
        assert queries == ["Dune: Part Two 2024 movie", "Dune 2024 movie", "Dune: Part Two movie"]

    def test_empty_colon_head_skipped(self) -> None:
        queries = build_queries(": Untitled", 2020, MediaKind.movie)
        assert queries == [": Untitled 2020 movie", ": Untitled movie"]

    def test_whitespace_collapsed(self) -> None:
        assert build_queries("  The   Thing ", 1982, MediaKind.movie)[0] == "The Thing 1982 movie"

    @pytest.mark.parametrize(
        ("title", "year", "kind"),
        [
            ("", None, MediaKind.movie),
            ("Élite: Temporada", 2018, MediaKind.tv),
            ("Pokémon: Pokémon", 1998, MediaKind.movie),
            ("Up", 2009, MediaKind.movie),
            ("Café", None, MediaKind.tv),
        ],
    )
    def test_shape(self, title: str, year: int | None, kind: MediaKind) -> None:
        queries = build_queries(title, year, kind)
        assert queries
        assert queries[-1] == f"{' '.join(title.split())} {kind.query_noun}"
        assert len(queries) == len(set(queries))

    def test_queries_for_item(self) -> None:
        item = make_item(title="Oppenheimer", release_date=None)
        assert queries_for(item) == ["Oppenheimer movie"]
