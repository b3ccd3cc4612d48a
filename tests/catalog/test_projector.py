"""Unit tests for the view-state projector."""

import pytest

from cinefile.catalog.projector import (
    completion_progress,
    completion_stats,
    filter_by_title,
    filter_list,
    project,
    watchlist,
)
from cinefile.catalog.schemas import ALL_LISTS_ID, Movie, SortOption

NYT = "nytimes-100-21st-century"
AFI = "afi-100-years-100-movies"


def _make_movie(**overrides) -> Movie:
    base = {"id": "1", "title": "Test Film", "year": 2000}
    base.update(overrides)
    return Movie(**base)


def _ids(movies: list[Movie]) -> list[str]:
    return [movie.id for movie in movies]


@pytest.fixture
def catalog() -> list[Movie]:
    return [
        _make_movie(id="a", title="Vertigo", year=1958, director="Alfred Hitchcock", critic_rating=8.3,
                    list_rankings={AFI: 9}),
        _make_movie(id="b", title="Parasite", year=2019, director="Bong Joon Ho", critic_rating=8.5,
                    user_rating=9.0, list_rankings={NYT: 1}),
        _make_movie(id="c", title="Get Out", year=2017, director="Jordan Peele", critic_rating=7.6,
                    list_rankings={NYT: 5}, watched=True),
        _make_movie(id="d", title="Citizen Kane", year=1941, director="Orson Welles", critic_rating=8.0,
                    user_rating=7.0, list_rankings={AFI: 1, NYT: 99}),
        _make_movie(id="e", title="Searched Only", year=1990, in_watchlist=True),
    ]


@pytest.mark.unit
class TestFiltering:
    @staticmethod
    def test_all_lists_excludes_unranked(catalog: list[Movie]) -> None:
        assert _ids(filter_list(catalog, ALL_LISTS_ID)) == ["a", "b", "c", "d"]

    @staticmethod
    def test_concrete_list(catalog: list[Movie]) -> None:
        assert _ids(filter_list(catalog, AFI)) == ["a", "d"]

    @staticmethod
    def test_watchlist(catalog: list[Movie]) -> None:
        assert _ids(watchlist(catalog)) == ["e"]

    @staticmethod
    def test_filter_by_title(catalog: list[Movie]) -> None:
        assert _ids(filter_by_title(catalog, "  KANE ")) == ["d"]
        assert filter_by_title(catalog, "   ") == []


@pytest.mark.unit
class TestRankSort:
    @staticmethod
    def test_concrete_list_by_rank(catalog: list[Movie]) -> None:
        assert _ids(project(catalog, NYT, SortOption.RANK, True)) == ["b", "c", "d"]

    @staticmethod
    def test_all_lists_by_best_rank(catalog: list[Movie]) -> None:
        assert _ids(project(catalog, ALL_LISTS_ID, SortOption.RANK, True)) == ["b", "d", "c", "a"]

    @staticmethod
    def test_tie_broken_by_rank_sum_then_title() -> None:
        movies = [
            _make_movie(id="x", title="Zodiac", list_rankings={NYT: 5, AFI: 50}),
            _make_movie(id="y", title="Amélie", list_rankings={AFI: 5}),
            _make_movie(id="z", title="Babel", list_rankings={NYT: 5, AFI: 50}),
        ]
        assert _ids(project(movies, ALL_LISTS_ID, SortOption.RANK, True)) == ["y", "z", "x"]

    @staticmethod
    def test_rank_reversed(catalog: list[Movie]) -> None:
        assert _ids(project(catalog, NYT, SortOption.RANK, False)) == ["d", "c", "b"]


@pytest.mark.unit
class TestBaselineSorts:
    @staticmethod
    def test_title(catalog: list[Movie]) -> None:
        assert _ids(project(catalog, ALL_LISTS_ID, SortOption.TITLE, True)) == ["d", "c", "b", "a"]

    @staticmethod
    def test_year(catalog: list[Movie]) -> None:
        assert _ids(project(catalog, ALL_LISTS_ID, SortOption.YEAR, True)) == ["d", "a", "c", "b"]

    @staticmethod
    def test_director_by_last_name(catalog: list[Movie]) -> None:
        # Hitchcock, Ho, Peele, Welles
        assert _ids(project(catalog, ALL_LISTS_ID, SortOption.DIRECTOR, True)) == ["a", "b", "c", "d"]

    @staticmethod
    def test_critic_rating_baseline_is_highest_first(catalog: list[Movie]) -> None:
        assert _ids(project(catalog, ALL_LISTS_ID, SortOption.CRITIC_RATING, True)) == ["b", "a", "d", "c"]

    @staticmethod
    def test_critic_rating_reversed_is_lowest_first(catalog: list[Movie]) -> None:
        assert _ids(project(catalog, ALL_LISTS_ID, SortOption.CRITIC_RATING, False)) == ["c", "d", "a", "b"]

    @staticmethod
    def test_user_rating_missing_last(catalog: list[Movie]) -> None:
        assert _ids(project(catalog, ALL_LISTS_ID, SortOption.USER_RATING, True)) == ["b", "d", "c", "a"]

    @staticmethod
    def test_projection_does_not_reorder_catalog(catalog: list[Movie]) -> None:
        before = _ids(catalog)
        project(catalog, ALL_LISTS_ID, SortOption.TITLE, False)
        assert _ids(catalog) == before


@pytest.mark.unit
class TestCompletion:
    @staticmethod
    def test_stats(catalog: list[Movie]) -> None:
        assert completion_stats(catalog, NYT) == (1, 3)
        assert completion_stats(catalog, ALL_LISTS_ID) == (1, 4)

    @staticmethod
    def test_progress(catalog: list[Movie]) -> None:
        assert completion_progress(catalog, ALL_LISTS_ID) == 0.25
        assert completion_progress(catalog, "unknown") == 0.0
