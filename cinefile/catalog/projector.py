"""View-state projector.

Derives filtered and sorted list views from the catalog. The canonical
catalog order is never changed; every function returns a new list.
"""

from collections.abc import Callable, Iterable
from typing import Any

from cinefile.catalog.schemas import ALL_LISTS_ID, MISSING_RANK, Movie, SortOption

SortKey = Callable[[Movie], Any]


# =============================================================================
# FILTERING
# =============================================================================


def filter_list(catalog: Iterable[Movie], list_id: str) -> list[Movie]:
    """Select the movies belonging to a list.

    Args:
        catalog: Catalog entries.
        list_id: Concrete list id or ALL_LISTS_ID.

    Returns:
        Movies in the list, in catalog order.
    """
    if list_id == ALL_LISTS_ID:
        return [movie for movie in catalog if movie.list_rankings]
    return [movie for movie in catalog if list_id in movie.list_rankings]


def watchlist(catalog: Iterable[Movie]) -> list[Movie]:
    """Movies on the user's watchlist, in catalog order."""
    return [movie for movie in catalog if movie.in_watchlist]


def filter_by_title(catalog: Iterable[Movie], query: str) -> list[Movie]:
    """Case-insensitive title search over the local catalog.

    Args:
        catalog: Catalog entries.
        query: Substring to look for.

    Returns:
        Matching movies; empty for a blank query.
    """
    needle = query.strip().lower()
    if not needle:
        return []
    return [movie for movie in catalog if needle in movie.title.lower()]


# =============================================================================
# SORT KEYS
# =============================================================================


def _title_key(movie: Movie) -> str:
    return movie.title.lower()


def _rank_key(list_id: str) -> SortKey:
    """Build the rank key for a list selection.

    Args:
        list_id: Concrete list id or ALL_LISTS_ID.

    Returns:
        Key function ordering by rank with deterministic tie-breaks.
    """
    if list_id == ALL_LISTS_ID:
        return lambda m: (m.best_rank, m.rank_sum, _title_key(m))
    return lambda m: (m.list_rankings.get(list_id, MISSING_RANK), _title_key(m))


def _user_rating_key(movie: Movie) -> tuple[int, float, str]:
    # Present ratings first, highest first
    if movie.user_rating is None:
        return (1, 0.0, _title_key(movie))
    return (0, -movie.user_rating, _title_key(movie))


_BASELINE_KEYS: dict[SortOption, SortKey] = {
    SortOption.TITLE: lambda m: (_title_key(m), m.year),
    SortOption.YEAR: lambda m: (m.year, _title_key(m)),
    SortOption.DIRECTOR: lambda m: (m.director_last_name.lower(), m.director.lower(), _title_key(m)),
    SortOption.CRITIC_RATING: lambda m: (-m.critic_rating, _title_key(m)),
    SortOption.USER_RATING: _user_rating_key,
}


def baseline_key(sort_option: SortOption, list_id: str) -> SortKey:
    """Return the key producing the baseline order for a sort option.

    Args:
        sort_option: Selected sort option.
        list_id: Selected list (only used by the rank sort).

    Returns:
        Sort key function.
    """
    if sort_option == SortOption.RANK:
        return _rank_key(list_id)
    return _BASELINE_KEYS[sort_option]


# =============================================================================
# PROJECTION
# =============================================================================


def project(
    catalog: Iterable[Movie],
    selected_list_id: str,
    sort_option: SortOption,
    ascending: bool,
) -> list[Movie]:
    """Project the catalog into an ordered list view.

    `ascending` selects the baseline order when True and the fully
    reversed baseline when False; it does not mean numerically increasing.

    Args:
        catalog: Catalog entries.
        selected_list_id: Concrete list id or ALL_LISTS_ID.
        sort_option: Selected sort option.
        ascending: Baseline (True) or reversed (False).

    Returns:
        Ordered movies.
    """
    movies = filter_list(catalog, selected_list_id)
    ordered = sorted(movies, key=baseline_key(sort_option, selected_list_id))
    if not ascending:
        ordered.reverse()
    return ordered


def completion_stats(catalog: Iterable[Movie], list_id: str) -> tuple[int, int]:
    """Count watched movies in a list.

    Args:
        catalog: Catalog entries.
        list_id: Concrete list id or ALL_LISTS_ID.

    Returns:
        (watched count, total count).
    """
    movies = filter_list(catalog, list_id)
    watched = sum(1 for movie in movies if movie.watched)
    return watched, len(movies)


def completion_progress(catalog: Iterable[Movie], list_id: str) -> float:
    """Fraction of a list already watched (0.0 for an empty list)."""
    watched, total = completion_stats(catalog, list_id)
    if total == 0:
        return 0.0
    return watched / total
