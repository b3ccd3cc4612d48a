"""Pydantic schemas for the movie catalog.

Defines the catalog entry (Movie), ranked collections (MovieList),
CSV import rows, sort state, and persisted view preferences.
"""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# CONSTANTS
# =============================================================================

ALL_LISTS_ID = "all"
"""Sentinel list id selecting every movie that belongs to at least one list."""

MISSING_RANK = 9999
"""Rank used for movies lacking the selected list key, so they sort last."""

MAX_CAST = 5
"""Number of cast names kept per movie."""


# =============================================================================
# SORT STATE
# =============================================================================


class SortOption(StrEnum):
    """Sort options offered by the list views."""

    RANK = "rank"
    TITLE = "title"
    YEAR = "year"
    DIRECTOR = "director"
    CRITIC_RATING = "critic_rating"
    USER_RATING = "user_rating"

    @property
    def label(self) -> str:
        """Human readable label."""
        return _SORT_LABELS[self]


_SORT_LABELS = {
    SortOption.RANK: "List Ranking",
    SortOption.TITLE: "Title",
    SortOption.YEAR: "Year",
    SortOption.DIRECTOR: "Director",
    SortOption.CRITIC_RATING: "Critic Rating",
    SortOption.USER_RATING: "My Rating",
}


# =============================================================================
# CATALOG ENTRIES
# =============================================================================


class Movie(BaseModel):
    """A catalog entry.

    Provider-sourced fields come from the metadata search API; user-owned
    fields (watched, watched_date, in_watchlist, user_rating) are only ever
    changed through the catalog store's mutation API.

    Attributes:
        id: Stable provider-assigned or synthesized identifier.
        title: Display title.
        year: Release year, 0 when unknown.
        director: Director name, empty when unknown.
        poster_url: Absolute poster URL, empty when unknown.
        overview: Plot synopsis.
        genres: Ordered genre names.
        runtime_minutes: Runtime, 0 when unknown.
        cast: Top billed cast names.
        critic_rating: Provider average rating (0-10).
        user_rating: User's own rating (0-10).
        watched: Whether the user has watched the movie.
        watched_date: When the movie was marked watched.
        in_watchlist: Whether the movie is on the watchlist.
        list_rankings: Mapping of list id to rank within that list.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(min_length=1, frozen=True)
    title: str
    year: int = Field(default=0, ge=0)
    director: str = ""
    poster_url: str = ""
    overview: str = ""
    genres: list[str] = Field(default_factory=list)
    runtime_minutes: int = Field(default=0, ge=0)
    cast: list[str] = Field(default_factory=list)

    critic_rating: float = Field(default=0.0, ge=0.0, le=10.0)
    user_rating: float | None = Field(default=None, ge=0.0, le=10.0)

    watched: bool = False
    watched_date: date | None = None
    in_watchlist: bool = False

    list_rankings: dict[str, int] = Field(default_factory=dict)

    @property
    def director_last_name(self) -> str:
        """Director's last name, used by the director sort."""
        parts = self.director.split()
        return parts[-1] if parts else self.director

    @property
    def best_rank(self) -> int:
        """Lowest rank held in any list."""
        return min(self.list_rankings.values(), default=MISSING_RANK)

    @property
    def rank_sum(self) -> int:
        """Sum of all ranks held, used as a tie-breaker."""
        return sum(self.list_rankings.values())

    @property
    def identity_key(self) -> tuple[str, int]:
        """Case-insensitive title and year used for duplicate detection."""
        return (self.title.strip().lower(), self.year)

    @property
    def has_user_state(self) -> bool:
        """Check whether the user has recorded anything about this movie."""
        return self.watched or self.in_watchlist or self.user_rating is not None


class MovieList(BaseModel):
    """A named, ranked collection of movies.

    Attributes:
        id: Stable list identifier.
        name: Display name.
        description: Short description.
        source: Provenance label (e.g. "The New York Times").
        year: Publication year.
        movie_ids: Explicit ordering, authoritative for user lists only.
        is_user_created: True for user lists; absent means system-provided.
        source_url: Optional link to the published list.
    """

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    source: str = ""
    year: int = 0
    movie_ids: list[str] = Field(default_factory=list)
    is_user_created: bool | None = None
    source_url: str | None = None

    @property
    def is_editable(self) -> bool:
        """User lists can be renamed, edited and deleted."""
        return bool(self.is_user_created)


class ImportRow(BaseModel):
    """One line of a ranked source list.

    Attributes:
        rank: Position in the source list (positive, unique per list).
        title: Title as printed in the source.
        year: Release year as printed in the source.
        director: Director, only for formats that carry it.
        runtime_minutes: Runtime, only for formats that carry it.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    rank: int = Field(gt=0)
    title: str = Field(min_length=1)
    year: int
    director: str | None = None
    runtime_minutes: int | None = None


# =============================================================================
# PERSISTED VIEW STATE
# =============================================================================


class ViewPreferences(BaseModel):
    """Process-wide view state persisted in the durable store.

    Attributes:
        sort_option: Active sort option.
        sort_ascending: Baseline (True) or reversed (False) order.
        selected_list_id: List shown by the list view.
        show_adult_content: Whether searches include adult titles.
        user_lists: User-created lists with their explicit ordering.
    """

    model_config = ConfigDict(extra="ignore")

    sort_option: SortOption = SortOption.RANK
    sort_ascending: bool = True
    selected_list_id: str = ALL_LISTS_ID
    show_adult_content: bool = False
    user_lists: list[MovieList] = Field(default_factory=list)
