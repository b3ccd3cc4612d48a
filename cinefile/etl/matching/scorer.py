"""Search candidate scoring.

Picks the movie a ranked-list row refers to among the noisy results of a
free-text title search (shorts, documentaries about the film, re-releases).
Only title, year and director are available to disambiguate.
"""

import re
import string

from cinefile.catalog.schemas import ImportRow, Movie

# =============================================================================
# CONSTANTS
# =============================================================================

EXACT_TITLE_BONUS = 100
EXACT_YEAR_BONUS = 50
NEAR_YEAR_BONUS = 10
DIRECTOR_LAST_NAME_BONUS = 50
DIRECTOR_WORD_BONUS = 30
NON_FEATURE_PENALTY = -60

SCORE_FLOOR = 50
"""A winner must score strictly above this, otherwise the year fallback applies."""

MIN_DIRECTOR_WORD_LENGTH = 3

NON_FEATURE_MARKERS = (
    "making of",
    "behind the scenes",
    "@",
    "featurette",
    "documentary",
    "the story of",
    "anatomy of",
    "deleted scenes",
)
"""Title substrings indicating content about a film rather than the film."""

_PUNCTUATION = re.compile(f"[{re.escape(string.punctuation)}’‘“”·–—]")
_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# NORMALIZATION
# =============================================================================


def normalize_title(title: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace.

    Args:
        title: Raw title.

    Returns:
        Normalized title.
    """
    without_punctuation = _PUNCTUATION.sub("", title.lower())
    return _WHITESPACE.sub(" ", without_punctuation).strip()


def _director_words(director: str) -> list[str]:
    return [word for word in normalize_title(director).split() if len(word) >= MIN_DIRECTOR_WORD_LENGTH]


# =============================================================================
# SCORING
# =============================================================================


def score_director(candidate_director: str, row_director: str | None) -> int:
    """Score how well a candidate's director matches the row's.

    Args:
        candidate_director: Director reported by the provider.
        row_director: Director printed in the source list.

    Returns:
        Director bonus (0 when either side is unknown).
    """
    if not row_director or not candidate_director:
        return 0

    row_parts = row_director.split()
    last_name = row_parts[-1].lower() if row_parts else ""
    if last_name and last_name in candidate_director.lower():
        return DIRECTOR_LAST_NAME_BONUS

    candidate_words = set(_director_words(candidate_director))
    if any(word in candidate_words for word in _director_words(row_director)):
        return DIRECTOR_WORD_BONUS
    return 0


def score_candidate(candidate: Movie, row: ImportRow) -> int:
    """Score a search candidate against a list row.

    Args:
        candidate: Candidate movie.
        row: Row being resolved.

    Returns:
        Heuristic score; higher is better.
    """
    score = 0

    if normalize_title(candidate.title) == normalize_title(row.title):
        score += EXACT_TITLE_BONUS

    if candidate.year == row.year:
        score += EXACT_YEAR_BONUS
    elif candidate.year and abs(candidate.year - row.year) == 1:
        score += NEAR_YEAR_BONUS

    score += score_director(candidate.director, row.director)

    lowered = candidate.title.lower()
    if any(marker in lowered for marker in NON_FEATURE_MARKERS):
        score += NON_FEATURE_PENALTY

    return score


def pick_best_match(candidates: list[Movie], row: ImportRow) -> Movie | None:
    """Choose the candidate a row most likely refers to.

    The highest score wins, ties going to the higher critic rating and
    then to the earlier result. When nothing clears SCORE_FLOOR, the
    first candidate from the row's year is used, else the first candidate.

    Args:
        candidates: Search results in provider order.
        row: Row being resolved.

    Returns:
        Chosen candidate, or None when there are no candidates.
    """
    if not candidates:
        return None

    best = candidates[0]
    best_key = (score_candidate(best, row), best.critic_rating)
    for candidate in candidates[1:]:
        key = (score_candidate(candidate, row), candidate.critic_rating)
        if key > best_key:
            best, best_key = candidate, key

    if best_key[0] > SCORE_FLOOR:
        return best

    for candidate in candidates:
        if candidate.year == row.year:
            return candidate
    return candidates[0]
