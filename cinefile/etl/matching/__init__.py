"""Match scoring between list rows and search candidates."""

from cinefile.etl.matching.scorer import (
    NON_FEATURE_MARKERS,
    SCORE_FLOOR,
    normalize_title,
    pick_best_match,
    score_candidate,
)

__all__ = [
    "NON_FEATURE_MARKERS",
    "SCORE_FLOOR",
    "normalize_title",
    "pick_best_match",
    "score_candidate",
]
