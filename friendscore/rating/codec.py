"""
Rating codec.

Three grades (AB < BB < CB) and an optional intensity modifier
(--, -, +, ++; None means neutral) map to a score on the 0.5-10 scale.
Scores increase strictly across grade boundaries: the top of AB sits below the
bottom of BB, and so on.

Two lookups share the table and must not be mixed up:
- decode() is exact and raises on any score not in the table.
- display() walks descending thresholds and accepts any aggregate in [0, 10.1].
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from friendscore.core.exceptions import (
    InvalidScoreError,
    InvalidWeightError,
    UnknownRatingError,
    UnmappedScoreError,
)

NOT_RATED = "not rated"

MIN_SCORE = 0.5
MAX_SCORE = 10.0
SCORE_STEP = 0.5
MAX_DISPLAY_SCORE = 10.1

MIN_WEIGHT = 0.0
MAX_WEIGHT = 2.0


class Grade(str, Enum):
    AB = "AB"
    BB = "BB"
    CB = "CB"


class Modifier(str, Enum):
    STRONG_NEGATIVE = "--"
    NEGATIVE = "-"
    POSITIVE = "+"
    STRONG_POSITIVE = "++"


# Low-to-high order of modifiers within a grade; None is neutral.
MODIFIER_ORDER: tuple[Modifier | None, ...] = (
    Modifier.STRONG_NEGATIVE,
    Modifier.NEGATIVE,
    None,
    Modifier.POSITIVE,
    Modifier.STRONG_POSITIVE,
)

RATING_TABLE: dict[tuple[Grade, Modifier | None], float] = {
    (Grade.AB, Modifier.STRONG_NEGATIVE): 0.5,
    (Grade.AB, Modifier.NEGATIVE): 1.0,
    (Grade.AB, None): 2.0,
    (Grade.AB, Modifier.POSITIVE): 2.5,
    (Grade.AB, Modifier.STRONG_POSITIVE): 3.0,
    (Grade.BB, Modifier.STRONG_NEGATIVE): 3.5,
    (Grade.BB, Modifier.NEGATIVE): 4.0,
    (Grade.BB, None): 5.0,
    (Grade.BB, Modifier.POSITIVE): 6.0,
    (Grade.BB, Modifier.STRONG_POSITIVE): 6.5,
    (Grade.CB, Modifier.STRONG_NEGATIVE): 7.0,
    (Grade.CB, Modifier.NEGATIVE): 7.5,
    (Grade.CB, None): 8.5,
    (Grade.CB, Modifier.POSITIVE): 9.5,
    (Grade.CB, Modifier.STRONG_POSITIVE): 10.0,
}

_SCORE_TO_RATING: dict[float, tuple[Grade, Modifier | None]] = {
    score: key for key, score in RATING_TABLE.items()
}


def _coerce(grade: Any, modifier: Any) -> tuple[Grade, Modifier | None]:
    try:
        g = grade if isinstance(grade, Grade) else Grade(str(grade).strip().upper())
    except ValueError:
        raise UnknownRatingError(f"Unknown grade: {grade!r}") from None
    if modifier is None or (isinstance(modifier, str) and not modifier.strip()):
        return g, None
    try:
        m = modifier if isinstance(modifier, Modifier) else Modifier(str(modifier).strip())
    except ValueError:
        raise UnknownRatingError(f"Unknown modifier: {modifier!r}") from None
    return g, m


def label(grade: Grade | str, modifier: Modifier | str | None = None) -> str:
    """Display label for a grade/modifier pair, e.g. ('BB', '+') -> 'BB+'."""
    g, m = _coerce(grade, modifier)
    return g.value + (m.value if m is not None else "")


# (threshold, label) sorted by threshold descending.
DISPLAY_THRESHOLDS: tuple[tuple[float, str], ...] = tuple(
    sorted(
        ((score, label(g, m)) for (g, m), score in RATING_TABLE.items()),
        key=lambda pair: pair[0],
        reverse=True,
    )
)


def encode(grade: Grade | str, modifier: Modifier | str | None = None) -> float:
    """
    Return the stored score for a grade and optional modifier.

    Raises UnknownRatingError for a grade or modifier outside the table.
    """
    return RATING_TABLE[_coerce(grade, modifier)]


def decode(score: float) -> tuple[Grade, Modifier | None]:
    """
    Exact reverse of encode().

    Raises UnmappedScoreError for any score that is not an encode() output,
    which includes every fractional aggregate. Use display() for those.
    """
    try:
        key = float(score)
    except (TypeError, ValueError):
        raise UnmappedScoreError(f"Score {score!r} is not a rating table value") from None
    rating = _SCORE_TO_RATING.get(key)
    if rating is None:
        raise UnmappedScoreError(f"Score {score!r} is not a rating table value")
    return rating


def parse_label(text: str) -> tuple[Grade, Modifier | None]:
    """Parse a display label such as 'CB++' or 'AB' into (grade, modifier)."""
    raw = (text or "").strip().upper()
    return _coerce(raw[:2], raw[2:] or None)


def display(score: float | None) -> str:
    """
    Label for an aggregate score: the highest threshold <= score wins.

    None and 0 are "not rated". Positive scores under the lowest threshold get
    the bottom label. Scores outside [0, 10.1] raise InvalidScoreError.
    """
    if score is None:
        return NOT_RATED
    value = _as_finite(score, InvalidScoreError)
    if value < 0 or value > MAX_DISPLAY_SCORE:
        raise InvalidScoreError(f"Aggregate score {score!r} outside [0, {MAX_DISPLAY_SCORE}]")
    if value == 0:
        return NOT_RATED
    for threshold, text in DISPLAY_THRESHOLDS:
        if value >= threshold:
            return text
    return DISPLAY_THRESHOLDS[-1][1]


def _as_finite(value: Any, error: type[Exception]) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise error(f"Expected a number, got {value!r}")
    out = float(value)
    if math.isnan(out) or math.isinf(out):
        raise error(f"Expected a finite number, got {value!r}")
    return out


def validate_score(score: Any) -> float:
    """Return score as float if it is in [0.5, 10] on a 0.5 step; never clamps."""
    value = _as_finite(score, InvalidScoreError)
    if value < MIN_SCORE or value > MAX_SCORE:
        raise InvalidScoreError(f"Score {score!r} outside [{MIN_SCORE}, {MAX_SCORE}]")
    if not (value / SCORE_STEP).is_integer():
        raise InvalidScoreError(f"Score {score!r} is not a multiple of {SCORE_STEP}")
    return value


def validate_weight(weight: Any) -> float:
    """Return weight as float if it is in [0, 2]; never clamps."""
    value = _as_finite(weight, InvalidWeightError)
    if value < MIN_WEIGHT or value > MAX_WEIGHT:
        raise InvalidWeightError(f"Weight {weight!r} outside [{MIN_WEIGHT}, {MAX_WEIGHT}]")
    return value
