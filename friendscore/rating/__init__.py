"""
Rating codec: ordinal grade + intensity modifier <-> numeric score.

Pure, side-effect-free. encode/decode are an exact bijection over the rating
table; display is the tolerant threshold lookup used for aggregated scores.
"""

from friendscore.rating.codec import (
    NOT_RATED,
    Grade,
    Modifier,
    decode,
    display,
    encode,
    label,
    parse_label,
    validate_score,
    validate_weight,
)

__all__ = [
    "NOT_RATED",
    "Grade",
    "Modifier",
    "decode",
    "display",
    "encode",
    "label",
    "parse_label",
    "validate_score",
    "validate_weight",
]
