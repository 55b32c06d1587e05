"""
Weighted consensus computation: pure, no I/O.

Given a viewer, the eligible (rater_id, score) pairs for one item+dimension and
the viewer's trust weights, produce the friend score, contributing count and
confidence. The aggregator handles reads and writes; this module only does
arithmetic, so recomputation over unchanged inputs is always identical.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from friendscore.config.settings import DEFAULT_TRUST_WEIGHT

SELF_WEIGHT = 1.0
# Contributing ratings at which confidence saturates to 1.0
CONFIDENCE_SATURATION_COUNT = 5
SCORE_DECIMALS = 2
CONFIDENCE_DECIMALS = 2


def round_half_up(value: float, decimals: int) -> float:
    """Round exact halves up: 7.125 -> 7.13, where round() would give 7.12."""
    factor = 10**decimals
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class ConsensusComputation:
    """Outcome of one (viewer, item, dimension) computation."""

    score: float | None
    rating_count: int
    confidence: float
    used_fallback: bool = False
    """True when the viewer's own rating was the only eligible one."""


def confidence_for_count(count: int) -> float:
    """min(count / 5, 1.0), rounded to 2 decimals; 0 for no ratings."""
    if count <= 0:
        return 0.0
    return round_half_up(min(count / CONFIDENCE_SATURATION_COUNT, 1.0), CONFIDENCE_DECIMALS)


def weight_for(
    viewer_id: str,
    rater_id: str,
    weights: Mapping[str, float],
    *,
    default_weight: float = DEFAULT_TRUST_WEIGHT,
    self_weight: float = SELF_WEIGHT,
) -> float:
    """The viewer counts at self_weight; others at their stored weight or default_weight."""
    if rater_id == viewer_id:
        return self_weight
    weight = weights.get(rater_id)
    return default_weight if weight is None else weight


def compute_consensus(
    viewer_id: str,
    ratings: Iterable[tuple[str, float | None]],
    weights: Mapping[str, float],
    *,
    default_weight: float = DEFAULT_TRUST_WEIGHT,
    self_weight: float = SELF_WEIGHT,
) -> ConsensusComputation | None:
    """
    Compute the weighted friend score for one item+dimension.

    Args:
        viewer_id: The viewer the score is personalized for.
        ratings: (rater_id, score) for eligible raters; null scores are ignored.
        weights: rater_id -> trust weight held by the viewer.
        default_weight: Weight for an eligible rater with no stored weight.
        self_weight: Weight of the viewer's own rating.

    Returns:
        None when there is no eligible score. When only the viewer rated, their
        score verbatim with count 1. Otherwise sum(score*w)/sum(w) rounded to
        2 decimals, or a null score if the weights sum to zero.
    """
    eligible = [(rater_id, float(score)) for rater_id, score in ratings if score is not None]
    if not eligible:
        return None

    peers = [pair for pair in eligible if pair[0] != viewer_id]
    if not peers:
        own_score = eligible[0][1]
        return ConsensusComputation(
            score=own_score,
            rating_count=1,
            confidence=confidence_for_count(1),
            used_fallback=True,
        )

    total_weight = 0.0
    weighted_sum = 0.0
    for rater_id, score in eligible:
        weight = weight_for(
            viewer_id,
            rater_id,
            weights,
            default_weight=default_weight,
            self_weight=self_weight,
        )
        weighted_sum += score * weight
        total_weight += weight

    count = len(eligible)
    score = round_half_up(weighted_sum / total_weight, SCORE_DECIMALS) if total_weight > 0 else None
    return ConsensusComputation(
        score=score,
        rating_count=count,
        confidence=confidence_for_count(count),
    )
