"""
Unweighted score views over the same ratings.

public_scores: equal-weight mean of every ACTIVE rater's available ratings,
per (item, dimension). group_summary: plain mean over a chosen set of raters,
rounded to one decimal, for side-by-side group comparison.
"""

from __future__ import annotations

import statistics
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from friendscore.consensus.engine import round_half_up
from friendscore.database.database import Database
from friendscore.database.models import ItemKind, RatingRecord
from friendscore.logging import get_logger

logger = get_logger(__name__)

PUBLIC_SCORE_DECIMALS = 2
GROUP_SCORE_DECIMALS = 1


@dataclass(frozen=True)
class PublicScore:
    item_id: str
    dimension: str
    score: float
    rater_count: int


@dataclass(frozen=True)
class GroupScore:
    item_id: str
    dimension: str
    score: float
    rating_count: int
    scores_by_rater: dict[str, float]


def _group_by_key(records: Iterable[RatingRecord]) -> dict[tuple[str, str], dict[str, float]]:
    grouped: dict[tuple[str, str], dict[str, float]] = defaultdict(dict)
    for r in records:
        if r.score is not None:
            grouped[(r.item_id, r.dimension)][r.rater_id] = r.score
    return grouped


def public_scores(db: Database, kind: ItemKind | None = ItemKind.MOVIE) -> list[PublicScore]:
    """Equal-weight consensus across all ACTIVE raters; items nobody rated are omitted."""
    grouped = _group_by_key(db.list_item_ratings(kind=kind, active_only=True))
    out = [
        PublicScore(
            item_id=item_id,
            dimension=dimension,
            score=round_half_up(statistics.fmean(scores.values()), PUBLIC_SCORE_DECIMALS),
            rater_count=len(scores),
        )
        for (item_id, dimension), scores in sorted(grouped.items())
    ]
    logger.info("public_scores_computed", kind=kind.value if kind else "all", items=len(out))
    return out


def group_summary(
    db: Database,
    rater_ids: Iterable[str],
    kind: ItemKind | None = ItemKind.MOVIE,
) -> list[GroupScore]:
    """Plain mean over the given raters' ratings; items none of them rated are omitted."""
    ids = list(dict.fromkeys(rater_ids))
    if not ids:
        return []
    grouped = _group_by_key(db.list_item_ratings(kind=kind, rater_ids=ids))
    return [
        GroupScore(
            item_id=item_id,
            dimension=dimension,
            score=round_half_up(statistics.fmean(scores.values()), GROUP_SCORE_DECIMALS),
            rating_count=len(scores),
            scores_by_rater=dict(sorted(scores.items())),
        )
        for (item_id, dimension), scores in sorted(grouped.items())
    ]
