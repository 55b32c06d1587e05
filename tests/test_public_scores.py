"""
Tests for the unweighted views: public (all ACTIVE raters) and group summary.
"""

from __future__ import annotations

from friendscore.consensus import GroupScore, PublicScore, group_summary, public_scores
from friendscore.database import DIMENSION_OVERALL, DIMENSION_VEG, ItemKind

from tests.conftest import FRIEND, FRIEND_HEAVY, INACTIVE_FRIEND, STRANGER, VIEWER


def test_public_scores_ignore_inactive_and_trust(seeded_db, rate):
    rate(VIEWER, "m1", 8.0)
    rate(FRIEND_HEAVY, "m1", 6.0)
    rate(INACTIVE_FRIEND, "m1", 1.0)
    rate(STRANGER, "m2", 3.5)

    scores = public_scores(seeded_db)
    assert scores == [
        PublicScore(item_id="m1", dimension=DIMENSION_OVERALL, score=7.0, rater_count=2),
        PublicScore(item_id="m2", dimension=DIMENSION_OVERALL, score=3.5, rater_count=1),
    ]


def test_public_scores_rounding_and_kind(seeded_db, rate):
    rate(VIEWER, "r1", 8.0, DIMENSION_VEG)
    rate(FRIEND, "r1", 6.5, DIMENSION_VEG)
    rate(STRANGER, "r1", 6.5, DIMENSION_VEG)

    assert public_scores(seeded_db) == []
    (veg,) = public_scores(seeded_db, ItemKind.RESTAURANT)
    assert veg.score == 7.0
    rate(FRIEND_HEAVY, "r1", 0.5, DIMENSION_VEG)
    (veg,) = public_scores(seeded_db, ItemKind.RESTAURANT)
    # 21.5 / 4
    assert veg.score == 5.38
    assert veg.rater_count == 4


def test_group_summary(seeded_db, rate):
    rate(VIEWER, "m1", 8.0)
    rate(FRIEND_HEAVY, "m1", 6.0)
    rate(INACTIVE_FRIEND, "m1", 1.0)
    rate(INACTIVE_FRIEND, "m3", 7.5)

    summary = group_summary(seeded_db, [VIEWER, INACTIVE_FRIEND])
    assert summary == [
        GroupScore(
            item_id="m1",
            dimension=DIMENSION_OVERALL,
            score=4.5,
            rating_count=2,
            scores_by_rater={VIEWER: 8.0, INACTIVE_FRIEND: 1.0},
        ),
        GroupScore(
            item_id="m3",
            dimension=DIMENSION_OVERALL,
            score=7.5,
            rating_count=1,
            scores_by_rater={INACTIVE_FRIEND: 7.5},
        ),
    ]


def test_group_summary_one_decimal(seeded_db, rate):
    rate(VIEWER, "m2", 8.0)
    rate(FRIEND, "m2", 6.5)
    rate(STRANGER, "m2", 6.5)
    rate(FRIEND_HEAVY, "m2", 0.5)
    (row,) = group_summary(seeded_db, [VIEWER, FRIEND, STRANGER, FRIEND_HEAVY])
    # 21.5 / 4 = 5.375
    assert row.score == 5.4


def test_group_summary_empty(seeded_db, rate):
    rate(VIEWER, "m1", 8.0)
    assert group_summary(seeded_db, []) == []
    assert group_summary(seeded_db, [STRANGER]) == []


def test_group_summary_half_rounds_up(seeded_db, rate):
    rate(VIEWER, "m2", 8.0)
    rate(FRIEND, "m2", 6.5)
    (row,) = group_summary(seeded_db, [VIEWER, FRIEND])
    # 14.5 / 2 = 7.25
    assert row.score == 7.3
