"""
Pytest fixtures for friendscore tests. Uses a temporary SQLite DB per test.
"""

from __future__ import annotations

import pytest

VIEWER = "alice"
FRIEND_HEAVY = "bob"
FRIEND = "carol"
INACTIVE_FRIEND = "dave"
STRANGER = "erin"


@pytest.fixture
def db(tmp_path, monkeypatch):
    """
    Fresh SQLite database with schema. Unset FRIENDSCORE_* env so settings
    defaults apply regardless of the developer's shell.
    """
    for name in ("FRIENDSCORE_DB_PATH", "FRIENDSCORE_DEFAULT_TRUST_WEIGHT", "FRIENDSCORE_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)

    from friendscore.database import get_database

    return get_database(tmp_path / "friendscore.db")


@pytest.fixture
def seeded_db(db):
    """
    Raters alice/bob/carol/erin (ACTIVE) and dave (INACTIVE); movies m1-m3 and
    restaurant r1. alice trusts bob at 2.0, carol at 1.0 and dave at 2.0.
    """
    from friendscore.database import AccountStatus, Item, ItemKind, Rater

    for rater_id in (VIEWER, FRIEND_HEAVY, FRIEND, STRANGER):
        db.upsert_rater(Rater(rater_id=rater_id, name=rater_id.title()))
    db.upsert_rater(Rater(rater_id=INACTIVE_FRIEND, name="Dave", status=AccountStatus.INACTIVE))
    for item_id in ("m1", "m2", "m3"):
        db.upsert_item(Item(item_id=item_id, kind=ItemKind.MOVIE, title=f"Movie {item_id}"))
    db.upsert_item(Item(item_id="r1", kind=ItemKind.RESTAURANT, title="Curry House"))
    db.bulk_upsert_trust_weights(
        VIEWER,
        [(FRIEND_HEAVY, 2.0), (FRIEND, 1.0), (INACTIVE_FRIEND, 2.0)],
    )
    return db


@pytest.fixture
def rate(seeded_db):
    """rate(rater_id, item_id, score, dimension="overall") -> stored RatingRecord."""
    from friendscore.database import DIMENSION_OVERALL, RatingRecord

    def _rate(rater_id: str, item_id: str, score: float, dimension: str = DIMENSION_OVERALL):
        return seeded_db.upsert_rating(
            RatingRecord(rater_id=rater_id, item_id=item_id, dimension=dimension, score=score)
        )

    return _rate


@pytest.fixture
def aggregator(seeded_db):
    from friendscore.consensus import ConsensusAggregator

    return ConsensusAggregator(seeded_db, default_weight=1.0, max_workers=4)
