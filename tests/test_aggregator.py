"""
Tests for ConsensusAggregator against a temporary SQLite DB.

Covers the weighted path, lone-rating fallback, eligibility (trust, ACTIVE
status, availability), no-data semantics, idempotence, per-dimension results
and batch isolation of per-item failures.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from friendscore.core.exceptions import InvalidInputError, StorageError
from friendscore.database import (
    DIMENSION_NON_VEG,
    DIMENSION_OVERALL,
    DIMENSION_VEG,
    Availability,
    ItemKind,
    RatingRecord,
)

from tests.conftest import FRIEND, FRIEND_HEAVY, INACTIVE_FRIEND, STRANGER, VIEWER


def _key(result):
    return (result.viewer_id, result.item_id, result.dimension, result.score, result.rating_count, result.confidence)


def test_weighted_average(aggregator, rate, seeded_db):
    """alice 8.0 (w1), bob 6.0 (w2), carol 10.0 (w1) -> 7.5."""
    rate(VIEWER, "m1", 8.0)
    rate(FRIEND_HEAVY, "m1", 6.0)
    rate(FRIEND, "m1", 10.0)

    result = aggregator.recalculate_item(VIEWER, "m1")
    assert result is not None
    assert result.score == 7.5
    assert result.rating_count == 3
    assert result.confidence == 0.6

    stored = seeded_db.get_consensus_result(VIEWER, "m1", DIMENSION_OVERALL)
    assert _key(stored) == _key(result)


def test_lone_own_rating_fallback(aggregator, rate):
    rate(VIEWER, "m1", 9.0)
    result = aggregator.recalculate_item(VIEWER, "m1")
    assert result.score == 9.0
    assert result.rating_count == 1
    assert result.confidence == 0.2


def test_untrusted_stranger_is_not_eligible(aggregator, rate):
    """erin rated but alice holds no weight for her: fallback still applies."""
    rate(VIEWER, "m1", 9.0)
    rate(STRANGER, "m1", 1.0)
    result = aggregator.recalculate_item(VIEWER, "m1")
    assert result.score == 9.0
    assert result.rating_count == 1


def test_inactive_trusted_rater_excluded(aggregator, rate):
    rate(VIEWER, "m1", 8.0)
    rate(INACTIVE_FRIEND, "m1", 1.0)
    result = aggregator.recalculate_item(VIEWER, "m1")
    assert result.score == 8.0
    assert result.rating_count == 1


def test_not_available_rating_excluded(aggregator, rate, seeded_db):
    rate(VIEWER, "m1", 4.0)
    seeded_db.upsert_rating(
        RatingRecord(
            rater_id=FRIEND_HEAVY,
            item_id="m1",
            dimension=DIMENSION_OVERALL,
            score=None,
            availability=Availability.NOT_AVAILABLE,
        )
    )
    result = aggregator.recalculate_item(VIEWER, "m1")
    assert result.score == 4.0
    assert result.rating_count == 1


def test_weighted_path_without_viewer_rating(aggregator, rate):
    """bob 6.0 (w2) + carol 9.0 (w1) = 21/3 = 7.0."""
    rate(FRIEND_HEAVY, "m2", 6.0)
    rate(FRIEND, "m2", 9.0)
    result = aggregator.recalculate_item(VIEWER, "m2")
    assert result.score == 7.0
    assert result.rating_count == 2
    assert result.confidence == 0.4


def test_no_data_produces_no_row(aggregator, seeded_db):
    assert aggregator.recalculate_item(VIEWER, "m3") is None
    assert seeded_db.get_consensus_result(VIEWER, "m3", DIMENSION_OVERALL) is None
    assert seeded_db.list_consensus_results(VIEWER) == []


def test_stale_row_removed_when_data_disappears(aggregator, rate, seeded_db):
    rate(FRIEND, "m1", 7.0)
    assert aggregator.recalculate_item(VIEWER, "m1").score == 7.0
    seeded_db.delete_rating(FRIEND, "m1", DIMENSION_OVERALL)
    assert aggregator.recalculate_item(VIEWER, "m1") is None
    assert seeded_db.get_consensus_result(VIEWER, "m1", DIMENSION_OVERALL) is None


def test_all_zero_weights_write_no_row(aggregator, rate, seeded_db):
    seeded_db.set_trust_weight(VIEWER, FRIEND, 0.0)
    rate(FRIEND, "m1", 7.0)
    assert aggregator.recalculate_item(VIEWER, "m1") is None
    assert seeded_db.get_consensus_result(VIEWER, "m1", DIMENSION_OVERALL) is None


def test_default_weight_threads_through(seeded_db, rate):
    """default_weight applies only when no weight is stored for an eligible rater."""
    from friendscore.consensus import ConsensusAggregator

    rate(VIEWER, "m1", 4.0)
    rate(FRIEND, "m1", 10.0)
    agg = ConsensusAggregator(seeded_db, default_weight=0.5, max_workers=1)
    # carol has a stored weight of 1.0, so the default is not used
    assert agg.recalculate_item(VIEWER, "m1").score == 7.0
    assert agg.default_weight == 0.5


def test_default_weight_from_settings(seeded_db, monkeypatch):
    from friendscore.consensus import ConsensusAggregator

    monkeypatch.setenv("FRIENDSCORE_DEFAULT_TRUST_WEIGHT", "1.5")
    monkeypatch.setenv("FRIENDSCORE_MAX_WORKERS", "2")
    agg = ConsensusAggregator(seeded_db)
    assert agg.default_weight == 1.5


def test_idempotent_recalculation(aggregator, rate, seeded_db):
    rate(VIEWER, "m1", 3.5)
    rate(FRIEND_HEAVY, "m1", 9.5)
    rate(FRIEND, "m2", 6.0)
    rate(VIEWER, "r1", 8.5, DIMENSION_VEG)

    aggregator.recalculate_for_viewer(VIEWER)
    first = [_key(r) for r in seeded_db.list_consensus_results(VIEWER)]
    aggregator.recalculate_for_viewer(VIEWER)
    second = [_key(r) for r in seeded_db.list_consensus_results(VIEWER)]
    assert first == second
    assert len(first) == 3


def test_restaurant_dimensions_are_independent(aggregator, rate, seeded_db):
    rate(VIEWER, "r1", 8.0, DIMENSION_VEG)
    rate(FRIEND_HEAVY, "r1", 5.0, DIMENSION_VEG)
    rate(FRIEND, "r1", 3.0, DIMENSION_NON_VEG)

    veg = aggregator.recalculate_item(VIEWER, "r1", DIMENSION_VEG)
    non_veg = aggregator.recalculate_item(VIEWER, "r1", DIMENSION_NON_VEG)
    # (8*1 + 5*2) / 3 = 6.0
    assert veg.score == 6.0
    assert veg.rating_count == 2
    assert non_veg.score == 3.0
    assert non_veg.rating_count == 1
    assert len(seeded_db.list_consensus_results(VIEWER, kind=ItemKind.RESTAURANT)) == 2


def test_recalculate_item_invalid_input(aggregator):
    with pytest.raises(InvalidInputError, match="Unknown item"):
        aggregator.recalculate_item(VIEWER, "nope")
    with pytest.raises(InvalidInputError, match="needs a dimension"):
        aggregator.recalculate_item(VIEWER, "r1")
    with pytest.raises(InvalidInputError, match="not valid"):
        aggregator.recalculate_item(VIEWER, "m1", DIMENSION_VEG)
    with pytest.raises(InvalidInputError):
        aggregator.recalculate_item("", "m1")


def test_recalculate_item_storage_failure_raises(aggregator, rate, seeded_db):
    rate(VIEWER, "m1", 5.0)
    with patch.object(seeded_db, "upsert_consensus_result", side_effect=StorageError("disk full")):
        with pytest.raises(StorageError):
            aggregator.recalculate_item(VIEWER, "m1")
    assert seeded_db.get_consensus_result(VIEWER, "m1", DIMENSION_OVERALL) is None


def test_failed_upsert_leaves_prior_value(aggregator, rate, seeded_db):
    rate(VIEWER, "m1", 5.0)
    aggregator.recalculate_item(VIEWER, "m1")
    rate(FRIEND, "m1", 9.0)
    with patch.object(seeded_db, "upsert_consensus_result", side_effect=StorageError("locked")):
        with pytest.raises(StorageError):
            aggregator.recalculate_item(VIEWER, "m1")
    assert seeded_db.get_consensus_result(VIEWER, "m1", DIMENSION_OVERALL).score == 5.0


def test_batch_summary_counts(aggregator, rate):
    rate(VIEWER, "m1", 8.0)
    rate(FRIEND, "m2", 6.0)
    rate(FRIEND_HEAVY, "r1", 7.0, DIMENSION_NON_VEG)

    summary = aggregator.recalculate_for_viewer(VIEWER)
    assert summary.total == 4
    assert summary.succeeded == 4
    assert summary.failed == 0
    assert summary.written == 3
    assert summary.failures == []

    movies = aggregator.recalculate_for_viewer(VIEWER, kind=ItemKind.MOVIE)
    assert movies.total == 3
    assert movies.written == 2


def test_batch_partial_failure_isolated(aggregator, rate, seeded_db):
    """One item's upsert fails; the rest are still processed and reported."""
    rate(VIEWER, "m1", 8.0)
    rate(VIEWER, "m2", 6.0)
    rate(VIEWER, "m3", 4.0)
    original = seeded_db.upsert_consensus_result

    def flaky(viewer_id, item_id, *args, **kwargs):
        if item_id == "m2":
            raise StorageError("database is locked")
        return original(viewer_id, item_id, *args, **kwargs)

    with patch.object(seeded_db, "upsert_consensus_result", side_effect=flaky):
        summary = aggregator.recalculate_for_viewer(VIEWER, kind=ItemKind.MOVIE)

    assert summary.total == 3
    assert summary.succeeded == 2
    assert summary.failed == 1
    assert [f.key for f in summary.failures] == ["m2"]
    assert "locked" in summary.failures[0].error
    assert seeded_db.get_consensus_result(VIEWER, "m1", DIMENSION_OVERALL).score == 8.0
    assert seeded_db.get_consensus_result(VIEWER, "m2", DIMENSION_OVERALL) is None
    assert seeded_db.get_consensus_result(VIEWER, "m3", DIMENSION_OVERALL).score == 4.0
    assert summary.to_dict()["failed"] == 1


def test_sequential_and_parallel_batches_agree(seeded_db, rate):
    from friendscore.consensus import ConsensusAggregator

    rate(VIEWER, "m1", 8.0)
    rate(FRIEND_HEAVY, "m1", 2.0)
    rate(FRIEND, "m2", 6.5)
    rate(FRIEND_HEAVY, "r1", 7.0, DIMENSION_VEG)

    ConsensusAggregator(seeded_db, default_weight=1.0, max_workers=1).recalculate_for_viewer(VIEWER)
    sequential = [_key(r) for r in seeded_db.list_consensus_results(VIEWER)]
    ConsensusAggregator(seeded_db, default_weight=1.0, max_workers=8).recalculate_for_viewer(VIEWER)
    parallel = [_key(r) for r in seeded_db.list_consensus_results(VIEWER)]
    assert sequential == parallel


def test_refresh_item_updates_trusting_viewers(aggregator, rate, seeded_db):
    """bob's new rating refreshes alice (trusts bob) and bob himself, not erin."""
    rate(FRIEND_HEAVY, "m1", 6.0)
    summary = aggregator.refresh_item("m1", DIMENSION_OVERALL, FRIEND_HEAVY)
    assert summary.total == 2
    assert summary.failed == 0
    assert seeded_db.get_consensus_result(VIEWER, "m1", DIMENSION_OVERALL).score == 6.0
    assert seeded_db.get_consensus_result(FRIEND_HEAVY, "m1", DIMENSION_OVERALL).score == 6.0
    assert seeded_db.get_consensus_result(STRANGER, "m1", DIMENSION_OVERALL) is None


def test_trust_removal_then_recalculate(aggregator, rate, seeded_db):
    rate(VIEWER, "m1", 8.0)
    rate(FRIEND_HEAVY, "m1", 2.0)
    assert aggregator.recalculate_item(VIEWER, "m1").score == 4.0
    assert seeded_db.delete_trust_weight(VIEWER, FRIEND_HEAVY) is True
    aggregator.recalculate_for_viewer(VIEWER)
    assert seeded_db.get_consensus_result(VIEWER, "m1", DIMENSION_OVERALL).score == 8.0


def test_rows_written_before_dimension_failure_are_counted(aggregator, rate, seeded_db):
    """veg is stored, then non_veg fails: the item fails but its veg row is reported."""
    rate(VIEWER, "r1", 8.0, DIMENSION_VEG)
    rate(VIEWER, "r1", 6.0, DIMENSION_NON_VEG)
    original = seeded_db.upsert_consensus_result

    def failing_non_veg(viewer_id, item_id, dimension, *args, **kwargs):
        if dimension == DIMENSION_NON_VEG:
            raise StorageError("disk I/O error")
        return original(viewer_id, item_id, dimension, *args, **kwargs)

    with patch.object(seeded_db, "upsert_consensus_result", side_effect=failing_non_veg):
        summary = aggregator.recalculate_for_viewer(VIEWER, kind=ItemKind.RESTAURANT)

    assert summary.total == 1
    assert summary.failed == 1
    assert summary.succeeded == 0
    assert [f.key for f in summary.failures] == ["r1"]
    assert summary.written == 1
    assert seeded_db.get_consensus_result(VIEWER, "r1", DIMENSION_VEG).score == 8.0
    assert seeded_db.get_consensus_result(VIEWER, "r1", DIMENSION_NON_VEG) is None
