"""
Rating submission, "not available" marking and retraction.

Every mutation is followed by a refresh of the affected item+dimension for the
rater and for every viewer that trusts them, unless refresh=False (e.g. bulk
imports that run ConsensusAggregator.recalculate_for_viewer afterwards).

The service holds no per-call state: each mutation returns its own
RatingMutation, so one instance can be shared across request threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from friendscore.consensus.aggregator import BatchSummary, ConsensusAggregator
from friendscore.core.exceptions import InvalidInputError
from friendscore.database.database import Database
from friendscore.database.models import Availability, RatingRecord
from friendscore.logging import get_logger
from friendscore.rating.codec import Grade, Modifier, encode

logger = get_logger(__name__)


@dataclass(frozen=True)
class RatingMutation:
    """Outcome of one submit / not-available / retract call."""

    item_id: str
    dimension: str
    changed: bool
    """False only for a retract that found nothing to delete."""
    record: RatingRecord | None = None
    """Stored rating; None after a retract."""
    refresh: BatchSummary | None = None
    """Recalculation for affected viewers; None when skipped."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "dimension": self.dimension,
            "changed": self.changed,
            "score": self.record.score if self.record is not None else None,
            "refresh": self.refresh.to_dict() if self.refresh is not None else None,
        }


class RatingService:
    def __init__(self, db: Database, aggregator: ConsensusAggregator | None = None) -> None:
        self._db = db
        self._aggregator = aggregator or ConsensusAggregator(db)

    def _resolve(self, item_id: str, dimension: str | None) -> str:
        return self._aggregator.resolve_dimension(self._aggregator.get_item(item_id), dimension)

    def _refresh(self, item_id: str, dimension: str, rater_id: str, refresh: bool) -> BatchSummary | None:
        if not refresh:
            return None
        return self._aggregator.refresh_item(item_id, dimension, rater_id)

    def submit_rating(
        self,
        rater_id: str,
        item_id: str,
        dimension: str | None = None,
        *,
        score: float | None = None,
        grade: Grade | str | None = None,
        modifier: Modifier | str | None = None,
        refresh: bool = True,
    ) -> RatingMutation:
        """
        Store a rating given either a raw score or a grade (+ optional modifier).

        Raises InvalidInputError if both or neither are given, if the score is
        off-scale, or if the grade/modifier is unknown.
        """
        if not rater_id:
            raise InvalidInputError("rater_id must be non-empty")
        if grade is not None and score is not None:
            raise InvalidInputError("Pass either score or grade, not both")
        if grade is None and score is None:
            raise InvalidInputError("A rating needs a score or a grade")
        if grade is None and modifier is not None:
            raise InvalidInputError("A modifier needs a grade")
        value = encode(grade, modifier) if grade is not None else score
        dim = self._resolve(item_id, dimension)
        stored = self._db.upsert_rating(
            RatingRecord(rater_id=rater_id, item_id=item_id, dimension=dim, score=value)
        )
        logger.info("rating_submitted", rater_id=rater_id, item_id=item_id, dimension=dim, score=stored.score)
        return RatingMutation(
            item_id=item_id,
            dimension=dim,
            changed=True,
            record=stored,
            refresh=self._refresh(item_id, dim, rater_id, refresh),
        )

    def mark_not_available(
        self,
        rater_id: str,
        item_id: str,
        dimension: str | None = None,
        *,
        refresh: bool = True,
    ) -> RatingMutation:
        """Record that the dimension does not apply for this rater; excluded from scores."""
        if not rater_id:
            raise InvalidInputError("rater_id must be non-empty")
        dim = self._resolve(item_id, dimension)
        stored = self._db.upsert_rating(
            RatingRecord(
                rater_id=rater_id,
                item_id=item_id,
                dimension=dim,
                score=None,
                availability=Availability.NOT_AVAILABLE,
            )
        )
        logger.info("rating_marked_not_available", rater_id=rater_id, item_id=item_id, dimension=dim)
        return RatingMutation(
            item_id=item_id,
            dimension=dim,
            changed=True,
            record=stored,
            refresh=self._refresh(item_id, dim, rater_id, refresh),
        )

    def retract_rating(
        self,
        rater_id: str,
        item_id: str,
        dimension: str | None = None,
        *,
        refresh: bool = True,
    ) -> RatingMutation:
        """Delete the rating. changed is False (and nothing is refreshed) if there was none."""
        dim = self._resolve(item_id, dimension)
        deleted = self._db.delete_rating(rater_id, item_id, dim)
        logger.info("rating_retracted", rater_id=rater_id, item_id=item_id, dimension=dim, deleted=deleted)
        return RatingMutation(
            item_id=item_id,
            dimension=dim,
            changed=deleted,
            refresh=self._refresh(item_id, dim, rater_id, refresh) if deleted else None,
        )
