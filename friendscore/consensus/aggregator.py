"""
Weighted consensus aggregator: read ratings and trust weights, compute, upsert.

For one viewer the eligible raters are the viewer plus every ACTIVE rater the
viewer holds a trust weight for. Each (viewer, item, dimension) key is computed
independently and written with an atomic upsert, so per-item work inside one
batch runs on a bounded thread pool and one failing item never aborts the
others. Keys with no eligible rating end up with no row at all.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from friendscore.consensus.engine import compute_consensus
from friendscore.core.exceptions import InvalidInputError
from friendscore.database.database import Database
from friendscore.database.models import ConsensusResult, Item, ItemKind
from friendscore.logging import get_logger
from friendscore.rating.codec import validate_weight

logger = get_logger(__name__)


@dataclass(frozen=True)
class ViewerAudience:
    """The raters whose opinions count for one viewer, with their weights."""

    viewer_id: str
    weights: dict[str, float]
    """Stored weights of ACTIVE trusted raters only."""
    rater_ids: tuple[str, ...]
    """Viewer first, then ACTIVE trusted raters."""


@dataclass
class BatchFailure:
    key: str
    error: str


@dataclass
class BatchSummary:
    """
    Outcome of a batch recalculation.

    total: units attempted (items for a viewer batch, viewers for a refresh).
    succeeded / failed: units that completed or raised.
    written: result rows upserted. cleared: stale rows removed for keys
    that no longer have eligible ratings. Both include rows a unit stored
    before it failed on a later dimension.
    """

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    written: int = 0
    cleared: int = 0
    failures: list[BatchFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "written": self.written,
            "cleared": self.cleared,
            "failures": [{"key": f.key, "error": f.error} for f in self.failures],
        }


@dataclass
class _UnitOutcome:
    key: str
    written: int = 0
    cleared: int = 0
    error: str | None = None


class ConsensusAggregator:
    """
    Computes and persists friend scores through a Database.

    default_weight: weight of a trusted rater with no stored weight; when
    omitted it comes from settings (FRIENDSCORE_DEFAULT_TRUST_WEIGHT).
    max_workers: bound on parallel items per batch; 1 runs sequentially.
    """

    def __init__(
        self,
        db: Database,
        *,
        default_weight: float | None = None,
        max_workers: int | None = None,
    ) -> None:
        if default_weight is None or max_workers is None:
            from friendscore.config import get_settings

            settings = get_settings()
            default_weight = settings.default_trust_weight if default_weight is None else default_weight
            max_workers = settings.max_workers if max_workers is None else max_workers
        self._db = db
        self._default_weight = validate_weight(default_weight)
        self._max_workers = max(1, int(max_workers))

    @property
    def default_weight(self) -> float:
        return self._default_weight

    # --- Audience ---

    def load_audience(self, viewer_id: str) -> ViewerAudience:
        """Viewer plus trusted raters whose accounts are ACTIVE."""
        if not viewer_id:
            raise InvalidInputError("viewer_id must be non-empty")
        stored = dict(self._db.list_trust_weights(viewer_id))
        stored.pop(viewer_id, None)
        active = self._db.list_active_rater_ids(stored.keys()) if stored else set()
        weights = {rater_id: w for rater_id, w in stored.items() if rater_id in active}
        return ViewerAudience(
            viewer_id=viewer_id,
            weights=weights,
            rater_ids=(viewer_id, *sorted(weights)),
        )

    # --- Single key ---

    def _recalculate_key(
        self,
        audience: ViewerAudience,
        item_id: str,
        dimension: str,
    ) -> tuple[ConsensusResult | None, bool]:
        """
        Compute and persist one key. Returns (result, cleared) where cleared is
        True if a stale row was removed because no eligible score remains.
        """
        ratings = self._db.list_eligible_ratings(item_id, dimension, audience.rater_ids)
        computed = compute_consensus(
            audience.viewer_id,
            ratings,
            audience.weights,
            default_weight=self._default_weight,
        )
        if computed is None or computed.score is None:
            cleared = self._db.delete_consensus_result(audience.viewer_id, item_id, dimension)
            logger.debug(
                "consensus_no_data",
                viewer_id=audience.viewer_id,
                item_id=item_id,
                dimension=dimension,
                cleared=cleared,
            )
            return None, cleared
        result = self._db.upsert_consensus_result(
            audience.viewer_id,
            item_id,
            dimension,
            computed.score,
            computed.rating_count,
            computed.confidence,
            int(time.time()),
        )
        logger.debug(
            "consensus_key_written",
            viewer_id=audience.viewer_id,
            item_id=item_id,
            dimension=dimension,
            score=computed.score,
            rating_count=computed.rating_count,
            confidence=computed.confidence,
            fallback=computed.used_fallback,
        )
        return result, False

    @staticmethod
    def resolve_dimension(item: Item, dimension: str | None) -> str:
        if dimension is None:
            if len(item.dimensions) != 1:
                raise InvalidInputError(
                    f"Item {item.item_id} ({item.kind.value}) needs a dimension: {', '.join(item.dimensions)}"
                )
            return item.dimensions[0]
        if dimension not in item.dimensions:
            raise InvalidInputError(
                f"Dimension {dimension!r} is not valid for {item.kind.value} items"
            )
        return dimension

    def get_item(self, item_id: str) -> Item:
        item = self._db.get_item(item_id)
        if item is None:
            raise InvalidInputError(f"Unknown item: {item_id!r}")
        return item

    def recalculate_item(
        self,
        viewer_id: str,
        item_id: str,
        dimension: str | None = None,
    ) -> ConsensusResult | None:
        """
        Recompute one (viewer, item, dimension) and persist it.

        Returns the stored result, or None when no eligible rating exists.
        Raises InvalidInputError for an unknown item or bad dimension and
        StorageError when the store fails.
        """
        item = self.get_item(item_id)
        dim = self.resolve_dimension(item, dimension)
        audience = self.load_audience(viewer_id)
        result, _ = self._recalculate_key(audience, item.item_id, dim)
        return result

    # --- Batches ---

    def _run_units(
        self,
        keys: Iterable[str],
        work: Callable[[str], _UnitOutcome],
        summary: BatchSummary,
    ) -> BatchSummary:
        keys = list(keys)
        summary.total = len(keys)
        if not keys:
            return summary
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(keys))) as executor:
            futures = {executor.submit(work, key): key for key in keys}
            for fut in as_completed(futures):
                outcome = fut.result()
                summary.written += outcome.written
                summary.cleared += outcome.cleared
                if outcome.error is None:
                    summary.succeeded += 1
                else:
                    summary.failed += 1
                    summary.failures.append(BatchFailure(key=outcome.key, error=outcome.error))
        summary.failures.sort(key=lambda f: f.key)
        return summary

    def _recalculate_item_safe(self, audience: ViewerAudience, item: Item) -> _UnitOutcome:
        """All dimensions of one item; exceptions are logged and returned, never raised."""
        outcome = _UnitOutcome(key=item.item_id)
        dim: str | None = None
        try:
            for dim in item.dimensions:
                result, cleared = self._recalculate_key(audience, item.item_id, dim)
                if result is not None:
                    outcome.written += 1
                if cleared:
                    outcome.cleared += 1
        except Exception as e:
            logger.warning(
                "consensus_item_failed",
                viewer_id=audience.viewer_id,
                item_id=item.item_id,
                dimension=dim,
                written_before_failure=outcome.written,
                error=str(e),
                exc_info=True,
            )
            outcome.error = str(e) or type(e).__name__
        return outcome

    def recalculate_for_viewer(
        self,
        viewer_id: str,
        kind: ItemKind | None = None,
    ) -> BatchSummary:
        """
        Recompute every item (optionally one kind) for the viewer.

        Per-item failures are recorded in the summary; the batch never raises
        for them. Invalid viewer input and a failure to load the viewer's trust
        weights still raise, since nothing can be computed without them.
        """
        started = time.monotonic()
        audience = self.load_audience(viewer_id)
        items = {item.item_id: item for item in self._db.list_items(kind)}
        summary = self._run_units(
            items,
            lambda item_id: self._recalculate_item_safe(audience, items[item_id]),
            BatchSummary(),
        )
        logger.info(
            "consensus_viewer_recalculated",
            viewer_id=viewer_id,
            kind=kind.value if kind is not None else "all",
            trusted_raters=len(audience.weights),
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
            written=summary.written,
            cleared=summary.cleared,
            duration_sec=round(time.monotonic() - started, 3),
        )
        return summary

    def _refresh_viewer_safe(self, viewer_id: str, item_id: str, dimension: str) -> _UnitOutcome:
        outcome = _UnitOutcome(key=viewer_id)
        try:
            audience = self.load_audience(viewer_id)
            result, cleared = self._recalculate_key(audience, item_id, dimension)
            outcome.written = 1 if result is not None else 0
            outcome.cleared = 1 if cleared else 0
        except Exception as e:
            logger.warning(
                "consensus_refresh_failed",
                viewer_id=viewer_id,
                item_id=item_id,
                dimension=dimension,
                error=str(e),
                exc_info=True,
            )
            outcome.error = str(e) or type(e).__name__
        return outcome

    def refresh_item(self, item_id: str, dimension: str, rater_id: str) -> BatchSummary:
        """
        Recompute one item+dimension after rater_id's rating changed: for the
        rater themself and for every viewer that holds a weight for them.
        """
        viewers = list(dict.fromkeys([rater_id, *self._db.list_viewers_trusting(rater_id)]))
        summary = self._run_units(
            viewers,
            lambda viewer_id: self._refresh_viewer_safe(viewer_id, item_id, dimension),
            BatchSummary(),
        )
        logger.info(
            "consensus_item_refreshed",
            item_id=item_id,
            dimension=dimension,
            rater_id=rater_id,
            viewers=summary.total,
            failed=summary.failed,
            written=summary.written,
            cleared=summary.cleared,
        )
        return summary
