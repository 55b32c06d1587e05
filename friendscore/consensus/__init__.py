"""
Weighted consensus: pure computation (engine), persistence orchestration
(aggregator) and unweighted public/group views (public).
"""

from friendscore.consensus.aggregator import (
    BatchFailure,
    BatchSummary,
    ConsensusAggregator,
    ViewerAudience,
)
from friendscore.consensus.engine import (
    CONFIDENCE_SATURATION_COUNT,
    ConsensusComputation,
    compute_consensus,
    confidence_for_count,
    round_half_up,
    weight_for,
)
from friendscore.consensus.public import GroupScore, PublicScore, group_summary, public_scores

__all__ = [
    "BatchFailure",
    "BatchSummary",
    "ConsensusAggregator",
    "ViewerAudience",
    "CONFIDENCE_SATURATION_COUNT",
    "ConsensusComputation",
    "compute_consensus",
    "confidence_for_count",
    "round_half_up",
    "weight_for",
    "GroupScore",
    "PublicScore",
    "group_summary",
    "public_scores",
]
