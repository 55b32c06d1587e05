"""
Domain models for database entities.

Raters, items, ratings, trust weights and consensus results.
Used by the repository layer; no ORM coupling so backends stay swappable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class ItemKind(str, Enum):
    MOVIE = "movie"
    RESTAURANT = "restaurant"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Availability(str, Enum):
    AVAILABLE = "AVAILABLE"
    NOT_AVAILABLE = "NOT_AVAILABLE"


DIMENSION_OVERALL = "overall"
DIMENSION_VEG = "veg"
DIMENSION_NON_VEG = "non_veg"

DIMENSIONS_BY_KIND: dict[ItemKind, tuple[str, ...]] = {
    ItemKind.MOVIE: (DIMENSION_OVERALL,),
    ItemKind.RESTAURANT: (DIMENSION_VEG, DIMENSION_NON_VEG),
}


@dataclass
class Rater:
    """A user who can rate items and hold trust weights."""

    rater_id: str
    name: str | None = None
    status: AccountStatus = AccountStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


@dataclass
class Item:
    """A ratable item (movie or restaurant)."""

    item_id: str
    kind: ItemKind
    title: str | None = None

    @property
    def dimensions(self) -> tuple[str, ...]:
        return DIMENSIONS_BY_KIND[self.kind]


@dataclass
class RatingRecord:
    """One rater's opinion of one item along one dimension."""

    rater_id: str
    item_id: str
    dimension: str
    score: float | None
    """Null when availability is NOT_AVAILABLE."""
    availability: Availability = Availability.AVAILABLE
    updated_at: int | None = None
    """Unix timestamp (seconds) of the last upsert."""

    @property
    def is_eligible(self) -> bool:
        return self.availability == Availability.AVAILABLE and self.score is not None


@dataclass
class TrustWeight:
    """Directed edge viewer -> rater; weight in [0, 2]."""

    viewer_id: str
    rater_id: str
    weight: float = 1.0


@dataclass
class ConsensusResult:
    """Derived friend score for one (viewer, item, dimension)."""

    viewer_id: str
    item_id: str
    dimension: str
    score: float | None
    rating_count: int
    confidence: float
    computed_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
