"""
Database abstraction layer: raters, items, ratings, trust weights, consensus results.

SQLite via Database and get_database(); the backend is swappable behind
DatabaseBackend.
"""

from friendscore.database.database import (
    Database,
    DatabaseBackend,
    SQLiteBackend,
    get_database,
)
from friendscore.database.models import (
    DIMENSION_NON_VEG,
    DIMENSION_OVERALL,
    DIMENSION_VEG,
    DIMENSIONS_BY_KIND,
    AccountStatus,
    Availability,
    ConsensusResult,
    Item,
    ItemKind,
    Rater,
    RatingRecord,
    TrustWeight,
)

__all__ = [
    "Database",
    "DatabaseBackend",
    "SQLiteBackend",
    "get_database",
    "DIMENSION_NON_VEG",
    "DIMENSION_OVERALL",
    "DIMENSION_VEG",
    "DIMENSIONS_BY_KIND",
    "AccountStatus",
    "Availability",
    "ConsensusResult",
    "Item",
    "ItemKind",
    "Rater",
    "RatingRecord",
    "TrustWeight",
]
