"""
Database abstraction layer for raters, items, ratings, trust weights and
consensus results.

SQLite is the shipped backend; a different store can be plugged in by
implementing DatabaseBackend. All access goes through the abstract interface,
and the Database facade validates scores and weights before anything is
written. SQL and placeholders are backend-specific (? for SQLite).
"""

from __future__ import annotations

import sqlite3
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

from friendscore.core.exceptions import InvalidInputError, StorageError
from friendscore.database.models import (
    AccountStatus,
    Availability,
    ConsensusResult,
    Item,
    ItemKind,
    Rater,
    RatingRecord,
    TrustWeight,
)
from friendscore.logging import get_logger
from friendscore.rating.codec import validate_score, validate_weight

logger = get_logger(__name__)

# Max bound parameters per IN (...) query
IN_CLAUSE_CHUNK = 500

# -----------------------------------------------------------------------------
# Schema (SQLite)
# -----------------------------------------------------------------------------

SCHEMA_RATERS = """
CREATE TABLE IF NOT EXISTS raters (
    rater_id TEXT PRIMARY KEY,
    name TEXT,
    status TEXT NOT NULL DEFAULT 'ACTIVE',
    created_at INTEGER,
    updated_at INTEGER
);
CREATE INDEX IF NOT EXISTS ix_raters_status ON raters(status);
"""

SCHEMA_ITEMS = """
CREATE TABLE IF NOT EXISTS items (
    item_id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    title TEXT,
    created_at INTEGER
);
CREATE INDEX IF NOT EXISTS ix_items_kind ON items(kind);
"""

SCHEMA_RATINGS = """
CREATE TABLE IF NOT EXISTS ratings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    rater_id TEXT NOT NULL,
    item_id TEXT NOT NULL,
    dimension TEXT NOT NULL,
    score REAL CHECK (score IS NULL OR (score >= 0.5 AND score <= 10.0)),
    availability TEXT NOT NULL DEFAULT 'AVAILABLE',
    updated_at INTEGER,
    UNIQUE(rater_id, item_id, dimension)
);
CREATE INDEX IF NOT EXISTS ix_ratings_item_dimension ON ratings(item_id, dimension);
"""

SCHEMA_TRUST_WEIGHTS = """
CREATE TABLE IF NOT EXISTS trust_weights (
    viewer_id TEXT NOT NULL,
    rater_id TEXT NOT NULL,
    weight REAL NOT NULL DEFAULT 1.0 CHECK (weight >= 0.0 AND weight <= 2.0),
    updated_at INTEGER,
    PRIMARY KEY (viewer_id, rater_id),
    CHECK (viewer_id <> rater_id)
);
CREATE INDEX IF NOT EXISTS ix_trust_weights_rater ON trust_weights(rater_id);
"""

SCHEMA_CONSENSUS_RESULTS = """
CREATE TABLE IF NOT EXISTS consensus_results (
    viewer_id TEXT NOT NULL,
    item_id TEXT NOT NULL,
    dimension TEXT NOT NULL,
    score REAL,
    rating_count INTEGER NOT NULL,
    confidence REAL NOT NULL,
    computed_at INTEGER NOT NULL,
    PRIMARY KEY (viewer_id, item_id, dimension)
);
"""


def _chunks(values: list[str], size: int = IN_CLAUSE_CHUNK) -> Iterator[list[str]]:
    for i in range(0, len(values), size):
        yield values[i : i + size]


def _placeholders(n: int) -> str:
    return ",".join("?" for _ in range(n))


# -----------------------------------------------------------------------------
# Abstract backend
# -----------------------------------------------------------------------------


class DatabaseBackend(ABC):
    """Abstract interface for persistence; implement for SQLite or another store."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        ...

    # --- Raters and items ---

    @abstractmethod
    def upsert_rater(self, rater: Rater) -> None:
        ...

    @abstractmethod
    def get_rater(self, rater_id: str) -> Rater | None:
        ...

    @abstractmethod
    def set_rater_status(self, rater_id: str, status: AccountStatus) -> bool:
        """Return True if the rater existed."""
        ...

    @abstractmethod
    def list_active_rater_ids(self, rater_ids: Iterable[str]) -> set[str]:
        """Subset of rater_ids whose account status is ACTIVE."""
        ...

    @abstractmethod
    def upsert_item(self, item: Item) -> None:
        ...

    @abstractmethod
    def get_item(self, item_id: str) -> Item | None:
        ...

    @abstractmethod
    def list_items(self, kind: ItemKind | None = None) -> list[Item]:
        """All items, optionally of one kind, ordered by item_id."""
        ...

    # --- Ratings ---

    @abstractmethod
    def upsert_rating(self, record: RatingRecord) -> None:
        """Insert or overwrite the rating keyed on (rater, item, dimension)."""
        ...

    @abstractmethod
    def get_rating(self, rater_id: str, item_id: str, dimension: str) -> RatingRecord | None:
        ...

    @abstractmethod
    def delete_rating(self, rater_id: str, item_id: str, dimension: str) -> bool:
        ...

    @abstractmethod
    def list_eligible_ratings(
        self,
        item_id: str,
        dimension: str,
        rater_ids: Iterable[str],
    ) -> list[tuple[str, float]]:
        """
        Return (rater_id, score) for AVAILABLE, non-null ratings of item+dimension
        by any of rater_ids.
        """
        ...

    @abstractmethod
    def list_item_ratings(
        self,
        *,
        kind: ItemKind | None = None,
        rater_ids: Iterable[str] | None = None,
        active_only: bool = False,
    ) -> list[RatingRecord]:
        """AVAILABLE, non-null ratings filtered by item kind, raters and account status."""
        ...

    # --- Trust weights ---

    @abstractmethod
    def list_trust_weights(self, viewer_id: str) -> list[tuple[str, float]]:
        """Return (rater_id, weight) for every edge held by viewer_id."""
        ...

    @abstractmethod
    def list_viewers_trusting(self, rater_id: str) -> list[str]:
        """Viewers that hold a trust weight for rater_id."""
        ...

    @abstractmethod
    def bulk_upsert_trust_weights(
        self,
        viewer_id: str,
        weights: list[tuple[str, float]],
    ) -> int:
        """Insert or update (rater_id, weight) edges atomically. Returns rows written."""
        ...

    @abstractmethod
    def insert_trust_weights_if_absent(
        self,
        viewer_id: str,
        rater_ids: list[str],
        weight: float,
    ) -> int:
        """Insert edges at weight; keep existing ones untouched. Returns rows inserted."""
        ...

    @abstractmethod
    def delete_trust_weights(self, viewer_id: str, rater_ids: list[str]) -> int:
        """Delete edges viewer -> rater_ids. Returns rows deleted."""
        ...

    # --- Consensus results ---

    @abstractmethod
    def upsert_consensus_result(
        self,
        viewer_id: str,
        item_id: str,
        dimension: str,
        score: float | None,
        rating_count: int,
        confidence: float,
        computed_at: int,
    ) -> None:
        """Atomic insert-or-replace keyed on (viewer, item, dimension)."""
        ...

    @abstractmethod
    def get_consensus_result(
        self,
        viewer_id: str,
        item_id: str,
        dimension: str,
    ) -> ConsensusResult | None:
        ...

    @abstractmethod
    def list_consensus_results(
        self,
        viewer_id: str,
        *,
        kind: ItemKind | None = None,
    ) -> list[ConsensusResult]:
        ...

    @abstractmethod
    def delete_consensus_result(self, viewer_id: str, item_id: str, dimension: str) -> bool:
        ...


# -----------------------------------------------------------------------------
# SQLite backend
# -----------------------------------------------------------------------------


class SQLiteBackend(DatabaseBackend):
    """SQLite implementation; single file, one connection per operation."""

    def __init__(self, path: str | Path, *, timeout_sec: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout_sec = timeout_sec

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path), timeout=self._timeout_sec)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self._path}: {e}") from e
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cur:
            for stmt in (
                SCHEMA_RATERS,
                SCHEMA_ITEMS,
                SCHEMA_RATINGS,
                SCHEMA_TRUST_WEIGHTS,
                SCHEMA_CONSENSUS_RESULTS,
            ):
                cur.executescript(stmt)

    # --- Raters and items ---

    def upsert_rater(self, rater: Rater) -> None:
        now = int(time.time())
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO raters (rater_id, name, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(rater_id) DO UPDATE SET
                    name = COALESCE(excluded.name, name),
                    status = excluded.status,
                    updated_at = excluded.updated_at
                """,
                (rater.rater_id, rater.name, AccountStatus(rater.status).value, now, now),
            )

    def get_rater(self, rater_id: str) -> Rater | None:
        with self._cursor() as cur:
            cur.execute("SELECT rater_id, name, status FROM raters WHERE rater_id = ?", (rater_id,))
            row = cur.fetchone()
        if row is None:
            return None
        return Rater(rater_id=row["rater_id"], name=row["name"], status=AccountStatus(row["status"]))

    def set_rater_status(self, rater_id: str, status: AccountStatus) -> bool:
        with self._cursor() as cur:
            cur.execute(
                "UPDATE raters SET status = ?, updated_at = ? WHERE rater_id = ?",
                (AccountStatus(status).value, int(time.time()), rater_id),
            )
            return cur.rowcount > 0

    def list_active_rater_ids(self, rater_ids: Iterable[str]) -> set[str]:
        ids = sorted(set(rater_ids))
        active: set[str] = set()
        if not ids:
            return active
        with self._cursor() as cur:
            for chunk in _chunks(ids):
                cur.execute(
                    f"SELECT rater_id FROM raters WHERE status = ? AND rater_id IN ({_placeholders(len(chunk))})",
                    [AccountStatus.ACTIVE.value, *chunk],
                )
                active.update(row["rater_id"] for row in cur.fetchall())
        return active

    def upsert_item(self, item: Item) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO items (item_id, kind, title, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(item_id) DO UPDATE SET
                    kind = excluded.kind,
                    title = COALESCE(excluded.title, title)
                """,
                (item.item_id, ItemKind(item.kind).value, item.title, int(time.time())),
            )

    def get_item(self, item_id: str) -> Item | None:
        with self._cursor() as cur:
            cur.execute("SELECT item_id, kind, title FROM items WHERE item_id = ?", (item_id,))
            row = cur.fetchone()
        if row is None:
            return None
        return Item(item_id=row["item_id"], kind=ItemKind(row["kind"]), title=row["title"])

    def list_items(self, kind: ItemKind | None = None) -> list[Item]:
        sql = "SELECT item_id, kind, title FROM items"
        params: list[Any] = []
        if kind is not None:
            sql += " WHERE kind = ?"
            params.append(ItemKind(kind).value)
        sql += " ORDER BY item_id"
        with self._cursor() as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        return [Item(item_id=r["item_id"], kind=ItemKind(r["kind"]), title=r["title"]) for r in rows]

    # --- Ratings ---

    def upsert_rating(self, record: RatingRecord) -> None:
        updated_at = record.updated_at if record.updated_at is not None else int(time.time())
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO ratings (rater_id, item_id, dimension, score, availability, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(rater_id, item_id, dimension) DO UPDATE SET
                    score = excluded.score,
                    availability = excluded.availability,
                    updated_at = excluded.updated_at
                """,
                (
                    record.rater_id,
                    record.item_id,
                    record.dimension,
                    record.score,
                    Availability(record.availability).value,
                    updated_at,
                ),
            )

    def get_rating(self, rater_id: str, item_id: str, dimension: str) -> RatingRecord | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT rater_id, item_id, dimension, score, availability, updated_at
                FROM ratings WHERE rater_id = ? AND item_id = ? AND dimension = ?
                """,
                (rater_id, item_id, dimension),
            )
            row = cur.fetchone()
        return self._rating_from_row(row) if row is not None else None

    def delete_rating(self, rater_id: str, item_id: str, dimension: str) -> bool:
        with self._cursor() as cur:
            cur.execute(
                "DELETE FROM ratings WHERE rater_id = ? AND item_id = ? AND dimension = ?",
                (rater_id, item_id, dimension),
            )
            return cur.rowcount > 0

    def list_eligible_ratings(
        self,
        item_id: str,
        dimension: str,
        rater_ids: Iterable[str],
    ) -> list[tuple[str, float]]:
        ids = sorted(set(rater_ids))
        out: list[tuple[str, float]] = []
        if not ids:
            return out
        with self._cursor() as cur:
            for chunk in _chunks(ids):
                cur.execute(
                    f"""
                    SELECT rater_id, score FROM ratings
                    WHERE item_id = ? AND dimension = ? AND availability = ?
                      AND score IS NOT NULL
                      AND rater_id IN ({_placeholders(len(chunk))})
                    ORDER BY rater_id
                    """,
                    [item_id, dimension, Availability.AVAILABLE.value, *chunk],
                )
                out.extend((row["rater_id"], float(row["score"])) for row in cur.fetchall())
        return out

    def list_item_ratings(
        self,
        *,
        kind: ItemKind | None = None,
        rater_ids: Iterable[str] | None = None,
        active_only: bool = False,
    ) -> list[RatingRecord]:
        sql = """
            SELECT r.rater_id, r.item_id, r.dimension, r.score, r.availability, r.updated_at
            FROM ratings r
            JOIN items i ON i.item_id = r.item_id
            LEFT JOIN raters u ON u.rater_id = r.rater_id
            WHERE r.availability = ? AND r.score IS NOT NULL
        """
        params: list[Any] = [Availability.AVAILABLE.value]
        if kind is not None:
            sql += " AND i.kind = ?"
            params.append(ItemKind(kind).value)
        if active_only:
            sql += " AND u.status = ?"
            params.append(AccountStatus.ACTIVE.value)
        if rater_ids is not None:
            ids = sorted(set(rater_ids))
            if not ids:
                return []
            sql += f" AND r.rater_id IN ({_placeholders(len(ids))})"
            params.extend(ids)
        sql += " ORDER BY r.item_id, r.dimension, r.rater_id"
        with self._cursor() as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        return [self._rating_from_row(row) for row in rows]

    @staticmethod
    def _rating_from_row(row: sqlite3.Row) -> RatingRecord:
        return RatingRecord(
            rater_id=row["rater_id"],
            item_id=row["item_id"],
            dimension=row["dimension"],
            score=float(row["score"]) if row["score"] is not None else None,
            availability=Availability(row["availability"]),
            updated_at=row["updated_at"],
        )

    # --- Trust weights ---

    def list_trust_weights(self, viewer_id: str) -> list[tuple[str, float]]:
        with self._cursor() as cur:
            cur.execute(
                "SELECT rater_id, weight FROM trust_weights WHERE viewer_id = ? ORDER BY rater_id",
                (viewer_id,),
            )
            return [(row["rater_id"], float(row["weight"])) for row in cur.fetchall()]

    def list_viewers_trusting(self, rater_id: str) -> list[str]:
        with self._cursor() as cur:
            cur.execute(
                "SELECT viewer_id FROM trust_weights WHERE rater_id = ? ORDER BY viewer_id",
                (rater_id,),
            )
            return [row["viewer_id"] for row in cur.fetchall()]

    def bulk_upsert_trust_weights(
        self,
        viewer_id: str,
        weights: list[tuple[str, float]],
    ) -> int:
        if not weights:
            return 0
        now = int(time.time())
        with self._cursor() as cur:
            cur.executemany(
                """
                INSERT INTO trust_weights (viewer_id, rater_id, weight, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(viewer_id, rater_id) DO UPDATE SET
                    weight = excluded.weight,
                    updated_at = excluded.updated_at
                """,
                [(viewer_id, rater_id, weight, now) for rater_id, weight in weights],
            )
        return len(weights)

    def insert_trust_weights_if_absent(
        self,
        viewer_id: str,
        rater_ids: list[str],
        weight: float,
    ) -> int:
        if not rater_ids:
            return 0
        now = int(time.time())
        inserted = 0
        with self._cursor() as cur:
            for rater_id in rater_ids:
                cur.execute(
                    """
                    INSERT OR IGNORE INTO trust_weights (viewer_id, rater_id, weight, updated_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (viewer_id, rater_id, weight, now),
                )
                inserted += cur.rowcount
        return inserted

    def delete_trust_weights(self, viewer_id: str, rater_ids: list[str]) -> int:
        ids = sorted(set(rater_ids))
        deleted = 0
        if not ids:
            return deleted
        with self._cursor() as cur:
            for chunk in _chunks(ids):
                cur.execute(
                    f"DELETE FROM trust_weights WHERE viewer_id = ? AND rater_id IN ({_placeholders(len(chunk))})",
                    [viewer_id, *chunk],
                )
                deleted += cur.rowcount
        return deleted

    # --- Consensus results ---

    def upsert_consensus_result(
        self,
        viewer_id: str,
        item_id: str,
        dimension: str,
        score: float | None,
        rating_count: int,
        confidence: float,
        computed_at: int,
    ) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO consensus_results
                    (viewer_id, item_id, dimension, score, rating_count, confidence, computed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(viewer_id, item_id, dimension) DO UPDATE SET
                    score = excluded.score,
                    rating_count = excluded.rating_count,
                    confidence = excluded.confidence,
                    computed_at = excluded.computed_at
                """,
                (viewer_id, item_id, dimension, score, rating_count, confidence, computed_at),
            )

    def get_consensus_result(
        self,
        viewer_id: str,
        item_id: str,
        dimension: str,
    ) -> ConsensusResult | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT viewer_id, item_id, dimension, score, rating_count, confidence, computed_at
                FROM consensus_results WHERE viewer_id = ? AND item_id = ? AND dimension = ?
                """,
                (viewer_id, item_id, dimension),
            )
            row = cur.fetchone()
        return self._result_from_row(row) if row is not None else None

    def list_consensus_results(
        self,
        viewer_id: str,
        *,
        kind: ItemKind | None = None,
    ) -> list[ConsensusResult]:
        sql = """
            SELECT c.viewer_id, c.item_id, c.dimension, c.score, c.rating_count,
                   c.confidence, c.computed_at
            FROM consensus_results c
        """
        params: list[Any] = []
        if kind is not None:
            sql += " JOIN items i ON i.item_id = c.item_id WHERE c.viewer_id = ? AND i.kind = ?"
            params.extend([viewer_id, ItemKind(kind).value])
        else:
            sql += " WHERE c.viewer_id = ?"
            params.append(viewer_id)
        sql += " ORDER BY c.item_id, c.dimension"
        with self._cursor() as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        return [self._result_from_row(row) for row in rows]

    def delete_consensus_result(self, viewer_id: str, item_id: str, dimension: str) -> bool:
        with self._cursor() as cur:
            cur.execute(
                "DELETE FROM consensus_results WHERE viewer_id = ? AND item_id = ? AND dimension = ?",
                (viewer_id, item_id, dimension),
            )
            return cur.rowcount > 0

    @staticmethod
    def _result_from_row(row: sqlite3.Row) -> ConsensusResult:
        return ConsensusResult(
            viewer_id=row["viewer_id"],
            item_id=row["item_id"],
            dimension=row["dimension"],
            score=row["score"],
            rating_count=row["rating_count"],
            confidence=row["confidence"],
            computed_at=row["computed_at"],
        )


# -----------------------------------------------------------------------------
# Database facade: single entrypoint; backend is swappable.
# -----------------------------------------------------------------------------


class Database:
    """
    Database abstraction: raters, items, ratings, trust weights, consensus results.

    Validates scores and weights before they reach the backend; invalid input
    raises InvalidInputError subclasses and is never clamped.
    """

    def __init__(self, backend: DatabaseBackend) -> None:
        self._backend = backend

    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        self._backend.ensure_schema()

    # --- Raters and items ---

    def upsert_rater(self, rater: Rater) -> None:
        self._backend.upsert_rater(rater)

    def get_rater(self, rater_id: str) -> Rater | None:
        return self._backend.get_rater(rater_id)

    def set_rater_status(self, rater_id: str, status: AccountStatus) -> bool:
        return self._backend.set_rater_status(rater_id, status)

    def list_active_rater_ids(self, rater_ids: Iterable[str]) -> set[str]:
        return self._backend.list_active_rater_ids(rater_ids)

    def upsert_item(self, item: Item) -> None:
        self._backend.upsert_item(item)

    def get_item(self, item_id: str) -> Item | None:
        return self._backend.get_item(item_id)

    def list_items(self, kind: ItemKind | None = None) -> list[Item]:
        return self._backend.list_items(kind)

    # --- Ratings ---

    def upsert_rating(self, record: RatingRecord) -> RatingRecord:
        """
        Insert or overwrite a rating. NOT_AVAILABLE ratings are stored with a
        null score; AVAILABLE ratings must carry a valid score. Returns the
        record as stored.
        """
        availability = Availability(record.availability)
        if availability == Availability.NOT_AVAILABLE:
            score = None
        else:
            if record.score is None:
                raise InvalidInputError("An available rating needs a score")
            score = validate_score(record.score)
        stored = RatingRecord(
            rater_id=record.rater_id,
            item_id=record.item_id,
            dimension=record.dimension,
            score=score,
            availability=availability,
            updated_at=record.updated_at if record.updated_at is not None else int(time.time()),
        )
        self._backend.upsert_rating(stored)
        return stored

    def get_rating(self, rater_id: str, item_id: str, dimension: str) -> RatingRecord | None:
        return self._backend.get_rating(rater_id, item_id, dimension)

    def delete_rating(self, rater_id: str, item_id: str, dimension: str) -> bool:
        return self._backend.delete_rating(rater_id, item_id, dimension)

    def list_eligible_ratings(
        self,
        item_id: str,
        dimension: str,
        rater_ids: Iterable[str],
    ) -> list[tuple[str, float]]:
        return self._backend.list_eligible_ratings(item_id, dimension, rater_ids)

    def list_item_ratings(
        self,
        *,
        kind: ItemKind | None = None,
        rater_ids: Iterable[str] | None = None,
        active_only: bool = False,
    ) -> list[RatingRecord]:
        return self._backend.list_item_ratings(kind=kind, rater_ids=rater_ids, active_only=active_only)

    # --- Trust weights ---

    def list_trust_weights(self, viewer_id: str) -> list[tuple[str, float]]:
        return self._backend.list_trust_weights(viewer_id)

    def get_trust_weights(self, viewer_id: str) -> list[TrustWeight]:
        return [
            TrustWeight(viewer_id=viewer_id, rater_id=rater_id, weight=weight)
            for rater_id, weight in self._backend.list_trust_weights(viewer_id)
        ]

    def list_viewers_trusting(self, rater_id: str) -> list[str]:
        return self._backend.list_viewers_trusting(rater_id)

    def set_trust_weight(self, viewer_id: str, rater_id: str, weight: float) -> TrustWeight:
        """Create or update one edge viewer -> rater."""
        self.bulk_upsert_trust_weights(viewer_id, [(rater_id, weight)])
        return TrustWeight(viewer_id=viewer_id, rater_id=rater_id, weight=float(weight))

    def bulk_upsert_trust_weights(
        self,
        viewer_id: str,
        weights: Iterable[tuple[str, float]],
    ) -> int:
        """
        Validate every (rater_id, weight) first, then write them in one
        transaction. A later duplicate rater_id in the input wins.
        """
        deduped: dict[str, float] = {}
        for rater_id, weight in weights:
            self._check_edge(viewer_id, rater_id)
            deduped[rater_id] = validate_weight(weight)
        written = self._backend.bulk_upsert_trust_weights(viewer_id, list(deduped.items()))
        logger.info("trust_weights_upserted", viewer_id=viewer_id, count=written)
        return written

    def add_trusted_raters(
        self,
        viewer_id: str,
        rater_ids: Iterable[str],
        weight: float | None = None,
    ) -> int:
        """
        Add edges at weight; existing edges keep their weight. weight defaults
        to the configured FRIENDSCORE_DEFAULT_TRUST_WEIGHT.
        """
        if weight is None:
            from friendscore.config import get_settings

            weight = get_settings().default_trust_weight
        value = validate_weight(weight)
        ids = list(dict.fromkeys(rater_ids))
        for rater_id in ids:
            self._check_edge(viewer_id, rater_id)
        inserted = self._backend.insert_trust_weights_if_absent(viewer_id, ids, value)
        logger.info("trusted_raters_added", viewer_id=viewer_id, requested=len(ids), inserted=inserted)
        return inserted

    def delete_trust_weight(self, viewer_id: str, rater_id: str) -> bool:
        return self._backend.delete_trust_weights(viewer_id, [rater_id]) > 0

    def delete_trust_weights(self, viewer_id: str, rater_ids: Iterable[str]) -> int:
        deleted = self._backend.delete_trust_weights(viewer_id, list(rater_ids))
        logger.info("trust_weights_deleted", viewer_id=viewer_id, count=deleted)
        return deleted

    @staticmethod
    def _check_edge(viewer_id: str, rater_id: str) -> None:
        if not viewer_id or not rater_id:
            raise InvalidInputError("viewer_id and rater_id must be non-empty")
        if viewer_id == rater_id:
            raise InvalidInputError("A viewer always trusts themself with weight 1.0; self-edges are not stored")

    # --- Consensus results ---

    def upsert_consensus_result(
        self,
        viewer_id: str,
        item_id: str,
        dimension: str,
        score: float | None,
        rating_count: int,
        confidence: float,
        computed_at: int | None = None,
    ) -> ConsensusResult:
        computed_at = computed_at if computed_at is not None else int(time.time())
        self._backend.upsert_consensus_result(
            viewer_id, item_id, dimension, score, rating_count, confidence, computed_at
        )
        return ConsensusResult(
            viewer_id=viewer_id,
            item_id=item_id,
            dimension=dimension,
            score=score,
            rating_count=rating_count,
            confidence=confidence,
            computed_at=computed_at,
        )

    def get_consensus_result(
        self,
        viewer_id: str,
        item_id: str,
        dimension: str,
    ) -> ConsensusResult | None:
        return self._backend.get_consensus_result(viewer_id, item_id, dimension)

    def list_consensus_results(
        self,
        viewer_id: str,
        *,
        kind: ItemKind | None = None,
    ) -> list[ConsensusResult]:
        return self._backend.list_consensus_results(viewer_id, kind=kind)

    def delete_consensus_result(self, viewer_id: str, item_id: str, dimension: str) -> bool:
        return self._backend.delete_consensus_result(viewer_id, item_id, dimension)


def get_database(path: str | Path | None = None) -> Database:
    """
    Return a Database backed by SQLite, with schema ensured.

    path: SQLite file; default comes from FRIENDSCORE_DB_PATH via settings.
    """
    if path is None:
        from friendscore.config import get_settings

        path = Path(get_settings().db_path)
    backend = SQLiteBackend(path)
    db = Database(backend)
    db.ensure_schema()
    return db
