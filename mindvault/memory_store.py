"""
Searchable memory index using SQLite.

One row per document identity in `memories`, plus an FTS5 external-content
table over content, topic and tags kept current by triggers. The database
and schema are created on first open.

Search ordering: FTS5 rank (bm25, lower is better), then importance
descending, then timestamp descending.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

from .types import MemoryRecord

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 20

_COLUMNS = (
    "id, timestamp, category, topic, content, rating, tags, "
    "file_path, importance, stability"
)


class MemoryStore:
    """
    SQLite-backed store of memory records with full-text search.

    Upserts replace every field of a record; the full-text entry is
    replaced along with it.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row

        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS memories (
                id TEXT PRIMARY KEY,
                timestamp TEXT NOT NULL,
                category TEXT NOT NULL,
                topic TEXT,
                content TEXT NOT NULL,
                rating INTEGER,
                tags TEXT,
                file_path TEXT NOT NULL,
                importance INTEGER DEFAULT 3,
                stability INTEGER DEFAULT 3,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_memories_timestamp ON memories(timestamp);
            CREATE INDEX IF NOT EXISTS idx_memories_category ON memories(category);
            CREATE INDEX IF NOT EXISTS idx_memories_rating ON memories(rating);
            CREATE INDEX IF NOT EXISTS idx_memories_importance ON memories(importance);

            CREATE VIRTUAL TABLE IF NOT EXISTS memories_fts USING fts5(
                content,
                topic,
                tags,
                content='memories',
                content_rowid='rowid'
            );

            CREATE TRIGGER IF NOT EXISTS memories_fts_insert AFTER INSERT ON memories BEGIN
                INSERT INTO memories_fts(rowid, content, topic, tags)
                VALUES (new.rowid, new.content, new.topic, new.tags);
            END;

            CREATE TRIGGER IF NOT EXISTS memories_fts_delete AFTER DELETE ON memories BEGIN
                INSERT INTO memories_fts(memories_fts, rowid, content, topic, tags)
                VALUES ('delete', old.rowid, old.content, old.topic, old.tags);
            END;

            CREATE TRIGGER IF NOT EXISTS memories_fts_update AFTER UPDATE ON memories BEGIN
                INSERT INTO memories_fts(memories_fts, rowid, content, topic, tags)
                VALUES ('delete', old.rowid, old.content, old.topic, old.tags);
                INSERT INTO memories_fts(rowid, content, topic, tags)
                VALUES (new.rowid, new.content, new.topic, new.tags);
            END;
        """)
        self._conn.commit()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> MemoryRecord:
        keys = row.keys()
        return MemoryRecord(
            id=row["id"],
            timestamp=row["timestamp"],
            category=row["category"],
            topic=row["topic"] or "",
            content=row["content"],
            rating=row["rating"],
            tags=row["tags"] or "",
            file_path=row["file_path"],
            importance=row["importance"],
            stability=row["stability"],
            rank=row["rank"] if "rank" in keys else None,
        )

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def upsert(self, record: MemoryRecord) -> MemoryRecord:
        """
        Insert or update a record keyed by id. Last write wins.

        Args:
            record: Record to store

        Returns:
            The stored record
        """
        self._conn.execute(f"""
            INSERT INTO memories ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                timestamp = excluded.timestamp,
                category = excluded.category,
                topic = excluded.topic,
                content = excluded.content,
                rating = excluded.rating,
                tags = excluded.tags,
                file_path = excluded.file_path,
                importance = excluded.importance,
                stability = excluded.stability
        """, (
            record.id,
            record.timestamp,
            record.category,
            record.topic,
            record.content,
            record.rating,
            record.tags,
            record.file_path,
            record.importance,
            record.stability,
        ))
        self._conn.commit()
        return record

    def delete(self, id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if the record existed and was deleted
        """
        cursor = self._conn.execute("DELETE FROM memories WHERE id = ?", (id,))
        self._conn.commit()
        return cursor.rowcount > 0

    def prune_missing(self) -> list[str]:
        """
        Delete records whose backing file no longer exists.

        Returns:
            IDs of the deleted records
        """
        stale = [
            id for id, file_path in self.list_file_paths()
            if not Path(file_path).expanduser().exists()
        ]
        for id in stale:
            self._conn.execute("DELETE FROM memories WHERE id = ?", (id,))
        self._conn.commit()
        if stale:
            logger.info("Pruned %d records with missing files", len(stale))
        return stale

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, id: str) -> Optional[MemoryRecord]:
        """Get a record by id, or None."""
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM memories WHERE id = ?", (id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    def count(self) -> int:
        """Count all records."""
        return self._conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0]

    def list_file_paths(self) -> list[tuple[str, str]]:
        """(id, file_path) for every record, ordered by id."""
        cursor = self._conn.execute("SELECT id, file_path FROM memories ORDER BY id")
        return [(row["id"], row["file_path"]) for row in cursor]

    @staticmethod
    def build_match_query(query: str) -> str:
        """Quote each whitespace-separated term; FTS5 ANDs them implicitly."""
        terms = query.split()
        return " ".join('"' + t.replace('"', '""') + '"' for t in terms)

    def search(
        self,
        query: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        raw: bool = False,
    ) -> list[MemoryRecord]:
        """
        Full-text search.

        Args:
            query: Search terms; with raw=True, an FTS5 query expression
            limit: Maximum results
            raw: Pass the query to FTS5 unmodified

        Returns:
            Records ordered by rank, then importance and timestamp descending

        Raises:
            ValueError: If the query is empty or not valid FTS5 syntax
        """
        if not query or not query.strip():
            raise ValueError("No search query provided")
        match = query if raw else self.build_match_query(query)

        try:
            cursor = self._conn.execute(f"""
                SELECT
                    m.id, m.timestamp, m.category, m.topic, m.content, m.rating,
                    m.tags, m.file_path, m.importance, m.stability,
                    memories_fts.rank AS rank
                FROM memories m
                JOIN memories_fts ON m.rowid = memories_fts.rowid
                WHERE memories_fts MATCH ?
                ORDER BY rank, m.importance DESC, m.timestamp DESC
                LIMIT ?
            """, (match, limit))
            rows = cursor.fetchall()
        except sqlite3.OperationalError as e:
            raise ValueError(f"Invalid search query {query!r}: {e}") from e

        return [self._row_to_record(row) for row in rows]

    def stats(self) -> dict[str, Any]:
        """
        Totals, per-category counts and rating distribution.

        Rating avg/min/max are None when no record is rated.
        """
        total = self.count()
        by_category = {
            row["category"]: row["count"]
            for row in self._conn.execute("""
                SELECT category, COUNT(*) AS count FROM memories
                GROUP BY category ORDER BY category
            """)
        }
        row = self._conn.execute("""
            SELECT
                AVG(rating) AS avg_rating,
                MIN(rating) AS min_rating,
                MAX(rating) AS max_rating,
                COUNT(rating) AS rated_count
            FROM memories WHERE rating IS NOT NULL
        """).fetchone()
        return {
            "total": total,
            "by_category": by_category,
            "ratings": {
                "avg": row["avg_rating"],
                "min": row["min_rating"],
                "max": row["max_rating"],
                "count": row["rated_count"],
            },
        }

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()
