import sqlite3
import threading
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from ..schemas import PersistedAssetRecord

Row = sqlite3.Row

SCHEMA_VERSION = 1


DDL = """
-- Temporary design images, keyed by the client-chosen identifier
CREATE TABLE IF NOT EXISTS temp_images (
  id              TEXT PRIMARY KEY,
  image_url       TEXT NOT NULL CHECK (length(image_url) > 0),
  original_url    TEXT NOT NULL,
  degraded        INTEGER NOT NULL DEFAULT 0 CHECK (degraded IN (0, 1)),
  created_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_temp_images_created ON temp_images(created_at);
"""


class StorageService:
    """SQLite-backed metadata store for persisted asset records.

    Each thread gets its own connection; writes go through
    ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent writers for the same id
    resolve to whichever commits last.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._local = threading.local()
        # Initialize the schema using a temporary connection
        conn = self._connect()
        self._ensure_schema_with_connection(conn)
        conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA journal_mode = WAL;")
        conn.execute("PRAGMA synchronous = NORMAL;")
        conn.row_factory = sqlite3.Row
        return conn

    @property
    def connection(self) -> sqlite3.Connection:
        """Get a thread-local connection to the database."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = self._connect()
        return self._local.connection

    # ---------- internal ----------
    def _ensure_schema_with_connection(self, conn: sqlite3.Connection) -> None:
        """Ensure schema exists using the provided connection."""
        cur = conn.execute("PRAGMA user_version;")
        version = cur.fetchone()[0]
        if version < 1:
            conn.executescript(DDL)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
            conn.commit()

    def close(self) -> None:
        """Close the thread-local connection if it exists."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.commit()
            self._local.connection.close()
            self._local.connection = None

    def _one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        cur = self.connection.execute(sql, params)
        return cur.fetchone()

    def _all(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        cur = self.connection.execute(sql, params)
        return cur.fetchall()

    @staticmethod
    def _row_to_record(row: Row) -> PersistedAssetRecord:
        return PersistedAssetRecord(
            id=row["id"],
            canonical_url=row["image_url"],
            original_url=row["original_url"],
            created_at=datetime.fromisoformat(row["created_at"]),
            degraded=bool(row["degraded"]),
        )

    # ---------- temp images ----------
    def upsert(self, record: PersistedAssetRecord) -> None:
        created_at = record.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        with self.connection:
            self.connection.execute(
                """
                INSERT INTO temp_images (id, image_url, original_url, degraded, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  image_url    = excluded.image_url,
                  original_url = excluded.original_url,
                  degraded     = excluded.degraded,
                  created_at   = excluded.created_at
                """,
                (
                    record.id,
                    record.canonical_url,
                    record.original_url,
                    int(record.degraded),
                    created_at.isoformat(),
                ),
            )

    def get_by_id(self, asset_id: str) -> Optional[PersistedAssetRecord]:
        row = self._one("SELECT * FROM temp_images WHERE id = ?", (asset_id,))
        if row is None:
            return None
        return self._row_to_record(row)

    def count_records(self, asset_id: Optional[str] = None) -> int:
        if asset_id is None:
            row = self._one("SELECT COUNT(*) AS n FROM temp_images")
        else:
            row = self._one("SELECT COUNT(*) AS n FROM temp_images WHERE id = ?", (asset_id,))
        return row["n"]
