"""
SQLite Backend — stores snapshot documents in a local database file.

For self-hosted deployments without a blob store.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import config
from storage import SnapshotBackend, StoredObject, StoreUnavailable
from trend_radar.models import parse_ts

logger = logging.getLogger(__name__)


class SqliteBackend(SnapshotBackend):
    """Primary store backed by a `snapshots` table."""

    name = "sqlite"

    def __init__(self, db_path=None):
        self.db_path = db_path or config.DB_PATH

    def _connect(self) -> sqlite3.Connection:
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
            conn.execute("PRAGMA busy_timeout = 5000")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    body TEXT NOT NULL,
                    uploaded_at TEXT NOT NULL
                )
            """)
            return conn
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailable(f"Cannot open snapshot database {self.db_path}: {e}") from e

    def put(self, key: str, body: str) -> StoredObject:
        uploaded_at = datetime.now(timezone.utc)
        conn = self._connect()
        try:
            conn.execute("""
                INSERT INTO snapshots (key, body, uploaded_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    body = excluded.body,
                    uploaded_at = excluded.uploaded_at
            """, (key, body, uploaded_at.isoformat()))
            conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Snapshot write of {key} failed: {e}") from e
        finally:
            conn.close()

        logger.info(f"Stored {key} in {self.db_path}")
        return StoredObject(key=key, uploaded_at=uploaded_at)

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT body FROM snapshots WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Snapshot read of {key} failed: {e}") from e
        finally:
            conn.close()

        return row[0] if row else None

    def list(self, prefix: str) -> List[StoredObject]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT key, uploaded_at FROM snapshots WHERE substr(key, 1, ?) = ?",
                (len(prefix), prefix),
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Snapshot listing failed: {e}") from e
        finally:
            conn.close()

        return [StoredObject(key=k, uploaded_at=parse_ts(ts)) for k, ts in rows]

    def delete(self, obj: StoredObject) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM snapshots WHERE key = ?", (obj.key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Snapshot delete of {obj.key} failed: {e}") from e
        finally:
            conn.close()
