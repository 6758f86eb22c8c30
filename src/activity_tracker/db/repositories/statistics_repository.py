"""SQLite-backed store for the UserStatistics snapshot.

Statistics are derived data: a snapshot that cannot be read back is
treated as missing and rebuilt from the activity history.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from ...config import get_settings
from ...exceptions import PersistenceError
from ...models.statistics import UserStatistics

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "user"


class StatisticsRepository:
    """Single-row snapshot of the statistics aggregate."""

    def __init__(self, db_path: Optional[str] = None):
        if db_path:
            self.db_path = Path(db_path)
        else:
            self.db_path = Path(get_settings().db_path)

        self._ensure_table_exists()

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_table_exists(self):
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS user_statistics (
                        key TEXT PRIMARY KEY,
                        payload TEXT NOT NULL,
                        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                """)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not initialize statistics store: {e}", operation="init")

    def load(self) -> Optional[UserStatistics]:
        """
        Load the stored snapshot.

        Returns:
            The statistics, or None when nothing is stored or the stored
            snapshot is corrupt
        """
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT payload FROM user_statistics WHERE key = ?",
                    (SNAPSHOT_KEY,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load statistics: {e}", operation="load_statistics")

        if row is None:
            return None

        try:
            return UserStatistics.model_validate_json(row["payload"])
        except (PydanticValidationError, ValueError) as e:
            logger.warning(f"Stored statistics snapshot is corrupt, ignoring it: {e}")
            return None

    def save(self, stats: UserStatistics) -> UserStatistics:
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO user_statistics (key, payload, updated_at)
                    VALUES (?, ?, ?)
                """, (
                    SNAPSHOT_KEY,
                    stats.model_dump_json(by_alias=True),
                    datetime.now().isoformat(),
                ))
        except sqlite3.Error as e:
            logger.error(f"Failed to save statistics: {e}")
            raise PersistenceError(f"Failed to save statistics: {e}", operation="save_statistics")
        return stats

    def clear(self) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute("DELETE FROM user_statistics")
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to clear statistics: {e}", operation="clear_statistics")
