"""SQLite-backed repository for activities.

Each activity is stored as its JSON document plus the few columns needed
for lookup and ordering. Records that no longer parse or validate are
skipped on bulk loads instead of failing the whole history.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from ...config import get_settings
from ...exceptions import (
    ActivityNotFoundError,
    ActivityValidationError,
    PersistenceError,
)
from ...models.activity import Activity
from .base import ActivityLoadResult, ActivityRepository

logger = logging.getLogger(__name__)


class SQLiteActivityRepository(ActivityRepository):
    """
    SQLite-backed repository for Activity entities.

    Usage:
        repo = SQLiteActivityRepository("activities.db")
        repo.save(activity)
        result = repo.load_all()
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the activity repository.

        Args:
            db_path: Path to SQLite database file. If None, uses the
                    configured database path.
        """
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
        """Ensure the activities table exists."""
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS activities (
                        id TEXT PRIMARY KEY,
                        activity_type TEXT NOT NULL,
                        start_time TEXT NOT NULL,
                        payload TEXT NOT NULL,
                        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_activities_start_time
                    ON activities(start_time)
                """)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not initialize activity store: {e}", operation="init")

    def _row_to_activity(self, row: sqlite3.Row) -> Activity:
        """Parse a stored row, raising ActivityValidationError if it is corrupt."""
        try:
            return Activity.model_validate_json(row["payload"])
        except (PydanticValidationError, ValueError, TypeError) as e:
            raise ActivityValidationError(row["id"], str(e))

    def save(self, activity: Activity) -> Activity:
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO activities
                    (id, activity_type, start_time, payload, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (
                    activity.id,
                    activity.activity_type.value,
                    activity.start_time.isoformat(),
                    activity.model_dump_json(by_alias=True),
                    datetime.now().isoformat(),
                ))
        except sqlite3.Error as e:
            logger.error(f"Failed to save activity {activity.id}: {e}")
            raise PersistenceError(f"Failed to save activity: {e}", operation="save")

        logger.debug(f"Saved activity {activity.id}")
        return activity

    def load_all(self) -> ActivityLoadResult:
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    "SELECT id, payload FROM activities ORDER BY start_time DESC"
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load activities: {e}", operation="load_all")

        result = ActivityLoadResult()
        for row in rows:
            try:
                result.activities.append(self._row_to_activity(row))
            except ActivityValidationError as e:
                logger.warning(f"Skipping corrupt activity record: {e.activity_id}")
                result.skipped += 1
                result.skipped_ids.append(row["id"])

        if result.skipped:
            logger.warning(
                f"Loaded {len(result.activities)} activities, skipped {result.skipped} corrupt"
            )
        return result

    def load_by_id(self, activity_id: str) -> Activity:
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT id, payload FROM activities WHERE id = ?",
                    (activity_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load activity: {e}", operation="load_by_id")

        if row is None:
            raise ActivityNotFoundError(activity_id)
        return self._row_to_activity(row)

    def delete(self, activity_id: str) -> bool:
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM activities WHERE id = ?",
                    (activity_id,)
                )
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to delete activity: {e}", operation="delete")

        if deleted:
            logger.info(f"Deleted activity {activity_id}")
        return deleted

    def load_in_range(self, start: datetime, end: datetime) -> List[Activity]:
        try:
            with self._get_connection() as conn:
                rows = conn.execute("""
                    SELECT id, payload FROM activities
                    WHERE start_time >= ? AND start_time <= ?
                    ORDER BY start_time ASC
                """, (start.isoformat(), end.isoformat())).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load activities: {e}", operation="load_in_range")

        activities = []
        for row in rows:
            try:
                activities.append(self._row_to_activity(row))
            except ActivityValidationError:
                logger.warning(f"Skipping corrupt activity record: {row['id']}")
        return activities

    def count(self) -> int:
        try:
            with self._get_connection() as conn:
                row = conn.execute("SELECT COUNT(*) as cnt FROM activities").fetchone()
                return row["cnt"]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to count activities: {e}", operation="count")

    def exists(self, activity_id: str) -> bool:
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT 1 FROM activities WHERE id = ?",
                    (activity_id,)
                ).fetchone()
                return row is not None
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to query activity: {e}", operation="exists")

    def clear_all(self) -> int:
        try:
            with self._get_connection() as conn:
                cursor = conn.execute("DELETE FROM activities")
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to clear activities: {e}", operation="clear_all")

        logger.info(f"Cleared {deleted} activities")
        return deleted
