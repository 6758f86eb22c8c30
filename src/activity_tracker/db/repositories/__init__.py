"""Repository pattern implementations for activity persistence.

The engine talks to ActivityRepository only, so the SQLite implementation
can be swapped for any other storage backend.
"""

from .base import ActivityLoadResult, ActivityRepository
from .activity_repository import SQLiteActivityRepository
from .statistics_repository import StatisticsRepository

__all__ = [
    "ActivityLoadResult",
    "ActivityRepository",
    "SQLiteActivityRepository",
    "StatisticsRepository",
]
