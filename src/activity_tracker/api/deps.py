"""Dependency injection for API routes."""

from functools import lru_cache

from ..config import get_settings
from ..db.repositories.activity_repository import SQLiteActivityRepository
from ..db.repositories.statistics_repository import StatisticsRepository
from ..services.activity_service import ActivityService
from ..tracking.sources import IntervalClock


@lru_cache
def get_activity_repository() -> SQLiteActivityRepository:
    """Get the activity repository instance."""
    return SQLiteActivityRepository(str(get_settings().db_path))


@lru_cache
def get_statistics_repository() -> StatisticsRepository:
    """Get the statistics snapshot store."""
    return StatisticsRepository(str(get_settings().db_path))


@lru_cache
def get_clock() -> IntervalClock:
    """Get the session clock shared by all sessions."""
    return IntervalClock(interval_sec=get_settings().tick_interval_sec)


@lru_cache
def get_activity_service() -> ActivityService:
    """Get the activity service instance."""
    settings = get_settings()
    return ActivityService(
        repository=get_activity_repository(),
        statistics_repository=get_statistics_repository(),
        clock_source=get_clock(),
        account_created_at=settings.account_created_at,
        min_fix_distance_m=settings.min_fix_distance_m,
        executor_workers=settings.executor_workers,
    )
