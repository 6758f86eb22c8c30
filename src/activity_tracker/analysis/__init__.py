"""Pure analysis of finalized activities: intensity, achievements, statistics."""

from .achievements import ACHIEVEMENT_DEFINITIONS, detect_achievements
from .intensity import classify_intensity
from .profiles import ACTIVITY_PROFILES, ActivityProfile, estimate_calories, get_profile
from .progress import filter_activities, goal_progress, progress_series
from .statistics import (
    StatisticsAggregator,
    find_inconsistencies,
    rebuild_statistics,
    update_statistics,
)
from .streaks import update_streak

__all__ = [
    "ACHIEVEMENT_DEFINITIONS",
    "detect_achievements",
    "classify_intensity",
    "ACTIVITY_PROFILES",
    "ActivityProfile",
    "estimate_calories",
    "get_profile",
    "filter_activities",
    "goal_progress",
    "progress_series",
    "StatisticsAggregator",
    "find_inconsistencies",
    "rebuild_statistics",
    "update_statistics",
    "update_streak",
]
