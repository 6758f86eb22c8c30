"""Data models for activities and derived statistics."""

from .activity import (
    Achievement,
    AchievementCategory,
    Activity,
    ActivitySortOrder,
    ActivityType,
    IntensityLevel,
    LocationPoint,
    WeatherData,
    to_camel,
)
from .statistics import (
    FitnessGoal,
    GoalProgress,
    GoalType,
    MonthlyStats,
    MonthlySummary,
    PersonalRecord,
    ProgressPoint,
    ProgressSeries,
    RecordKind,
    Streak,
    StreakType,
    UserStatistics,
    WeeklyStats,
    WeeklySummary,
)

__all__ = [
    "Achievement",
    "AchievementCategory",
    "Activity",
    "ActivitySortOrder",
    "ActivityType",
    "IntensityLevel",
    "LocationPoint",
    "WeatherData",
    "to_camel",
    "FitnessGoal",
    "GoalProgress",
    "GoalType",
    "MonthlyStats",
    "MonthlySummary",
    "PersonalRecord",
    "ProgressPoint",
    "ProgressSeries",
    "RecordKind",
    "Streak",
    "StreakType",
    "UserStatistics",
    "WeeklyStats",
    "WeeklySummary",
]
