"""Aggregate statistics models: records, streaks, rollups and goals."""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .activity import ActivityType, to_camel


class RecordKind(str, Enum):
    """Kinds of personal records tracked per activity type."""
    LONGEST_DISTANCE = "longest_distance"        # meters
    LONGEST_DURATION = "longest_duration"        # seconds
    FASTEST_PACE = "fastest_pace"                # min/km, lower is better
    MOST_CALORIES_BURNED = "most_calories_burned"
    HIGHEST_ELEVATION_GAIN = "highest_elevation_gain"  # meters

    @property
    def lower_is_better(self) -> bool:
        return self is RecordKind.FASTEST_PACE

    @property
    def unit(self) -> str:
        units = {
            RecordKind.LONGEST_DISTANCE: "m",
            RecordKind.LONGEST_DURATION: "s",
            RecordKind.FASTEST_PACE: "min/km",
            RecordKind.MOST_CALORIES_BURNED: "kcal",
            RecordKind.HIGHEST_ELEVATION_GAIN: "m",
        }
        return units[self]


class PersonalRecord(BaseModel):
    """Best observed value for an (activity type, record kind) pair."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    activity_type: ActivityType
    record_kind: RecordKind
    value: float
    achieved_at: datetime = Field(..., description="Start time of the record activity")
    activity_id: Optional[str] = None


class StreakType(str, Enum):
    """Streak types and the cadence each one counts in."""
    DAILY_WORKOUT = "daily_workout"
    WEEKLY_GOAL = "weekly_goal"
    MONTHLY_CHALLENGE = "monthly_challenge"
    RUNNING_STREAK = "running_streak"


class Streak(BaseModel):
    """Consecutive-period activity streak."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    streak_type: StreakType = Field(..., alias="type")
    current_count: int = Field(default=0, ge=0)
    longest_count: int = Field(default=0, ge=0)
    start_date: date
    last_active_date: date
    is_active: bool = True


class MonthlyStats(BaseModel):
    """Totals rolled up by calendar month."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    month: int = Field(..., ge=1, le=12)
    year: int
    total_activities: int = 0
    total_distance: float = 0.0
    total_duration: float = 0.0
    total_calories: int = 0
    average_workouts_per_week: float = 0.0


class WeeklyStats(BaseModel):
    """Totals rolled up by calendar week (weeks start on Monday)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    week_start_date: date
    total_activities: int = 0
    total_distance: float = 0.0
    total_duration: float = 0.0
    total_calories: int = 0
    average_workouts_per_day: float = 0.0


class UserStatistics(BaseModel):
    """Root aggregate of everything derived from the activity history."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    total_activities: int = 0
    total_distance: float = 0.0
    total_duration: float = 0.0
    total_calories_burned: int = 0
    average_workouts_per_week: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    favorite_activity_type: Optional[ActivityType] = None
    total_elevation_gain: float = 0.0
    personal_records: List[PersonalRecord] = Field(default_factory=list)
    monthly_stats: List[MonthlyStats] = Field(default_factory=list)
    weekly_stats: List[WeeklyStats] = Field(default_factory=list)
    streaks: List[Streak] = Field(default_factory=list)

    # Favorite-type bookkeeping: count per type and the sequence number of
    # the update that last incremented it (ties go to the higher sequence).
    activity_type_counts: Dict[ActivityType, int] = Field(default_factory=dict)
    activity_type_last_seen: Dict[ActivityType, int] = Field(default_factory=dict)
    tracking_since: Optional[date] = Field(None, description="Day of the earliest activity")
    last_updated: Optional[datetime] = None

    def get_record(
        self, activity_type: ActivityType, kind: RecordKind
    ) -> Optional[PersonalRecord]:
        for record in self.personal_records:
            if record.activity_type == activity_type and record.record_kind == kind:
                return record
        return None

    def get_streak(self, streak_type: StreakType) -> Optional[Streak]:
        for streak in self.streaks:
            if streak.streak_type == streak_type:
                return streak
        return None


class WeeklySummary(BaseModel):
    """Read model for the current calendar week."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    week_start_date: date
    total_activities: int = 0
    total_distance: float = 0.0
    total_duration: float = 0.0
    total_calories: int = 0
    average_workouts_per_day: float = 0.0


class MonthlySummary(BaseModel):
    """Read model for the current calendar month."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    month: int
    year: int
    total_activities: int = 0
    total_distance: float = 0.0
    total_duration: float = 0.0
    total_calories: int = 0
    average_workouts_per_week: float = 0.0


class ProgressPoint(BaseModel):
    """One bucket of a progress series."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    period_start: date
    period_end: date
    activities: int = 0
    distance: float = 0.0
    duration: float = 0.0
    calories: int = 0


class ProgressSeries(BaseModel):
    """Daily, weekly and monthly progress, oldest bucket first."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    daily: List[ProgressPoint] = Field(default_factory=list)
    weekly: List[ProgressPoint] = Field(default_factory=list)
    monthly: List[ProgressPoint] = Field(default_factory=list)


class GoalType(str, Enum):
    """Goal types whose progress can be derived from activity history."""
    DISTANCE_PER_WEEK = "distance_per_week"          # km
    WORKOUTS_PER_WEEK = "workouts_per_week"          # sessions
    CALORIES_BURN = "calories_burn"                  # kcal
    RUNNING_PACE = "running_pace"                    # min/km
    ENDURANCE_IMPROVEMENT = "endurance_improvement"  # minutes


class FitnessGoal(BaseModel):
    """A user goal; storage belongs to the profile, progress to the engine."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    goal_type: GoalType = Field(..., alias="type")
    title: str
    target_value: float = Field(..., gt=0)
    start_date: date
    target_date: date
    description: Optional[str] = None


class GoalProgress(BaseModel):
    """Computed progress toward a goal."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    goal_id: str
    goal_type: GoalType
    current_value: float
    target_value: float
    progress: float = Field(..., ge=0, le=1)
    progress_percentage: int
    is_completed: bool
