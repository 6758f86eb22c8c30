"""Per-activity-type constants used by tracking and classification.

Calorie rates are a fixed lookup table, not a physiological model: the
estimate is active minutes times the type's calories-per-minute.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ..models.activity import ActivityType


@dataclass(frozen=True)
class IntensityThresholds:
    """Thresholds above which an activity is moderate or high.

    Speed thresholds are in km/h, duration thresholds in minutes. A None
    speed threshold means speed does not factor in for the type.
    """
    high_speed_kmh: Optional[float]
    high_duration_min: float
    moderate_speed_kmh: Optional[float]
    moderate_duration_min: float


@dataclass(frozen=True)
class ActivityProfile:
    """Constants for one activity type."""
    calories_per_minute: float
    intensity: IntensityThresholds


DURATION_ONLY = IntensityThresholds(
    high_speed_kmh=None,
    high_duration_min=60,
    moderate_speed_kmh=None,
    moderate_duration_min=30,
)

DEFAULT_PROFILE = ActivityProfile(calories_per_minute=6.0, intensity=DURATION_ONLY)

ACTIVITY_PROFILES: Dict[ActivityType, ActivityProfile] = {
    ActivityType.RUNNING: ActivityProfile(
        calories_per_minute=12.0,
        intensity=IntensityThresholds(
            high_speed_kmh=12,
            high_duration_min=60,
            moderate_speed_kmh=8,
            moderate_duration_min=30,
        ),
    ),
    ActivityType.CYCLING: ActivityProfile(
        calories_per_minute=8.0,
        intensity=IntensityThresholds(
            high_speed_kmh=25,
            high_duration_min=90,
            moderate_speed_kmh=15,
            moderate_duration_min=45,
        ),
    ),
    ActivityType.WALKING: ActivityProfile(calories_per_minute=4.0, intensity=DURATION_ONLY),
    ActivityType.SWIMMING: ActivityProfile(calories_per_minute=11.0, intensity=DURATION_ONLY),
    ActivityType.HIKING: ActivityProfile(calories_per_minute=6.0, intensity=DURATION_ONLY),
    ActivityType.YOGA: ActivityProfile(calories_per_minute=3.0, intensity=DURATION_ONLY),
    ActivityType.GYM: ActivityProfile(calories_per_minute=8.0, intensity=DURATION_ONLY),
}


def get_profile(activity_type: ActivityType) -> ActivityProfile:
    """Get the profile for a type, falling back to the default profile."""
    return ACTIVITY_PROFILES.get(activity_type, DEFAULT_PROFILE)


def estimate_calories(activity_type: ActivityType, duration_sec: float) -> int:
    """Estimate calories burned for an active duration."""
    minutes = duration_sec / 60
    return int(minutes * get_profile(activity_type).calories_per_minute)
