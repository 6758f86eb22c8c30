"""Activity data models for recorded and in-progress workouts."""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class ActivityType(str, Enum):
    """Supported workout types."""
    RUNNING = "running"
    CYCLING = "cycling"
    WALKING = "walking"
    SWIMMING = "swimming"
    HIKING = "hiking"
    YOGA = "yoga"
    GYM = "gym"
    BASKETBALL = "basketball"
    FOOTBALL = "football"
    TENNIS = "tennis"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        """Get human-readable name."""
        if self is ActivityType.GYM:
            return "Gym Workout"
        return self.value.title()


class IntensityLevel(str, Enum):
    """Intensity buckets. EXTREME is only ever set manually."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXTREME = "extreme"


class AchievementCategory(str, Enum):
    """Categories for achievements."""
    DISTANCE = "distance"
    DURATION = "duration"
    SPEED = "speed"
    CONSISTENCY = "consistency"
    MILESTONE = "milestone"


class LocationPoint(BaseModel):
    """A single GPS fix recorded on an activity route."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: datetime
    altitude: Optional[float] = Field(None, description="Altitude in meters")
    speed: Optional[float] = Field(None, description="Instantaneous speed in m/s")
    heart_rate: Optional[int] = Field(None, description="Heart rate in bpm")


class WeatherData(BaseModel):
    """Weather conditions captured with an activity."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    temperature: float = Field(..., description="Temperature in Celsius")
    humidity: float = Field(..., description="Relative humidity percentage")
    wind_speed: float = Field(..., description="Wind speed in m/s")
    condition: str
    icon: str


class Achievement(BaseModel):
    """Milestone unlocked by a single activity."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(..., description="Stable identifier (<code>:<activity id>)")
    title: str
    description: str
    icon: str = Field(..., description="Icon reference")
    earned_at: datetime
    category: AchievementCategory


class Activity(BaseModel):
    """
    One workout, provisional while tracked and immutable once finalized.

    Distances are in meters, durations in seconds and speeds in m/s.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    activity_type: ActivityType = Field(..., alias="type")
    name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: float = Field(default=0.0, ge=0)
    distance: float = Field(default=0.0, ge=0)
    calories: int = Field(default=0, ge=0)
    average_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    average_speed: float = Field(default=0.0, ge=0)
    max_speed: float = Field(default=0.0, ge=0)
    elevation_gain: Optional[float] = Field(None, ge=0)
    route: List[LocationPoint] = Field(default_factory=list)
    intensity: IntensityLevel = IntensityLevel.MODERATE
    notes: Optional[str] = None
    weather: Optional[WeatherData] = None
    is_completed: bool = False
    achievements: List[Achievement] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_invariants(self) -> "Activity":
        if self.is_completed:
            if self.end_time is None:
                raise ValueError("completed activity must have an end time")
            if self.end_time < self.start_time:
                raise ValueError("end time precedes start time")
        for previous, point in zip(self.route, self.route[1:]):
            if point.timestamp < previous.timestamp:
                raise ValueError("route points must be ordered by timestamp")
        return self

    @property
    def pace_min_per_km(self) -> Optional[float]:
        """Pace in minutes per km, None without distance."""
        if self.distance <= 0:
            return None
        return (self.duration / 60) / (self.distance / 1000)

    @property
    def speed_kmh(self) -> float:
        return self.average_speed * 3.6

    @property
    def formatted_duration(self) -> str:
        """Duration as H:MM:SS, or M:SS under an hour."""
        total = int(self.duration)
        hours, minutes, seconds = total // 3600, (total % 3600) // 60, total % 60
        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    @property
    def formatted_distance(self) -> str:
        if self.distance >= 1000:
            return f"{self.distance / 1000:.2f} km"
        return f"{self.distance:.0f} m"


class ActivitySortOrder(str, Enum):
    """Sort orders for activity history listings."""
    DATE_DESCENDING = "date_desc"
    DATE_ASCENDING = "date_asc"
    DISTANCE_DESCENDING = "distance_desc"
    DURATION_DESCENDING = "duration_desc"
