"""Shared fixtures: a controllable clock, temp databases and activity factories."""

import os
import tempfile
from datetime import datetime, timedelta

import pytest
from haversine import Direction, Unit, inverse_haversine

from activity_tracker.analysis.profiles import estimate_calories
from activity_tracker.models.activity import Activity, ActivityType

# A Monday, so week rollups start on the same day
MONDAY_MORNING = datetime(2024, 6, 3, 7, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


def meters_north(meters: float) -> float:
    """Latitude delta in degrees for a distance along a meridian."""
    return inverse_haversine((0.0, 0.0), meters, Direction.NORTH, unit=Unit.METERS)[0]


@pytest.fixture
def clock():
    return FakeClock(MONDAY_MORNING)


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture
def make_activity():
    """Factory for finalized activities with sensible defaults."""

    def _make(
        activity_type: ActivityType = ActivityType.RUNNING,
        start: datetime = MONDAY_MORNING,
        duration: float = 1800.0,
        distance: float = 5000.0,
        calories=None,
        elevation_gain=None,
        name=None,
        **extra,
    ) -> Activity:
        return Activity(
            activity_type=activity_type,
            name=name or f"{activity_type.display_name} on {start:%b %d}",
            start_time=start,
            end_time=start + timedelta(seconds=duration),
            duration=duration,
            distance=distance,
            calories=calories if calories is not None else estimate_calories(activity_type, duration),
            average_speed=distance / duration if duration > 0 else 0.0,
            elevation_gain=elevation_gain,
            is_completed=True,
            **extra,
        )

    return _make


@pytest.fixture
def north():
    """Converter from meters along a meridian to degrees of latitude."""
    return meters_north
