"""Live session tracking driven by a clock and a location stream."""

from .geo import haversine_distance
from .session import (
    SessionSnapshot,
    SessionState,
    SessionTracker,
    TrackerEvent,
    TrackerEventKind,
)
from .sources import (
    ClockSource,
    IntervalClock,
    LocationFix,
    LocationSource,
    PushLocationSource,
    Subscription,
)

__all__ = [
    "haversine_distance",
    "SessionSnapshot",
    "SessionState",
    "SessionTracker",
    "TrackerEvent",
    "TrackerEventKind",
    "ClockSource",
    "IntervalClock",
    "LocationFix",
    "LocationSource",
    "PushLocationSource",
    "Subscription",
]
