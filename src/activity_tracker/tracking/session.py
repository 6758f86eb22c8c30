"""
Live workout session tracking.

A SessionTracker owns one in-progress activity from start to stop:
- state machine: idle -> tracking <-> paused -> stopped
- per-tick duration, calories, pace and speed
- per-fix distance, elevation gain, route and max speed
- finalization into an immutable Activity with intensity and achievements

The clock tick, the location callbacks and the commands all mutate the same
state, so every one of them runs under a single lock.
"""

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..analysis.achievements import detect_achievements
from ..analysis.intensity import classify_intensity
from ..analysis.profiles import estimate_calories
from ..models.activity import Activity, ActivityType, LocationPoint
from .geo import haversine_distance
from .sources import ClockSource, LocationFix, LocationSource, Subscription

logger = logging.getLogger(__name__)

DEFAULT_MIN_FIX_DISTANCE_M = 5.0


class SessionState(str, Enum):
    """Lifecycle states of a session."""
    IDLE = "idle"
    TRACKING = "tracking"
    PAUSED = "paused"
    STOPPED = "stopped"


class TrackerEventKind(str, Enum):
    """Notifications published to session observers."""
    STARTED = "started"
    PAUSED = "paused"
    RESUMED = "resumed"
    STOPPED = "stopped"
    TICK = "tick"
    FIX_ACCEPTED = "fix_accepted"
    SENSOR_ERROR = "sensor_error"


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time view of the live metrics."""
    state: SessionState
    activity_id: Optional[str] = None
    activity_type: Optional[ActivityType] = None
    name: Optional[str] = None
    start_time: Optional[datetime] = None
    duration: float = 0.0              # seconds, paused time excluded
    distance: float = 0.0              # meters
    pace: Optional[float] = None       # min/km, None without distance
    speed: float = 0.0                 # m/s
    max_speed: float = 0.0             # m/s
    calories: int = 0
    elevation_gain: float = 0.0        # meters
    route_points: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["state"] = self.state.value
        data["activity_type"] = self.activity_type.value if self.activity_type else None
        data["start_time"] = self.start_time.isoformat() if self.start_time else None
        return data


@dataclass(frozen=True)
class TrackerEvent:
    """A state change or metric update of a session."""
    kind: TrackerEventKind
    snapshot: SessionSnapshot
    error: Optional[Exception] = None
    activity: Optional[Activity] = None


TrackerListener = Callable[[TrackerEvent], None]


def default_activity_name(activity_type: ActivityType, when: datetime) -> str:
    """Name like 'Running - Oct 19 at 7:05 AM'."""
    hour = when.hour % 12 or 12
    meridiem = "AM" if when.hour < 12 else "PM"
    return (
        f"{activity_type.display_name} - {when.strftime('%b')} {when.day} "
        f"at {hour}:{when.minute:02d} {meridiem}"
    )


class SessionTracker:
    """
    Tracks a single live workout session.

    Usage:
        tracker = SessionTracker(location_source=source, clock_source=clock)
        tracker.start(ActivityType.RUNNING)
        # ... ticks and fixes arrive ...
        activity = tracker.stop()
    """

    def __init__(
        self,
        location_source: Optional[LocationSource] = None,
        clock_source: Optional[ClockSource] = None,
        now_fn: Callable[[], datetime] = datetime.now,
        min_fix_distance_m: float = DEFAULT_MIN_FIX_DISTANCE_M,
    ):
        """
        Initialize the tracker.

        Args:
            location_source: Source of GPS fixes (subscribed while tracking)
            clock_source: Periodic tick source (armed while tracking)
            now_fn: Wall clock
            min_fix_distance_m: Fixes closer than this to the last accepted
                fix are treated as GPS jitter
        """
        self.location_source = location_source
        self.clock_source = clock_source
        self.min_fix_distance_m = min_fix_distance_m
        self._now = now_fn
        self._lock = threading.RLock()
        self._listeners: List[TrackerListener] = []

        self._state = SessionState.IDLE
        self._activity: Optional[Activity] = None
        self._start_time: Optional[datetime] = None
        self._paused_at: Optional[datetime] = None
        self._paused_total = timedelta(0)

        self._duration = 0.0
        self._distance = 0.0
        self._elevation_gain = 0.0
        self._max_speed = 0.0
        self._calories = 0
        self._pace: Optional[float] = None
        self._speed = 0.0
        self._route: List[LocationPoint] = []
        self._last_accepted: Optional[LocationFix] = None
        self._last_fix_time: Optional[datetime] = None
        self._last_error: Optional[str] = None

        self._clock_subscription: Optional[Subscription] = None
        self._location_subscription: Optional[Subscription] = None

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, listener: TrackerListener) -> Callable[[], None]:
        """Register an observer. Returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, events: List[TrackerEvent]) -> None:
        # Called outside the lock so observers may query the tracker
        with self._lock:
            listeners = list(self._listeners)
        for event in events:
            for listener in listeners:
                try:
                    listener(event)
                except Exception:
                    logger.exception(f"Session listener failed on {event.kind.value} event")

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_tracking(self) -> bool:
        return self.state == SessionState.TRACKING

    @property
    def is_paused(self) -> bool:
        return self.state == SessionState.PAUSED

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot()

    def current_activity(self) -> Optional[Activity]:
        """Copy of the provisional activity, None when no session is live."""
        with self._lock:
            if self._activity is None:
                return None
            return self._activity.model_copy(deep=True)

    def _snapshot(self) -> SessionSnapshot:
        activity = self._activity
        return SessionSnapshot(
            state=self._state,
            activity_id=activity.id if activity else None,
            activity_type=activity.activity_type if activity else None,
            name=activity.name if activity else None,
            start_time=self._start_time,
            duration=self._duration,
            distance=self._distance,
            pace=self._pace,
            speed=self._speed,
            max_speed=self._max_speed,
            calories=self._calories,
            elevation_gain=self._elevation_gain,
            route_points=len(self._route),
            last_error=self._last_error,
        )

    # =========================================================================
    # Commands
    # =========================================================================

    def start(self, activity_type: ActivityType, name: Optional[str] = None) -> bool:
        """
        Start tracking a new activity. Only valid from idle.

        Returns:
            True if the session started, False if the call was a no-op
        """
        with self._lock:
            if self._state != SessionState.IDLE:
                logger.warning(f"Ignoring start while session is {self._state.value}")
                return False

            now = self._now()
            self._start_time = now
            self._activity = Activity(
                activity_type=activity_type,
                name=name or default_activity_name(activity_type, now),
                start_time=now,
                is_completed=False,
            )
            self._state = SessionState.TRACKING
            self._arm()
            logger.info(f"Started {activity_type.value} session {self._activity.id}")
            events = [TrackerEvent(TrackerEventKind.STARTED, self._snapshot())]

        self._emit(events)
        return True

    def pause(self) -> bool:
        """Freeze the duration clock and detach the location stream."""
        with self._lock:
            if self._state != SessionState.TRACKING:
                return False
            self._disarm()
            now = self._now()
            self._duration = self._active_seconds(now)
            self._paused_at = now
            self._state = SessionState.PAUSED
            logger.info(f"Paused session at {self._duration:.0f}s")
            events = [TrackerEvent(TrackerEventKind.PAUSED, self._snapshot())]

        self._emit(events)
        return True

    def resume(self) -> bool:
        """Re-arm the clock and location stream after a pause."""
        with self._lock:
            if self._state != SessionState.PAUSED:
                return False
            now = self._now()
            if self._paused_at is not None:
                self._paused_total += now - self._paused_at
            self._paused_at = None
            self._state = SessionState.TRACKING
            self._arm()
            logger.info("Resumed session")
            events = [TrackerEvent(TrackerEventKind.RESUMED, self._snapshot())]

        self._emit(events)
        return True

    def stop(self) -> Optional[Activity]:
        """
        Stop the session and finalize its activity.

        Timers and location subscriptions are cancelled before the activity
        is built, so nothing can mutate a stopped session.

        Returns:
            The finalized Activity, or None when there was nothing to stop
        """
        with self._lock:
            if self._state not in (SessionState.TRACKING, SessionState.PAUSED):
                logger.info(f"Nothing to stop (session is {self._state.value})")
                return None

            self._disarm()
            now = self._now()
            self._duration = self._active_seconds(now)
            self._calories = estimate_calories(self._activity.activity_type, self._duration)
            self._recompute_rates()
            self._state = SessionState.STOPPED

            activity = self._finalize(now)
            self._activity = activity
            logger.info(
                f"Stopped session {activity.id}: {activity.distance:.0f}m in "
                f"{activity.duration:.0f}s, intensity {activity.intensity.value}"
            )
            events = [
                TrackerEvent(TrackerEventKind.STOPPED, self._snapshot(), activity=activity)
            ]

        self._emit(events)
        return activity.model_copy(deep=True)

    # =========================================================================
    # Event handlers
    # =========================================================================

    def tick(self) -> None:
        """Per-second update of duration, calories, pace and speed."""
        with self._lock:
            if self._state != SessionState.TRACKING:
                return
            self._duration = self._active_seconds(self._now())
            self._calories = estimate_calories(self._activity.activity_type, self._duration)
            self._recompute_rates()
            self._activity.duration = self._duration
            self._activity.calories = self._calories
            events = [TrackerEvent(TrackerEventKind.TICK, self._snapshot())]

        self._emit(events)

    def ingest_fix(self, fix: LocationFix) -> bool:
        """
        Process one location fix.

        Fixes are dropped when the session is not tracking, when they are not
        newer than the last processed fix, or when they lie within the noise
        radius of the last accepted fix.

        Returns:
            True if the fix was accepted onto the route
        """
        with self._lock:
            if self._state != SessionState.TRACKING:
                logger.debug(f"Dropping fix while session is {self._state.value}")
                return False
            if self._last_fix_time is not None and fix.timestamp <= self._last_fix_time:
                logger.debug("Dropping out-of-order or duplicate fix")
                return False
            self._last_fix_time = fix.timestamp

            if fix.speed is not None and fix.speed > self._max_speed:
                self._max_speed = fix.speed

            previous = self._last_accepted
            if previous is not None:
                step = haversine_distance(
                    previous.latitude, previous.longitude, fix.latitude, fix.longitude
                )
                if step < self.min_fix_distance_m:
                    return False
                self._distance += step
                if (
                    fix.altitude is not None
                    and previous.altitude is not None
                    and fix.altitude > previous.altitude
                ):
                    self._elevation_gain += fix.altitude - previous.altitude

            self._last_accepted = fix
            self._route.append(
                LocationPoint(
                    latitude=fix.latitude,
                    longitude=fix.longitude,
                    timestamp=fix.timestamp,
                    altitude=fix.altitude,
                    speed=fix.speed if fix.speed is not None and fix.speed > 0 else None,
                    heart_rate=fix.heart_rate,
                )
            )
            self._activity.distance = self._distance
            self._recompute_rates()
            events = [TrackerEvent(TrackerEventKind.FIX_ACCEPTED, self._snapshot())]

        self._emit(events)
        return True

    def report_error(self, error: Exception) -> None:
        """
        Record a location stream failure.

        The session keeps tracking duration; distance simply stops growing
        until fixes resume.
        """
        with self._lock:
            if self._state not in (SessionState.TRACKING, SessionState.PAUSED):
                return
            self._last_error = str(error)
            logger.warning(f"Location error during session: {error}")
            events = [TrackerEvent(TrackerEventKind.SENSOR_ERROR, self._snapshot(), error=error)]

        self._emit(events)

    # =========================================================================
    # Internals (lock held)
    # =========================================================================

    def _arm(self) -> None:
        if self.clock_source is not None:
            self._clock_subscription = self.clock_source.start(self.tick)
        if self.location_source is not None:
            self._location_subscription = self.location_source.subscribe(
                self.ingest_fix, self.report_error
            )

    def _disarm(self) -> None:
        if self._clock_subscription is not None:
            self._clock_subscription.cancel()
            self._clock_subscription = None
        if self._location_subscription is not None:
            self._location_subscription.cancel()
            self._location_subscription = None

    def _active_seconds(self, now: datetime) -> float:
        elapsed = now - self._start_time - self._paused_total
        if self._paused_at is not None:
            elapsed -= now - self._paused_at
        return max(elapsed.total_seconds(), 0.0)

    def _recompute_rates(self) -> None:
        if self._distance > 0 and self._duration > 0:
            self._pace = (self._duration / 60) / (self._distance / 1000)
            self._speed = self._distance / self._duration
        elif self._distance <= 0:
            self._pace = None

    def _finalize(self, end_time: datetime) -> Activity:
        heart_rates = [p.heart_rate for p in self._route if p.heart_rate is not None]
        finalized = self._activity.model_copy(
            update={
                "end_time": end_time,
                "duration": self._duration,
                "distance": self._distance,
                "calories": self._calories,
                "average_speed": self._distance / self._duration if self._duration > 0 else 0.0,
                "max_speed": self._max_speed,
                "elevation_gain": self._elevation_gain,
                "route": list(self._route),
                "average_heart_rate": (
                    round(sum(heart_rates) / len(heart_rates)) if heart_rates else None
                ),
                "max_heart_rate": max(heart_rates) if heart_rates else None,
                "is_completed": True,
            }
        )
        finalized.intensity = classify_intensity(finalized)
        finalized.achievements = detect_achievements(finalized)
        return Activity.model_validate(finalized.model_dump())
