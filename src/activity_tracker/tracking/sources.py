"""
Event sources that drive a live session.

Two independent producers feed the session tracker:
- a location source emitting GPS fixes and error events
- a clock source emitting a periodic tick

Both hand out Subscription handles so the tracker can detach them
synchronously on pause/stop.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

FixCallback = Callable[["LocationFix"], None]
ErrorCallback = Callable[[Exception], None]


def to_local_naive(moment: datetime) -> datetime:
    """Express an aware timestamp as naive local time; naive ones pass through."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


@dataclass(frozen=True)
class LocationFix:
    """One timestamped GPS position sample."""
    latitude: float
    longitude: float
    timestamp: datetime
    altitude: Optional[float] = None
    speed: Optional[float] = None
    heart_rate: Optional[int] = None

    def __post_init__(self):
        # Sessions run on naive local time
        object.__setattr__(self, "timestamp", to_local_naive(self.timestamp))


class Subscription:
    """Handle returned by a source; cancel() detaches the listener once."""

    def __init__(self, on_cancel: Callable[[], None]):
        self._on_cancel = on_cancel
        self._cancelled = False
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
        self._on_cancel()


class LocationSource(ABC):
    """Producer of location fixes and error events."""

    @abstractmethod
    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        """
        Start delivering fixes to on_fix and failures to on_error.

        Returns:
            Subscription whose cancel() stops delivery
        """
        pass


class ClockSource(ABC):
    """Producer of periodic ticks."""

    @abstractmethod
    def start(self, callback: Callable[[], None]) -> Subscription:
        """
        Start calling callback once per interval.

        Returns:
            Subscription whose cancel() stops the timer
        """
        pass


class PushLocationSource(LocationSource):
    """
    In-process location source fed by the caller.

    Used to relay fixes arriving from an external adapter (HTTP, replay of a
    recorded track) into the tracker.
    """

    def __init__(self):
        self._listeners: List[Tuple[str, FixCallback, ErrorCallback]] = []
        self._lock = threading.Lock()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        token = str(uuid.uuid4())
        with self._lock:
            self._listeners.append((token, on_fix, on_error))

        def _remove() -> None:
            with self._lock:
                self._listeners = [entry for entry in self._listeners if entry[0] != token]

        return Subscription(_remove)

    def push(self, fix: LocationFix) -> int:
        """Deliver a fix to current listeners. Returns how many received it."""
        with self._lock:
            listeners = list(self._listeners)
        for _, on_fix, _ in listeners:
            on_fix(fix)
        return len(listeners)

    def fail(self, error: Exception) -> int:
        """Deliver an error event to current listeners."""
        with self._lock:
            listeners = list(self._listeners)
        for _, _, on_error in listeners:
            on_error(error)
        return len(listeners)


class IntervalClock(ClockSource):
    """
    Periodic clock backed by an APScheduler background scheduler.

    Usage:
        clock = IntervalClock(interval_sec=1.0)
        subscription = clock.start(tracker.tick)
        # ...
        subscription.cancel()
        clock.shutdown()
    """

    def __init__(self, interval_sec: float = 1.0):
        self.interval_sec = interval_sec
        self.scheduler: Optional[BackgroundScheduler] = None
        self._lock = threading.Lock()

    def _ensure_scheduler(self) -> BackgroundScheduler:
        with self._lock:
            if self.scheduler is None:
                self.scheduler = BackgroundScheduler()
                self.scheduler.start()
                logger.debug("Clock scheduler started")
            return self.scheduler

    def start(self, callback: Callable[[], None]) -> Subscription:
        scheduler = self._ensure_scheduler()
        job = scheduler.add_job(
            callback,
            IntervalTrigger(seconds=self.interval_sec),
            id=f"session_tick_{uuid.uuid4()}",
            name="Session Tick",
            max_instances=1,  # Never run two ticks at once
            coalesce=True,
        )

        def _remove() -> None:
            try:
                job.remove()
            except JobLookupError:
                logger.debug(f"Tick job {job.id} already removed")

        return Subscription(_remove)

    def shutdown(self) -> None:
        """Gracefully shutdown the scheduler."""
        with self._lock:
            if self.scheduler is None:
                return
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
        logger.debug("Clock scheduler stopped")
