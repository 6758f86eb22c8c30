"""
Activity service.

Handles:
- Ownership of the live session tracker
- Persisting finalized activities and folding them into statistics
- History queries, statistics read model, progress and goals
- Statistics repair (rebuild from history)

Failures never escape as exceptions: every command returns an
OperationResult, and background outcomes are also pushed to observers.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..analysis.progress import filter_activities, goal_progress, progress_series
from ..analysis.statistics import StatisticsAggregator
from ..db.repositories.base import ActivityLoadResult, ActivityRepository
from ..db.repositories.statistics_repository import StatisticsRepository
from ..exceptions import (
    ActivityNotFoundError,
    ActivityTrackerError,
    ErrorCode,
    NoActiveSessionError,
    SensorError,
    SessionConflictError,
    StatisticsConsistencyError,
    ValidationError,
)
from ..models.activity import Activity, ActivitySortOrder, ActivityType
from ..models.statistics import (
    FitnessGoal,
    GoalProgress,
    MonthlySummary,
    PersonalRecord,
    ProgressSeries,
    Streak,
    UserStatistics,
    WeeklySummary,
)
from ..tracking.session import SessionSnapshot, SessionState, SessionTracker, TrackerListener
from ..tracking.sources import ClockSource, LocationFix, LocationSource, PushLocationSource

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Typed outcome of a service operation."""

    success: bool
    operation: str
    value: Any = None
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None
    error: Optional[ActivityTrackerError] = field(default=None, repr=False)

    @classmethod
    def ok(cls, operation: str, value: Any = None) -> "OperationResult":
        return cls(success=True, operation=operation, value=value)

    @classmethod
    def failed(cls, operation: str, error: ActivityTrackerError) -> "OperationResult":
        return cls(
            success=False,
            operation=operation,
            error_code=error.code,
            error_message=error.message,
            error=error,
        )

    def unwrap(self) -> Any:
        """Return the value, or raise the error of a failed operation."""
        if not self.success:
            raise self.error
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (value excluded)."""
        return {
            "success": self.success,
            "operation": self.operation,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.error_message,
        }


ResultObserver = Callable[[OperationResult], None]


class ActivityService:
    """
    Coordinates sessions, persistence and statistics.

    Usage:
        service = ActivityService(repository, statistics_repository)
        service.start_session(ActivityType.RUNNING)
        service.push_fix(fix)
        result, completion = service.stop_session()
        completion.result()  # persisted and aggregated
    """

    def __init__(
        self,
        repository: ActivityRepository,
        statistics_repository: Optional[StatisticsRepository] = None,
        location_source: Optional[LocationSource] = None,
        clock_source: Optional[ClockSource] = None,
        now_fn: Callable[[], datetime] = datetime.now,
        account_created_at: Optional[date] = None,
        min_fix_distance_m: float = 5.0,
        executor_workers: int = 2,
    ):
        """
        Initialize the service.

        Args:
            repository: Activity history store
            statistics_repository: Snapshot store for statistics (optional)
            location_source: Fix stream; defaults to an in-process push source
            clock_source: Tick source; without one, callers drive tick()
            now_fn: Wall clock shared with trackers and the aggregator
            account_created_at: Start of the weekly-average window
            min_fix_distance_m: GPS noise radius for trackers
            executor_workers: Threads for persist + aggregate work
        """
        self.repository = repository
        self.statistics_repository = statistics_repository
        self.location_source = location_source or PushLocationSource()
        self.clock_source = clock_source
        self.min_fix_distance_m = min_fix_distance_m
        self._now = now_fn

        self._lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._tracker: Optional[SessionTracker] = None
        self._observers: List[ResultObserver] = []
        self._session_listeners: List[TrackerListener] = []
        self._executor = ThreadPoolExecutor(
            max_workers=executor_workers, thread_name_prefix="activity-persist"
        )

        self.aggregator = StatisticsAggregator(
            statistics=self._load_statistics(),
            account_created_at=account_created_at,
            now_fn=now_fn,
        )

    def _load_statistics(self) -> Optional[UserStatistics]:
        if self.statistics_repository is None:
            return None
        try:
            return self.statistics_repository.load()
        except ActivityTrackerError as e:
            logger.error(f"Could not load statistics snapshot, starting empty: {e.message}")
            return None

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: ResultObserver) -> Callable[[], None]:
        """Receive OperationResults of background and repair work."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def subscribe_session(self, listener: TrackerListener) -> None:
        """Receive TrackerEvents from every session started from now on."""
        with self._lock:
            self._session_listeners.append(listener)
            if self._tracker is not None:
                self._tracker.subscribe(listener)

    def _notify(self, result: OperationResult) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(result)
            except Exception:
                logger.exception(f"Result observer failed for {result.operation}")

    # =========================================================================
    # Session commands
    # =========================================================================

    def _live_tracker(self) -> Optional[SessionTracker]:
        tracker = self._tracker
        if tracker is None or tracker.state not in (SessionState.TRACKING, SessionState.PAUSED):
            return None
        return tracker

    def start_session(
        self, activity_type: ActivityType, name: Optional[str] = None
    ) -> OperationResult:
        """Start a new session. Pending persistence of earlier sessions never blocks this."""
        with self._lock:
            live = self._live_tracker()
            if live is not None:
                return OperationResult.failed(
                    "start_session", SessionConflictError(live.snapshot().activity_id)
                )
            tracker = SessionTracker(
                location_source=self.location_source,
                clock_source=self.clock_source,
                now_fn=self._now,
                min_fix_distance_m=self.min_fix_distance_m,
            )
            for listener in self._session_listeners:
                tracker.subscribe(listener)
            self._tracker = tracker

        tracker.start(activity_type, name)
        return OperationResult.ok("start_session", tracker.snapshot())

    def pause_session(self) -> OperationResult:
        tracker = self._live_tracker()
        if tracker is None or not tracker.pause():
            return OperationResult.failed(
                "pause_session", NoActiveSessionError("No running session to pause")
            )
        return OperationResult.ok("pause_session", tracker.snapshot())

    def resume_session(self) -> OperationResult:
        tracker = self._live_tracker()
        if tracker is None or not tracker.resume():
            return OperationResult.failed(
                "resume_session", NoActiveSessionError("No paused session to resume")
            )
        return OperationResult.ok("resume_session", tracker.snapshot())

    def stop_session(self) -> Tuple[OperationResult, Optional["Future[OperationResult]"]]:
        """
        Stop the live session.

        The finalized activity is returned immediately; persisting it and
        updating statistics happen on the background executor.

        Returns:
            (result carrying the Activity, Future of the persist result).
            The Future is None when there was nothing to stop.
        """
        tracker = self._tracker
        activity = tracker.stop() if tracker is not None else None
        if activity is None:
            return OperationResult.failed("stop_session", NoActiveSessionError()), None

        completion = self._executor.submit(self._persist_and_aggregate, activity)
        return OperationResult.ok("stop_session", activity), completion

    def tick(self) -> None:
        """Advance the live session clock when no clock source drives it."""
        tracker = self._live_tracker()
        if tracker is not None:
            tracker.tick()

    def push_fix(self, fix: LocationFix) -> OperationResult:
        """Feed a location fix into the live session."""
        tracker = self._live_tracker()
        if tracker is None:
            return OperationResult.failed("push_fix", NoActiveSessionError())

        if isinstance(self.location_source, PushLocationSource):
            self.location_source.push(fix)
        else:
            tracker.ingest_fix(fix)
        return OperationResult.ok("push_fix", tracker.snapshot())

    def report_sensor_error(self, message: str) -> OperationResult:
        tracker = self._live_tracker()
        if tracker is None:
            return OperationResult.failed("report_sensor_error", NoActiveSessionError())

        error = SensorError(message)
        delivered = 0
        if isinstance(self.location_source, PushLocationSource):
            delivered = self.location_source.fail(error)
        # A paused tracker is unsubscribed from the stream
        if not delivered:
            tracker.report_error(error)
        return OperationResult.ok("report_sensor_error", tracker.snapshot())

    def current_session(self) -> Optional[SessionSnapshot]:
        tracker = self._tracker
        return tracker.snapshot() if tracker is not None else None

    # =========================================================================
    # Persistence + aggregation
    # =========================================================================

    def _persist_and_aggregate(self, activity: Activity) -> OperationResult:
        try:
            self.repository.save(activity)
        except ActivityTrackerError as e:
            logger.error(f"Activity {activity.id} was not persisted: {e.message}")
            result = OperationResult.failed("save_activity", e)
            self._notify(result)
            return result

        with self._stats_lock:
            stats = self.aggregator.apply(activity)
            result = self._save_statistics(stats, "persist_activity", activity)

        logger.info(f"Persisted activity {activity.id} ({stats.total_activities} total)")
        self._notify(result)
        return result

    def _save_statistics(
        self, stats: UserStatistics, operation: str, value: Any
    ) -> OperationResult:
        if self.statistics_repository is None:
            return OperationResult.ok(operation, value)
        try:
            self.statistics_repository.save(stats)
        except ActivityTrackerError as e:
            logger.error(f"Statistics snapshot not saved: {e.message}")
            return OperationResult.failed("save_statistics", e)
        return OperationResult.ok(operation, value)

    def record_activity(self, activity: Activity) -> OperationResult:
        """Persist and aggregate an already finalized activity synchronously."""
        return self._persist_and_aggregate(activity)

    # =========================================================================
    # History
    # =========================================================================

    def list_activities(
        self,
        search: Optional[str] = None,
        activity_type: Optional[ActivityType] = None,
        sort: ActivitySortOrder = ActivitySortOrder.DATE_DESCENDING,
    ) -> OperationResult:
        """
        Search, filter and sort the history.

        Returns:
            Result whose value is an ActivityLoadResult; its skipped count
            reports corrupt records left out of the listing
        """
        try:
            loaded = self.repository.load_all()
        except ActivityTrackerError as e:
            return OperationResult.failed("list_activities", e)
        listing = ActivityLoadResult(
            activities=filter_activities(loaded.activities, search, activity_type, sort),
            skipped=loaded.skipped,
            skipped_ids=list(loaded.skipped_ids),
        )
        return OperationResult.ok("list_activities", listing)

    def get_activity(self, activity_id: str) -> OperationResult:
        try:
            return OperationResult.ok("get_activity", self.repository.load_by_id(activity_id))
        except ActivityTrackerError as e:
            return OperationResult.failed("get_activity", e)

    def update_activity(
        self,
        activity_id: str,
        name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OperationResult:
        """
        Edit the name or notes of a stored activity.

        Neither field feeds the statistics, so the aggregate is left alone.
        """
        changes: Dict[str, Any] = {}
        if name is not None:
            if not name.strip():
                return OperationResult.failed(
                    "update_activity", ValidationError("Activity name cannot be blank", field="name")
                )
            changes["name"] = name.strip()
        if notes is not None:
            changes["notes"] = notes or None

        try:
            activity = self.repository.load_by_id(activity_id)
            if changes:
                activity = activity.model_copy(update=changes)
                self.repository.save(activity)
        except ActivityTrackerError as e:
            return OperationResult.failed("update_activity", e)

        fields = ", ".join(changes) or "nothing"
        logger.info(f"Updated activity {activity_id}: {fields}")
        return OperationResult.ok("update_activity", activity)

    def delete_activity(self, activity_id: str) -> OperationResult:
        """
        Delete an activity from history.

        Statistics are left as they are; call rebuild_statistics() to bring
        them back in line with the remaining history.
        """
        try:
            deleted = self.repository.delete(activity_id)
        except ActivityTrackerError as e:
            return OperationResult.failed("delete_activity", e)
        if not deleted:
            return OperationResult.failed("delete_activity", ActivityNotFoundError(activity_id))
        return OperationResult.ok("delete_activity", activity_id)

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_statistics(self) -> UserStatistics:
        return self.aggregator.snapshot()

    def weekly_summary(self) -> WeeklySummary:
        return self.aggregator.weekly_summary()

    def monthly_summary(self) -> MonthlySummary:
        return self.aggregator.monthly_summary()

    def personal_records(self, activity_type: Optional[ActivityType] = None) -> List[PersonalRecord]:
        return self.aggregator.personal_records(activity_type)

    def active_streaks(self) -> List[Streak]:
        return self.aggregator.active_streaks()

    def rebuild_statistics(self) -> OperationResult:
        """Recompute statistics from the full history and store the snapshot."""
        try:
            loaded = self.repository.load_all()
        except ActivityTrackerError as e:
            result = OperationResult.failed("rebuild_statistics", e)
            self._notify(result)
            return result

        with self._stats_lock:
            stats = self.aggregator.rebuild(loaded.activities)
            result = self._save_statistics(stats, "rebuild_statistics", stats)

        if loaded.skipped:
            logger.warning(f"Rebuild ignored {loaded.skipped} corrupt activities")
        self._notify(result)
        return result

    def verify_statistics(self) -> OperationResult:
        """
        Check the statistics for inconsistencies and rebuild if any are found.

        Returns:
            Result whose value is {"issues": [...], "rebuilt": bool}
        """
        issues = self.aggregator.check()
        if not issues:
            return OperationResult.ok("verify_statistics", {"issues": [], "rebuilt": False})

        for issue in issues:
            logger.warning(f"Statistics inconsistency: {issue}")
        rebuilt = self.rebuild_statistics()
        if not rebuilt.success:
            return OperationResult.failed(
                "verify_statistics",
                StatisticsConsistencyError(issues, reason=rebuilt.error_message),
            )

        remaining = self.aggregator.check()
        if remaining:
            error = StatisticsConsistencyError(remaining, reason="rebuild left issues behind")
            logger.error(error.message)
            return OperationResult.failed("verify_statistics", error)
        return OperationResult.ok("verify_statistics", {"issues": issues, "rebuilt": True})

    def progress(self) -> OperationResult:
        try:
            loaded = self.repository.load_all()
        except ActivityTrackerError as e:
            return OperationResult.failed("progress", e)
        series: ProgressSeries = progress_series(loaded.activities, self._now().date())
        return OperationResult.ok("progress", series)

    def goal_progress(self, goals: List[FitnessGoal]) -> OperationResult:
        try:
            loaded = self.repository.load_all()
        except ActivityTrackerError as e:
            return OperationResult.failed("goal_progress", e)
        today = self._now().date()
        results: List[GoalProgress] = [
            goal_progress(goal, loaded.activities, today) for goal in goals
        ]
        return OperationResult.ok("goal_progress", results)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting background work and wait for pending persistence."""
        self._executor.shutdown(wait=wait)
        logger.info("Activity service shut down")
