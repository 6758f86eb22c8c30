"""
Statistics aggregation over the activity history.

Handles:
- Incremental updates of UserStatistics as activities are finalized
- Full rebuild from history (the repair path after deletions or corruption)
- Consistency checks on derived state
- The statistics read model (weekly/monthly summaries, records, streaks)
"""

import calendar
import logging
import threading
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from ..models.activity import Activity, ActivityType
from ..models.statistics import (
    MonthlyStats,
    MonthlySummary,
    PersonalRecord,
    RecordKind,
    Streak,
    StreakType,
    UserStatistics,
    WeeklyStats,
    WeeklySummary,
)
from .streaks import STREAK_CADENCE, is_streak_active, qualifies, update_streak

logger = logging.getLogger(__name__)


def week_start(day: date) -> date:
    """Monday of the calendar week containing day."""
    return day - timedelta(days=day.weekday())


def record_value(activity: Activity, kind: RecordKind) -> Optional[float]:
    """
    Value an activity contributes to a record kind, or None if it has none.

    Pace needs a positive distance and duration; elevation needs a recorded
    positive gain.
    """
    if kind == RecordKind.LONGEST_DISTANCE:
        return activity.distance
    if kind == RecordKind.LONGEST_DURATION:
        return activity.duration
    if kind == RecordKind.FASTEST_PACE:
        if activity.distance > 0 and activity.duration > 0:
            return activity.pace_min_per_km
        return None
    if kind == RecordKind.MOST_CALORIES_BURNED:
        return float(activity.calories)
    if kind == RecordKind.HIGHEST_ELEVATION_GAIN:
        if activity.elevation_gain is not None and activity.elevation_gain > 0:
            return activity.elevation_gain
        return None
    return None


def _is_better(kind: RecordKind, candidate: float, current: float) -> bool:
    if kind.lower_is_better:
        return candidate < current
    return candidate > current


# =============================================================================
# Update steps
# =============================================================================

def _update_favorite(stats: UserStatistics, activity_type: ActivityType) -> None:
    stats.activity_type_counts[activity_type] = stats.activity_type_counts.get(activity_type, 0) + 1
    stats.activity_type_last_seen[activity_type] = stats.total_activities

    stats.favorite_activity_type = max(
        stats.activity_type_counts,
        key=lambda t: (stats.activity_type_counts[t], stats.activity_type_last_seen.get(t, 0)),
    )


def _update_personal_records(stats: UserStatistics, activity: Activity) -> List[PersonalRecord]:
    """Create or overwrite records the activity beats. Returns the changed records."""
    changed: List[PersonalRecord] = []

    for kind in RecordKind:
        value = record_value(activity, kind)
        if value is None:
            continue

        existing = stats.get_record(activity.activity_type, kind)
        if existing is None:
            record = PersonalRecord(
                activity_type=activity.activity_type,
                record_kind=kind,
                value=value,
                achieved_at=activity.start_time,
                activity_id=activity.id,
            )
            stats.personal_records.append(record)
            changed.append(record)
        elif _is_better(kind, value, existing.value):
            logger.info(
                f"New {kind.value} record for {activity.activity_type.value}: "
                f"{value:.2f} (was {existing.value:.2f})"
            )
            existing.value = value
            existing.achieved_at = activity.start_time
            existing.activity_id = activity.id
            changed.append(existing)

    return changed


def _update_weekly_average(stats: UserStatistics, since: date, today: date) -> None:
    weeks = max((today - since).days / 7.0, 1.0)
    stats.average_workouts_per_week = stats.total_activities / weeks


def _update_monthly_stats(stats: UserStatistics, activity: Activity) -> None:
    month, year = activity.start_time.month, activity.start_time.year
    entry = next(
        (m for m in stats.monthly_stats if m.month == month and m.year == year),
        None,
    )
    if entry is None:
        entry = MonthlyStats(month=month, year=year)
        stats.monthly_stats.append(entry)

    entry.total_activities += 1
    entry.total_distance += activity.distance
    entry.total_duration += activity.duration
    entry.total_calories += activity.calories
    weeks_in_month = calendar.monthrange(year, month)[1] / 7.0
    entry.average_workouts_per_week = entry.total_activities / weeks_in_month


def _update_weekly_stats(stats: UserStatistics, activity: Activity) -> None:
    start = week_start(activity.start_time.date())
    entry = next((w for w in stats.weekly_stats if w.week_start_date == start), None)
    if entry is None:
        entry = WeeklyStats(week_start_date=start)
        stats.weekly_stats.append(entry)

    entry.total_activities += 1
    entry.total_distance += activity.distance
    entry.total_duration += activity.duration
    entry.total_calories += activity.calories
    entry.average_workouts_per_day = entry.total_activities / 7.0


def _update_streaks(stats: UserStatistics, activity: Activity, today: date) -> None:
    activity_day = activity.start_time.date()

    for streak_type in STREAK_CADENCE:
        if not qualifies(streak_type, activity):
            continue
        existing = stats.get_streak(streak_type)
        updated = update_streak(existing, streak_type, activity_day, today)
        if existing is None:
            stats.streaks.append(updated)
        else:
            stats.streaks[stats.streaks.index(existing)] = updated

    daily = stats.get_streak(StreakType.DAILY_WORKOUT)
    if daily is not None:
        stats.current_streak = daily.current_count
        stats.longest_streak = daily.longest_count


# =============================================================================
# Public operations
# =============================================================================

def update_statistics(
    stats: UserStatistics,
    activity: Activity,
    account_created_at: Optional[date] = None,
    now: Optional[datetime] = None,
) -> UserStatistics:
    """
    Fold one finalized activity into the statistics.

    Must be called at most once per activity: a second call for the same
    activity counts it twice. The input statistics are not modified.

    Args:
        stats: Current statistics
        activity: The newly finalized activity
        account_created_at: Start of the weekly-average window. Defaults to
            the day of the first activity ever folded in.
        now: Current time (defaults to datetime.now())

    Returns:
        Updated copy of the statistics
    """
    now = now or datetime.now()
    today = now.date()
    updated = stats.model_copy(deep=True)

    # 1. Running totals
    updated.total_activities += 1
    updated.total_distance += activity.distance
    updated.total_duration += activity.duration
    updated.total_calories_burned += activity.calories
    if activity.elevation_gain:
        updated.total_elevation_gain += activity.elevation_gain

    # 2. Favorite type
    _update_favorite(updated, activity.activity_type)

    # 3. Personal records
    _update_personal_records(updated, activity)

    # 4. Weekly average
    if updated.tracking_since is None or activity.start_time.date() < updated.tracking_since:
        updated.tracking_since = activity.start_time.date()
    _update_weekly_average(updated, account_created_at or updated.tracking_since, today)

    # 5. Rollups
    _update_monthly_stats(updated, activity)
    _update_weekly_stats(updated, activity)

    # 6. Streaks
    _update_streaks(updated, activity, today)

    updated.last_updated = now
    return updated


def rebuild_statistics(
    activities: Iterable[Activity],
    account_created_at: Optional[date] = None,
    now: Optional[datetime] = None,
) -> UserStatistics:
    """
    Recompute all statistics from the activity history.

    The history is the source of truth; this is the recovery path after
    deletions or detected corruption.
    """
    ordered = sorted(activities, key=lambda a: (a.start_time, a.id))
    stats = UserStatistics()
    for activity in ordered:
        stats = update_statistics(stats, activity, account_created_at, now)

    if not ordered:
        stats.last_updated = now or datetime.now()

    logger.info(f"Rebuilt statistics from {len(ordered)} activities")
    return stats


def find_inconsistencies(stats: UserStatistics) -> List[str]:
    """
    Check derived state against its own invariants.

    Returns:
        Human-readable issues; empty when consistent
    """
    issues: List[str] = []

    for field_name in (
        "total_activities",
        "total_distance",
        "total_duration",
        "total_calories_burned",
        "total_elevation_gain",
    ):
        if getattr(stats, field_name) < 0:
            issues.append(f"{field_name} is negative")

    monthly_total = sum(m.total_activities for m in stats.monthly_stats)
    if monthly_total != stats.total_activities:
        issues.append(
            f"monthly rollups count {monthly_total} activities, totals say {stats.total_activities}"
        )

    weekly_total = sum(w.total_activities for w in stats.weekly_stats)
    if weekly_total != stats.total_activities:
        issues.append(
            f"weekly rollups count {weekly_total} activities, totals say {stats.total_activities}"
        )

    type_total = sum(stats.activity_type_counts.values())
    if type_total != stats.total_activities:
        issues.append(
            f"per-type counts sum to {type_total}, totals say {stats.total_activities}"
        )

    keys = Counter((r.activity_type, r.record_kind) for r in stats.personal_records)
    for (activity_type, kind), count in keys.items():
        if count > 1:
            issues.append(f"{count} records for {activity_type.value}/{kind.value}")

    return issues


# =============================================================================
# Read model
# =============================================================================

def weekly_summary(stats: UserStatistics, today: date) -> WeeklySummary:
    """Summary of the calendar week containing today."""
    start = week_start(today)
    entry = next((w for w in stats.weekly_stats if w.week_start_date == start), None)
    if entry is None:
        return WeeklySummary(week_start_date=start)
    return WeeklySummary(**entry.model_dump())


def monthly_summary(stats: UserStatistics, today: date) -> MonthlySummary:
    """Summary of the calendar month containing today."""
    entry = next(
        (m for m in stats.monthly_stats if m.month == today.month and m.year == today.year),
        None,
    )
    if entry is None:
        return MonthlySummary(month=today.month, year=today.year)
    return MonthlySummary(**entry.model_dump())


def active_streaks(stats: UserStatistics, today: date) -> List[Streak]:
    """Streaks whose last active period is the current or previous one."""
    result = []
    for streak in stats.streaks:
        if is_streak_active(streak, today):
            result.append(streak.model_copy(update={"is_active": True}))
    return result


class StatisticsAggregator:
    """
    Single writer for the UserStatistics aggregate.

    Updates are serialized by a lock; readers always get deep copies so a
    snapshot never changes under them.
    """

    def __init__(
        self,
        statistics: Optional[UserStatistics] = None,
        account_created_at: Optional[date] = None,
        now_fn: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the aggregator.

        Args:
            statistics: Previously persisted statistics, if any
            account_created_at: Start of the weekly-average window
            now_fn: Clock used for "today"
        """
        self._stats = statistics.model_copy(deep=True) if statistics else UserStatistics()
        self._account_created_at = account_created_at
        self._now = now_fn
        self._lock = threading.Lock()

    def snapshot(self) -> UserStatistics:
        """Get an immutable-by-convention copy of the current statistics."""
        with self._lock:
            return self._stats.model_copy(deep=True)

    def apply(self, activity: Activity) -> UserStatistics:
        """Fold a newly finalized activity in. At most once per activity."""
        with self._lock:
            self._stats = update_statistics(
                self._stats, activity, self._account_created_at, self._now()
            )
            return self._stats.model_copy(deep=True)

    def rebuild(self, activities: Iterable[Activity]) -> UserStatistics:
        """Replace the aggregate with a full recompute from history."""
        rebuilt = rebuild_statistics(activities, self._account_created_at, self._now())
        with self._lock:
            self._stats = rebuilt
            return self._stats.model_copy(deep=True)

    def replace(self, statistics: UserStatistics) -> None:
        with self._lock:
            self._stats = statistics.model_copy(deep=True)

    def check(self) -> List[str]:
        with self._lock:
            return find_inconsistencies(self._stats)

    # -------------------------------------------------------------------------
    # Read model
    # -------------------------------------------------------------------------

    def weekly_summary(self) -> WeeklySummary:
        return weekly_summary(self.snapshot(), self._now().date())

    def monthly_summary(self) -> MonthlySummary:
        return monthly_summary(self.snapshot(), self._now().date())

    def personal_records(
        self, activity_type: Optional[ActivityType] = None
    ) -> List[PersonalRecord]:
        records = self.snapshot().personal_records
        if activity_type is not None:
            records = [r for r in records if r.activity_type == activity_type]
        return records

    def active_streaks(self) -> List[Streak]:
        return active_streaks(self.snapshot(), self._now().date())

    def records_by_type(self) -> Dict[ActivityType, List[PersonalRecord]]:
        grouped: Dict[ActivityType, List[PersonalRecord]] = {}
        for record in self.snapshot().personal_records:
            grouped.setdefault(record.activity_type, []).append(record)
        return grouped
