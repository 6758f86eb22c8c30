"""
History queries, progress series and goal progress.

Everything here is a pure function of an activity list, so the same code
serves the API, the CLI and the tests.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from ..models.activity import Activity, ActivitySortOrder, ActivityType
from ..models.statistics import (
    FitnessGoal,
    GoalProgress,
    GoalType,
    ProgressPoint,
    ProgressSeries,
)
from .statistics import week_start

DAILY_BUCKETS = 7
WEEKLY_BUCKETS = 4
MONTHLY_BUCKETS = 12


# =============================================================================
# History queries
# =============================================================================

def filter_activities(
    activities: Iterable[Activity],
    search: Optional[str] = None,
    activity_type: Optional[ActivityType] = None,
    sort: ActivitySortOrder = ActivitySortOrder.DATE_DESCENDING,
) -> List[Activity]:
    """
    Search, filter and sort an activity history.

    Args:
        activities: History to query
        search: Case-insensitive text matched against the name or type name
        activity_type: Only keep activities of this type
        sort: Result ordering

    Returns:
        Matching activities in the requested order
    """
    result = list(activities)

    if search:
        needle = search.lower()
        result = [
            a for a in result
            if needle in a.name.lower() or needle in a.activity_type.display_name.lower()
        ]

    if activity_type is not None:
        result = [a for a in result if a.activity_type == activity_type]

    if sort == ActivitySortOrder.DATE_ASCENDING:
        result.sort(key=lambda a: a.start_time)
    elif sort == ActivitySortOrder.DISTANCE_DESCENDING:
        result.sort(key=lambda a: a.distance, reverse=True)
    elif sort == ActivitySortOrder.DURATION_DESCENDING:
        result.sort(key=lambda a: a.duration, reverse=True)
    else:
        result.sort(key=lambda a: a.start_time, reverse=True)

    return result


def total_distance(activities: Iterable[Activity]) -> float:
    return sum(a.distance for a in activities)


def total_duration(activities: Iterable[Activity]) -> float:
    return sum(a.duration for a in activities)


def total_calories(activities: Iterable[Activity]) -> int:
    return sum(a.calories for a in activities)


def average_pace(activities: Iterable[Activity]) -> Optional[float]:
    """Mean pace (min/km) over completed activities that covered distance."""
    paces = [
        a.pace_min_per_km for a in activities
        if a.is_completed and a.distance > 0
    ]
    if not paces:
        return None
    return sum(paces) / len(paces)


# =============================================================================
# Progress series
# =============================================================================

def _bucket(activities: List[Activity], first: date, last: date) -> ProgressPoint:
    inside = [a for a in activities if first <= a.start_time.date() <= last]
    return ProgressPoint(
        period_start=first,
        period_end=last,
        activities=len(inside),
        distance=total_distance(inside),
        duration=total_duration(inside),
        calories=total_calories(inside),
    )


def _shift_month(day: date, months: int) -> date:
    index = day.year * 12 + day.month - 1 + months
    return date(index // 12, index % 12 + 1, 1)


def progress_series(activities: Iterable[Activity], today: date) -> ProgressSeries:
    """
    Bucket the history into daily, weekly and monthly progress.

    Daily covers the last 7 days including today, weekly the last 4
    calendar weeks and monthly the last 12 calendar months. Each list is
    ordered oldest first.
    """
    history = list(activities)

    daily = []
    for offset in range(DAILY_BUCKETS - 1, -1, -1):
        day = today - timedelta(days=offset)
        daily.append(_bucket(history, day, day))

    weekly = []
    this_week = week_start(today)
    for offset in range(WEEKLY_BUCKETS - 1, -1, -1):
        first = this_week - timedelta(weeks=offset)
        weekly.append(_bucket(history, first, first + timedelta(days=6)))

    monthly = []
    for offset in range(MONTHLY_BUCKETS - 1, -1, -1):
        first = _shift_month(today, -offset)
        last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
        monthly.append(_bucket(history, first, last))

    return ProgressSeries(daily=daily, weekly=weekly, monthly=monthly)


# =============================================================================
# Goals
# =============================================================================

def _in_window(activities: List[Activity], first: date, last: date) -> List[Activity]:
    start = datetime.combine(first, time.min)
    end = datetime.combine(last, time.max)
    return [a for a in activities if start <= a.start_time <= end]


def goal_current_value(goal: FitnessGoal, activities: Iterable[Activity], today: date) -> float:
    """
    Current value of a goal's metric.

    Weekly goals look at the calendar week containing today (clipped to the
    goal window); the others look at the whole goal window up to today.
    Running pace is the best (lowest) pace, 0 when there is no running yet.
    """
    history = list(activities)
    window_end = min(goal.target_date, today)

    if goal.goal_type in (GoalType.DISTANCE_PER_WEEK, GoalType.WORKOUTS_PER_WEEK):
        first = max(week_start(today), goal.start_date)
        in_week = _in_window(history, first, window_end)
        if goal.goal_type == GoalType.DISTANCE_PER_WEEK:
            return total_distance(in_week) / 1000
        return float(len(in_week))

    in_window = _in_window(history, goal.start_date, window_end)

    if goal.goal_type == GoalType.CALORIES_BURN:
        return float(total_calories(in_window))

    if goal.goal_type == GoalType.RUNNING_PACE:
        paces = [
            a.pace_min_per_km for a in in_window
            if a.activity_type == ActivityType.RUNNING and a.distance > 0 and a.duration > 0
        ]
        return min(paces) if paces else 0.0

    # Endurance: longest single workout in minutes
    return max((a.duration / 60 for a in in_window), default=0.0)


def goal_progress(goal: FitnessGoal, activities: Iterable[Activity], today: date) -> GoalProgress:
    """
    Compute progress toward a goal from the activity history.

    progress = min(current / target, 1). Pace goals are lower-is-better,
    so they use min(target / current, 1) and stay at 0 until a pace exists.
    """
    current = goal_current_value(goal, activities, today)

    if goal.goal_type == GoalType.RUNNING_PACE:
        progress = min(goal.target_value / current, 1.0) if current > 0 else 0.0
    else:
        progress = min(current / goal.target_value, 1.0)

    return GoalProgress(
        goal_id=goal.id,
        goal_type=goal.goal_type,
        current_value=current,
        target_value=goal.target_value,
        progress=progress,
        progress_percentage=int(progress * 100),
        is_completed=progress >= 1.0,
    )
