"""
Streak tracking.

Every streak type follows the same update contract and differs only in its
cadence (how calendar days map to periods) and in which activities qualify.
"""

import logging
from datetime import date
from typing import Callable, Dict, Optional

from ..models.activity import Activity, ActivityType
from ..models.statistics import Streak, StreakType

logger = logging.getLogger(__name__)


def _daily_period(day: date) -> int:
    return day.toordinal()


def _weekly_period(day: date) -> int:
    # date.min (ordinal 1) is a Monday, so this buckets Monday-Sunday weeks
    return (day.toordinal() - 1) // 7


def _monthly_period(day: date) -> int:
    return day.year * 12 + day.month - 1


STREAK_CADENCE: Dict[StreakType, Callable[[date], int]] = {
    StreakType.DAILY_WORKOUT: _daily_period,
    StreakType.RUNNING_STREAK: _daily_period,
    StreakType.WEEKLY_GOAL: _weekly_period,
    StreakType.MONTHLY_CHALLENGE: _monthly_period,
}


def qualifies(streak_type: StreakType, activity: Activity) -> bool:
    """Check whether an activity counts toward a streak type."""
    if streak_type == StreakType.RUNNING_STREAK:
        return activity.activity_type == ActivityType.RUNNING
    return True


def periods_between(streak_type: StreakType, earlier: date, later: date) -> int:
    """Whole cadence periods from one calendar day to another."""
    period = STREAK_CADENCE[streak_type]
    return period(later) - period(earlier)


def is_streak_active(streak: Streak, today: date) -> bool:
    """A streak is active while its last period is the current or previous one."""
    return periods_between(streak.streak_type, streak.last_active_date, today) <= 1


def update_streak(
    streak: Optional[Streak],
    streak_type: StreakType,
    activity_day: date,
    today: date,
) -> Streak:
    """
    Apply one activity day to a streak.

    Args:
        streak: Existing streak of this type, or None
        streak_type: Type of the streak being updated
        activity_day: Calendar day of the activity (time of day discarded)
        today: Current calendar day, used for the active flag

    Returns:
        A new Streak; the input is not modified
    """
    if streak is None:
        return Streak(
            streak_type=streak_type,
            current_count=1,
            longest_count=1,
            start_date=activity_day,
            last_active_date=activity_day,
            is_active=periods_between(streak_type, activity_day, today) <= 1,
        )

    updated = streak.model_copy()
    gap = periods_between(streak_type, streak.last_active_date, activity_day)

    if gap == 1:
        updated.current_count += 1
        updated.longest_count = max(updated.longest_count, updated.current_count)
        updated.last_active_date = activity_day
    elif gap == 0:
        # Same period, nothing to count
        pass
    elif gap > 1:
        updated.current_count = 1
        updated.longest_count = max(updated.longest_count, 1)
        updated.start_date = activity_day
        updated.last_active_date = activity_day
    else:
        # Activity older than the streak's last period: leave the streak alone
        logger.debug(
            f"Ignoring {streak_type.value} update for {activity_day}, "
            f"last active {streak.last_active_date}"
        )

    updated.is_active = is_streak_active(updated, today)
    return updated
