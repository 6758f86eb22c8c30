"""Tests for streak updates across cadences."""

from datetime import date, timedelta

from activity_tracker.analysis.streaks import is_streak_active, periods_between, qualifies, update_streak
from activity_tracker.models.activity import ActivityType
from activity_tracker.models.statistics import StreakType

D = date(2024, 6, 3)  # Monday


def apply_days(streak_type, days, today):
    """Feed days into a streak and collect the current count after each."""
    streak, counts = None, []
    for day in days:
        streak = update_streak(streak, streak_type, day, today)
        counts.append(streak.current_count)
    return streak, counts


class TestDailyStreak:
    """Tests for the daily cadence."""

    def test_consecutive_then_gap(self):
        """Days D, D+1, D+3 give counts 1, 2, 1."""
        days = [D, D + timedelta(days=1), D + timedelta(days=3)]
        streak, counts = apply_days(StreakType.DAILY_WORKOUT, days, today=days[-1])
        assert counts == [1, 2, 1]
        assert streak.longest_count == 2
        assert streak.start_date == days[-1]

    def test_same_day_is_unchanged(self):
        streak, counts = apply_days(StreakType.DAILY_WORKOUT, [D, D, D], today=D)
        assert counts == [1, 1, 1]
        assert streak.last_active_date == D

    def test_older_day_leaves_streak_alone(self):
        days = [D, D + timedelta(days=1), D - timedelta(days=5)]
        streak, counts = apply_days(StreakType.DAILY_WORKOUT, days, today=days[1])
        assert counts == [1, 2, 2]
        assert streak.last_active_date == days[1]

    def test_input_not_modified(self):
        first = update_streak(None, StreakType.DAILY_WORKOUT, D, D)
        update_streak(first, StreakType.DAILY_WORKOUT, D + timedelta(days=1), D)
        assert first.current_count == 1

    def test_longest_survives_reset(self):
        days = [D + timedelta(days=i) for i in range(4)] + [D + timedelta(days=10)]
        streak, _ = apply_days(StreakType.DAILY_WORKOUT, days, today=days[-1])
        assert streak.current_count == 1
        assert streak.longest_count == 4


class TestOtherCadences:
    """Tests for weekly, monthly and running streaks."""

    def test_weekly_streak(self):
        days = [D, D + timedelta(days=9), D + timedelta(days=10), D + timedelta(days=24)]
        _, counts = apply_days(StreakType.WEEKLY_GOAL, days, today=days[-1])
        assert counts == [1, 2, 2, 1]

    def test_week_boundary_is_monday(self):
        sunday = D + timedelta(days=6)
        assert periods_between(StreakType.WEEKLY_GOAL, D, sunday) == 0
        assert periods_between(StreakType.WEEKLY_GOAL, sunday, sunday + timedelta(days=1)) == 1

    def test_monthly_streak_across_year_end(self):
        days = [date(2023, 11, 30), date(2023, 12, 1), date(2024, 1, 15), date(2024, 3, 1)]
        _, counts = apply_days(StreakType.MONTHLY_CHALLENGE, days, today=days[-1])
        assert counts == [1, 2, 3, 1]

    def test_running_streak_only_counts_runs(self, make_activity):
        assert qualifies(StreakType.RUNNING_STREAK, make_activity(ActivityType.RUNNING))
        assert not qualifies(StreakType.RUNNING_STREAK, make_activity(ActivityType.CYCLING))
        assert qualifies(StreakType.DAILY_WORKOUT, make_activity(ActivityType.CYCLING))


class TestActiveFlag:
    """Tests for is_streak_active."""

    def test_daily_active_through_yesterday(self):
        streak = update_streak(None, StreakType.DAILY_WORKOUT, D, D)
        assert is_streak_active(streak, D)
        assert is_streak_active(streak, D + timedelta(days=1))
        assert not is_streak_active(streak, D + timedelta(days=2))

    def test_weekly_active_through_last_week(self):
        streak = update_streak(None, StreakType.WEEKLY_GOAL, D, D)
        assert is_streak_active(streak, D + timedelta(days=13))
        assert not is_streak_active(streak, D + timedelta(days=14))

    def test_new_streak_in_the_past_is_inactive(self):
        streak = update_streak(None, StreakType.DAILY_WORKOUT, D, D + timedelta(days=5))
        assert streak.is_active is False
