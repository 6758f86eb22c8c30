"""Tests for statistics aggregation.

This module tests:
1. Running totals and the at-most-once contract
2. Personal records (creation, monotonicity, eligibility)
3. Favorite activity type with tie-breaking
4. Weekly average, monthly and weekly rollups
5. Streak mirroring
6. Rebuild from history and consistency checks
7. The StatisticsAggregator read model
"""

import random
from datetime import date, datetime, timedelta

import pytest

from activity_tracker.analysis.statistics import (
    StatisticsAggregator,
    find_inconsistencies,
    rebuild_statistics,
    update_statistics,
    week_start,
)
from activity_tracker.models.activity import ActivityType
from activity_tracker.models.statistics import (
    PersonalRecord,
    RecordKind,
    StreakType,
    UserStatistics,
)

NOW = datetime(2024, 6, 20, 12, 0)
JUNE_3 = datetime(2024, 6, 3, 7, 0)


def fold(activities, account_created_at=None, now=NOW):
    stats = UserStatistics()
    for activity in activities:
        stats = update_statistics(stats, activity, account_created_at, now)
    return stats


def comparable(stats: UserStatistics) -> dict:
    """Dump without the generated record ids."""
    data = stats.model_dump()
    for record in data["personal_records"]:
        record.pop("id")
    return data


class TestTotals:
    """Tests for running totals."""

    def test_totals_accumulate(self, make_activity):
        stats = fold([
            make_activity(distance=3000, duration=1200, elevation_gain=40),
            make_activity(ActivityType.CYCLING, start=JUNE_3 + timedelta(days=1),
                          distance=20000, duration=3600),
        ])
        assert stats.total_activities == 2
        assert stats.total_distance == 23000
        assert stats.total_duration == 4800
        assert stats.total_calories_burned == 240 + 480
        assert stats.total_elevation_gain == 40
        assert stats.last_updated == NOW

    def test_input_is_not_modified(self, make_activity):
        stats = UserStatistics()
        update_statistics(stats, make_activity(), now=NOW)
        assert stats.total_activities == 0
        assert stats.personal_records == []

    def test_double_update_double_counts(self, make_activity):
        """Updating twice with one activity counts it twice."""
        activity = make_activity(distance=4000)
        stats = fold([activity, activity])
        assert stats.total_activities == 2
        assert stats.total_distance == 8000
        assert stats.monthly_stats[0].total_activities == 2


class TestPersonalRecords:
    """Tests for personal record tracking."""

    def test_longest_distance_references_best_activity(self, make_activity):
        """Running 3000m then 7000m keeps a 7000m record pointing at the second."""
        first = make_activity(distance=3000)
        second = make_activity(distance=7000, start=JUNE_3 + timedelta(days=1))
        stats = fold([first, second])

        record = stats.get_record(ActivityType.RUNNING, RecordKind.LONGEST_DISTANCE)
        assert record.value == 7000
        assert record.activity_id == second.id
        assert record.achieved_at == second.start_time

    def test_one_record_per_type_and_kind(self, make_activity):
        stats = fold([
            make_activity(distance=d, start=JUNE_3 + timedelta(days=i))
            for i, d in enumerate([1000, 2000, 3000])
        ])
        distance_records = [
            r for r in stats.personal_records
            if r.record_kind == RecordKind.LONGEST_DISTANCE
        ]
        assert len(distance_records) == 1

    def test_records_are_monotonic(self, make_activity):
        distances = [3000, 2000, 7000, 5000, 6999]
        stats = UserStatistics()
        seen = []
        for i, distance in enumerate(distances):
            activity = make_activity(distance=distance, duration=1800, start=JUNE_3 + timedelta(days=i))
            stats = update_statistics(stats, activity, now=NOW)
            seen.append(stats.get_record(ActivityType.RUNNING, RecordKind.LONGEST_DISTANCE).value)
        assert seen == [3000, 3000, 7000, 7000, 7000]

    def test_fastest_pace_is_lower_is_better(self, make_activity):
        stats = UserStatistics()
        paces = []
        for i, duration in enumerate([1800, 1500, 2000]):
            activity = make_activity(distance=5000, duration=duration, start=JUNE_3 + timedelta(days=i))
            stats = update_statistics(stats, activity, now=NOW)
            paces.append(stats.get_record(ActivityType.RUNNING, RecordKind.FASTEST_PACE).value)
        assert paces == pytest.approx([6.0, 5.0, 5.0])

    def test_records_are_per_activity_type(self, make_activity):
        stats = fold([
            make_activity(ActivityType.RUNNING, distance=5000),
            make_activity(ActivityType.CYCLING, distance=30000, start=JUNE_3 + timedelta(hours=5)),
        ])
        assert stats.get_record(ActivityType.RUNNING, RecordKind.LONGEST_DISTANCE).value == 5000
        assert stats.get_record(ActivityType.CYCLING, RecordKind.LONGEST_DISTANCE).value == 30000

    def test_no_pace_record_without_distance(self, make_activity):
        stats = fold([make_activity(ActivityType.YOGA, distance=0, duration=3600)])
        assert stats.get_record(ActivityType.YOGA, RecordKind.FASTEST_PACE) is None
        assert stats.get_record(ActivityType.YOGA, RecordKind.LONGEST_DURATION).value == 3600

    def test_elevation_record_needs_elevation(self, make_activity):
        stats = fold([make_activity(ActivityType.HIKING)])
        assert stats.get_record(ActivityType.HIKING, RecordKind.HIGHEST_ELEVATION_GAIN) is None

        stats = update_statistics(
            stats, make_activity(ActivityType.HIKING, elevation_gain=350), now=NOW
        )
        record = stats.get_record(ActivityType.HIKING, RecordKind.HIGHEST_ELEVATION_GAIN)
        assert record.value == 350


class TestFavoriteActivity:
    """Tests for favorite activity type inference."""

    def test_most_frequent_type_wins(self, make_activity):
        stats = fold([
            make_activity(ActivityType.RUNNING),
            make_activity(ActivityType.RUNNING, start=JUNE_3 + timedelta(days=1)),
            make_activity(ActivityType.CYCLING, start=JUNE_3 + timedelta(days=2)),
        ])
        assert stats.favorite_activity_type == ActivityType.RUNNING

    def test_tie_goes_to_most_recently_incremented(self, make_activity):
        stats = UserStatistics()
        favorites = []
        for i, activity_type in enumerate([
            ActivityType.RUNNING,
            ActivityType.CYCLING,
            ActivityType.RUNNING,
            ActivityType.CYCLING,
        ]):
            activity = make_activity(activity_type, start=JUNE_3 + timedelta(days=i))
            stats = update_statistics(stats, activity, now=NOW)
            favorites.append(stats.favorite_activity_type)

        assert favorites == [
            ActivityType.RUNNING,
            ActivityType.CYCLING,
            ActivityType.RUNNING,
            ActivityType.CYCLING,
        ]


class TestRollups:
    """Tests for weekly average and calendar rollups."""

    def test_weekly_average_from_account_creation(self, make_activity):
        activities = [make_activity(start=JUNE_3 + timedelta(days=i)) for i in range(4)]
        stats = fold(activities, account_created_at=date(2024, 6, 6))
        # 14 days since account creation
        assert stats.average_workouts_per_week == pytest.approx(2.0)

    def test_weekly_average_floor_of_one_week(self, make_activity):
        activities = [make_activity(start=JUNE_3 + timedelta(days=i)) for i in range(3)]
        stats = fold(activities, account_created_at=date(2024, 6, 18))
        assert stats.average_workouts_per_week == pytest.approx(3.0)

    def test_weekly_average_defaults_to_first_activity(self, make_activity):
        activities = [make_activity(start=JUNE_3 + timedelta(days=i)) for i in range(2)]
        stats = fold(activities, now=datetime(2024, 7, 1, 12, 0))
        # 28 days since June 3
        assert stats.average_workouts_per_week == pytest.approx(0.5)
        assert stats.tracking_since == date(2024, 6, 3)

    def test_monthly_rollup(self, make_activity):
        stats = fold([
            make_activity(distance=5000, start=JUNE_3),
            make_activity(distance=3000, start=datetime(2024, 6, 28, 18, 0)),
            make_activity(distance=8000, start=datetime(2024, 7, 1, 6, 0)),
        ], now=datetime(2024, 7, 2))

        june = next(m for m in stats.monthly_stats if m.month == 6 and m.year == 2024)
        assert june.total_activities == 2
        assert june.total_distance == 8000
        assert june.average_workouts_per_week == pytest.approx(2 / (30 / 7))
        assert len(stats.monthly_stats) == 2

    def test_weekly_rollup_starts_on_monday(self, make_activity):
        sunday = datetime(2024, 6, 9, 9, 0)
        stats = fold([
            make_activity(start=JUNE_3),
            make_activity(start=sunday),
            make_activity(start=sunday + timedelta(days=1)),
        ])
        weeks = {w.week_start_date: w for w in stats.weekly_stats}
        assert weeks[date(2024, 6, 3)].total_activities == 2
        assert weeks[date(2024, 6, 3)].average_workouts_per_day == pytest.approx(2 / 7)
        assert weeks[date(2024, 6, 10)].total_activities == 1

    def test_week_start(self):
        assert week_start(date(2024, 6, 9)) == date(2024, 6, 3)
        assert week_start(date(2024, 6, 3)) == date(2024, 6, 3)


class TestStreakMirroring:
    """Tests for streaks inside UserStatistics."""

    def test_daily_streak_sequence(self, make_activity):
        """Activities on D, D+1, D+3 give current streaks 1, 2, 1."""
        stats = UserStatistics()
        currents = []
        for offset in (0, 1, 3):
            activity = make_activity(start=JUNE_3 + timedelta(days=offset))
            stats = update_statistics(stats, activity, now=JUNE_3 + timedelta(days=offset))
            currents.append(stats.current_streak)

        assert currents == [1, 2, 1]
        assert stats.longest_streak == 2

    def test_running_streak_ignores_other_types(self, make_activity):
        stats = fold([
            make_activity(ActivityType.RUNNING, start=JUNE_3),
            make_activity(ActivityType.CYCLING, start=JUNE_3 + timedelta(days=1)),
        ])
        assert stats.get_streak(StreakType.RUNNING_STREAK).current_count == 1
        assert stats.get_streak(StreakType.DAILY_WORKOUT).current_count == 2


class TestRebuild:
    """Tests for rebuild_statistics and consistency checks."""

    def test_rebuild_equals_incremental(self, make_activity):
        activities = [
            make_activity(
                random.choice([ActivityType.RUNNING, ActivityType.CYCLING, ActivityType.HIKING]),
                start=JUNE_3 + timedelta(days=i // 2, hours=i),
                distance=1000 * (i + 1),
                duration=600 * (i % 5 + 1),
                elevation_gain=float(i * 10) if i % 3 else None,
            )
            for i in range(12)
        ]
        incremental = fold(activities, account_created_at=date(2024, 5, 1))

        shuffled = list(activities)
        random.shuffle(shuffled)
        rebuilt = rebuild_statistics(shuffled, account_created_at=date(2024, 5, 1), now=NOW)

        assert comparable(rebuilt) == comparable(incremental)

    def test_rebuild_of_empty_history(self):
        stats = rebuild_statistics([], now=NOW)
        assert stats.total_activities == 0
        assert stats.last_updated == NOW

    def test_consistent_stats_have_no_issues(self, make_activity):
        stats = fold([make_activity(start=JUNE_3 + timedelta(days=i)) for i in range(3)])
        assert find_inconsistencies(stats) == []

    def test_detects_count_mismatch(self, make_activity):
        stats = fold([make_activity()])
        stats.total_activities = 5
        issues = find_inconsistencies(stats)
        assert any("monthly" in issue for issue in issues)
        assert any("per-type" in issue for issue in issues)

    def test_detects_negative_totals_and_duplicate_records(self, make_activity):
        stats = fold([make_activity()])
        stats.total_distance = -1
        stats.personal_records.append(
            PersonalRecord(
                activity_type=ActivityType.RUNNING,
                record_kind=RecordKind.LONGEST_DISTANCE,
                value=1.0,
                achieved_at=JUNE_3,
            )
        )
        issues = find_inconsistencies(stats)
        assert "total_distance is negative" in issues
        assert any("records for running/longest_distance" in issue for issue in issues)


class TestStatisticsAggregator:
    """Tests for the single-writer aggregator."""

    @pytest.fixture
    def aggregator(self, clock):
        return StatisticsAggregator(now_fn=clock)

    def test_snapshot_is_a_copy(self, aggregator, make_activity):
        aggregator.apply(make_activity())
        snapshot = aggregator.snapshot()
        snapshot.total_activities = 99
        assert aggregator.snapshot().total_activities == 1

    def test_starts_from_existing_statistics(self, make_activity, clock):
        seed = fold([make_activity()])
        aggregator = StatisticsAggregator(statistics=seed, now_fn=clock)
        aggregator.apply(make_activity(start=JUNE_3 + timedelta(days=1)))
        assert aggregator.snapshot().total_activities == 2
        assert seed.total_activities == 1

    def test_weekly_and_monthly_summary(self, aggregator, make_activity, clock):
        aggregator.apply(make_activity(distance=5000, start=clock.now))
        aggregator.apply(make_activity(distance=2000, start=clock.now - timedelta(days=7)))

        weekly = aggregator.weekly_summary()
        assert weekly.week_start_date == date(2024, 6, 3)
        assert weekly.total_activities == 1
        assert weekly.total_distance == 5000

        monthly = aggregator.monthly_summary()
        assert (monthly.month, monthly.year) == (6, 2024)
        assert monthly.total_activities == 1

    def test_empty_summaries(self, aggregator):
        assert aggregator.weekly_summary().total_activities == 0
        assert aggregator.monthly_summary().total_distance == 0

    def test_personal_records_filter(self, aggregator, make_activity):
        aggregator.apply(make_activity(ActivityType.RUNNING))
        aggregator.apply(make_activity(ActivityType.CYCLING, start=JUNE_3 + timedelta(hours=3)))

        running = aggregator.personal_records(ActivityType.RUNNING)
        assert running and all(r.activity_type == ActivityType.RUNNING for r in running)
        assert set(aggregator.records_by_type()) == {ActivityType.RUNNING, ActivityType.CYCLING}

    def test_active_streaks(self, aggregator, make_activity, clock):
        aggregator.apply(make_activity(start=clock.now))
        types = {s.streak_type for s in aggregator.active_streaks()}
        assert types == {
            StreakType.DAILY_WORKOUT,
            StreakType.RUNNING_STREAK,
            StreakType.WEEKLY_GOAL,
            StreakType.MONTHLY_CHALLENGE,
        }

        clock.advance(3 * 86400)
        types = {s.streak_type for s in aggregator.active_streaks()}
        assert StreakType.DAILY_WORKOUT not in types
        assert StreakType.WEEKLY_GOAL in types

    def test_check_and_rebuild(self, aggregator, make_activity):
        activities = [make_activity(start=JUNE_3 + timedelta(days=i)) for i in range(3)]
        for activity in activities:
            aggregator.apply(activity)
        assert aggregator.check() == []

        rebuilt = aggregator.rebuild(activities[:2])
        assert rebuilt.total_activities == 2
        assert aggregator.snapshot().total_activities == 2
