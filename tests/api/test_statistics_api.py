"""Tests for the statistics API endpoints."""

from datetime import timedelta

import pytest

from activity_tracker.models.activity import ActivityType


@pytest.fixture
def recorded(service, make_activity, clock):
    service.record_activity(
        make_activity(ActivityType.RUNNING, start=clock.now - timedelta(days=1), distance=3000)
    )
    service.record_activity(make_activity(ActivityType.RUNNING, start=clock.now, distance=7000))
    service.record_activity(
        make_activity(ActivityType.HIKING, start=clock.now, distance=9000,
                      duration=7200, elevation_gain=450)
    )


class TestAggregate:
    """Tests for GET /api/v1/statistics."""

    def test_empty_statistics(self, client):
        data = client.get("/api/v1/statistics").json()
        assert data["totalActivities"] == 0
        assert data["favoriteActivityType"] is None
        assert data["personalRecords"] == []

    def test_totals_and_favorite(self, client, recorded):
        data = client.get("/api/v1/statistics").json()
        assert data["totalActivities"] == 3
        assert data["totalDistance"] == 19000
        assert data["totalElevationGain"] == 450
        assert data["favoriteActivityType"] == "running"
        assert data["currentStreak"] == 2


class TestSummaries:
    """Tests for weekly and monthly summaries."""

    def test_weekly(self, client, recorded):
        # The clock is on a Monday, so yesterday belongs to last week
        data = client.get("/api/v1/statistics/weekly").json()
        assert data["weekStartDate"] == "2024-06-03"
        assert data["totalActivities"] == 2
        assert data["totalDistance"] == 16000

    def test_monthly(self, client, recorded):
        data = client.get("/api/v1/statistics/monthly").json()
        assert (data["month"], data["year"]) == (6, 2024)
        assert data["totalActivities"] == 3


class TestRecordsAndStreaks:
    """Tests for personal records and streaks."""

    def test_records_by_type(self, client, recorded):
        records = client.get("/api/v1/statistics/records", params={"type": "running"}).json()
        distance = next(r for r in records if r["recordKind"] == "longest_distance")
        assert distance["value"] == 7000
        assert all(r["activityType"] == "running" for r in records)

    def test_all_records(self, client, recorded):
        records = client.get("/api/v1/statistics/records").json()
        assert {r["activityType"] for r in records} == {"running", "hiking"}
        assert any(r["recordKind"] == "highest_elevation_gain" for r in records)

    def test_active_streaks(self, client, recorded):
        streaks = client.get("/api/v1/statistics/streaks").json()
        daily = next(s for s in streaks if s["type"] == "daily_workout")
        assert daily["currentCount"] == 2
        assert daily["isActive"] is True


class TestProgressAndGoals:
    """Tests for progress series and goal progress."""

    def test_progress_series(self, client, recorded):
        data = client.get("/api/v1/statistics/progress").json()
        assert len(data["daily"]) == 7
        assert len(data["weekly"]) == 4
        assert len(data["monthly"]) == 12
        assert data["daily"][-1]["activities"] == 2
        assert data["daily"][-2]["distance"] == 3000

    def test_goal_progress(self, client, recorded):
        goals = [
            {
                "type": "workouts_per_week",
                "title": "Train three times",
                "targetValue": 3,
                "startDate": "2024-06-01",
                "targetDate": "2024-06-30",
            },
            {
                "type": "endurance_improvement",
                "title": "Two hours",
                "targetValue": 120,
                "startDate": "2024-06-01",
                "targetDate": "2024-06-30",
            },
        ]
        response = client.post("/api/v1/statistics/goals/progress", json=goals)
        assert response.status_code == 200
        workouts, endurance = response.json()
        assert workouts["currentValue"] == 2
        assert workouts["progressPercentage"] == 66
        assert endurance["isCompleted"] is True

    def test_goal_with_invalid_target(self, client):
        goal = {
            "type": "calories_burn",
            "title": "Burn",
            "targetValue": 0,
            "startDate": "2024-06-01",
            "targetDate": "2024-06-30",
        }
        assert client.post("/api/v1/statistics/goals/progress", json=[goal]).status_code == 422


class TestRepair:
    """Tests for verify and rebuild."""

    def test_verify_consistent(self, client, recorded):
        assert client.post("/api/v1/statistics/verify").json() == {"issues": [], "rebuilt": False}

    def test_verify_repairs(self, client, service, recorded):
        broken = service.get_statistics()
        broken.weekly_stats = []
        service.aggregator.replace(broken)

        data = client.post("/api/v1/statistics/verify").json()
        assert data["rebuilt"] is True
        assert any("weekly" in issue for issue in data["issues"])
        assert len(client.get("/api/v1/statistics").json()["weeklyStats"]) == 2
