"""Tests for SQLiteActivityRepository.

This module tests:
1. Table and index creation
2. Save and load round trips
3. Corrupt record handling on bulk loads
4. Lookup, deletion and range queries
5. Storage failures surfacing as PersistenceError
"""

import sqlite3
from datetime import datetime, timedelta

import pytest

from activity_tracker.db.repositories import ActivityLoadResult, SQLiteActivityRepository
from activity_tracker.exceptions import (
    ActivityNotFoundError,
    ActivityValidationError,
    ErrorCode,
    PersistenceError,
)
from activity_tracker.models.activity import ActivityType, LocationPoint

START = datetime(2024, 6, 3, 7, 0)


@pytest.fixture
def repo(temp_db_path):
    """Create a repository with a temporary database."""
    return SQLiteActivityRepository(db_path=temp_db_path)


def insert_raw(repo, activity_id, payload, start=START):
    """Write a row directly, bypassing validation."""
    with repo._get_connection() as conn:
        conn.execute(
            "INSERT INTO activities (id, activity_type, start_time, payload) VALUES (?, ?, ?, ?)",
            (activity_id, "running", start.isoformat(), payload),
        )


class TestRepositoryInit:
    """Tests for repository initialization."""

    def test_creates_activities_table(self, repo):
        with repo._get_connection() as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='activities'"
            ).fetchone()
            assert row is not None

    def test_creates_start_time_index(self, repo):
        with repo._get_connection() as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='index' AND name='idx_activities_start_time'"
            ).fetchone()
            assert row is not None

    def test_reopening_keeps_data(self, repo, temp_db_path, make_activity):
        repo.save(make_activity())
        assert SQLiteActivityRepository(db_path=temp_db_path).count() == 1


class TestSaveAndLoad:
    """Tests for save, load_all and load_by_id."""

    def test_round_trip_preserves_fields(self, repo, make_activity):
        activity = make_activity(
            ActivityType.HIKING,
            elevation_gain=120.5,
            notes="Windy ridge",
            route=[
                LocationPoint(latitude=46.5, longitude=7.9, timestamp=START, altitude=1200.0),
                LocationPoint(latitude=46.51, longitude=7.9, timestamp=START + timedelta(minutes=5)),
            ],
        )
        repo.save(activity)

        loaded = repo.load_by_id(activity.id)
        assert loaded == activity

    def test_save_replaces_same_id(self, repo, make_activity):
        activity = make_activity(distance=3000)
        repo.save(activity)
        repo.save(activity.model_copy(update={"notes": "edited"}))

        assert repo.count() == 1
        assert repo.load_by_id(activity.id).notes == "edited"

    def test_load_all_is_newest_first(self, repo, make_activity):
        for day in (2, 0, 1):
            repo.save(make_activity(start=START + timedelta(days=day)))

        result = repo.load_all()
        assert isinstance(result, ActivityLoadResult)
        starts = [a.start_time for a in result.activities]
        assert starts == sorted(starts, reverse=True)
        assert result.is_partial is False

    def test_load_all_empty(self, repo):
        result = repo.load_all()
        assert result.activities == []
        assert result.skipped == 0


class TestCorruptRecords:
    """Tests for skipping records that fail to parse or validate."""

    def test_one_corrupt_record_among_ten(self, repo, make_activity):
        for i in range(9):
            repo.save(make_activity(start=START + timedelta(hours=i)))
        insert_raw(repo, "broken", "{not json")

        result = repo.load_all()
        assert len(result.activities) == 9
        assert result.skipped == 1
        assert result.skipped_ids == ["broken"]
        assert result.is_partial is True

    def test_invalid_document_is_skipped(self, repo, make_activity):
        repo.save(make_activity())
        # Valid JSON, but a completed activity without an end time
        insert_raw(
            repo,
            "no-end",
            '{"id": "no-end", "type": "running", "name": "x", '
            '"startTime": "2024-06-03T07:00:00", "isCompleted": true}',
        )
        result = repo.load_all()
        assert len(result.activities) == 1
        assert result.skipped_ids == ["no-end"]

    def test_load_by_id_raises_for_corrupt(self, repo):
        insert_raw(repo, "broken", "[]")
        with pytest.raises(ActivityValidationError) as exc_info:
            repo.load_by_id("broken")
        assert exc_info.value.code == ErrorCode.ACTIVITY_VALIDATION_ERROR
        assert exc_info.value.details["activity_id"] == "broken"

    def test_range_query_skips_corrupt(self, repo, make_activity):
        repo.save(make_activity())
        insert_raw(repo, "broken", "{}")
        found = repo.load_in_range(START - timedelta(hours=1), START + timedelta(hours=1))
        assert len(found) == 1


class TestLookupAndDelete:
    """Tests for lookups, deletion and counting."""

    def test_load_missing_raises_not_found(self, repo):
        with pytest.raises(ActivityNotFoundError) as exc_info:
            repo.load_by_id("missing")
        assert exc_info.value.status_code == 404

    def test_delete(self, repo, make_activity):
        activity = repo.save(make_activity())
        assert repo.exists(activity.id)
        assert repo.delete(activity.id) is True
        assert repo.exists(activity.id) is False
        assert repo.delete(activity.id) is False

    def test_load_in_range_is_inclusive_and_ascending(self, repo, make_activity):
        for day in range(5):
            repo.save(make_activity(start=START + timedelta(days=day)))

        found = repo.load_in_range(START + timedelta(days=1), START + timedelta(days=3))
        assert [a.start_time.day for a in found] == [4, 5, 6]

    def test_clear_all(self, repo, make_activity):
        for i in range(3):
            repo.save(make_activity(start=START + timedelta(days=i)))
        assert repo.clear_all() == 3
        assert repo.count() == 0


class TestStorageFailures:
    """Tests for storage errors."""

    def test_dropped_table_raises_persistence_error(self, repo, make_activity):
        with repo._get_connection() as conn:
            conn.execute("DROP TABLE activities")

        with pytest.raises(PersistenceError) as exc_info:
            repo.save(make_activity())
        assert exc_info.value.code == ErrorCode.PERSISTENCE_ERROR
        assert exc_info.value.details["operation"] == "save"

    def test_unopenable_path_raises_persistence_error(self, tmp_path):
        with pytest.raises(PersistenceError):
            SQLiteActivityRepository(db_path=str(tmp_path / "missing" / "dir" / "a.db"))

    def test_connection_rolls_back_on_error(self, repo, make_activity):
        activity = make_activity()
        with pytest.raises(sqlite3.IntegrityError):
            with repo._get_connection() as conn:
                conn.execute(
                    "INSERT INTO activities (id, activity_type, start_time, payload) VALUES (?, ?, ?, ?)",
                    (activity.id, "running", START.isoformat(), "{}"),
                )
                conn.execute(
                    "INSERT INTO activities (id, activity_type, start_time, payload) VALUES (?, ?, ?, ?)",
                    (activity.id, "running", START.isoformat(), "{}"),
                )
        assert repo.count() == 0
