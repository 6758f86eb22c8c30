"""API fixtures: a service on a temporary database wired into the app."""

import pytest
from fastapi.testclient import TestClient

from activity_tracker.api.deps import get_activity_service
from activity_tracker.db.repositories import SQLiteActivityRepository, StatisticsRepository
from activity_tracker.main import app
from activity_tracker.services.activity_service import ActivityService


@pytest.fixture
def service(temp_db_path, clock):
    """Service without a clock source, so tests drive time explicitly."""
    svc = ActivityService(
        SQLiteActivityRepository(db_path=temp_db_path),
        StatisticsRepository(db_path=temp_db_path),
        now_fn=clock,
    )
    yield svc
    svc.shutdown()


@pytest.fixture
def api_app(service):
    """The application with its service dependency pointed at the test service."""
    app.dependency_overrides[get_activity_service] = lambda: service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_app):
    """Create a test client using the temporary service."""
    return TestClient(api_app)
