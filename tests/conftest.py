"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from insights_service.config import Settings, get_settings
from insights_service.main import create_app
from insights_service.services.search_insights import SearchEvent, ZeroResultEvent

TEST_ADMIN_KEY = "test-admin-key"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Get test settings with overrides."""
    return Settings(
        app_env="test",
        debug=True,
        postgres_host="localhost",
        postgres_port=5432,
        postgres_user="test",
        postgres_password="test",
        postgres_db="test_db",
        redis_host="localhost",
        redis_port=6379,
        admin_api_key=TEST_ADMIN_KEY,
        mock_email_dir=str(tmp_path / "emails"),
    )


@pytest.fixture
def app(test_settings: Settings) -> Any:
    """Create test application."""
    def get_test_settings() -> Settings:
        return test_settings

    app = create_app()
    app.dependency_overrides[get_settings] = get_test_settings
    return app


@pytest.fixture
def client(app: Any) -> TestClient:
    """Create synchronous test client."""
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Key": TEST_ADMIN_KEY}


@pytest.fixture
def fixed_now() -> datetime:
    """Reference time shared by engine tests."""
    return datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_search_events(fixed_now: datetime) -> list[SearchEvent]:
    """A small mixed log: one missing product, one spelling cluster, one healthy query."""
    recent = fixed_now - timedelta(days=2)
    events = [
        SearchEvent(query="rtx 4090 ti", result_count=0, category="gpus", timestamp=recent)
        for _ in range(10)
    ]
    events += [
        SearchEvent(
            query="rtx 4090",
            original_query="rtx 4090ti" if i < 3 else None,
            result_count=4,
            category="gpus",
            timestamp=recent,
        )
        for i in range(6)
    ]
    events += [
        SearchEvent(query="ssd", result_count=40, category="storage", timestamp=recent)
        for _ in range(8)
    ]
    return events


@pytest.fixture
def sample_zero_result_events(fixed_now: datetime) -> list[ZeroResultEvent]:
    recent = fixed_now - timedelta(days=2)
    return [ZeroResultEvent(query="rtx 4090 ti", timestamp=recent) for _ in range(4)]
