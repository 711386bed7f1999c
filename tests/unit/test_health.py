"""Unit tests for health endpoints."""

from fastapi.testclient import TestClient


def test_health_check(client: TestClient) -> None:
    """Test basic health check returns healthy status."""
    response = client.get("/api/v1/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["dependencies"]["admin_auth"] == "configured"
    assert "version" in data
    assert "timestamp" in data


def test_liveness_check(client: TestClient) -> None:
    """Test liveness check returns alive status."""
    response = client.get("/api/v1/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_readiness_check(client: TestClient, monkeypatch) -> None:
    """Test readiness check reports each dependency."""
    from insights_service.api.v1 import health

    async def postgres_up() -> bool:
        return True

    async def redis_down(settings) -> bool:
        return False

    monkeypatch.setattr(health, "_check_postgres", postgres_up)
    monkeypatch.setattr(health, "_check_redis", redis_down)

    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200

    data = response.json()
    assert data["ready"] is False
    assert data["checks"] == {"postgres": True, "redis": False}
