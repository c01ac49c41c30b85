"""Tests for health API routes.

Covers GET /health, /health/ready and /health/live, and the lineage
store probe behind them.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.routes import health
from src.api.routes.health import router
from src.lineage.service import LineageService


def _app(lineage_service=None) -> FastAPI:
    app = FastAPI()
    app.state.lineage_service = lineage_service
    app.include_router(router)
    return app


@pytest.fixture
def unreachable_service() -> MagicMock:
    """Service whose SQL store does not answer pings."""
    service = MagicMock()
    service.max_depth = 10
    service.edges.ping.return_value = False
    return service


class TestHealthRouteConfiguration:
    """Tests for health route configuration."""

    def test_router_has_health_tag(self) -> None:
        """Router is tagged as 'Health'."""
        assert "Health" in router.tags


class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    @pytest.fixture
    def client(self, service: LineageService) -> TestClient:
        """Create test client with an in-memory service."""
        return TestClient(_app(service))

    def test_health_returns_200(self, client: TestClient) -> None:
        """GET /health returns 200."""
        assert client.get("/health").status_code == 200

    def test_health_reports_memory_store(self, client: TestClient) -> None:
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["service"] == "citation-lineage"
        assert data["max_lineage_depth"] == 10
        assert data["store"]["up"] is True
        assert data["store"]["backend"] == "InMemoryEdgeStore"
        assert data["store"]["latency_ms"] is None

    def test_health_without_service_is_unhealthy(self) -> None:
        data = TestClient(_app()).get("/health").json()

        assert data["status"] == "unhealthy"
        assert data["store"]["up"] is False
        assert data["max_lineage_depth"] is None

    def test_unreachable_database_is_unhealthy(self, unreachable_service: MagicMock) -> None:
        data = TestClient(_app(unreachable_service)).get("/health").json()

        assert data["status"] == "unhealthy"
        assert data["store"]["message"] == "Database unreachable"
        assert data["store"]["latency_ms"] is not None

    def test_reachable_database_reports_latency(self, unreachable_service: MagicMock) -> None:
        unreachable_service.edges.ping.return_value = True

        data = TestClient(_app(unreachable_service)).get("/health").json()

        assert data["status"] == "healthy"
        assert data["store"]["latency_ms"] >= 0


class TestReadinessEndpoint:
    """Tests for GET /health/ready endpoint."""

    def test_ready_with_service(self, service: LineageService) -> None:
        response = TestClient(_app(service)).get("/health/ready")

        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_not_ready_without_service(self) -> None:
        response = TestClient(_app()).get("/health/ready")

        assert response.status_code == 503
        assert response.json()["ready"] is False

    def test_not_ready_when_database_down(self, unreachable_service: MagicMock) -> None:
        response = TestClient(_app(unreachable_service)).get("/health/ready")

        assert response.status_code == 503


class TestLivenessEndpoint:
    """Tests for GET /health/live endpoint."""

    def test_live_returns_alive_status(self) -> None:
        """GET /health/live returns alive status."""
        response = TestClient(_app()).get("/health/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True


class TestUptime:
    """Tests for uptime tracking."""

    def test_uptime_counts_from_start_time(self) -> None:
        health.set_service_start_time(datetime.now(UTC) - timedelta(seconds=30))

        assert health.get_uptime_seconds() >= 30

    def test_uptime_none_before_start(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(health, "_service_start_time", None)

        assert health.get_uptime_seconds() is None
