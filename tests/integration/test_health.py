"""Integration tests for health check endpoints."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self, client: TestClient) -> None:
        """Test that /health endpoint returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        """Test that /health endpoint returns healthy status and version."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["timestamp"] is not None
        assert data["version"] == "0.1.0"


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    def test_readiness_returns_200_when_healthy(self, client: TestClient) -> None:
        """Database reachable and PayPal configured."""
        response = client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        check_names = [check["name"] for check in data["checks"]]
        assert check_names == ["database", "paypal"]

    def test_readiness_database_check_includes_latency(self, client: TestClient) -> None:
        """Test that database check includes latency measurement."""
        data = client.get("/health/ready").json()

        db_check = next(c for c in data["checks"] if c["name"] == "database")
        assert db_check["latency_ms"] is not None

    def test_readiness_returns_503_when_database_unhealthy(self, mock_supabase_client: MagicMock) -> None:
        """Test that /health/ready returns 503 when database is unhealthy."""
        with patch(
            "src.api.routes.health.check_database_connection",
            return_value={"healthy": False, "error": "Connection timeout"},
        ):
            from src.main import app

            with TestClient(app) as test_client:
                response = test_client.get("/health/ready")

                assert response.status_code == 503
                data = response.json()
                assert data["status"] == "unhealthy"
                db_check = next(c for c in data["checks"] if c["name"] == "database")
                assert db_check["error"] == "Connection timeout"

    def test_readiness_returns_503_without_paypal_credentials(self, client: TestClient) -> None:
        """Missing PayPal credentials make the service not ready."""
        settings = MagicMock()
        settings.is_paypal_configured = False

        with patch("src.api.routes.health.get_settings", return_value=settings):
            response = client.get("/health/ready")

        assert response.status_code == 503
        paypal_check = next(c for c in response.json()["checks"] if c["name"] == "paypal")
        assert paypal_check["healthy"] is False


class TestLatencyEndpoint:
    """Tests for /health/latency."""

    def test_requires_admin(self, client: TestClient, as_owner: dict) -> None:
        response = client.get("/health/latency", headers=as_owner)

        assert response.status_code == 403

    def test_reports_recorded_requests(self, client: TestClient, as_admin: dict) -> None:
        client.get("/api/order/paypal/config")

        response = client.get("/health/latency", headers=as_admin)

        assert response.status_code == 200
        data = response.json()
        assert data["overall"]["total_requests"] >= 1
        assert "/api/order/paypal/config" in data["by_path"]


class TestErrorResponseSchema:
    """Tests for error response schema compliance."""

    def test_unexpected_error_is_wrapped(self, mock_supabase_client: MagicMock) -> None:
        """Unhandled exceptions become a 500 ErrorResponse."""
        with patch(
            "src.api.routes.health.check_database_connection",
            side_effect=Exception("Test error"),
        ):
            from src.main import app

            with TestClient(app, raise_server_exceptions=False) as test_client:
                response = test_client.get("/health/ready")

                assert response.status_code == 500
                data = response.json()
                assert data["error"] == "internal_error"
                assert "timestamp" in data
                # Exception text is only exposed in development
                assert "Test error" not in data["message"]
