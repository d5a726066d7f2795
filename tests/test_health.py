"""Tests for health check endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from core.config import Settings, get_settings
from main import app


class TestHealthCheck:
    """Tests for basic health check endpoint."""

    def test_health_check_returns_success(self, client: TestClient) -> None:
        """Test basic health check returns healthy status."""
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["status"] == "healthy"
        assert "Spot Importer" in data["data"]["message"]
        assert data["message"] == "Health check successful"

    def test_providers_disabled_without_keys(self, client: TestClient) -> None:
        data = client.get("/api/v1/health").json()["data"]
        assert data["google_places"] == "disabled"
        assert data["yelp"] == "disabled"
        assert data["ai_enrichment"] == "disabled"

    def test_configured_providers_never_expose_keys(self, client: TestClient) -> None:
        app.dependency_overrides[get_settings] = lambda: Settings(
            _env_file=None,
            GOOGLE_MAPS_API_KEY="maps-secret",
            GEMINI_API_KEY="gemini-secret",
        )
        try:
            response = client.get("/api/v1/health")
        finally:
            app.dependency_overrides.clear()

        data = response.json()["data"]
        assert data["google_places"] == "configured"
        assert data["yelp"] == "disabled"
        assert data["ai_enrichment"] == "configured"
        assert "secret" not in response.text
