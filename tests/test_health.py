"""Smoke tests for health endpoints."""

import pytest
from fastapi import status


@pytest.mark.unit
class TestHealth:
    def test_health_endpoint_returns_200(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK

    def test_health_reports_version_and_checks(self, client):
        data = client.get("/health").json()

        assert data["version"] == "0.1.0"
        assert "timestamp" in data
        assert data["checks"]["api"] is True

    def test_uninitialized_database_is_degraded(self, client):
        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["checks"]["database"] is False

    def test_health_needs_no_session(self, client):
        response = client.get("/health/live")

        assert response.json() == {"status": "ok"}
