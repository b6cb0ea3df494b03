"""Unit tests for period, auth and health routes."""

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from musicreg import __version__


@pytest.mark.unit
class TestCurrentPeriod:
    """Tests for GET /api/periods/current."""

    def test_returns_context(self, client: TestClient) -> None:
        response = client.get("/api/periods/current", headers={"X-Access-Code": "5550102000"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["currentPeriod"]["trimester"] == "fall"
        assert data["currentPeriod"]["periodType"] == "registration"
        assert data["nextPeriod"]["trimester"] == "winter"
        assert data["currentTrimesterTable"] == "registrations_fall"
        assert data["nextTrimesterTable"] is None
        assert data["availableTrimesters"] == ["fall", "winter"]

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.get("/api/periods/current")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.unit
class TestAccessCodeLogin:
    """Tests for POST /api/auth/access-code."""

    def test_admin_login(self, client: TestClient) -> None:
        response = client.post("/api/auth/access-code", json={"accessCode": "123456"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["actor_id"] == "admin@school.org"
        assert data["user_type"] == "admin"
        assert data["user_id"] == "A1"

    def test_unknown_code(self, client: TestClient) -> None:
        response = client.post("/api/auth/access-code", json={"accessCode": "000000"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "INVALID_ACCESS_CODE"

    def test_missing_code(self, client: TestClient) -> None:
        response = client.post("/api/auth/access-code", json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.unit
class TestHealth:
    """Tests for GET /api/health."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.json() == {
            "success": True,
            "data": {"status": "ok", "version": __version__},
            "message": None,
        }
