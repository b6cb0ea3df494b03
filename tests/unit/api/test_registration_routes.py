"""Unit tests for registration routes."""

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from musicreg.api.dependencies import ServiceContainer

ADMIN = {"X-Access-Code": "123456"}
INSTRUCTOR = {"X-Access-Code": "654321"}
PARENT = {"X-Access-Code": "(555) 010-2000"}
OTHER_PARENT = {"X-Access-Code": "5559990000"}


def _body(**overrides) -> dict:
    body = {
        "studentId": "S1",
        "instructorId": "I1",
        "day": "Monday",
        "startTime": "14:00",
        "length": 30,
        "registrationType": "private",
    }
    body.update(overrides)
    return body


def _create(client: TestClient, headers: dict | None = None, **overrides) -> dict:
    response = client.post("/api/registrations", json=_body(**overrides), headers=headers or PARENT)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["data"]["registration"]


@pytest.mark.unit
class TestCreateRegistration:
    """Tests for POST /api/registrations."""

    def test_parent_registers_own_student(self, client: TestClient) -> None:
        response = client.post(
            "/api/registrations", json=_body(expectedStartDate="2025-09-08"), headers=PARENT
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Registration created"
        data = body["data"]
        assert data["trimester"] == "fall"
        assert data["registration"]["createdBy"] == "parent@example.com"
        assert data["registration"]["roomId"] == "R-101"
        assert data["lessonSchedule"][0] == "2025-09-08"

    def test_requires_access_code(self, client: TestClient) -> None:
        response = client.post("/api/registrations", json=_body())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {
            "success": False,
            "error": {
                "message": "Authentication required",
                "code": "UNAUTHORIZED",
                "type": "authentication",
                "details": None,
            },
        }

    def test_invalid_access_code(self, client: TestClient) -> None:
        response = client.post(
            "/api/registrations", json=_body(), headers={"X-Access-Code": "nope"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "INVALID_ACCESS_CODE"

    def test_instructor_forbidden(self, client: TestClient) -> None:
        response = client.post("/api/registrations", json=_body(), headers=INSTRUCTOR)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["type"] == "authorization"

    def test_parent_cannot_register_other_student(self, client: TestClient) -> None:
        response = client.post("/api/registrations", json=_body(studentId="S3"), headers=PARENT)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_registers_any_student(self, client: TestClient) -> None:
        registration = _create(client, ADMIN, studentId="S3", trimester="winter")

        assert registration["createdBy"] == "admin@school.org"

    def test_missing_student(self, client: TestClient) -> None:
        body = _body()
        del body["studentId"]

        response = client.post("/api/registrations", json=body, headers=PARENT)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "studentId" in error["message"]

    def test_missing_length(self, client: TestClient) -> None:
        body = _body()
        del body["length"]

        response = client.post("/api/registrations", json=body, headers=PARENT)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "length" in response.json()["error"]["message"]

    def test_schedule_conflict(self, client: TestClient) -> None:
        _create(client)

        response = client.post(
            "/api/registrations", json=_body(studentId="S2", startTime="14:15"), headers=PARENT
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        error = response.json()["error"]
        assert error["code"] == "REGISTRATION_CONFLICT"
        assert error["type"] == "conflict"
        assert error["details"]["conflicts"][0]["type"] == "instructorSchedule"

    def test_unknown_class(self, client: TestClient) -> None:
        response = client.post(
            "/api/registrations",
            json={"studentId": "S1", "registrationType": "group", "classId": "C404"},
            headers=PARENT,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "CLASS_NOT_FOUND"


@pytest.mark.unit
class TestValidateRegistration:
    """Tests for POST /api/registrations/validate."""

    def test_reports_without_saving(
        self, client: TestClient, container: ServiceContainer
    ) -> None:
        response = client.post("/api/registrations/validate", json=_body(), headers=PARENT)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["isValid"] is True
        assert container.registrations.get_all() == []

    def test_reports_errors(self, client: TestClient) -> None:
        response = client.post(
            "/api/registrations/validate", json=_body(studentId="S404"), headers=ADMIN
        )

        data = response.json()["data"]
        assert data["isValid"] is False
        assert data["errors"] == ["Student not found"]

    def test_instructor_forbidden(self, client: TestClient) -> None:
        response = client.post("/api/registrations/validate", json=_body(), headers=INSTRUCTOR)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["type"] == "authorization"

    def test_parent_cannot_check_other_student(self, client: TestClient) -> None:
        response = client.post(
            "/api/registrations/validate", json=_body(studentId="S3"), headers=PARENT
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.unit
class TestGetRegistration:
    """Tests for GET /api/registrations/{id}."""

    def test_parent_sees_own(self, client: TestClient) -> None:
        created = _create(client)

        response = client.get(f"/api/registrations/{created['id']}", headers=PARENT)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["registration"]["id"] == created["id"]
        assert data["student"]["id"] == "S1"
        assert data["table"] == "registrations_fall"

    def test_instructor_sees_own(self, client: TestClient) -> None:
        created = _create(client)

        response = client.get(f"/api/registrations/{created['id']}", headers=INSTRUCTOR)

        assert response.status_code == status.HTTP_200_OK

    def test_other_parent_forbidden(self, client: TestClient) -> None:
        created = _create(client)

        response = client.get(f"/api/registrations/{created['id']}", headers=OTHER_PARENT)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_not_found(self, client: TestClient) -> None:
        response = client.get(
            "/api/registrations/00000000-0000-4000-8000-000000000000", headers=ADMIN
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "REGISTRATION_NOT_FOUND"


@pytest.mark.unit
class TestConflictRoute:
    """Tests for GET /api/registrations/{id}/conflicts."""

    def test_admin_lists_conflicts(self, client: TestClient) -> None:
        created = _create(client)

        response = client.get(f"/api/registrations/{created['id']}/conflicts", headers=ADMIN)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == []

    def test_parent_forbidden(self, client: TestClient) -> None:
        created = _create(client)

        response = client.get(f"/api/registrations/{created['id']}/conflicts", headers=PARENT)

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.unit
class TestCancelRoute:
    """Tests for POST /api/registrations/{id}/cancel."""

    def test_parent_cancels(self, client: TestClient, container: ServiceContainer) -> None:
        created = _create(client)

        response = client.post(
            f"/api/registrations/{created['id']}/cancel",
            json={"reason": "Schedule change"},
            headers=PARENT,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["reason"] == "Schedule change"
        assert data["decision"]["canCancel"] is True
        assert container.registrations.get_by_id(created["id"]) is None

    def test_other_parent_forbidden(self, client: TestClient) -> None:
        created = _create(client)

        response = client.post(
            f"/api/registrations/{created['id']}/cancel", json={}, headers=OTHER_PARENT
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_not_found(self, client: TestClient) -> None:
        response = client.post(
            "/api/registrations/00000000-0000-4000-8000-000000000000/cancel",
            json={},
            headers=ADMIN,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.unit
class TestIntentRoute:
    """Tests for POST /api/registrations/{id}/intent."""

    def test_closed_outside_intent_period(self, client: TestClient) -> None:
        created = _create(client)

        response = client.post(
            f"/api/registrations/{created['id']}/intent", json={"intent": "keep"}, headers=PARENT
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "not currently active" in response.json()["error"]["message"]

    def test_invalid_intent(self, client: TestClient) -> None:
        created = _create(client)

        response = client.post(
            f"/api/registrations/{created['id']}/intent", json={"intent": "maybe"}, headers=PARENT
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
