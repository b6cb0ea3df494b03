"""Pydantic models for REST API."""

from datetime import date
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard success envelope."""

    success: bool = True
    data: T | None = None
    message: str | None = None


class ErrorDetail(BaseModel):
    """Body of the ``error`` field in an error envelope."""

    message: str
    code: str
    type: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    success: bool = False
    error: ErrorDetail


class CamelModel(BaseModel):
    """Request model accepting camelCase (and snake_case) keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Registration models


class RegistrationCreate(CamelModel):
    """Request model for creating or validating a registration.

    Group registrations take their instructor and schedule from the class.
    """

    student_id: str = Field(..., min_length=1)
    instructor_id: str | None = None
    day: str | None = None
    start_time: str | None = None
    length: int | None = Field(default=None, ge=0)
    registration_type: str = "private"
    class_id: str | None = None
    room_id: str | None = None
    instrument: str | None = None
    transportation_type: str | None = None
    notes: str | None = None
    expected_start_date: date | None = None
    trimester: str | None = None
    linked_previous_registration_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """camelCase dict of the fields that were provided."""
        payload = self.model_dump(by_alias=True, exclude_none=True)
        if self.expected_start_date is not None:
            payload["expectedStartDate"] = self.expected_start_date.isoformat()
        return payload


class CancelRequest(CamelModel):
    """Request model for cancelling a registration."""

    reason: str | None = Field(default=None, max_length=1000)
    override: bool = False


class IntentUpdate(CamelModel):
    """Request model for submitting reenrollment intent."""

    intent: str = Field(..., min_length=1)


# Attendance models


class AttendanceCreate(CamelModel):
    """Request model for marking a lesson attended."""

    registration_id: str = Field(..., min_length=1)
    week: int = Field(..., ge=1, le=52)
    school_year: str = Field(..., min_length=4, max_length=20)
    trimester: str = Field(..., min_length=1)


# Auth models


class ActorResponse(BaseModel):
    """Response model for the authenticated caller."""

    model_config = ConfigDict(from_attributes=True)

    actor_id: str
    user_type: str
    user_id: str
    display_name: str


class AccessCodeLogin(CamelModel):
    """Request model for signing in with an access code."""

    access_code: str = Field(..., min_length=1, max_length=64)
