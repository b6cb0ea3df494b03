"""Attendance endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Query, status

from musicreg.api.dependencies import ActorDep, ContainerDep, PeriodContextDep
from musicreg.api.models import APIResponse, AttendanceCreate
from musicreg.api.routes.access import ensure_can_view
from musicreg.domain.exceptions import NotFoundError, ValidationError
from musicreg.repositories import UserType
from musicreg.services import Authenticator

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post(
    "",
    response_model=APIResponse[dict[str, Any]],
    status_code=status.HTTP_201_CREATED,
)
def mark_attendance(
    body: AttendanceCreate, actor: ActorDep, container: ContainerDep
) -> APIResponse[dict[str, Any]]:
    """Mark a lesson attended."""
    Authenticator.require_role(actor, UserType.ADMIN, UserType.INSTRUCTOR)
    registration = container.registrations.get_by_id(body.registration_id)
    if registration is None:
        raise NotFoundError("Registration not found", code="REGISTRATION_NOT_FOUND")
    ensure_can_view(actor, registration, container)
    record = container.attendance.create(
        registration_id=body.registration_id,
        week=body.week,
        school_year=body.school_year,
        trimester=body.trimester,
        recorded_by=actor.actor_id,
    )
    return APIResponse(data=record.to_dict(), message="Attendance recorded")


@router.get("/summary/{registration_id}", response_model=APIResponse[dict[str, Any]])
def get_attendance_summary(
    registration_id: str,
    actor: ActorDep,
    container: ContainerDep,
    context: PeriodContextDep,
    school_year: Annotated[str, Query(alias="schoolYear", min_length=4)],
    trimester: Annotated[str | None, Query()] = None,
) -> APIResponse[dict[str, Any]]:
    """Attendance totals for a registration; trimester defaults to the current one."""
    registration = container.registrations.get_by_id(registration_id)
    if registration is None:
        raise NotFoundError("Registration not found", code="REGISTRATION_NOT_FOUND")
    ensure_can_view(actor, registration, container)
    term = trimester or context.current_trimester
    if term is None:
        raise ValidationError("trimester is required when no period is active")
    summary = container.attendance.get_attendance_summary(registration_id, school_year, term)
    return APIResponse(data=summary.to_dict())
