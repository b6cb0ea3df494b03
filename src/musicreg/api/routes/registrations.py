"""Registration endpoints."""

from typing import Any

from fastapi import APIRouter, status

from musicreg.api.dependencies import ActorDep, ContainerDep, PeriodContextDep, ServiceContainer
from musicreg.api.models import APIResponse, CancelRequest, IntentUpdate, RegistrationCreate
from musicreg.api.routes.access import accessible_registration_ids, ensure_can_view
from musicreg.domain.exceptions import ForbiddenError, NotFoundError
from musicreg.repositories import UserType
from musicreg.services import Actor, Authenticator

router = APIRouter(prefix="/registrations", tags=["registrations"])


def _require_parent_of(actor: Actor, student_id: str, container: ServiceContainer) -> None:
    if actor.user_type != UserType.PARENT:
        return
    student = container.users.get_student_by_id(student_id)
    if student is None or actor.user_id not in student.parent_ids:
        raise ForbiddenError("Parents may only register their own students")


@router.post(
    "",
    response_model=APIResponse[dict[str, Any]],
    status_code=status.HTTP_201_CREATED,
)
def create_registration(
    body: RegistrationCreate,
    actor: ActorDep,
    container: ContainerDep,
    context: PeriodContextDep,
) -> APIResponse[dict[str, Any]]:
    """Create a registration."""
    Authenticator.require_role(actor, UserType.ADMIN, UserType.PARENT)
    _require_parent_of(actor, body.student_id, container)
    result = container.registration_service.process_registration(
        body.to_payload(),
        actor.actor_id,
        is_admin=actor.is_admin,
        context=context,
    )
    return APIResponse(data=result.to_dict(), message="Registration created")


@router.post("/validate", response_model=APIResponse[dict[str, Any]])
def validate_registration(
    body: RegistrationCreate,
    actor: ActorDep,
    container: ContainerDep,
    context: PeriodContextDep,
) -> APIResponse[dict[str, Any]]:
    """Check a registration without saving it."""
    Authenticator.require_role(actor, UserType.ADMIN, UserType.PARENT)
    _require_parent_of(actor, body.student_id, container)
    report = container.registration_service.validate_registration(
        body.to_payload(),
        actor.actor_id,
        is_admin=actor.is_admin,
        context=context,
    )
    return APIResponse(data=report.to_dict())


@router.get("/{registration_id}", response_model=APIResponse[dict[str, Any]])
def get_registration(
    registration_id: str, actor: ActorDep, container: ContainerDep
) -> APIResponse[dict[str, Any]]:
    """Get a registration with its student, instructor and schedule."""
    registration = container.registrations.get_by_id(registration_id)
    if registration is None:
        raise NotFoundError("Registration not found", code="REGISTRATION_NOT_FOUND")
    ensure_can_view(actor, registration, container)
    details = container.registration_service.get_registration_details(registration_id)
    return APIResponse(data=details)


@router.get("/{registration_id}/conflicts", response_model=APIResponse[list[dict[str, Any]]])
def get_conflicts(
    registration_id: str, actor: ActorDep, container: ContainerDep
) -> APIResponse[list[dict[str, Any]]]:
    """List registrations that conflict with this one."""
    Authenticator.require_role(actor, UserType.ADMIN, UserType.INSTRUCTOR)
    conflicts = container.registration_service.find_conflicts(registration_id)
    return APIResponse(data=[conflict.to_dict() for conflict in conflicts])


@router.post("/{registration_id}/cancel", response_model=APIResponse[dict[str, Any]])
def cancel_registration(
    registration_id: str,
    body: CancelRequest,
    actor: ActorDep,
    container: ContainerDep,
) -> APIResponse[dict[str, Any]]:
    """Cancel a registration. Only admins may override the cancellation policy."""
    Authenticator.require_role(actor, UserType.ADMIN, UserType.PARENT)
    registration = container.registrations.get_by_id(registration_id)
    if registration is None:
        raise NotFoundError("Registration not found", code="REGISTRATION_NOT_FOUND")
    ensure_can_view(actor, registration, container)
    result = container.registration_service.cancel_registration(
        registration_id,
        body.reason,
        actor.actor_id,
        override=body.override and actor.is_admin,
    )
    return APIResponse(data=result.to_dict(), message="Registration cancelled")


@router.post("/{registration_id}/intent", response_model=APIResponse[dict[str, Any]])
def update_intent(
    registration_id: str,
    body: IntentUpdate,
    actor: ActorDep,
    container: ContainerDep,
    context: PeriodContextDep,
) -> APIResponse[dict[str, Any]]:
    """Submit reenrollment intent (keep, drop or change)."""
    Authenticator.require_role(actor, UserType.ADMIN, UserType.PARENT)
    registration = container.registration_service.update_intent(
        registration_id,
        body.intent,
        actor.actor_id,
        accessible_ids=accessible_registration_ids(actor, container),
        context=context,
    )
    return APIResponse(data=registration.to_dict(), message="Intent recorded")
