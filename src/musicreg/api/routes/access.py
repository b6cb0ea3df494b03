"""Access checks shared by route modules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from musicreg.domain.exceptions import ForbiddenError
from musicreg.repositories import UserType

if TYPE_CHECKING:
    from musicreg.api.dependencies import ServiceContainer
    from musicreg.domain.registration import Registration
    from musicreg.services import Actor


def accessible_registration_ids(actor: Actor, container: ServiceContainer) -> set[str] | None:
    """Registration IDs an actor may act on; None means unrestricted (admins)."""
    if actor.user_type == UserType.ADMIN:
        return None
    registrations = container.registrations.get_all()
    if actor.user_type == UserType.INSTRUCTOR:
        return {r.id for r in registrations if r.id and r.instructor_id == actor.user_id}
    students = {s.id for s in container.users.get_students_by_parent_id(actor.user_id)}
    return {r.id for r in registrations if r.id and r.student_id in students}


def ensure_can_view(actor: Actor, registration: Registration, container: ServiceContainer) -> None:
    """Raise ForbiddenError unless the actor may see this registration."""
    if actor.user_type == UserType.ADMIN:
        return
    if actor.user_type == UserType.INSTRUCTOR and registration.instructor_id == actor.user_id:
        return
    if actor.user_type == UserType.PARENT:
        student = container.users.get_student_by_id(registration.student_id)
        if student is not None and actor.user_id in student.parent_ids:
            return
    raise ForbiddenError("You do not have access to this registration")
