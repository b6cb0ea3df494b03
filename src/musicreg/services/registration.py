"""RegistrationApplicationService - Orchestrates the registration lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from musicreg.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from musicreg.domain.period import registration_table
from musicreg.domain.registration import CancellationDecision, CancellationPolicy, Registration
from musicreg.domain.values import (
    ReenrollmentIntent,
    RegistrationType,
    Transportation,
    Trimester,
)
from musicreg.services.conflicts import Conflict, ConflictChecker

if TYPE_CHECKING:
    from musicreg.domain.people import Instructor, Student
    from musicreg.domain.period import PeriodContext
    from musicreg.domain.program import GroupClass
    from musicreg.repositories.program import ProgramRepository
    from musicreg.repositories.registration import RegistrationRepository
    from musicreg.repositories.users import UserRepository
    from musicreg.services.period import PeriodService

logger = logging.getLogger("musicreg.services.registration")

DEFAULT_ROOM_ID = "ROOM-001"


@dataclass
class RegistrationResult:
    """A created registration with where it was stored and its lessons."""

    registration: Registration
    trimester: Trimester
    table: str
    lesson_schedule: list[date] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "registration": self.registration.to_dict(),
            "trimester": self.trimester.value,
            "lessonSchedule": [lesson.isoformat() for lesson in self.lesson_schedule],
        }


@dataclass
class ValidationReport:
    """Outcome of a dry-run registration check."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
        }


@dataclass
class CancellationResult:
    """A cancelled registration and the policy decision applied."""

    registration: Registration
    decision: CancellationDecision
    reason: str | None = None
    overridden: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "registration": self.registration.to_dict(),
            "decision": self.decision.to_dict(),
            "reason": self.reason,
            "overridden": self.overridden,
        }


@dataclass
class _Prepared:
    registration: Registration
    student: Student
    instructor: Instructor
    group_class: GroupClass | None
    trimester: Trimester
    table: str


class RegistrationApplicationService:
    """Creates, validates, cancels and annotates registrations.

    Every operation that depends on the current period takes an optional
    PeriodContext; when omitted it is resolved once at the start of the call.
    """

    def __init__(
        self,
        registrations: RegistrationRepository,
        users: UserRepository,
        programs: ProgramRepository,
        period_service: PeriodService,
        conflict_checker: ConflictChecker | None = None,
        cancellation_policy: CancellationPolicy | None = None,
    ) -> None:
        self._registrations = registrations
        self._users = users
        self._programs = programs
        self._periods = period_service
        self._checker = conflict_checker or ConflictChecker()
        self._policy = cancellation_policy or CancellationPolicy()

    def _context(self, context: PeriodContext | None) -> PeriodContext:
        return context if context is not None else self._periods.resolve_context()

    # --- Create ---

    def process_registration(
        self,
        data: Mapping[str, Any],
        actor_id: str,
        *,
        is_admin: bool = False,
        context: PeriodContext | None = None,
    ) -> RegistrationResult:
        """Validate and store a new registration.

        Args:
            data: Request payload (camelCase or snake_case keys)
            actor_id: Identity recorded as createdBy
            is_admin: Admins may pick the trimester and bypass capacity/grade limits
            context: Period context (resolved when omitted)

        Returns:
            The stored registration with its lesson schedule

        Raises:
            ValidationError: If the payload or schedule is invalid
            NotFoundError: If the class, student or instructor does not exist
            ConflictError: If the registration collides with existing ones
        """
        context = self._context(context)
        prepared = self._prepare(data, actor_id, is_admin, context)

        existing = self._registrations.get_from_table(prepared.table)
        conflicts = self._checker.find_conflicts(
            prepared.registration, existing, prepared.group_class, is_admin
        )
        if conflicts:
            logger.info(
                "Rejected registration for student %s: %s",
                prepared.registration.student_id,
                "; ".join(c.message for c in conflicts),
            )
            raise ConflictError(
                conflicts[0].message,
                code="REGISTRATION_CONFLICT",
                details={"conflicts": [c.to_dict() for c in conflicts]},
            )

        created = self._registrations.create_in_table(
            prepared.registration,
            prepared.table,
            prepared.registration.linked_previous_registration_id,
        )
        logger.info(
            "Registered student %s with instructor %s (%s %s) in %s",
            created.student_id,
            created.instructor_id,
            created.day,
            created.start_time,
            prepared.table,
        )
        return RegistrationResult(
            registration=created,
            trimester=prepared.trimester,
            table=prepared.table,
            lesson_schedule=created.generate_schedule(),
        )

    def validate_registration(
        self,
        data: Mapping[str, Any],
        actor_id: str,
        *,
        is_admin: bool = False,
        context: PeriodContext | None = None,
    ) -> ValidationReport:
        """Run every registration check without writing anything."""
        context = self._context(context)
        try:
            prepared = self._prepare(data, actor_id, is_admin, context)
        except (ValidationError, NotFoundError, ForbiddenError) as e:
            return ValidationReport(is_valid=False, errors=[e.message])

        existing = self._registrations.get_from_table(prepared.table)
        conflicts = self._checker.find_conflicts(
            prepared.registration, existing, prepared.group_class, is_admin
        )
        return ValidationReport(is_valid=not conflicts, conflicts=conflicts)

    def _prepare(
        self,
        data: Mapping[str, Any],
        actor_id: str,
        is_admin: bool,
        context: PeriodContext,
    ) -> _Prepared:
        if not actor_id or not actor_id.strip():
            raise ValidationError("createdBy is required for audit trail")

        payload = dict(data)
        payload["createdBy"] = actor_id
        payload.pop("created_by", None)

        group_class = None
        requested_type = RegistrationType.normalize(
            payload.get("registrationType", payload.get("registration_type"))
        )
        class_id = payload.get("classId", payload.get("class_id"))
        if requested_type == RegistrationType.GROUP and class_id:
            group_class = self._programs.get_class_by_id(str(class_id))
            if group_class is None:
                raise NotFoundError("Class not found", code="CLASS_NOT_FOUND")
            self._apply_class(payload, group_class)

        if not payload.get("transportationType") and not payload.get("transportation_type"):
            payload["transportationType"] = Transportation.PICKUP.value

        registration = Registration.from_api_data(payload, self._registrations.waitlist_class_ids)

        bus_error = self._checker.check_bus_restriction(registration)
        if bus_error:
            raise ValidationError(bus_error, code="BUS_RESTRICTION")

        student = self._users.get_student_by_id(registration.student_id)
        if student is None:
            raise NotFoundError("Student not found", code="STUDENT_NOT_FOUND")
        instructor = self._users.get_instructor_by_id(registration.instructor_id)
        if instructor is None:
            raise NotFoundError("Instructor not found", code="INSTRUCTOR_NOT_FOUND")

        if not registration.room_id:
            registration.room_id = instructor.room_for_day(registration.day)
            if not registration.room_id:
                logger.warning(
                    "No room for instructor %s on %s; using %s",
                    instructor.id,
                    registration.day,
                    DEFAULT_ROOM_ID,
                )
                registration.room_id = DEFAULT_ROOM_ID

        if group_class is not None:
            self._validate_class(group_class, registration)
            if not is_admin:
                ineligible = self._checker.check_eligibility(student, group_class)
                if ineligible is not None:
                    raise ValidationError(ineligible.message, code="GRADE_INELIGIBLE")

        trimester = self._target_trimester(payload, registration, is_admin, context)
        return _Prepared(
            registration=registration,
            student=student,
            instructor=instructor,
            group_class=group_class,
            trimester=trimester,
            table=registration_table(trimester),
        )

    @staticmethod
    def _apply_class(payload: dict[str, Any], group_class: GroupClass) -> None:
        """Fill schedule fields of a group registration from its class."""
        payload["instructorId"] = group_class.instructor_id
        payload["day"] = group_class.day
        payload["startTime"] = group_class.start_time
        payload["length"] = group_class.length
        payload["instrument"] = group_class.instrument
        payload["classTitle"] = group_class.title
        for key in ("instructor_id", "start_time", "class_title"):
            payload.pop(key, None)

    def _validate_class(self, group_class: GroupClass, registration: Registration) -> None:
        if not group_class.title:
            raise ValidationError("Group class must have a title")
        if not registration.is_waitlist_class and not (
            group_class.day and group_class.start_time and group_class.length
        ):
            raise ValidationError("Group class must have day, start time, and length")

    def _target_trimester(
        self,
        payload: Mapping[str, Any],
        registration: Registration,
        is_admin: bool,
        context: PeriodContext,
    ) -> Trimester:
        """Trimester a new registration is written to.

        Admins may name one explicitly. During priority or open enrollment
        new registrations go to the upcoming trimester; otherwise to the
        current one.
        """
        requested = payload.get("trimester")
        if is_admin and requested:
            try:
                return Trimester.parse(requested)
            except ValueError as e:
                raise ValidationError(f"Invalid trimester: {requested}") from e

        if context.current is None:
            raise NotFoundError("No active period found", code="NO_ACTIVE_PERIOD")

        if context.is_enrollment_window:
            if not is_admin:
                current_table = context.current_trimester_table or ""
                has_active = any(
                    r.student_id == registration.student_id
                    for r in self._registrations.get_from_table(current_table)
                )
                if not context.can_access_next_trimester(has_active):
                    raise ForbiddenError(
                        "Priority enrollment is limited to returning students",
                        code="PRIORITY_ENROLLMENT_ONLY",
                    )
            return context.current.trimester.next()
        return context.current.trimester

    # --- Conflicts ---

    def find_conflicts(self, registration_id: str) -> list[Conflict]:
        """Registrations in the same trimester that conflict with this one.

        Raises:
            NotFoundError: If the registration does not exist
        """
        located = self._registrations.locate(registration_id)
        if located is None:
            raise NotFoundError(
                f"Registration {registration_id} not found", code="REGISTRATION_NOT_FOUND"
            )
        registration, table = located
        group_class = (
            self._programs.get_class_by_id(registration.class_id)
            if registration.class_id
            else None
        )
        return self._checker.find_conflicts(
            registration, self._registrations.get_from_table(table), group_class
        )

    # --- Cancel ---

    def cancel_registration(
        self,
        registration_id: str,
        reason: str | None,
        actor_id: str,
        *,
        table: str | None = None,
        override: bool = False,
        now: datetime | None = None,
    ) -> CancellationResult:
        """Cancel a registration subject to the cancellation policy.

        Args:
            registration_id: Registration to cancel
            reason: Free-text reason, logged with the cancellation
            actor_id: Identity recorded in the audit trail
            table: Table holding the registration (searched when omitted)
            override: Admin override of a disallowed cancellation
            now: Evaluation time (for testing)

        Raises:
            ValidationError: If actor_id is missing
            NotFoundError: If the registration does not exist
            ForbiddenError: If policy forbids cancellation and no override is given
        """
        if not actor_id or not actor_id.strip():
            raise ValidationError("userId is required for audit trail")

        if table is not None:
            registration = self._registrations.find_by_id_in_table(registration_id, table)
        else:
            located = self._registrations.locate(registration_id)
            registration, table = located if located else (None, None)
        if registration is None or table is None:
            raise NotFoundError(
                f"Registration {registration_id} not found", code="REGISTRATION_NOT_FOUND"
            )

        decision = self._policy.evaluate(registration, now)
        if not decision.can_cancel and not override:
            raise ForbiddenError(
                decision.reason,
                code="CANCELLATION_REQUIRES_APPROVAL",
                details=decision.to_dict(),
            )

        self._registrations.delete_from_table(registration_id, table, actor_id)
        logger.info(
            "Cancelled registration %s from %s (by %s, fee=%s, reason=%s)",
            registration_id,
            table,
            actor_id,
            decision.cancellation_fee,
            reason or "none given",
        )
        return CancellationResult(
            registration=registration,
            decision=decision,
            reason=reason,
            overridden=override and not decision.can_cancel,
        )

    # --- Intent ---

    def update_intent(
        self,
        registration_id: str,
        intent: ReenrollmentIntent | str,
        submitted_by: str,
        *,
        accessible_ids: Collection[str] | None = None,
        context: PeriodContext | None = None,
    ) -> Registration:
        """Record a family's reenrollment intent.

        Raises:
            ValidationError: If the intent is invalid or intent collection is closed
            NotFoundError: If the registration is not accessible to the caller
        """
        try:
            parsed = ReenrollmentIntent.parse(intent)
        except ValueError as e:
            raise ValidationError("Invalid intent. Must be: keep, drop, or change") from e
        context = self._context(context)
        if not context.is_intent_period:
            raise ValidationError("Intent collection is not currently active")
        return self._registrations.update_intent(
            registration_id,
            parsed,
            submitted_by,
            context=context,
            accessible_ids=accessible_ids,
        )

    # --- Details ---

    def get_registration_details(
        self, registration_id: str, now: datetime | None = None
    ) -> dict[str, Any]:
        """Registration with its student, instructor, class, lessons and cancellation terms.

        Raises:
            NotFoundError: If the registration does not exist
        """
        located = self._registrations.locate(registration_id)
        if located is None:
            raise NotFoundError(
                f"Registration {registration_id} not found", code="REGISTRATION_NOT_FOUND"
            )
        registration, table = located
        student = self._users.get_student_by_id(registration.student_id)
        instructor = self._users.get_instructor_by_id(registration.instructor_id)
        group_class = (
            self._programs.get_class_by_id(registration.class_id)
            if registration.class_id
            else None
        )
        return {
            "registration": registration.to_dict(),
            "table": table,
            "student": student.to_dict() if student else None,
            "instructor": instructor.to_dict() if instructor else None,
            "class": group_class.to_dict() if group_class else None,
            "lessonSchedule": [d.isoformat() for d in registration.generate_schedule()],
            "cancellation": self._policy.evaluate(registration, now).to_dict(),
        }

