"""Scheduling conflict, capacity and eligibility checks."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from musicreg.domain.values import Transportation, Weekday, format_12_hour, time_to_minutes

if TYPE_CHECKING:
    from musicreg.domain.people import Student
    from musicreg.domain.program import GroupClass
    from musicreg.domain.registration import Registration

# Latest lesson end time that still makes the late bus
BUS_DEADLINES = {
    Weekday.MONDAY: "16:45",
    Weekday.TUESDAY: "16:45",
    Weekday.WEDNESDAY: "16:15",
    Weekday.THURSDAY: "16:45",
    Weekday.FRIDAY: "16:45",
}


class ConflictKind(StrEnum):
    """Why a registration cannot be accepted."""

    DUPLICATE_ENROLLMENT = "duplicateEnrollment"
    INSTRUCTOR_SCHEDULE = "instructorSchedule"
    STUDENT_SCHEDULE = "studentSchedule"
    CLASS_FULL = "classFull"
    GRADE_INELIGIBLE = "gradeIneligible"


@dataclass(frozen=True)
class Conflict:
    """A single reason a candidate registration collides with existing state."""

    kind: ConflictKind
    message: str
    registration_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "message": self.message,
            "registrationId": self.registration_id,
        }


class ConflictChecker:
    """Compares a candidate registration against a trimester's registrations."""

    def find_conflicts(
        self,
        candidate: Registration,
        existing: Iterable[Registration],
        group_class: GroupClass | None = None,
        is_admin: bool = False,
    ) -> list[Conflict]:
        """Collect every conflict for a candidate registration.

        Args:
            candidate: Registration being created
            existing: Registrations already in the target trimester
            group_class: Class the candidate enrolls in, for the capacity check
            is_admin: Admins may overfill classes

        Returns:
            Conflicts found, empty if the candidate can be accepted
        """
        conflicts: list[Conflict] = []
        enrolled = 0
        for other in existing:
            if candidate.id is not None and other.id == candidate.id:
                continue
            if group_class is not None and other.class_id == group_class.id:
                enrolled += 1

            if candidate.is_same_class_enrollment(other):
                if other.student_id == candidate.student_id:
                    conflicts.append(
                        Conflict(
                            ConflictKind.DUPLICATE_ENROLLMENT,
                            f"Student is already enrolled in {other.class_title or 'this class'}",
                            other.id,
                        )
                    )
                continue

            if candidate.conflicts_with(other):
                conflicts.append(
                    Conflict(
                        ConflictKind.INSTRUCTOR_SCHEDULE,
                        f"Instructor already has a lesson on {other.day} at "
                        f"{other.formatted_time}",
                        other.id,
                    )
                )
            elif other.student_id == candidate.student_id and candidate.time_overlaps(other):
                conflicts.append(
                    Conflict(
                        ConflictKind.STUDENT_SCHEDULE,
                        f"Student already has a lesson on {other.day} at {other.formatted_time}",
                        other.id,
                    )
                )

        if (
            group_class is not None
            and candidate.is_group_class()
            and not is_admin
            and enrolled >= group_class.size
        ):
            conflicts.append(
                Conflict(
                    ConflictKind.CLASS_FULL,
                    f"{group_class.title or 'Class'} is full ({enrolled}/{group_class.size})",
                )
            )
        return conflicts

    def check_eligibility(self, student: Student, group_class: GroupClass) -> Conflict | None:
        """Grade eligibility of a student for a group class."""
        if group_class.accepts_grade(student.grade):
            return None
        return Conflict(
            ConflictKind.GRADE_INELIGIBLE,
            f"{student.full_name} (grade {student.grade or 'unknown'}) is not eligible for "
            f"{group_class.title or 'this class'} ({group_class.grade_label})",
        )

    def check_bus_restriction(self, registration: Registration) -> str | None:
        """Reject late-bus riders whose lesson ends after the day's bus departs.

        Returns:
            Error message, or None when the registration is allowed
        """
        if (registration.transportation_type or "").lower() != Transportation.BUS:
            return None
        deadline = BUS_DEADLINES.get(Weekday(registration.day))
        if deadline is None or registration.end_minutes <= time_to_minutes(deadline):
            return None
        return (
            f"Late Bus is not available for lessons ending after {format_12_hour(deadline)} "
            f"on {registration.day}. This lesson ends at {format_12_hour(registration.end_time)}. "
            'Please select "Late Pick Up" instead or choose a different time slot.'
        )
