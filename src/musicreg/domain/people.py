"""Profile entities: students, parents, admins and instructors."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from musicreg.domain.values import Weekday, format_grade, grade_ordinal, normalize_time


def _cell(row: Sequence[Any], index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "y", "x")


def _usable(row: Sequence[Any] | None) -> bool:
    return bool(row) and bool(_cell(row, 0)) and _cell(row, 0).lower() != "id"


@dataclass
class Student:
    """A student, optionally linked to up to two parents.

    The displayed first/last names prefer the nickname columns when set.
    """

    id: str
    legal_last_name: str
    legal_first_name: str
    last_nickname: str = ""
    first_nickname: str = ""
    grade: str = ""
    parent1_id: str | None = None
    parent2_id: str | None = None
    parent_emails: list[str] = field(default_factory=list)

    @property
    def first_name(self) -> str:
        return self.first_nickname or self.legal_first_name

    @property
    def last_name(self) -> str:
        return self.last_nickname or self.legal_last_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def parent_ids(self) -> list[str]:
        return [pid for pid in (self.parent1_id, self.parent2_id) if pid]

    @property
    def grade_level(self) -> int | None:
        """Comparable grade ordinal, None when unknown or unparseable."""
        try:
            return grade_ordinal(self.grade)
        except ValueError:
            return None

    @classmethod
    def from_database_row(cls, row: Sequence[Any] | None) -> Student | None:
        """Columns: id, lastName, firstName, lastNickname, firstNickname, grade,
        parent1Id, parent2Id."""
        if row is None or not _usable(row):
            return None
        return cls(
            id=_cell(row, 0),
            legal_last_name=_cell(row, 1),
            legal_first_name=_cell(row, 2),
            last_nickname=_cell(row, 3),
            first_nickname=_cell(row, 4),
            grade=_cell(row, 5),
            parent1_id=_cell(row, 6) or None,
            parent2_id=_cell(row, 7) or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "grade": format_grade(self.grade) if self.grade_level is not None else self.grade,
            "parent1Id": self.parent1_id,
            "parent2Id": self.parent2_id,
            "parentEmails": list(self.parent_emails),
        }


@dataclass
class Parent:
    """A parent or guardian. The access code is the parent's phone number."""

    id: str
    email: str
    last_name: str
    first_name: str
    phone: str = ""
    access_code: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return f"{self.full_name} (Parent)"

    @classmethod
    def from_database_row(cls, row: Sequence[Any] | None) -> Parent | None:
        """Columns: id, email, lastName, firstName, phone, accessCode."""
        if row is None or not _usable(row):
            return None
        return cls(
            id=_cell(row, 0),
            email=_cell(row, 1),
            last_name=_cell(row, 2),
            first_name=_cell(row, 3),
            phone=_cell(row, 4),
            access_code=_cell(row, 5) or _cell(row, 4),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "displayName": self.display_name,
            "phone": self.phone,
        }


@dataclass
class Admin:
    """A program administrator with a 6-digit access code."""

    id: str
    email: str
    last_name: str
    first_name: str
    phone: str = ""
    access_code: str = ""
    role: str = ""
    display_email: str = ""
    display_phone: str = ""
    is_director: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return f"{self.full_name} (Admin)"

    @classmethod
    def from_database_row(cls, row: Sequence[Any] | None) -> Admin | None:
        """Columns: id, email, lastName, firstName, phone, accessCode, role,
        displayEmail, displayPhone, isDirector."""
        if row is None or not _usable(row):
            return None
        return cls(
            id=_cell(row, 0),
            email=_cell(row, 1),
            last_name=_cell(row, 2),
            first_name=_cell(row, 3),
            phone=_cell(row, 4),
            access_code=_cell(row, 5),
            role=_cell(row, 6),
            display_email=_cell(row, 7),
            display_phone=_cell(row, 8),
            is_director=_truthy(_cell(row, 9)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "displayName": self.display_name,
            "role": self.role,
            "isDirector": self.is_director,
        }


@dataclass(frozen=True)
class DayAvailability:
    """An instructor's teaching window and room on one weekday."""

    day: Weekday
    is_available: bool
    start_time: str | None = None
    end_time: str | None = None
    room_id: str | None = None


@dataclass
class Instructor:
    """An instructor with specialties, grade range and weekly availability."""

    id: str
    email: str
    last_name: str
    first_name: str
    phone: str = ""
    is_deactivated: bool = False
    minimum_grade: str = ""
    maximum_grade: str = ""
    specialties: list[str] = field(default_factory=list)
    availability: dict[Weekday, DayAvailability] = field(default_factory=dict)
    access_code: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return f"{self.full_name} (Instructor)"

    @property
    def is_active(self) -> bool:
        return not self.is_deactivated

    def can_teach_grade(self, grade: object) -> bool:
        """Whether a student's grade falls inside this instructor's range.

        Open-ended bounds accept every grade on that side.
        """
        try:
            level = grade_ordinal(grade)
            low = grade_ordinal(self.minimum_grade)
            high = grade_ordinal(self.maximum_grade)
        except ValueError:
            return False
        if level is None:
            return low is None and high is None
        return (low is None or level >= low) and (high is None or level <= high)

    def availability_on(self, day: str | Weekday) -> DayAvailability | None:
        try:
            return self.availability.get(Weekday.parse(day))
        except ValueError:
            return None

    def is_available_on_day(self, day: str | Weekday) -> bool:
        slot = self.availability_on(day)
        return slot is not None and slot.is_available

    def room_for_day(self, day: str | Weekday) -> str | None:
        slot = self.availability_on(day)
        return slot.room_id if slot is not None else None

    @classmethod
    def from_database_row(cls, row: Sequence[Any] | None) -> Instructor | None:
        """Columns: id, email, lastName, firstName, phone, isDeactivated,
        minimumGrade, maximumGrade, instrument1-4, then per weekday
        isAvailable/startTime/endTime/roomId, then accessCode."""
        if row is None or not _usable(row):
            return None
        specialties = [_cell(row, i) for i in range(8, 12) if _cell(row, i)]
        availability: dict[Weekday, DayAvailability] = {}
        base = 12
        for offset, day in enumerate(Weekday):
            col = base + offset * 4
            start, end = _cell(row, col + 1), _cell(row, col + 2)
            try:
                start_time = normalize_time(start) if start else None
                end_time = normalize_time(end) if end else None
            except ValueError:
                start_time = end_time = None
            availability[day] = DayAvailability(
                day=day,
                is_available=_truthy(_cell(row, col)),
                start_time=start_time,
                end_time=end_time,
                room_id=_cell(row, col + 3) or None,
            )
        return cls(
            id=_cell(row, 0),
            email=_cell(row, 1),
            last_name=_cell(row, 2),
            first_name=_cell(row, 3),
            phone=_cell(row, 4),
            is_deactivated=_truthy(_cell(row, 5)),
            minimum_grade=_cell(row, 6),
            maximum_grade=_cell(row, 7),
            specialties=specialties,
            availability=availability,
            access_code=_cell(row, base + len(Weekday) * 4),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "isActive": self.is_active,
            "specialties": list(self.specialties),
            "gradeRange": {
                "minimum": format_grade(self.minimum_grade) if self.minimum_grade else None,
                "maximum": format_grade(self.maximum_grade) if self.maximum_grade else None,
            },
            "availability": {
                day.value: {
                    "isAvailable": slot.is_available,
                    "startTime": slot.start_time,
                    "endTime": slot.end_time,
                    "roomId": slot.room_id,
                }
                for day, slot in self.availability.items()
            },
        }
