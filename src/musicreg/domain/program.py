"""Group class templates."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from musicreg.domain.values import (
    Weekday,
    format_12_hour,
    format_grade,
    grade_ordinal,
    minutes_to_time,
    normalize_time,
    time_to_minutes,
)

DEFAULT_CLASS_SIZE = 12


def _cell(row: Sequence[Any], index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


@dataclass
class GroupClass:
    """A group-lesson template used to fill in and validate group registrations.

    Schedule fields may be blank for waitlist classes.
    """

    id: str
    instructor_id: str
    day: str | None
    start_time: str | None
    length: int | None
    instrument: str | None
    title: str | None
    size: int = DEFAULT_CLASS_SIZE
    minimum_grade: str = ""
    maximum_grade: str = ""
    is_restricted: bool = False

    @property
    def end_time(self) -> str | None:
        if self.start_time is None or self.length is None:
            return None
        return minutes_to_time(time_to_minutes(self.start_time) + self.length)

    @property
    def formatted_name(self) -> str:
        """E.g. "Beginning Guitar (K-2): Monday at 3:00 PM"."""
        name = self.title or "Untitled class"
        grades = self.grade_label
        if grades:
            name = f"{name} ({grades})"
        if self.day and self.start_time:
            name = f"{name}: {self.day} at {format_12_hour(self.start_time)}"
        return name

    @property
    def grade_label(self) -> str:
        low = format_grade(self.minimum_grade) if self.minimum_grade else ""
        high = format_grade(self.maximum_grade) if self.maximum_grade else ""
        if low and high:
            return f"{low}-{high}"
        if low:
            return f"{low}+"
        if high:
            return f"up to {high}"
        return ""

    def accepts_grade(self, grade: object) -> bool:
        """Whether a grade lies within [minimum_grade, maximum_grade] inclusive.

        Unbounded classes accept every student; bounded classes reject
        students whose grade is unknown.
        """
        try:
            low = grade_ordinal(self.minimum_grade)
            high = grade_ordinal(self.maximum_grade)
        except ValueError:
            return False
        if low is None and high is None:
            return True
        try:
            level = grade_ordinal(grade)
        except ValueError:
            return False
        if level is None:
            return False
        return (low is None or level >= low) and (high is None or level <= high)

    @classmethod
    def from_database_row(cls, row: Sequence[Any] | None) -> GroupClass | None:
        """Columns: id, instructorId, day, startTime, length, endTime,
        instrument, title, size, minimumGrade, maximumGrade, isRestricted."""
        if not row or not _cell(row, 0) or _cell(row, 0).lower() == "id":
            return None
        try:
            day = Weekday.parse(_cell(row, 2)).value if _cell(row, 2) else None
            start = normalize_time(_cell(row, 3)) if _cell(row, 3) else None
            length = int(float(_cell(row, 4))) if _cell(row, 4) else None
            size = int(float(_cell(row, 8))) if _cell(row, 8) else DEFAULT_CLASS_SIZE
        except ValueError:
            return None
        return cls(
            id=_cell(row, 0),
            instructor_id=_cell(row, 1),
            day=day,
            start_time=start,
            length=length,
            instrument=_cell(row, 6) or None,
            title=_cell(row, 7) or None,
            size=size,
            minimum_grade=_cell(row, 9),
            maximum_grade=_cell(row, 10),
            is_restricted=_cell(row, 11).lower() in ("true", "1", "yes", "x"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "instructorId": self.instructor_id,
            "day": self.day,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "length": self.length,
            "instrument": self.instrument,
            "title": self.title,
            "size": self.size,
            "minimumGrade": format_grade(self.minimum_grade) if self.minimum_grade else None,
            "maximumGrade": format_grade(self.maximum_grade) if self.maximum_grade else None,
            "isRestricted": self.is_restricted,
            "formattedName": self.formatted_name,
        }
