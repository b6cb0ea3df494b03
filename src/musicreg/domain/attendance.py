"""Attendance records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from musicreg.domain.registration import parse_datetime
from musicreg.domain.values import Trimester

SESSIONS_PER_TRIMESTER = 12


def attendance_id(
    registration_id: str, week: int, school_year: str, trimester: Trimester | str
) -> str:
    """Deterministic record ID; one record per registration, week and term."""
    return f"{registration_id}_{week}_{school_year}_{Trimester.parse(trimester).value}"


@dataclass
class AttendanceRecord:
    """One attended lesson."""

    registration_id: str
    week: int
    school_year: str
    trimester: Trimester
    recorded_by: str
    recorded_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def id(self) -> str:
        return attendance_id(self.registration_id, self.week, self.school_year, self.trimester)

    @classmethod
    def from_database_row(cls, row: Sequence[Any] | None) -> AttendanceRecord | None:
        """Columns: id, registrationId, week, schoolYear, trimester, recordedBy, recordedAt."""
        if not row:
            return None
        cells = [("" if cell is None else str(cell).strip()) for cell in row]
        cells += [""] * (7 - len(cells))
        if not cells[0] or cells[0].lower() == "id":
            return None
        try:
            return cls(
                registration_id=cells[1],
                week=int(cells[2]),
                school_year=cells[3],
                trimester=Trimester.parse(cells[4]),
                recorded_by=cells[5],
                recorded_at=parse_datetime(cells[6]) or datetime.now(UTC),
            )
        except ValueError:
            return None

    def to_database_row(self) -> list[str]:
        return [
            self.id,
            self.registration_id,
            str(self.week),
            self.school_year,
            self.trimester.value,
            self.recorded_by,
            self.recorded_at.isoformat(),
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "registrationId": self.registration_id,
            "week": self.week,
            "schoolYear": self.school_year,
            "trimester": self.trimester.value,
            "recordedBy": self.recorded_by,
            "recordedAt": self.recorded_at.isoformat(),
        }


@dataclass
class AttendanceSummary:
    """Attendance totals for one registration in one term."""

    registration_id: str
    school_year: str
    trimester: Trimester
    records: list[AttendanceRecord] = field(default_factory=list)

    @property
    def total_sessions(self) -> int:
        return len(self.records)

    @property
    def attendance_rate(self) -> float:
        """Percentage of the trimester's sessions attended."""
        return round(self.total_sessions / SESSIONS_PER_TRIMESTER * 100, 1)

    @property
    def weeks_attended(self) -> list[int]:
        return [record.week for record in self.records]

    def to_dict(self) -> dict[str, Any]:
        return {
            "registrationId": self.registration_id,
            "schoolYear": self.school_year,
            "trimester": self.trimester.value,
            "totalSessions": self.total_sessions,
            "attendanceRate": self.attendance_rate,
            "weeksAttended": self.weeks_attended,
            "records": [record.to_dict() for record in self.records],
        }
