"""Enrollment periods and the per-request period context."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from musicreg.domain.registration import parse_date
from musicreg.domain.values import PeriodType, Trimester

# Enrollment phases each trimester runs through, in order
PERIOD_SEQUENCE: dict[Trimester, tuple[PeriodType, ...]] = {
    Trimester.FALL: (PeriodType.OPEN_ENROLLMENT, PeriodType.REGISTRATION),
    Trimester.WINTER: (
        PeriodType.INTENT,
        PeriodType.PRIORITY_ENROLLMENT,
        PeriodType.OPEN_ENROLLMENT,
        PeriodType.REGISTRATION,
    ),
    Trimester.SPRING: (
        PeriodType.INTENT,
        PeriodType.PRIORITY_ENROLLMENT,
        PeriodType.OPEN_ENROLLMENT,
        PeriodType.REGISTRATION,
    ),
}

ENROLLMENT_PERIODS = frozenset({PeriodType.PRIORITY_ENROLLMENT, PeriodType.OPEN_ENROLLMENT})


def registration_table(trimester: Trimester | str) -> str:
    """Name of the registrations table for a trimester."""
    return f"registrations_{Trimester.parse(trimester).value}"


def next_in_sequence(trimester: Trimester, period_type: PeriodType) -> tuple[Trimester, PeriodType]:
    """Successor of a (trimester, period type) pair in the canonical sequence.

    Raises:
        ValueError: If the period type does not occur in that trimester.
    """
    phases = PERIOD_SEQUENCE[trimester]
    if period_type not in phases:
        raise ValueError(f"{period_type} is not a {trimester} period")
    position = phases.index(period_type)
    if position + 1 < len(phases):
        return trimester, phases[position + 1]
    following = trimester.next()
    return following, PERIOD_SEQUENCE[following][0]


@dataclass(frozen=True)
class Period:
    """An admin-managed enrollment period row."""

    trimester: Trimester
    period_type: PeriodType
    is_current_period: bool = False
    start_date: date | None = None

    @property
    def table_name(self) -> str:
        return registration_table(self.trimester)

    def record_key(self) -> str:
        """Periods have no id column; trimester and type identify a row."""
        return f"{self.trimester.value}:{self.period_type.value}"

    @classmethod
    def from_database_row(cls, row: Sequence[Any] | None) -> Period | None:
        """Columns: trimester, periodType, isCurrentPeriod, startDate.

        Rows that do not parse (including the header) yield None.
        """
        if not row:
            return None
        cells = [("" if cell is None else str(cell).strip()) for cell in row]
        cells += [""] * (4 - len(cells))
        try:
            return cls(
                trimester=Trimester.parse(cells[0]),
                period_type=PeriodType.parse(cells[1]),
                is_current_period=cells[2].lower() in ("true", "1", "yes", "y", "x"),
                start_date=parse_date(cells[3]),
            )
        except ValueError:
            return None

    def to_database_row(self) -> list[str]:
        return [
            self.trimester.value,
            self.period_type.value,
            "TRUE" if self.is_current_period else "FALSE",
            self.start_date.isoformat() if self.start_date else "",
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "trimester": self.trimester.value,
            "periodType": self.period_type.value,
            "isCurrentPeriod": self.is_current_period,
            "startDate": self.start_date.isoformat() if self.start_date else None,
        }


@dataclass(frozen=True)
class PeriodContext:
    """Current and next period, resolved once per request.

    Operations that need to know "which trimester is current" take this
    value instead of re-reading the periods table.
    """

    current: Period | None
    next: Period | None = None

    @property
    def current_trimester(self) -> Trimester | None:
        return self.current.trimester if self.current else None

    @property
    def current_trimester_table(self) -> str | None:
        return self.current.table_name if self.current else None

    @property
    def is_enrollment_window(self) -> bool:
        """Priority or open enrollment is in progress."""
        return self.current is not None and self.current.period_type in ENROLLMENT_PERIODS

    @property
    def is_intent_period(self) -> bool:
        return self.current is not None and self.current.period_type == PeriodType.INTENT

    @property
    def next_trimester(self) -> Trimester | None:
        """Trimester following the current one, whatever the phase."""
        return self.current.trimester.next() if self.current else None

    @property
    def next_trimester_table(self) -> str | None:
        """Registrations table for the upcoming trimester during enrollment windows."""
        if not self.is_enrollment_window or self.current is None:
            return None
        return registration_table(self.current.trimester.next())

    @property
    def available_trimesters(self) -> list[Trimester]:
        """Trimesters whose registrations a caller may see.

        Intent periods show the previous and current trimester; every other
        phase shows the current and next.
        """
        if self.current is None:
            return []
        trimester = self.current.trimester
        if self.current.period_type == PeriodType.INTENT:
            return [trimester.previous(), trimester]
        return [trimester, trimester.next()]

    def can_access_next_trimester(self, has_active_registrations: bool) -> bool:
        """Whether a family may enroll in the upcoming trimester now.

        Open enrollment admits everyone; priority enrollment admits only
        families with active registrations.
        """
        if self.current is None:
            return False
        if self.current.period_type == PeriodType.OPEN_ENROLLMENT:
            return True
        if self.current.period_type == PeriodType.PRIORITY_ENROLLMENT:
            return has_active_registrations
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentPeriod": self.current.to_dict() if self.current else None,
            "nextPeriod": self.next.to_dict() if self.next else None,
            "currentTrimesterTable": self.current_trimester_table,
            "nextTrimesterTable": self.next_trimester_table,
            "availableTrimesters": [t.value for t in self.available_trimesters],
        }
