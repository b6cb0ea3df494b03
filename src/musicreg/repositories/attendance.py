"""AttendanceRepository - One record per registration, week and term."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from musicreg.domain.attendance import AttendanceRecord, AttendanceSummary, attendance_id
from musicreg.domain.exceptions import ConflictError, ValidationError
from musicreg.domain.values import Trimester
from musicreg.repositories.tables import ATTENDANCE
from musicreg.store.exceptions import RecordExistsError, StoreError

if TYPE_CHECKING:
    from musicreg.store.base import TableStore

logger = logging.getLogger("musicreg.repositories.attendance")


class AttendanceRepository:
    """Records and summarizes lesson attendance."""

    def __init__(self, store: TableStore) -> None:
        self._store = store

    def find_all(self) -> list[AttendanceRecord]:
        rows = self._store.get_all_records(ATTENDANCE, AttendanceRecord.from_database_row)
        return [record for record in rows if record is not None]

    def find_by_id(self, record_id: str) -> AttendanceRecord | None:
        return next((r for r in self.find_all() if r.id == record_id), None)

    def create(
        self,
        registration_id: str,
        week: int,
        school_year: str,
        trimester: Trimester | str,
        recorded_by: str,
    ) -> AttendanceRecord:
        """Record attendance for one lesson.

        Raises:
            ValidationError: If recorded_by is missing or inputs are invalid
            ConflictError: If attendance was already recorded for that week
        """
        if not recorded_by or not recorded_by.strip():
            raise ValidationError("recordedBy is required for audit trail")
        if not registration_id or not registration_id.strip():
            raise ValidationError("registrationId is required")
        if not school_year or not school_year.strip():
            raise ValidationError("schoolYear is required")
        try:
            parsed_trimester = Trimester.parse(trimester)
        except ValueError as e:
            raise ValidationError(f"Invalid trimester: {trimester}") from e
        if week < 1:
            raise ValidationError("week must be a positive number")

        record = AttendanceRecord(
            registration_id=registration_id.strip(),
            week=week,
            school_year=school_year.strip(),
            trimester=parsed_trimester,
            recorded_by=recorded_by.strip(),
        )
        if self.find_by_id(record.id) is not None:
            raise ConflictError(
                "Attendance already recorded for this registration and week",
                code="ATTENDANCE_EXISTS",
            )

        try:
            self._store.append_record(ATTENDANCE, record, record.recorded_by)
        except RecordExistsError as e:
            raise ConflictError(
                "Attendance already recorded for this registration and week",
                code="ATTENDANCE_EXISTS",
            ) from e
        except StoreError as e:
            logger.error("Failed to record attendance %s: %s", record.id, e)
            raise

        logger.info("Recorded attendance %s (by %s)", record.id, record.recorded_by)
        return record

    def find_by_registration_id(self, registration_id: str) -> list[AttendanceRecord]:
        return [r for r in self.find_all() if r.registration_id == registration_id]

    def find_by_week(
        self, week: int, school_year: str, trimester: Trimester | str
    ) -> list[AttendanceRecord]:
        parsed = Trimester.parse(trimester)
        return [
            r
            for r in self.find_all()
            if r.week == week and r.school_year == school_year and r.trimester == parsed
        ]

    def has_attendance(
        self, registration_id: str, week: int, school_year: str, trimester: Trimester | str
    ) -> bool:
        record_id = attendance_id(registration_id, week, school_year, trimester)
        return self.find_by_id(record_id) is not None

    def get_attendance_summary(
        self, registration_id: str, school_year: str, trimester: Trimester | str
    ) -> AttendanceSummary:
        """Attended lessons for a registration in one term, sorted by week.

        Raises:
            ValidationError: If the trimester is invalid
        """
        try:
            parsed = Trimester.parse(trimester)
        except ValueError as e:
            raise ValidationError(f"Invalid trimester: {trimester}") from e
        records = sorted(
            (
                r
                for r in self.find_by_registration_id(registration_id)
                if r.school_year == school_year and r.trimester == parsed
            ),
            key=lambda r: r.week,
        )
        return AttendanceSummary(
            registration_id=registration_id,
            school_year=school_year,
            trimester=parsed,
            records=records,
        )
