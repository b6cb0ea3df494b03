"""Unit tests for AttendanceRepository."""

import pytest

from musicreg.domain import ConflictError, Trimester, ValidationError
from musicreg.repositories import AttendanceRepository
from musicreg.store import SqlTableStore

INSTRUCTOR = "ivan@school.org"


@pytest.fixture
def attendance(store: SqlTableStore) -> AttendanceRepository:
    return AttendanceRepository(store)


@pytest.mark.unit
class TestCreate:
    """Tests for recording attendance."""

    def test_create(self, attendance: AttendanceRepository) -> None:
        record = attendance.create("reg-1", 1, "2025-2026", "Fall", INSTRUCTOR)

        assert record.id == "reg-1_1_2025-2026_fall"
        assert record.trimester is Trimester.FALL
        assert attendance.find_by_id(record.id) == record
        assert attendance.has_attendance("reg-1", 1, "2025-2026", "fall")

    def test_duplicate_week_conflicts(self, attendance: AttendanceRepository) -> None:
        attendance.create("reg-1", 1, "2025-2026", "fall", INSTRUCTOR)

        with pytest.raises(ConflictError) as exc_info:
            attendance.create("reg-1", 1, "2025-2026", "fall", "admin@school.org")

        assert exc_info.value.code == "ATTENDANCE_EXISTS"

    def test_requires_recorder(self, attendance: AttendanceRepository) -> None:
        with pytest.raises(ValidationError, match="recordedBy is required for audit trail"):
            attendance.create("reg-1", 1, "2025-2026", "fall", " ")

    @pytest.mark.parametrize(
        ("args", "message"),
        [
            (("", 1, "2025-2026", "fall"), "registrationId"),
            (("reg-1", 0, "2025-2026", "fall"), "week"),
            (("reg-1", 1, "", "fall"), "schoolYear"),
            (("reg-1", 1, "2025-2026", "summer"), "Invalid trimester"),
        ],
    )
    def test_invalid_input(
        self, attendance: AttendanceRepository, args: tuple, message: str
    ) -> None:
        with pytest.raises(ValidationError, match=message):
            attendance.create(*args, recorded_by=INSTRUCTOR)


@pytest.mark.unit
class TestQueries:
    """Tests for lookups and summaries."""

    @pytest.fixture(autouse=True)
    def recorded(self, attendance: AttendanceRepository) -> None:
        attendance.create("reg-1", 3, "2025-2026", "fall", INSTRUCTOR)
        attendance.create("reg-1", 1, "2025-2026", "fall", INSTRUCTOR)
        attendance.create("reg-1", 1, "2025-2026", "winter", INSTRUCTOR)
        attendance.create("reg-2", 1, "2025-2026", "fall", INSTRUCTOR)

    def test_by_registration(self, attendance: AttendanceRepository) -> None:
        assert len(attendance.find_by_registration_id("reg-1")) == 3

    def test_by_week(self, attendance: AttendanceRepository) -> None:
        records = attendance.find_by_week(1, "2025-2026", "fall")

        assert sorted(r.registration_id for r in records) == ["reg-1", "reg-2"]

    def test_summary_sorted_by_week(self, attendance: AttendanceRepository) -> None:
        summary = attendance.get_attendance_summary("reg-1", "2025-2026", "fall")

        assert summary.weeks_attended == [1, 3]
        assert summary.total_sessions == 2
        assert summary.attendance_rate == 16.7

    def test_summary_invalid_trimester(self, attendance: AttendanceRepository) -> None:
        with pytest.raises(ValidationError):
            attendance.get_attendance_summary("reg-1", "2025-2026", "summer")

    def test_has_attendance_false(self, attendance: AttendanceRepository) -> None:
        assert not attendance.has_attendance("reg-1", 2, "2025-2026", "fall")
