"""Unit tests for GroupClass."""

import pytest

from musicreg.domain.program import DEFAULT_CLASS_SIZE, GroupClass

GUITAR_ROW = [
    "C1", "I1", "mon", "3:00 PM", "45", "15:45", "Guitar", "Beginning Guitar", "2", "K", "5", "",
]


@pytest.mark.unit
class TestGroupClass:
    """Tests for GroupClass parsing and eligibility."""

    def test_from_row(self) -> None:
        group_class = GroupClass.from_database_row(GUITAR_ROW)

        assert group_class is not None
        assert group_class.day == "Monday"
        assert group_class.start_time == "15:00"
        assert group_class.end_time == "15:45"
        assert group_class.size == 2
        assert group_class.formatted_name == "Beginning Guitar (K-5): Monday at 3:00 PM"

    def test_waitlist_class_without_schedule(self) -> None:
        group_class = GroupClass.from_database_row(
            ["C9", "I1", "", "", "", "", "Drums", "Rock Band", "", "3", "", "TRUE"]
        )

        assert group_class is not None
        assert group_class.length is None
        assert group_class.end_time is None
        assert group_class.size == DEFAULT_CLASS_SIZE
        assert group_class.is_restricted
        assert group_class.formatted_name == "Rock Band (3+)"

    @pytest.mark.parametrize(
        "row",
        [None, [], ["id", "instructorId"], ["C2", "I1", "Someday", "15:00", "45"]],
    )
    def test_unusable_rows(self, row: list[str] | None) -> None:
        assert GroupClass.from_database_row(row) is None

    @pytest.mark.parametrize(
        ("grade", "expected"),
        [("K", True), ("5", True), ("6", False), ("Pre-K", False), (None, False)],
    )
    def test_accepts_grade(self, grade: str | None, expected: bool) -> None:
        group_class = GroupClass.from_database_row(GUITAR_ROW)

        assert group_class is not None
        assert group_class.accepts_grade(grade) is expected

    def test_unbounded_class_accepts_unknown_grade(self) -> None:
        group_class = GroupClass(
            id="C3",
            instructor_id="I1",
            day="Friday",
            start_time="15:00",
            length=60,
            instrument=None,
            title="Choir",
        )

        assert group_class.accepts_grade(None)
        assert group_class.grade_label == ""

    def test_grade_label_upper_bound_only(self) -> None:
        group_class = GroupClass(
            id="C4",
            instructor_id="I1",
            day=None,
            start_time=None,
            length=None,
            instrument=None,
            title=None,
            maximum_grade="2",
        )

        assert group_class.grade_label == "up to 2"
        assert group_class.formatted_name == "Untitled class (up to 2)"
