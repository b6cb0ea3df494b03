"""Shared pytest fixtures and configuration."""

import pytest

from musicreg.domain import Period
from musicreg.repositories.tables import PERIODS
from musicreg.store import RawRow, SqlTableStore

SEED_ACTOR = "seed@school.org"


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


def _availability(*days: tuple[str, str, str, str]) -> list[str]:
    cells: list[str] = []
    for day in days:
        cells.extend(day)
    return cells


CLOSED = ("FALSE", "", "", "")

ADMIN_ROWS = [
    ["A1", "admin@school.org", "Admin", "Alice", "555-0100", "123456", "Director", "", "", "TRUE"],
]

INSTRUCTOR_ROWS = [
    [
        "I1", "ivan@school.org", "Petrov", "Ivan", "555-0101", "FALSE", "K", "5",
        "Piano", "Guitar", "", "",
        *_availability(
            ("TRUE", "14:00", "18:00", "R-101"),
            ("TRUE", "14:00", "18:00", "R-102"),
            CLOSED,
            ("TRUE", "14:00", "18:00", ""),
            CLOSED,
        ),
        "654321",
    ],
    [
        "I2", "gail@school.org", "Gone", "Gail", "", "TRUE", "", "",
        "Drums", "", "", "",
        *_availability(CLOSED, CLOSED, CLOSED, CLOSED, CLOSED),
        "111111",
    ],
    [
        "I3", "jane@school.org", "Doe", "Jane", "", "FALSE", "", "",
        "Violin", "", "", "",
        *_availability(CLOSED, ("TRUE", "15:00", "17:00", "R-201"), CLOSED, CLOSED, CLOSED),
        "222222",
    ],
]

PARENT_ROWS = [
    ["P1", "parent@example.com", "Smith", "Pat", "(555) 010-2000", "5550102000"],
    ["P2", "other@example.com", "Jones", "Jo", "555-999-0000", "5559990000"],
]

STUDENT_ROWS = [
    ["S1", "Smith", "Samuel", "", "Sam", "3", "P1", ""],
    ["S2", "Smith", "Sara", "", "", "K", "P1", "P2"],
    ["S3", "Jones", "Jo", "", "", "8", "P2", ""],
]

CLASS_ROWS = [
    ["C1", "I1", "Monday", "15:00", "45", "15:45", "Guitar", "Beginning Guitar", "2", "K", "5", ""],
    ["C9", "I1", "Thursday", "16:00", "", "", "Drums", "Rock Band", "12", "3", "8", ""],
]

FALL_REGISTRATION_PERIODS = [
    ["fall", "registration", "TRUE", "2025-09-01"],
    ["winter", "intent", "FALSE", "2025-11-15"],
]


def seed_rows(store: SqlTableStore, table: str, rows: list[list[str]]) -> None:
    """Append raw rows to a table."""
    for row in rows:
        store.append_record(table, RawRow(list(row)), SEED_ACTOR)


def seed_periods(store: SqlTableStore, rows: list[list[str]]) -> None:
    """Append period rows, keyed by trimester and period type."""
    for row in rows:
        period = Period.from_database_row(row)
        assert period is not None
        store.append_record(PERIODS, period, SEED_ACTOR)


@pytest.fixture
def store():
    """Create an in-memory SqlTableStore."""
    s = SqlTableStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def seeded_store(store: SqlTableStore) -> SqlTableStore:
    """In-memory store with users, classes and a fall registration period."""
    seed_rows(store, "admins", ADMIN_ROWS)
    seed_rows(store, "instructors", INSTRUCTOR_ROWS)
    seed_rows(store, "parents", PARENT_ROWS)
    seed_rows(store, "students", STUDENT_ROWS)
    seed_rows(store, "classes", CLASS_ROWS)
    seed_periods(store, FALL_REGISTRATION_PERIODS)
    return store
