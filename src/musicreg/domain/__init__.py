"""Domain model - Registrations, people, classes, periods and attendance."""

from musicreg.domain.attendance import AttendanceRecord, AttendanceSummary, attendance_id
from musicreg.domain.exceptions import (
    ConflictError,
    ErrorType,
    ForbiddenError,
    MusicRegError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from musicreg.domain.people import Admin, DayAvailability, Instructor, Parent, Student
from musicreg.domain.period import (
    PERIOD_SEQUENCE,
    Period,
    PeriodContext,
    next_in_sequence,
    registration_table,
)
from musicreg.domain.program import DEFAULT_CLASS_SIZE, GroupClass
from musicreg.domain.registration import (
    REGISTRATION_COLUMNS,
    CancellationDecision,
    CancellationPolicy,
    Registration,
)
from musicreg.domain.values import (
    InstructorId,
    PeriodType,
    ReenrollmentIntent,
    RegistrationId,
    RegistrationType,
    StudentId,
    Transportation,
    Trimester,
    Weekday,
)

__all__ = [
    "DEFAULT_CLASS_SIZE",
    "PERIOD_SEQUENCE",
    "REGISTRATION_COLUMNS",
    "Admin",
    "AttendanceRecord",
    "AttendanceSummary",
    "CancellationDecision",
    "CancellationPolicy",
    "ConflictError",
    "DayAvailability",
    "ErrorType",
    "ForbiddenError",
    "GroupClass",
    "Instructor",
    "InstructorId",
    "MusicRegError",
    "NotFoundError",
    "Parent",
    "Period",
    "PeriodContext",
    "PeriodType",
    "ReenrollmentIntent",
    "Registration",
    "RegistrationId",
    "RegistrationType",
    "Student",
    "StudentId",
    "Transportation",
    "Trimester",
    "UnauthorizedError",
    "ValidationError",
    "Weekday",
    "attendance_id",
    "next_in_sequence",
    "registration_table",
]
