"""Repositories - Translate domain operations into tabular store calls."""

from musicreg.repositories.attendance import AttendanceRepository
from musicreg.repositories.program import ProgramRepository
from musicreg.repositories.registration import RegistrationRepository
from musicreg.repositories.users import UserMatch, UserRepository, UserType

__all__ = [
    "AttendanceRepository",
    "ProgramRepository",
    "RegistrationRepository",
    "UserMatch",
    "UserRepository",
    "UserType",
]
