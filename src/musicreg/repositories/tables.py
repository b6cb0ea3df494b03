"""Names of the tables held in the tabular store."""

from musicreg.domain.period import registration_table
from musicreg.domain.values import Trimester

ADMINS = "admins"
INSTRUCTORS = "instructors"
STUDENTS = "students"
PARENTS = "parents"
CLASSES = "classes"
PERIODS = "periods"
ATTENDANCE = "attendance"

# Registrations are partitioned per trimester; scans run in this order
REGISTRATION_TABLES = tuple(registration_table(trimester) for trimester in Trimester)

__all__ = [
    "ADMINS",
    "ATTENDANCE",
    "CLASSES",
    "INSTRUCTORS",
    "PARENTS",
    "PERIODS",
    "REGISTRATION_TABLES",
    "STUDENTS",
    "registration_table",
]
