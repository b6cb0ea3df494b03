"""UserRepository - Cached access to admins, instructors, students and parents."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeVar

from musicreg.domain.people import Admin, Instructor, Parent, Student
from musicreg.repositories.tables import ADMINS, INSTRUCTORS, PARENTS, STUDENTS
from musicreg.store.exceptions import StoreError

if TYPE_CHECKING:
    from musicreg.store.base import TableStore

logger = logging.getLogger("musicreg.repositories.users")

T = TypeVar("T")


class UserType(StrEnum):
    """Kind of user an access code belongs to."""

    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    PARENT = "parent"


@dataclass
class UserMatch:
    """A user found by access code."""

    user: Admin | Instructor | Parent
    user_type: UserType


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


class UserRepository:
    """Loads user tables once and serves lookups from memory.

    Call ``clear_cache`` (or pass ``force_refresh``) to pick up edits made
    directly in the store.
    """

    def __init__(self, store: TableStore) -> None:
        self._store = store
        self._cache: dict[str, list[Any]] = {}

    def _load(
        self,
        table: str,
        mapper: Callable[[list[str]], T | None],
        force_refresh: bool = False,
    ) -> list[T]:
        if force_refresh or table not in self._cache:
            try:
                rows = self._store.get_all_records(table, mapper)
            except StoreError as e:
                logger.error("Failed to load %s: %s", table, e)
                raise
            self._cache[table] = [row for row in rows if row is not None]
            logger.debug("Loaded %d rows from %s", len(self._cache[table]), table)
        return list(self._cache[table])

    def clear_cache(self) -> None:
        """Forget all loaded user tables."""
        for table in list(self._cache):
            self._store.clear_cache(table)
        self._cache.clear()

    # --- Admins ---

    def get_admins(self, force_refresh: bool = False) -> list[Admin]:
        return self._load(ADMINS, Admin.from_database_row, force_refresh)

    def get_admin_by_id(self, admin_id: str) -> Admin | None:
        return next((a for a in self.get_admins() if a.id == admin_id), None)

    def get_admin_by_email(self, email: str) -> Admin | None:
        email = email.strip().lower()
        return next((a for a in self.get_admins() if a.email.lower() == email), None)

    def get_admin_by_access_code(self, access_code: str) -> Admin | None:
        code = access_code.strip()
        return next((a for a in self.get_admins() if a.access_code and a.access_code == code), None)

    # --- Instructors ---

    def get_all_instructors(self, force_refresh: bool = False) -> list[Instructor]:
        """Every instructor, including deactivated ones."""
        return self._load(INSTRUCTORS, Instructor.from_database_row, force_refresh)

    def get_instructors(self, force_refresh: bool = False) -> list[Instructor]:
        """Active instructors only."""
        return [i for i in self.get_all_instructors(force_refresh) if i.is_active]

    def get_instructor_by_id(self, instructor_id: str) -> Instructor | None:
        return next((i for i in self.get_instructors() if i.id == instructor_id), None)

    def get_instructor_by_email(self, email: str) -> Instructor | None:
        email = email.strip().lower()
        return next((i for i in self.get_instructors() if i.email.lower() == email), None)

    def get_instructor_by_access_code(self, access_code: str) -> Instructor | None:
        code = access_code.strip()
        return next(
            (i for i in self.get_instructors() if i.access_code and i.access_code == code),
            None,
        )

    # --- Parents ---

    def get_parents(self, force_refresh: bool = False) -> list[Parent]:
        return self._load(PARENTS, Parent.from_database_row, force_refresh)

    def get_parent_by_id(self, parent_id: str) -> Parent | None:
        return next((p for p in self.get_parents() if p.id == parent_id), None)

    def get_parent_by_email(self, email: str) -> Parent | None:
        email = email.strip().lower()
        return next((p for p in self.get_parents() if p.email.lower() == email), None)

    def get_parent_by_access_code(self, access_code: str) -> Parent | None:
        """Parents log in with their phone number; formatting is ignored."""
        code = _digits(access_code)
        if not code:
            return None
        return next((p for p in self.get_parents() if _digits(p.access_code) == code), None)

    # --- Students ---

    def get_students(self, force_refresh: bool = False) -> list[Student]:
        """Students with their parents' emails filled in."""
        students = self._load(STUDENTS, Student.from_database_row, force_refresh)
        parents = {p.id: p for p in self.get_parents(force_refresh)}
        for student in students:
            student.parent_emails = [
                parents[pid].email for pid in student.parent_ids if pid in parents
            ]
        return students

    def get_student_by_id(self, student_id: str) -> Student | None:
        return next((s for s in self.get_students() if s.id == student_id), None)

    def get_students_by_parent_id(self, parent_id: str) -> list[Student]:
        return [s for s in self.get_students() if parent_id in s.parent_ids]

    # --- Access codes ---

    def get_user_by_access_code(self, access_code: str) -> UserMatch | None:
        """Find the user owning an access code.

        Admins take precedence over instructors, instructors over parents.
        """
        if not access_code or not access_code.strip():
            return None
        admin = self.get_admin_by_access_code(access_code)
        if admin is not None:
            return UserMatch(admin, UserType.ADMIN)
        instructor = self.get_instructor_by_access_code(access_code)
        if instructor is not None:
            return UserMatch(instructor, UserType.INSTRUCTOR)
        parent = self.get_parent_by_access_code(access_code)
        if parent is not None:
            return UserMatch(parent, UserType.PARENT)
        return None
