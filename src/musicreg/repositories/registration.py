"""RegistrationRepository - Registration persistence and trimester-table routing."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from musicreg.domain.exceptions import ConflictError, NotFoundError, ValidationError
from musicreg.domain.period import registration_table
from musicreg.domain.registration import Registration
from musicreg.domain.values import RegistrationId, Trimester
from musicreg.repositories.tables import REGISTRATION_TABLES
from musicreg.store.exceptions import RecordExistsError, RecordNotFoundError, StoreError

if TYPE_CHECKING:
    from musicreg.domain.period import PeriodContext
    from musicreg.domain.values import ReenrollmentIntent
    from musicreg.services.period import PeriodService
    from musicreg.store.base import TableStore

logger = logging.getLogger("musicreg.repositories.registration")


def _normalize_id(registration_id: str) -> str:
    """Registration IDs are UUIDs, matched case-insensitively."""
    return str(registration_id).strip().lower()


class RegistrationRepository:
    """Reads and writes registrations across the per-trimester tables.

    Lookups by ID, student or instructor fan out over the fall, winter and
    spring tables in that order. Writes always name their target table or
    trimester explicitly.
    """

    def __init__(
        self,
        store: TableStore,
        period_service: PeriodService | None = None,
        waitlist_class_ids: Iterable[str] = (),
    ) -> None:
        """Initialize the repository.

        Args:
            store: Tabular store holding the registration tables
            period_service: Resolves the current period when no context is passed
            waitlist_class_ids: Classes whose registrations may omit a length
        """
        self._store = store
        self._period_service = period_service
        self.waitlist_class_ids = frozenset(waitlist_class_ids)

    def _map_row(self, row: list[str]) -> Registration | None:
        return Registration.from_database_row(row, self.waitlist_class_ids)

    def _context(self, context: PeriodContext | None) -> PeriodContext:
        if context is not None:
            return context
        if self._period_service is None:
            raise NotFoundError("No active period found")
        return self._period_service.resolve_context()

    # --- Table-level operations ---

    def get_from_table(self, table: str) -> list[Registration]:
        """All valid registrations in one table.

        Raises:
            StoreError: If the table cannot be read.
        """
        try:
            rows = self._store.get_all_records(table, self._map_row)
        except StoreError as e:
            logger.error("Failed to read registrations from %s: %s", table, e)
            raise
        return [registration for registration in rows if registration is not None]

    def find_by_id_in_table(self, registration_id: str, table: str) -> Registration | None:
        """Registration with this ID in one table, or None."""
        registration_id = _normalize_id(registration_id)
        for registration in self.get_from_table(table):
            if registration.id == registration_id:
                return registration
        return None

    def create_in_table(
        self,
        data: Registration | Mapping[str, Any],
        table: str,
        linked_previous_registration_id: str | None = None,
    ) -> Registration:
        """Write a new registration into an explicit table.

        Args:
            data: Registration entity or request payload
            table: Target registrations table
            linked_previous_registration_id: Registration this one supersedes

        Returns:
            The stored registration, with its generated ID

        Raises:
            ValidationError: If createdBy is missing or data is invalid
            ConflictError: If a different registration already has the ID
        """
        created_by = (
            data.created_by
            if isinstance(data, Registration)
            else data.get("createdBy", data.get("created_by"))
        )
        if not created_by or not str(created_by).strip():
            raise ValidationError("createdBy is required for audit trail")

        registration = (
            data
            if isinstance(data, Registration)
            else Registration.from_api_data(data, self.waitlist_class_ids)
        )
        if registration.id is None:
            registration.id = RegistrationId.generate().value
        if linked_previous_registration_id:
            registration.linked_previous_registration_id = linked_previous_registration_id

        try:
            self._store.append_record(table, registration, str(created_by))
        except RecordExistsError as e:
            raise ConflictError(
                f"Registration {registration.id} already exists", code="REGISTRATION_EXISTS"
            ) from e
        except StoreError as e:
            logger.error("Failed to create registration in %s: %s", table, e)
            raise

        logger.info(
            "Created registration %s for student %s in %s",
            registration.id,
            registration.student_id,
            table,
        )
        return registration

    def update_in_table(
        self, registration: Registration, table: str, actor_id: str
    ) -> Registration:
        """Persist a whole updated registration row.

        Raises:
            NotFoundError: If the registration is not in the table
        """
        try:
            self._store.update_record(table, registration, actor_id)
        except RecordNotFoundError as e:
            raise NotFoundError(
                f"Registration {registration.id} not found in {table}",
                code="REGISTRATION_NOT_FOUND",
            ) from e
        except StoreError as e:
            logger.error("Failed to update registration %s: %s", registration.id, e)
            raise
        return registration

    def delete_from_table(self, registration_id: str, table: str, user_id: str) -> None:
        """Delete a registration from an explicit table.

        Raises:
            ValidationError: If user_id is missing
            NotFoundError: If the registration is not in the table
        """
        registration_id = _normalize_id(registration_id)
        if not user_id or not str(user_id).strip():
            raise ValidationError("userId is required for audit trail")
        if self.find_by_id_in_table(registration_id, table) is None:
            raise NotFoundError(
                f"Registration {registration_id} not found in {table}",
                code="REGISTRATION_NOT_FOUND",
            )
        self._delete(registration_id, table, user_id)

    def _delete(self, registration_id: str, table: str, user_id: str) -> None:
        try:
            self._store.delete_record(table, registration_id, user_id)
        except RecordNotFoundError as e:
            raise NotFoundError(
                f"Registration {registration_id} not found in {table}",
                code="REGISTRATION_NOT_FOUND",
            ) from e
        except StoreError as e:
            logger.error("Failed to delete registration %s: %s", registration_id, e)
            raise
        logger.info("Deleted registration %s from %s (by %s)", registration_id, table, user_id)

    # --- Cross-trimester lookups ---

    def get_all(self) -> list[Registration]:
        """Registrations from every trimester table, fall first."""
        registrations: list[Registration] = []
        for table in REGISTRATION_TABLES:
            registrations.extend(self.get_from_table(table))
        return registrations

    def get_by_id(self, registration_id: str) -> Registration | None:
        """First registration with this ID, scanning fall, winter, then spring."""
        located = self.locate(registration_id)
        return located[0] if located else None

    def locate(self, registration_id: str) -> tuple[Registration, str] | None:
        """Registration with this ID and the table it was found in."""
        registration_id = _normalize_id(registration_id)
        for table in REGISTRATION_TABLES:
            registration = self.find_by_id_in_table(registration_id, table)
            if registration is not None:
                return registration, table
        return None

    def get_by_student_id(self, student_id: str) -> list[Registration]:
        """A student's registrations across all trimesters."""
        return [r for r in self.get_all() if r.student_id == student_id]

    def get_by_instructor_id(self, instructor_id: str) -> list[Registration]:
        """An instructor's registrations across all trimesters."""
        return [r for r in self.get_all() if r.instructor_id == instructor_id]

    def get_registrations_for_trimester(self, trimester: Trimester | str) -> list[Registration]:
        """Registrations of one trimester.

        Raises:
            ValidationError: If the trimester name is invalid
        """
        try:
            parsed = Trimester.parse(trimester)
        except ValueError as e:
            raise ValidationError(f"Invalid trimester: {trimester}") from e
        return self.get_from_table(registration_table(parsed))

    def get_active_registrations(self, context: PeriodContext | None = None) -> list[Registration]:
        """Registrations of the current trimester."""
        table = self._context(context).current_trimester_table
        if table is None:
            raise NotFoundError("No active period found")
        return self.get_from_table(table)

    def get_accessible(
        self,
        context: PeriodContext | None = None,
        accessible_ids: Collection[str] | None = None,
    ) -> list[tuple[Registration, str]]:
        """Registrations visible in the current period, with their tables.

        Args:
            context: Period context (resolved when omitted)
            accessible_ids: Restrict to these registration IDs
        """
        visible: list[tuple[Registration, str]] = []
        for trimester in self._context(context).available_trimesters:
            table = registration_table(trimester)
            for registration in self.get_from_table(table):
                if accessible_ids is None or registration.id in accessible_ids:
                    visible.append((registration, table))
        return visible

    # --- Operations with audit preconditions ---

    def create(
        self,
        data: Registration | Mapping[str, Any],
        target_trimester: Trimester | str,
    ) -> Registration:
        """Create a registration in a trimester's table.

        Args:
            data: Registration entity or request payload (must carry createdBy)
            target_trimester: fall, winter or spring

        Returns:
            The stored registration

        Raises:
            ValidationError: If the trimester is invalid or createdBy is missing
        """
        try:
            trimester = Trimester.parse(target_trimester)
        except ValueError as e:
            raise ValidationError(f"Invalid trimester: {target_trimester}") from e
        return self.create_in_table(data, registration_table(trimester))

    def delete(
        self,
        registration_id: str,
        user_id: str,
        context: PeriodContext | None = None,
    ) -> None:
        """Delete a registration from the current trimester's table.

        Raises:
            ValidationError: If user_id is missing
            NotFoundError: If no trimester table holds the registration, or
                the current table does not
        """
        registration_id = _normalize_id(registration_id)
        if not user_id or not str(user_id).strip():
            raise ValidationError("userId is required for audit trail")
        if self.get_by_id(registration_id) is None:
            raise NotFoundError(
                f"Registration {registration_id} not found", code="REGISTRATION_NOT_FOUND"
            )
        table = self._context(context).current_trimester_table
        if table is None:
            raise NotFoundError("No active period found")
        self._delete(registration_id, table, user_id)

    def update_intent(
        self,
        registration_id: str,
        intent: ReenrollmentIntent | str,
        submitted_by: str,
        context: PeriodContext | None = None,
        accessible_ids: Collection[str] | None = None,
    ) -> Registration:
        """Record a reenrollment intent on an accessible registration.

        Raises:
            NotFoundError: If the registration is not accessible to the caller
            ValidationError: If the intent is invalid
        """
        registration_id = _normalize_id(registration_id)
        for registration, table in self.get_accessible(context, accessible_ids):
            if registration.id == registration_id:
                registration.update_intent(intent, submitted_by)
                self.update_in_table(registration, table, submitted_by)
                logger.info(
                    "Recorded intent %s for registration %s (by %s)",
                    registration.reenrollment_intent,
                    registration_id,
                    submitted_by,
                )
                return registration
        raise NotFoundError(
            f"Registration {registration_id} not found", code="REGISTRATION_NOT_FOUND"
        )

    def clear_cache(self) -> None:
        """Drop cached reads of every registration table."""
        for table in REGISTRATION_TABLES:
            self._store.clear_cache(table)
