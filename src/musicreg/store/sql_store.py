"""SqlTableStore - Tabular store backed by SQLite through SQLAlchemy."""

from __future__ import annotations

import logging
from typing import TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from musicreg.store.base import (
    AuditAction,
    AuditEntry,
    RowMapper,
    SupportsRow,
    record_key,
    require_actor,
    row_to_cells,
)
from musicreg.store.database import build_engine, journal_mode
from musicreg.store.exceptions import RecordExistsError, RecordNotFoundError, StoreError
from musicreg.store.models import AuditLogEntry, TableRow

logger = logging.getLogger("musicreg.store")

T = TypeVar("T")


class SqlTableStore:
    """Tabular store keeping every logical table in one SQL table of JSON rows.

    Each mutation and its audit entry commit in the same transaction.
    """

    def __init__(self, db_path: str = "musicreg.db") -> None:
        """Initialize the store, creating the schema if needed.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self.db_path = db_path
        self.engine = build_engine(db_path)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)

    @property
    def journal_mode(self) -> str:
        """SQLite journal mode of the underlying database."""
        return journal_mode(self.engine)

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()

    def clear_cache(self, table: str | None = None) -> None:
        """No-op; reads always hit the database."""

    # --- Reads ---

    def get_all_records(self, table: str, row_mapper: RowMapper[T]) -> list[T | None]:
        """Map every row of a table in insertion order.

        Args:
            table: Logical table name.
            row_mapper: Converts a list of cells into an entity or None.

        Returns:
            One mapped value per row; rows the mapper rejects appear as None.
        """
        stmt = (
            select(TableRow.cells)
            .where(TableRow.table_name == table)
            .order_by(TableRow.position)
        )
        with self._sessions() as session:
            rows = [list(cells) for cells in session.execute(stmt).scalars().all()]

        results: list[T | None] = []
        for cells in rows:
            try:
                results.append(row_mapper(cells))
            except (ValueError, TypeError, IndexError) as e:
                logger.warning("Skipping unreadable row in %s: %s", table, e)
                results.append(None)
        return results

    def get_audit_entries(
        self, table: str | None = None, record_id: str | None = None
    ) -> list[AuditEntry]:
        """List audit entries, oldest first, optionally filtered."""
        stmt = select(AuditLogEntry).order_by(AuditLogEntry.sequence)
        if table is not None:
            stmt = stmt.where(AuditLogEntry.table_name == table)
        if record_id is not None:
            stmt = stmt.where(AuditLogEntry.record_id == record_id)
        with self._sessions() as session:
            return [
                AuditEntry(
                    table_name=entry.table_name,
                    action=AuditAction(entry.action),
                    record_id=entry.record_id,
                    actor_id=entry.actor_id,
                    snapshot=list(entry.snapshot),
                    created_at=entry.created_at,
                )
                for entry in session.execute(stmt).scalars().all()
            ]

    # --- Writes ---

    def append_record(self, table: str, entity: SupportsRow, actor_id: str) -> None:
        """Append a row with an audit entry.

        Appending a row identical to the stored one is a no-op.

        Raises:
            RecordExistsError: If a different row has the same primary key.
            StoreError: If the row has no primary key.
        """
        actor = require_actor(actor_id)
        cells = row_to_cells(entity)
        record_id = self._primary_key(table, entity, cells)

        with self._sessions() as session:
            existing = self._find(session, table, record_id)
            if existing is not None:
                if list(existing.cells) == cells:
                    logger.debug("Row %s already present in %s", record_id, table)
                    return
                raise RecordExistsError(f"Record '{record_id}' already exists in {table}")

            session.add(TableRow(table_name=table, record_id=record_id, cells=cells))
            session.add(self._audit(table, AuditAction.CREATE, record_id, actor, cells))
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise RecordExistsError(
                    f"Record '{record_id}' already exists in {table}"
                ) from e
        logger.info("Appended %s to %s (by %s)", record_id, table, actor)

    def update_record(self, table: str, entity: SupportsRow, actor_id: str) -> None:
        """Replace a whole row by primary key, with an audit entry.

        Raises:
            RecordNotFoundError: If no row has the entity's primary key.
        """
        actor = require_actor(actor_id)
        cells = row_to_cells(entity)
        record_id = self._primary_key(table, entity, cells)

        with self._sessions() as session:
            existing = self._find(session, table, record_id)
            if existing is None:
                raise RecordNotFoundError(f"Record '{record_id}' not found in {table}")
            existing.cells = cells
            session.add(self._audit(table, AuditAction.UPDATE, record_id, actor, cells))
            session.commit()
        logger.info("Updated %s in %s (by %s)", record_id, table, actor)

    def delete_record(self, table: str, record_id: str, actor_id: str) -> None:
        """Delete a row by primary key, auditing the deleted values.

        Raises:
            RecordNotFoundError: If no row has this primary key.
        """
        actor = require_actor(actor_id)
        with self._sessions() as session:
            existing = self._find(session, table, record_id)
            if existing is None:
                raise RecordNotFoundError(f"Record '{record_id}' not found in {table}")
            snapshot = list(existing.cells)
            session.execute(delete(TableRow).where(TableRow.position == existing.position))
            session.add(self._audit(table, AuditAction.DELETE, record_id, actor, snapshot))
            session.commit()
        logger.info("Deleted %s from %s (by %s)", record_id, table, actor)

    # --- Helpers ---

    @staticmethod
    def _primary_key(table: str, entity: SupportsRow, cells: list[str]) -> str:
        key = record_key(entity, cells)
        if not key:
            raise StoreError(f"Row for {table} has no primary key")
        return key

    @staticmethod
    def _find(session: Session, table: str, record_id: str) -> TableRow | None:
        stmt = select(TableRow).where(
            TableRow.table_name == table, TableRow.record_id == record_id
        )
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _audit(
        table: str, action: AuditAction, record_id: str, actor: str, cells: list[str]
    ) -> AuditLogEntry:
        return AuditLogEntry(
            table_name=table,
            action=action.value,
            record_id=record_id,
            actor_id=actor,
            snapshot=cells,
        )
