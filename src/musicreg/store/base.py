"""Record-oriented interface every tabular store backend implements."""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol, TypeVar

T = TypeVar("T")

RowMapper = Callable[[list[str]], T | None]

AUDIT_TABLE = "audit_log"


class AuditAction(StrEnum):
    """Kind of mutation recorded in the audit trail."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SupportsRow(Protocol):
    """Anything that serializes to a row whose first cell is its primary key."""

    def to_database_row(self) -> Sequence[Any]: ...


@dataclass
class RawRow:
    """Plain list of cells, for writing rows that have no entity class."""

    cells: list[Any] = field(default_factory=list)
    key: str | None = None

    def to_database_row(self) -> list[Any]:
        return list(self.cells)

    def record_key(self) -> str:
        return self.key or (str(self.cells[0]) if self.cells else "")


@dataclass
class AuditEntry:
    """One entry of the audit trail."""

    table_name: str
    action: AuditAction
    record_id: str
    actor_id: str
    snapshot: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_database_row(self) -> list[str]:
        return [
            self.created_at.isoformat(),
            self.table_name,
            self.action.value,
            self.record_id,
            self.actor_id,
            json.dumps(self.snapshot),
        ]


def row_to_cells(entity: SupportsRow) -> list[str]:
    """Serialize an entity to string cells, blanks for None."""
    return ["" if cell is None else str(cell) for cell in entity.to_database_row()]


def record_key(entity: SupportsRow, cells: list[str]) -> str:
    """Primary key of a row: ``entity.record_key()`` when defined, else the first cell."""
    key_fn = getattr(entity, "record_key", None)
    key = key_fn() if callable(key_fn) else (cells[0] if cells else "")
    return str(key).strip()


def require_actor(actor_id: str | None) -> str:
    """Reject anonymous mutations.

    Raises:
        ValueError: If actor_id is missing or blank.
    """
    if actor_id is None or not str(actor_id).strip():
        raise ValueError("actor_id is required for audit trail")
    return str(actor_id).strip()


class TableStore(Protocol):
    """Interface for the tabular store.

    Every mutation is applied together with its audit entry as one
    atomic operation.
    """

    def get_all_records(self, table: str, row_mapper: RowMapper[T]) -> list[T | None]:
        """Map every data row of a table; unusable rows map to None."""
        ...

    def append_record(self, table: str, entity: SupportsRow, actor_id: str) -> None:
        """Append a row and its audit entry."""
        ...

    def update_record(self, table: str, entity: SupportsRow, actor_id: str) -> None:
        """Replace the row with the same primary key, with an audit entry."""
        ...

    def delete_record(self, table: str, record_id: str, actor_id: str) -> None:
        """Delete the row with this primary key, with an audit entry."""
        ...

    def clear_cache(self, table: str | None = None) -> None:
        """Drop cached reads for one table, or all tables."""
        ...

    def close(self) -> None:
        """Release connections."""
        ...
