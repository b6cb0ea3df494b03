"""Tabular Store - Record-oriented persistence with an audit trail."""

from __future__ import annotations

from typing import TYPE_CHECKING

from musicreg.store.base import (
    AUDIT_TABLE,
    AuditAction,
    AuditEntry,
    RawRow,
    SupportsRow,
    TableStore,
)
from musicreg.store.exceptions import (
    RecordExistsError,
    RecordNotFoundError,
    StoreError,
    TableNotFoundError,
)
from musicreg.store.sheets import SheetsTableStore
from musicreg.store.sql_store import SqlTableStore

if TYPE_CHECKING:
    from musicreg.config import Settings

__all__ = [
    "AUDIT_TABLE",
    "AuditAction",
    "AuditEntry",
    "RawRow",
    "RecordExistsError",
    "RecordNotFoundError",
    "SheetsTableStore",
    "SqlTableStore",
    "StoreError",
    "SupportsRow",
    "TableNotFoundError",
    "TableStore",
    "create_store",
]


def create_store(settings: Settings) -> TableStore:
    """Build the store backend selected by settings."""
    if settings.store_backend == "sheets":
        if not settings.spreadsheet_id:
            raise StoreError("spreadsheet_id is required for the sheets backend")
        return SheetsTableStore.from_service_account(
            settings.spreadsheet_id,
            key_file=settings.service_account_file,
            key_json=settings.service_account_json,
            cache_ttl=settings.cache_ttl_seconds,
        )
    return SqlTableStore(settings.db_path)
