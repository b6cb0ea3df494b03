"""SheetsTableStore - Tabular store backed by a Google spreadsheet.

Uses the Sheets v4 REST API. Row mutations and their audit rows are sent
in one ``spreadsheets.batchUpdate`` call, which Google applies atomically.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from musicreg.logging import sanitize_for_log
from musicreg.store.base import (
    AUDIT_TABLE,
    AuditAction,
    AuditEntry,
    RowMapper,
    SupportsRow,
    record_key,
    require_actor,
    row_to_cells,
)
from musicreg.store.exceptions import (
    RecordExistsError,
    RecordNotFoundError,
    StoreError,
    TableNotFoundError,
)

logger = logging.getLogger("musicreg.store.sheets")

T = TypeVar("T")

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
DEFAULT_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"
DEFAULT_CACHE_TTL = 300.0

# Row 1 of every sheet is the header; data starts at row 2
DATA_RANGE = "A2:AZ"


def _cell_data(cells: list[str]) -> dict[str, Any]:
    return {"values": [{"userEnteredValue": {"stringValue": cell}} for cell in cells]}


class SheetsTableStore:
    """Tabular store over a Google spreadsheet, one sheet per table.

    Reads are cached per table for ``cache_ttl`` seconds and invalidated
    whenever that table is written.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        credentials: Any,
        base_url: str = DEFAULT_BASE_URL,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the Sheets store.

        Args:
            spreadsheet_id: ID of the spreadsheet holding all tables
            credentials: google-auth credentials with the spreadsheets scope
            base_url: Sheets API URL (for testing)
            cache_ttl: Seconds a table read stays cached
            clock: Monotonic time source (for testing)
        """
        self.spreadsheet_id = spreadsheet_id
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._client: httpx.Client | None = None
        self._sheet_ids: dict[str, int] | None = None
        self._cache: dict[str, tuple[float, list[list[str]]]] = {}

    @classmethod
    def from_service_account(
        cls,
        spreadsheet_id: str,
        key_file: str | None = None,
        key_json: str | None = None,
        **kwargs: Any,
    ) -> SheetsTableStore:
        """Create a store authenticated with a service-account key.

        Raises:
            StoreError: If neither key_file nor key_json is given.
        """
        if key_json:
            credentials = service_account.Credentials.from_service_account_info(
                json.loads(key_json), scopes=SHEETS_SCOPES
            )
        elif key_file:
            credentials = service_account.Credentials.from_service_account_file(
                key_file, scopes=SHEETS_SCOPES
            )
        else:
            raise StoreError("Service-account key file or JSON is required")
        return cls(spreadsheet_id, credentials, **kwargs)

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client for the Sheets API."""
        if self._client is None:
            self._client = httpx.Client(timeout=30.0)
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def clear_cache(self, table: str | None = None) -> None:
        """Drop cached reads for one table, or all tables."""
        if table is None:
            self._cache.clear()
        else:
            self._cache.pop(table, None)

    # --- Reads ---

    def get_all_records(self, table: str, row_mapper: RowMapper[T]) -> list[T | None]:
        """Map every data row of a sheet (header excluded).

        Args:
            table: Sheet name.
            row_mapper: Converts a list of cells into an entity or None.

        Returns:
            One mapped value per row; rows the mapper rejects appear as None.
        """
        results: list[T | None] = []
        for cells in self._read_rows(table):
            try:
                results.append(row_mapper(list(cells)))
            except (ValueError, TypeError, IndexError) as e:
                logger.warning("Skipping unreadable row in %s: %s", table, e)
                results.append(None)
        return results

    def _read_rows(self, table: str, use_cache: bool = True) -> list[list[str]]:
        now = self._clock()
        if use_cache and table in self._cache:
            fetched_at, rows = self._cache[table]
            if now - fetched_at < self.cache_ttl:
                return rows

        range_ = quote(f"{table}!{DATA_RANGE}", safe="")
        data = self._request("GET", f"/{self.spreadsheet_id}/values/{range_}", table=table)
        rows = [[str(cell) for cell in row] for row in data.get("values", [])]
        self._cache[table] = (now, rows)
        logger.debug("Fetched %d rows from %s", len(rows), table)
        return rows

    # --- Writes ---

    def append_record(self, table: str, entity: SupportsRow, actor_id: str) -> None:
        """Append a row and its audit row in one batch.

        Appending a row identical to the stored one is a no-op.

        Raises:
            RecordExistsError: If a different row has the same primary key.
        """
        actor = require_actor(actor_id)
        cells = row_to_cells(entity)
        record_id = self._primary_key(table, entity, cells)

        index, existing = self._locate(table, record_id, entity)
        if index is not None:
            if self._same_row(existing, cells):
                logger.debug("Row %s already present in %s", record_id, table)
                return
            raise RecordExistsError(f"Record '{record_id}' already exists in {table}")

        requests = [
            {
                "appendCells": {
                    "sheetId": self._sheet_id(table),
                    "rows": [_cell_data(cells)],
                    "fields": "userEnteredValue",
                }
            },
            self._audit_request(table, AuditAction.CREATE, record_id, actor, cells),
        ]
        self._batch_update(table, requests)
        logger.info("Appended %s to %s (by %s)", record_id, table, actor)

    def update_record(self, table: str, entity: SupportsRow, actor_id: str) -> None:
        """Replace a row by primary key, with its audit row, in one batch.

        Raises:
            RecordNotFoundError: If no row has the entity's primary key.
        """
        actor = require_actor(actor_id)
        cells = row_to_cells(entity)
        record_id = self._primary_key(table, entity, cells)

        index, existing = self._locate(table, record_id, entity)
        if index is None:
            raise RecordNotFoundError(f"Record '{record_id}' not found in {table}")

        # Pad so stale trailing cells are blanked
        width = max(len(cells), len(existing or []))
        padded = cells + [""] * (width - len(cells))
        sheet_row = index + 1
        requests = [
            {
                "updateCells": {
                    "range": {
                        "sheetId": self._sheet_id(table),
                        "startRowIndex": sheet_row,
                        "endRowIndex": sheet_row + 1,
                        "startColumnIndex": 0,
                        "endColumnIndex": width,
                    },
                    "rows": [_cell_data(padded)],
                    "fields": "userEnteredValue",
                }
            },
            self._audit_request(table, AuditAction.UPDATE, record_id, actor, cells),
        ]
        self._batch_update(table, requests)
        logger.info("Updated %s in %s (by %s)", record_id, table, actor)

    def delete_record(self, table: str, record_id: str, actor_id: str) -> None:
        """Delete a row by primary key, with its audit row, in one batch.

        Raises:
            RecordNotFoundError: If no row has this primary key.
        """
        actor = require_actor(actor_id)
        index, existing = self._locate(table, record_id)
        if index is None:
            raise RecordNotFoundError(f"Record '{record_id}' not found in {table}")

        sheet_row = index + 1
        requests = [
            {
                "deleteDimension": {
                    "range": {
                        "sheetId": self._sheet_id(table),
                        "dimension": "ROWS",
                        "startIndex": sheet_row,
                        "endIndex": sheet_row + 1,
                    }
                }
            },
            self._audit_request(table, AuditAction.DELETE, record_id, actor, existing or []),
        ]
        self._batch_update(table, requests)
        logger.info("Deleted %s from %s (by %s)", record_id, table, actor)

    # --- Helpers ---

    @staticmethod
    def _primary_key(table: str, entity: SupportsRow, cells: list[str]) -> str:
        key = record_key(entity, cells)
        if not key:
            raise StoreError(f"Row for {table} has no primary key")
        return key

    @staticmethod
    def _same_row(existing: list[str] | None, cells: list[str]) -> bool:
        stored = list(existing or [])
        # Sheets drops trailing empty cells
        while stored and stored[-1] == "":
            stored.pop()
        wanted = list(cells)
        while wanted and wanted[-1] == "":
            wanted.pop()
        return stored == wanted

    @staticmethod
    def _stored_key(row: list[str], entity: SupportsRow | None) -> str:
        """Key of a stored row, parsed the same way as the entity being written."""
        parse = getattr(type(entity), "from_database_row", None)
        if callable(parse) and callable(getattr(entity, "record_key", None)):
            parsed = parse(row)
            return parsed.record_key() if parsed is not None else ""
        return row[0].strip() if row else ""

    def _locate(
        self, table: str, record_id: str, entity: SupportsRow | None = None
    ) -> tuple[int | None, list[str] | None]:
        """Find a row's 0-based data index using a fresh (uncached) read."""
        for index, row in enumerate(self._read_rows(table, use_cache=False)):
            if row and self._stored_key(row, entity) == record_id:
                return index, row
        return None, None

    def _audit_request(
        self,
        table: str,
        action: AuditAction,
        record_id: str,
        actor: str,
        cells: list[str],
    ) -> dict[str, Any]:
        entry = AuditEntry(
            table_name=table,
            action=action,
            record_id=record_id,
            actor_id=actor,
            snapshot=list(cells),
        )
        return {
            "appendCells": {
                "sheetId": self._sheet_id(AUDIT_TABLE),
                "rows": [_cell_data(entry.to_database_row())],
                "fields": "userEnteredValue",
            }
        }

    def _sheet_id(self, table: str) -> int:
        if self._sheet_ids is None:
            data = self._request(
                "GET",
                f"/{self.spreadsheet_id}",
                params={"fields": "sheets.properties(sheetId,title)"},
            )
            self._sheet_ids = {
                sheet["properties"]["title"]: int(sheet["properties"]["sheetId"])
                for sheet in data.get("sheets", [])
            }
        if table not in self._sheet_ids:
            raise TableNotFoundError(f"Sheet '{table}' not found")
        return self._sheet_ids[table]

    def _batch_update(self, table: str, requests: list[dict[str, Any]]) -> None:
        try:
            self._request(
                "POST",
                f"/{self.spreadsheet_id}:batchUpdate",
                json={"requests": requests},
                table=table,
            )
        finally:
            self.clear_cache(table)

    def _auth_headers(self) -> dict[str, str]:
        if not self.credentials.valid:
            self.credentials.refresh(Request())
        return {"Authorization": f"Bearer {self.credentials.token}"}

    def _request(
        self,
        method: str,
        path: str,
        table: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Send an authenticated request to the Sheets API.

        Raises:
            TableNotFoundError: If the API cannot resolve the sheet range.
            StoreError: On any other non-200 response or transport failure.
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.client.request(method, url, headers=self._auth_headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error("Sheets request to %s failed: %s", path, e)
            raise StoreError(f"Sheets request failed: {e}") from e

        if response.status_code != 200:
            detail = sanitize_for_log(response.text)
            if response.status_code == 400 and "Unable to parse range" in response.text:
                raise TableNotFoundError(f"Sheet '{table}' not found")
            logger.error("Sheets request %s %s failed: %s", method, path, detail)
            raise StoreError(f"Sheets request failed: {response.status_code} - {detail}")

        return dict(response.json())
