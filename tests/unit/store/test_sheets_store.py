"""Unit tests for SheetsTableStore."""

import json
from datetime import date
from unittest.mock import MagicMock, patch

import httpx
import pytest

from musicreg.domain.period import Period
from musicreg.domain.values import PeriodType, Trimester
from musicreg.store import (
    RawRow,
    RecordExistsError,
    RecordNotFoundError,
    SheetsTableStore,
    StoreError,
    TableNotFoundError,
)
from musicreg.store.sheets import SHEETS_SCOPES

ACTOR = "admin@school.org"
BASE = "https://sheets.test/v4/spreadsheets"
STUDENTS_URL = f"{BASE}/sheet-1/values/students%21A2%3AAZ"
BATCH_URL = f"{BASE}/sheet-1:batchUpdate"


def _response(data: dict | None = None, status_code: int = 200, text: str = "") -> MagicMock:
    """Create a mock Sheets API response."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data or {}
    response.text = text
    return response


def _values(*rows: list[str]) -> MagicMock:
    return _response({"values": [list(row) for row in rows]})


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock HTTP client."""
    return MagicMock()


@pytest.fixture
def now() -> list[float]:
    """Mutable monotonic clock."""
    return [1000.0]


@pytest.fixture
def sheets(mock_client: MagicMock, now: list[float]) -> SheetsTableStore:
    """Create a SheetsTableStore with mocked client and credentials."""
    credentials = MagicMock(valid=True, token="test-token")
    store = SheetsTableStore(
        "sheet-1", credentials, base_url=BASE, cache_ttl=300, clock=lambda: now[0]
    )
    store._client = mock_client
    # Pre-populate sheet IDs to avoid the metadata request
    store._sheet_ids = {"students": 11, "periods": 12, "audit_log": 99}
    return store


def _batch_requests(mock_client: MagicMock) -> list[dict]:
    method, url = mock_client.request.call_args.args
    assert method == "POST"
    assert url == BATCH_URL
    return mock_client.request.call_args.kwargs["json"]["requests"]


def _row_values(request: dict) -> list[str]:
    cells = request["appendCells"]["rows"][0]["values"]
    return [cell["userEnteredValue"]["stringValue"] for cell in cells]


@pytest.mark.unit
class TestReads:
    """Tests for get_all_records and caching."""

    def test_maps_rows(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _values(["S1", "Smith"], ["S2", "Jones"])

        rows = sheets.get_all_records("students", lambda cells: cells[0])

        assert rows == ["S1", "S2"]
        method, url = mock_client.request.call_args.args
        assert (method, url) == ("GET", STUDENTS_URL)
        headers = mock_client.request.call_args.kwargs["headers"]
        assert headers == {"Authorization": "Bearer test-token"}

    def test_empty_sheet(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _response({})

        assert sheets.get_all_records("students", lambda cells: cells) == []

    def test_mapper_errors_become_none(
        self, sheets: SheetsTableStore, mock_client: MagicMock
    ) -> None:
        mock_client.request.return_value = _values(["S1"])

        assert sheets.get_all_records("students", lambda cells: cells[5]) == [None]

    def test_reads_cached_within_ttl(
        self, sheets: SheetsTableStore, mock_client: MagicMock, now: list[float]
    ) -> None:
        mock_client.request.return_value = _values(["S1"])

        sheets.get_all_records("students", lambda cells: cells)
        now[0] += 299
        sheets.get_all_records("students", lambda cells: cells)

        assert mock_client.request.call_count == 1

    def test_cache_expires(
        self, sheets: SheetsTableStore, mock_client: MagicMock, now: list[float]
    ) -> None:
        mock_client.request.return_value = _values(["S1"])

        sheets.get_all_records("students", lambda cells: cells)
        now[0] += 300
        sheets.get_all_records("students", lambda cells: cells)

        assert mock_client.request.call_count == 2

    def test_clear_cache(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _values(["S1"])

        sheets.get_all_records("students", lambda cells: cells)
        sheets.clear_cache("students")
        sheets.get_all_records("students", lambda cells: cells)

        assert mock_client.request.call_count == 2


@pytest.mark.unit
class TestWrites:
    """Tests for append, update and delete batches."""

    def test_append_sends_row_and_audit(
        self, sheets: SheetsTableStore, mock_client: MagicMock
    ) -> None:
        mock_client.request.side_effect = [_values(["S1", "Smith"]), _response()]

        sheets.append_record("students", RawRow(["S2", "Jones"]), ACTOR)

        requests = _batch_requests(mock_client)
        assert len(requests) == 2
        assert requests[0]["appendCells"]["sheetId"] == 11
        assert _row_values(requests[0]) == ["S2", "Jones"]
        audit = _row_values(requests[1])
        assert requests[1]["appendCells"]["sheetId"] == 99
        assert audit[1:5] == ["students", "create", "S2", ACTOR]
        assert json.loads(audit[5]) == ["S2", "Jones"]

    def test_append_identical_is_noop(
        self, sheets: SheetsTableStore, mock_client: MagicMock
    ) -> None:
        """Trailing blanks dropped by Sheets do not make rows differ."""
        mock_client.request.return_value = _values(["S1", "Smith"])

        sheets.append_record("students", RawRow(["S1", "Smith", ""]), ACTOR)

        assert mock_client.request.call_count == 1

    def test_append_conflict(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _values(["S1", "Smith"])

        with pytest.raises(RecordExistsError):
            sheets.append_record("students", RawRow(["S1", "Jones"]), ACTOR)

    def test_append_uses_fresh_read(
        self, sheets: SheetsTableStore, mock_client: MagicMock
    ) -> None:
        """The existence check ignores a stale cached read."""
        mock_client.request.side_effect = [_values(), _values(["S1", "Smith"])]
        sheets.get_all_records("students", lambda cells: cells)

        with pytest.raises(RecordExistsError):
            sheets.append_record("students", RawRow(["S1", "Jones"]), ACTOR)

    def test_append_keyed_entity(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        """Period rows are matched on trimester and type, not the first cell."""
        mock_client.request.side_effect = [
            _values(["fall", "registration", "TRUE", "2025-09-01"]),
            _response(),
        ]

        sheets.append_record("periods", Period(Trimester.FALL, PeriodType.OPEN_ENROLLMENT), ACTOR)

        requests = _batch_requests(mock_client)
        assert _row_values(requests[0]) == ["fall", "openEnrollment", "FALSE", ""]
        assert _row_values(requests[1])[3] == "fall:openEnrollment"

    def test_append_keyed_entity_identical(
        self, sheets: SheetsTableStore, mock_client: MagicMock
    ) -> None:
        mock_client.request.return_value = _values(["fall", "registration", "TRUE", "2025-09-01"])

        sheets.append_record(
            "periods",
            Period(Trimester.FALL, PeriodType.REGISTRATION, True, date(2025, 9, 1)),
            ACTOR,
        )

        assert mock_client.request.call_count == 1

    def test_update_targets_sheet_row(
        self, sheets: SheetsTableStore, mock_client: MagicMock
    ) -> None:
        mock_client.request.side_effect = [
            _values(["S1", "Smith", "3"], ["S2", "Jones", "K"]),
            _response(),
        ]

        sheets.update_record("students", RawRow(["S2", "Jones"]), ACTOR)

        update = _batch_requests(mock_client)[0]["updateCells"]
        # Header is sheet row 0, so data index 1 is sheet row 2
        assert update["range"]["startRowIndex"] == 2
        assert update["range"]["endRowIndex"] == 3
        cells = [c["userEnteredValue"]["stringValue"] for c in update["rows"][0]["values"]]
        assert cells == ["S2", "Jones", ""]

    def test_update_missing(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _values(["S1"])

        with pytest.raises(RecordNotFoundError):
            sheets.update_record("students", RawRow(["S9"]), ACTOR)

    def test_delete_removes_dimension(
        self, sheets: SheetsTableStore, mock_client: MagicMock
    ) -> None:
        mock_client.request.side_effect = [_values(["S1", "Smith"]), _response()]

        sheets.delete_record("students", "S1", ACTOR)

        requests = _batch_requests(mock_client)
        dimension = requests[0]["deleteDimension"]["range"]
        assert dimension == {"sheetId": 11, "dimension": "ROWS", "startIndex": 1, "endIndex": 2}
        assert json.loads(_row_values(requests[1])[5]) == ["S1", "Smith"]

    def test_delete_missing(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _values()

        with pytest.raises(RecordNotFoundError):
            sheets.delete_record("students", "S1", ACTOR)

    def test_write_clears_cache(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.side_effect = [_values(), _response(), _values(["S1"])]

        sheets.append_record("students", RawRow(["S1"]), ACTOR)
        rows = sheets.get_all_records("students", lambda cells: cells)

        assert rows == [["S1"]]

    def test_write_requires_actor(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        with pytest.raises(ValueError):
            sheets.append_record("students", RawRow(["S1"]), "")

        mock_client.request.assert_not_called()


@pytest.mark.unit
class TestErrors:
    """Tests for API error handling."""

    def test_server_error(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _response(status_code=500, text="backend error")

        with pytest.raises(StoreError, match="500"):
            sheets.get_all_records("students", lambda cells: cells)

    def test_unknown_range(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.return_value = _response(
            status_code=400, text="Unable to parse range: nosuch!A2:AZ"
        )

        with pytest.raises(TableNotFoundError):
            sheets.get_all_records("nosuch", lambda cells: cells)

    def test_transport_error(self, sheets: SheetsTableStore, mock_client: MagicMock) -> None:
        mock_client.request.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(StoreError, match="Sheets request failed"):
            sheets.get_all_records("students", lambda cells: cells)

    def test_unknown_sheet_on_write(
        self, sheets: SheetsTableStore, mock_client: MagicMock
    ) -> None:
        mock_client.request.return_value = _values()

        with pytest.raises(TableNotFoundError):
            sheets.append_record("attendance", RawRow(["X1"]), ACTOR)

    def test_sheet_ids_loaded_from_metadata(self, mock_client: MagicMock) -> None:
        store = SheetsTableStore("sheet-1", MagicMock(valid=True, token="t"), base_url=BASE)
        store._client = mock_client
        mock_client.request.side_effect = [
            _values(),
            _response({"sheets": [{"properties": {"sheetId": 5, "title": "students"}}]}),
            _response({"sheets": []}),
            _response(),
        ]

        with pytest.raises(TableNotFoundError, match="audit_log"):
            store.append_record("students", RawRow(["S1"]), ACTOR)

        assert store._sheet_ids == {"students": 5}


@pytest.mark.unit
class TestCredentials:
    """Tests for service-account credentials."""

    def test_refreshes_invalid_credentials(self, mock_client: MagicMock) -> None:
        credentials = MagicMock(valid=False, token="fresh")
        store = SheetsTableStore("sheet-1", credentials, base_url=BASE)
        store._client = mock_client
        mock_client.request.return_value = _values()

        store.get_all_records("students", lambda cells: cells)

        credentials.refresh.assert_called_once()

    def test_from_service_account_json(self) -> None:
        key = {"type": "service_account", "client_email": "sa@project.iam"}
        with patch(
            "musicreg.store.sheets.service_account.Credentials.from_service_account_info"
        ) as from_info:
            store = SheetsTableStore.from_service_account("sheet-1", key_json=json.dumps(key))

        from_info.assert_called_once_with(key, scopes=SHEETS_SCOPES)
        assert store.credentials is from_info.return_value

    def test_from_service_account_file(self) -> None:
        with patch(
            "musicreg.store.sheets.service_account.Credentials.from_service_account_file"
        ) as from_file:
            store = SheetsTableStore.from_service_account(
                "sheet-1", key_file="/keys/sa.json", cache_ttl=60
            )

        from_file.assert_called_once_with("/keys/sa.json", scopes=SHEETS_SCOPES)
        assert store.cache_ttl == 60

    def test_from_service_account_requires_key(self) -> None:
        with pytest.raises(StoreError, match="Service-account key"):
            SheetsTableStore.from_service_account("sheet-1")
