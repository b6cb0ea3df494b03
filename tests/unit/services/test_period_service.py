"""Unit tests for PeriodService."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from musicreg.domain import NotFoundError, Period, PeriodType, Trimester
from musicreg.services import PeriodService
from musicreg.store import SqlTableStore, StoreError

ACTOR = "admin@school.org"


def _service(store: SqlTableStore, *periods: Period, today: date = date(2025, 10, 1)):
    for period in periods:
        store.append_record("periods", period, ACTOR)
    return PeriodService(store, today=lambda: today)


@pytest.mark.unit
class TestCurrentPeriod:
    """Tests for resolving the current period."""

    def test_flagged_period_is_current(self, seeded_store: SqlTableStore) -> None:
        service = PeriodService(seeded_store)

        current = service.get_current_period()

        assert current is not None
        assert current.trimester is Trimester.FALL
        assert current.period_type is PeriodType.REGISTRATION
        assert service.get_current_trimester_table() == "registrations_fall"

    def test_next_period_uses_stored_row(self, seeded_store: SqlTableStore) -> None:
        """The winter intent row follows fall registration."""
        next_period = PeriodService(seeded_store).get_next_period()

        assert next_period == Period(
            Trimester.WINTER, PeriodType.INTENT, False, date(2025, 11, 15)
        )

    def test_next_period_synthesized_when_missing(self, store: SqlTableStore) -> None:
        service = _service(store, Period(Trimester.WINTER, PeriodType.INTENT, True))

        assert service.get_next_period() == Period(Trimester.WINTER, PeriodType.PRIORITY_ENROLLMENT)

    def test_first_flagged_wins(self, store: SqlTableStore) -> None:
        service = _service(
            store,
            Period(Trimester.WINTER, PeriodType.OPEN_ENROLLMENT, True),
            Period(Trimester.SPRING, PeriodType.INTENT, True),
        )

        current = service.get_current_period()

        assert current is not None
        assert current.trimester is Trimester.WINTER

    def test_falls_back_to_latest_started(self, store: SqlTableStore) -> None:
        """Without a flag, the latest period already started is current."""
        service = _service(
            store,
            Period(Trimester.FALL, PeriodType.OPEN_ENROLLMENT, False, date(2025, 8, 1)),
            Period(Trimester.FALL, PeriodType.REGISTRATION, False, date(2025, 9, 1)),
            Period(Trimester.WINTER, PeriodType.INTENT, False, date(2025, 11, 15)),
        )

        current = service.get_current_period()

        assert current is not None
        assert current.period_type is PeriodType.REGISTRATION

    def test_no_current_period(self, store: SqlTableStore) -> None:
        service = _service(
            store, Period(Trimester.WINTER, PeriodType.INTENT, False, date(2025, 11, 15))
        )

        assert service.get_current_period() is None
        assert service.get_next_period() is None
        with pytest.raises(NotFoundError) as exc_info:
            service.get_current_trimester_table()
        assert exc_info.value.code == "NO_ACTIVE_PERIOD"

    def test_store_error_propagates(self) -> None:
        store = MagicMock()
        store.get_all_records.side_effect = StoreError("unavailable")

        with pytest.raises(StoreError):
            PeriodService(store).resolve_context()


@pytest.mark.unit
class TestDerivedQueries:
    """Tests for trimester-table helpers."""

    def test_priority_enrollment(self, store: SqlTableStore) -> None:
        service = _service(store, Period(Trimester.WINTER, PeriodType.PRIORITY_ENROLLMENT, True))

        assert service.get_next_trimester_table() == "registrations_spring"
        assert service.get_available_trimesters() == [Trimester.WINTER, Trimester.SPRING]
        assert service.can_access_next_trimester(True)
        assert not service.can_access_next_trimester(False)
        assert not service.is_intent_period_active()

    def test_intent_period(self, store: SqlTableStore) -> None:
        service = _service(store, Period(Trimester.SPRING, PeriodType.INTENT, True))

        assert service.is_intent_period_active()
        assert service.get_next_trimester_table() is None
        assert service.get_available_trimesters() == [Trimester.WINTER, Trimester.SPRING]
