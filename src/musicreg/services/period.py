"""PeriodService - Resolves the current enrollment period and trimester tables."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import TYPE_CHECKING

from musicreg.domain.exceptions import NotFoundError
from musicreg.domain.period import Period, PeriodContext, next_in_sequence
from musicreg.repositories.tables import PERIODS
from musicreg.store.exceptions import StoreError

if TYPE_CHECKING:
    from musicreg.domain.values import Trimester
    from musicreg.store.base import TableStore

logger = logging.getLogger("musicreg.services.period")


class PeriodService:
    """Reads the admin-managed periods table.

    The current period is the row flagged ``isCurrentPeriod``. When no row
    is flagged, the latest period that has already started is used.
    """

    def __init__(self, store: TableStore, today: Callable[[], date] = date.today) -> None:
        """Initialize the service.

        Args:
            store: Tabular store holding the periods table
            today: Date source for the unflagged fallback (for testing)
        """
        self._store = store
        self._today = today

    def get_periods(self) -> list[Period]:
        """All parseable period rows, in table order."""
        try:
            rows = self._store.get_all_records(PERIODS, Period.from_database_row)
        except StoreError as e:
            logger.error("Failed to read periods: %s", e)
            raise
        return [period for period in rows if period is not None]

    def _current_from(self, periods: list[Period]) -> Period | None:
        flagged = [period for period in periods if period.is_current_period]
        if len(flagged) > 1:
            logger.warning(
                "%d periods are flagged current; using %s %s",
                len(flagged),
                flagged[0].trimester,
                flagged[0].period_type,
            )
        if flagged:
            return flagged[0]

        today = self._today()
        started = [p for p in periods if p.start_date is not None and p.start_date <= today]
        if not started:
            return None
        fallback = max(started, key=lambda p: p.start_date or today)
        logger.info(
            "No period flagged current; using latest started %s %s",
            fallback.trimester,
            fallback.period_type,
        )
        return fallback

    def _next_from(self, periods: list[Period], current: Period | None) -> Period | None:
        if current is None:
            return None
        try:
            trimester, period_type = next_in_sequence(current.trimester, current.period_type)
        except ValueError:
            logger.warning(
                "Current period %s %s is outside the enrollment sequence",
                current.trimester,
                current.period_type,
            )
            return None
        for period in periods:
            if period.trimester == trimester and period.period_type == period_type:
                return period
        return Period(trimester=trimester, period_type=period_type)

    def resolve_context(self) -> PeriodContext:
        """Read the periods table once and capture current and next period."""
        periods = self.get_periods()
        current = self._current_from(periods)
        return PeriodContext(current=current, next=self._next_from(periods, current))

    def get_current_period(self) -> Period | None:
        return self.resolve_context().current

    def get_next_period(self) -> Period | None:
        """Period following the current one in the canonical sequence."""
        return self.resolve_context().next

    def get_current_trimester_table(self) -> str:
        """Registrations table of the current trimester.

        Raises:
            NotFoundError: If no period is current
        """
        table = self.resolve_context().current_trimester_table
        if table is None:
            raise NotFoundError("No active period found", code="NO_ACTIVE_PERIOD")
        return table

    def get_next_trimester_table(self) -> str | None:
        """Upcoming trimester's table, only during priority or open enrollment."""
        return self.resolve_context().next_trimester_table

    def get_available_trimesters(self) -> list[Trimester]:
        return self.resolve_context().available_trimesters

    def can_access_next_trimester(self, has_active_registrations: bool) -> bool:
        return self.resolve_context().can_access_next_trimester(has_active_registrations)

    def is_intent_period_active(self) -> bool:
        return self.resolve_context().is_intent_period
