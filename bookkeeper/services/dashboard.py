"""
Dashboard Aggregator

Turns the rows of v_monthly_overview (one row per month of the current
year, already summed by the store) into the six KPI figures and the
income/expense bar chart series.

DESIGN DECISION: The summary is an immutable value. A refresh builds a
new one and swaps it in; a failed refresh keeps the previous summary so
the KPIs never show a half-updated state. The chart is likewise rebuilt
from the new series every time rather than mutated in place.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from bookkeeper.audit import AuditLogger
from bookkeeper.formatting import fmt_chf, month_key
from bookkeeper.models.records import MonthlyOverview
from bookkeeper.services.calendar import CalendarController
from bookkeeper.services.storage import MONTHLY_OVERVIEW, RecordStore, StorageError

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ChartSeries:
    """Bar chart input: one label per month, two aligned value lists."""
    labels: tuple[str, ...] = ()
    income: tuple[Decimal, ...] = ()
    expense: tuple[Decimal, ...] = ()


@dataclass(frozen=True)
class DashboardSummary:
    month_key: str = ""
    year_income: Decimal = ZERO
    year_expense: Decimal = ZERO
    month_income: Decimal = ZERO
    month_expense: Decimal = ZERO
    chart: ChartSeries = ChartSeries()
    loaded: bool = False

    @property
    def year_profit(self) -> Decimal:
        return self.year_income - self.year_expense

    @property
    def month_profit(self) -> Decimal:
        return self.month_income - self.month_expense

    def kpis(self) -> dict[str, str]:
        """The six KPI tiles, formatted for display."""
        return {
            "year_income": fmt_chf(self.year_income),
            "year_expense": fmt_chf(self.year_expense),
            "year_profit": fmt_chf(self.year_profit),
            "month_income": fmt_chf(self.month_income),
            "month_expense": fmt_chf(self.month_expense),
            "month_profit": fmt_chf(self.month_profit),
        }


def summarize(months: list[MonthlyOverview], today: date) -> DashboardSummary:
    """
    Compute the dashboard figures from the monthly overview.

    Args:
        months: Rows of v_monthly_overview in any order
        today: Reference date selecting the "current month"

    Returns:
        DashboardSummary; the month figures are zero when the current
        month has no row.
    """
    key = month_key(today)
    ordered = sorted(months, key=lambda m: m.month_key)
    current = next((m for m in ordered if m.month_key == key), None)

    return DashboardSummary(
        month_key=key,
        year_income=sum((m.income_chf for m in ordered), ZERO),
        year_expense=sum((m.expense_chf for m in ordered), ZERO),
        month_income=current.income_chf if current else ZERO,
        month_expense=current.expense_chf if current else ZERO,
        chart=ChartSeries(
            labels=tuple(m.month_key for m in ordered),
            income=tuple(m.income_chf for m in ordered),
            expense=tuple(m.expense_chf for m in ordered),
        ),
        loaded=True,
    )


class DashboardAggregator:
    """Holds the current DashboardSummary and refreshes it from the store."""

    def __init__(
        self,
        store: RecordStore,
        calendar: Optional[CalendarController] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._store = store
        self._calendar = calendar
        self._audit_logger = audit_logger
        self._clock = clock
        self._summary = DashboardSummary()

    @property
    def summary(self) -> DashboardSummary:
        return self._summary

    async def refresh(self, today: Optional[date] = None) -> bool:
        """
        Re-read the monthly overview, rebuild the summary, then reload
        the calendar events.

        Returns False if the overview could not be read; the previous
        summary stays in place and the calendar is not reloaded.
        """
        try:
            rows = await self._store.select(MONTHLY_OVERVIEW)
            months = [MonthlyOverview.model_validate(row) for row in rows]
        except (StorageError, ValidationError) as e:
            logger.error("dashboard_refresh_failed", error=str(e))
            if self._audit_logger:
                self._audit_logger.log_load_failed(MONTHLY_OVERVIEW, e)
            return False

        self._summary = summarize(months, today or self._clock())
        logger.debug("dashboard_refreshed", months=len(months), month_key=self._summary.month_key)

        if self._calendar is not None:
            await self._calendar.load()
        return True
