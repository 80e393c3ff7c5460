"""Tests for the dashboard aggregator."""

from datetime import date
from decimal import Decimal

import pytest

from bookkeeper.models.records import MonthlyOverview
from bookkeeper.services.calendar import CalendarController
from bookkeeper.services.dashboard import DashboardAggregator, summarize
from bookkeeper.services.storage import EVENTS, MONTHLY_OVERVIEW

TODAY = date(2025, 3, 15)


def overview(key, income, expense):
    return MonthlyOverview(month_key=key, income_chf=income, expense_chf=expense)


class TestSummarize:
    """Tests for the pure KPI computation."""

    def test_year_and_month_figures(self):
        months = [
            overview("2025-01", "500", "0"),
            overview("2025-02", "0", "50.50"),
            overview("2025-03", "1000", "200"),
        ]
        summary = summarize(months, date(2025, 3, 15))

        assert summary.year_income == Decimal("1500")
        assert summary.year_expense == Decimal("250.50")
        assert summary.year_profit == Decimal("1249.50")
        assert summary.month_income == Decimal("1000")
        assert summary.month_expense == Decimal("200")
        assert summary.month_profit == Decimal("800")

    def test_missing_current_month_is_zero(self):
        summary = summarize([overview("2025-01", "500", "100")], date(2025, 3, 15))
        assert summary.month_income == Decimal("0")
        assert summary.month_profit == Decimal("0")
        assert summary.year_profit == Decimal("400")

    def test_chart_series_are_aligned_and_ordered(self):
        months = [overview("2025-02", "2", "20"), overview("2025-01", "1", "10")]
        chart = summarize(months, date(2025, 3, 15)).chart
        assert chart.labels == ("2025-01", "2025-02")
        assert chart.income == (Decimal("1"), Decimal("2"))
        assert chart.expense == (Decimal("10"), Decimal("20"))

    def test_kpis_are_formatted(self):
        summary = summarize([overview("2025-03", "1234.5", "0")], date(2025, 3, 1))
        assert summary.kpis()["month_income"] == "1’234.50"
        assert summary.kpis()["year_expense"] == "0.00"

    def test_empty_overview(self):
        summary = summarize([], date(2025, 3, 15))
        assert summary.year_income == Decimal("0")
        assert summary.chart.labels == ()


class TestDashboardAggregator:
    """Tests for refresh() against the store."""

    @pytest.mark.asyncio
    async def test_refresh_reads_the_overview(self, store):
        dashboard = DashboardAggregator(store, clock=lambda: TODAY)

        assert await dashboard.refresh()

        summary = dashboard.summary
        assert summary.loaded
        assert summary.month_key == "2025-03"
        assert summary.year_income == Decimal("1500")
        assert summary.year_expense == Decimal("250.50")
        assert summary.month_profit == Decimal("800")
        assert len(summary.chart.labels) == 12

    @pytest.mark.asyncio
    async def test_explicit_today_overrides_clock(self, store):
        dashboard = DashboardAggregator(store, clock=lambda: TODAY)
        await dashboard.refresh(date(2025, 1, 20))
        assert dashboard.summary.month_income == Decimal("500")

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_last_summary(self, store, audit_logger):
        dashboard = DashboardAggregator(store, audit_logger=audit_logger, clock=lambda: TODAY)
        await dashboard.refresh()
        before = dashboard.summary

        store.fail("select", MONTHLY_OVERVIEW)
        assert not await dashboard.refresh()

        assert dashboard.summary is before
        assert audit_logger.recent_events[0].collection == MONTHLY_OVERVIEW

    @pytest.mark.asyncio
    async def test_refresh_reloads_calendar(self, store, notifier):
        calendar = CalendarController(store, notifier)
        dashboard = DashboardAggregator(store, calendar=calendar, clock=lambda: TODAY)

        await dashboard.refresh()

        assert [e.title for e in calendar.entries] == ["Kick-off", "Review"]
        assert ("select", EVENTS) in store.calls

    @pytest.mark.asyncio
    async def test_new_income_shows_up_after_refresh(self, store):
        dashboard = DashboardAggregator(store, clock=lambda: TODAY)
        await dashboard.refresh()
        await store.insert("incomes", {"tx_date": "2025-03-20", "category_id": 1, "amount_chf": "100"})

        await dashboard.refresh()

        assert dashboard.summary.month_income == Decimal("1100")
