"""Tests for the view router and the app wiring."""

from datetime import date
from decimal import Decimal

import pytest

from bookkeeper.orchestrator import create_app_components, create_store, seed_demo_data
from bookkeeper.router import VIEW_TITLES, View
from bookkeeper.services.calendar import EditorState
from bookkeeper.services.forms import SubmitOutcome
from bookkeeper.services.storage import (
    CLIENTS,
    EVENTS,
    INCOMES,
    MONTHLY_OVERVIEW,
    PROJECTS,
    InMemoryRecordStore,
)


@pytest.fixture
def app(store, settings):
    return create_app_components(store=store, settings=settings, clock=lambda: date(2025, 3, 15))


class TestViewRouter:
    """Tests for ViewRouter."""

    @pytest.mark.asyncio
    async def test_starts_on_dashboard(self, app):
        assert app.router.active == View.DASHBOARD
        assert app.router.title == "Dashboard"

    @pytest.mark.asyncio
    async def test_activate_runs_the_views_loader(self, app, store):
        await app.catalog.reload()

        assert await app.router.activate(View.EXPENSES)

        assert app.router.active == View.EXPENSES
        assert app.router.title == VIEW_TITLES[View.EXPENSES]
        assert app.loaders[View.EXPENSES].view.loaded
        assert not app.loaders[View.INCOMES].view.loaded

    @pytest.mark.asyncio
    async def test_activate_accepts_view_names(self, app):
        await app.router.activate("clients")
        assert app.router.active == View.CLIENTS

    @pytest.mark.asyncio
    async def test_activate_dashboard_refreshes_it(self, app, store):
        await app.router.activate(View.DASHBOARD)
        assert app.dashboard.summary.loaded
        assert ("select", MONTHLY_OVERVIEW) in store.calls

    @pytest.mark.asyncio
    async def test_refresh_order(self, app, store):
        await app.router.activate(View.INCOMES)
        store.calls.clear()

        await app.router.refresh()

        collections = [collection for _, collection in store.calls]
        # Catalog sources first, then the overview and calendar, then the list
        assert collections.index(MONTHLY_OVERVIEW) > collections.index(PROJECTS)
        assert collections.index(EVENTS) > collections.index(MONTHLY_OVERVIEW)
        assert collections[-1] == INCOMES

    @pytest.mark.asyncio
    async def test_refresh_on_dashboard_loads_no_list(self, app, store):
        await app.router.refresh()
        assert ("select", INCOMES) not in store.calls


class TestBookkeepingApp:
    """Tests for the wired application."""

    @pytest.mark.asyncio
    async def test_boot_loads_catalog_and_dashboard(self, app):
        await app.boot()

        assert app.catalog.client_name("c-acme") == "Acme AG"
        assert app.dashboard.summary.year_income == Decimal("1500")
        assert len(app.calendar.entries) == 2
        assert len(app.document_form.draft.rows) == 1

    @pytest.mark.asyncio
    async def test_income_form_updates_dashboard(self, app):
        await app.boot()

        result = await app.forms[View.INCOMES].submit(
            {"tx_date": "2025-03-16", "category_id": 1, "amount_chf": "100"}
        )

        assert result.outcome == SubmitOutcome.SAVED
        assert app.dashboard.summary.month_income == Decimal("1100")
        assert len(app.loaders[View.INCOMES].view.rows) == 3

    @pytest.mark.asyncio
    async def test_income_delete_updates_dashboard(self, app):
        await app.boot()
        loader = app.loaders[View.INCOMES]
        await loader.load()

        await loader.delete(1, confirmed=True)

        assert app.dashboard.summary.month_income == Decimal("0")

    @pytest.mark.asyncio
    async def test_new_client_is_selectable_in_other_forms(self, app):
        await app.boot()
        result = await app.forms[View.CLIENTS].submit({"name": "Gamma AG"})
        assert (result.record["id"], "Gamma AG") in app.catalog.options(CLIENTS)

    @pytest.mark.asyncio
    async def test_offline_flag_for_memory_store(self, app):
        assert app.offline

    def test_memory_store_setting(self, settings):
        offline = create_app_components(use_memory_store=True, settings=settings)
        assert isinstance(offline.store, InMemoryRecordStore)
        assert offline.offline

    def test_demo_data_is_consistent(self, settings):
        store = InMemoryRecordStore()
        seed_demo_data(store)
        assert len(store.rows(CLIENTS)) == 1
        project = store.rows(PROJECTS)[0]
        assert store.rows(INCOMES)[0]["project_id"] == project["id"]

    @pytest.mark.asyncio
    async def test_sessions_share_only_the_store(self, store, settings):
        first = create_app_components(store=store, settings=settings)
        second = create_app_components(store=store, settings=settings)
        await first.boot()
        await second.boot()

        first.document_form.draft.update_row(0, description="Design", quantity=5, unit_price=10)
        first.calendar.begin_edit(1)
        await first.forms[View.CLIENTS].submit({"name": "Gamma AG"})

        assert second.store is first.store
        assert second.document_form.draft.rows[0].quantity != 5
        assert second.calendar.state == EditorState.IDLE
        assert second.notifier.pending == []
        assert [n.message for n in first.notifier.pending] == ["Client saved"]

    def test_create_store_for_memory_mode(self):
        store, offline = create_store(True)
        assert isinstance(store, InMemoryRecordStore)
        assert offline
