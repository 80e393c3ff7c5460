"""
Main Orchestrator for Bookkeeper

This module ties together all the components and defines the two
app-wide flows:
1. Boot (catalog → seeded document draft → dashboard + calendar)
2. Refresh (catalog → dashboard → active list view)

DESIGN DECISION: Every component receives its collaborators here and
nowhere else. Services never import each other's instances, so tests
can wire any subset against the in-memory store.

Refresh dependencies after a successful write or delete:
- incomes, expenses, documents  -> own list, dashboard
- projects                      -> catalog, own list, dashboard
- clients                       -> catalog, own list
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Optional

import structlog

from bookkeeper.audit import AuditLogger
from bookkeeper.config import AppSettings, get_settings
from bookkeeper.router import View, ViewRouter
from bookkeeper.services.calendar import CalendarController
from bookkeeper.services.catalog import CatalogCache
from bookkeeper.services.dashboard import DashboardAggregator
from bookkeeper.services.forms import (
    ClientFormHandler,
    DocumentFormHandler,
    ExpenseFormHandler,
    FormHandler,
    IncomeFormHandler,
    ProjectFormHandler,
)
from bookkeeper.services.loaders import (
    ClientListLoader,
    DocumentListLoader,
    EntityListLoader,
    ExpenseListLoader,
    IncomeListLoader,
    ProjectListLoader,
)
from bookkeeper.services.notifications import Notifier
from bookkeeper.services.storage import (
    CLIENTS,
    EVENTS,
    EXPENSE_CATEGORIES,
    EXPENSES,
    INCOME_CATEGORIES,
    INCOMES,
    PROJECTS,
    InMemoryRecordStore,
    RecordStore,
    SupabaseClient,
    SupabaseRecordStore,
)
from bookkeeper.validation import DraftValidator

logger = structlog.get_logger(__name__)


@dataclass
class BookkeepingApp:
    """All long-lived components of one dashboard session."""

    store: RecordStore
    notifier: Notifier
    audit_logger: AuditLogger
    catalog: CatalogCache
    calendar: CalendarController
    dashboard: DashboardAggregator
    router: ViewRouter
    loaders: dict[View, EntityListLoader] = field(default_factory=dict)
    forms: dict[View, FormHandler] = field(default_factory=dict)
    offline: bool = False

    @property
    def document_form(self) -> DocumentFormHandler:
        return self.forms[View.DOCUMENTS]

    async def boot(self) -> None:
        """
        Startup sequence.

        The catalog is loaded first so the first dashboard and any list
        render with names instead of ids.
        """
        await self.catalog.reload()
        self.document_form.reset()
        await self.dashboard.refresh()
        logger.info(
            "app_booted",
            offline=self.offline,
            clients=len(self.catalog.clients),
            projects=len(self.catalog.projects),
        )

    async def refresh(self) -> None:
        """Manual refresh: catalog, dashboard, then the active list."""
        await self.router.refresh()


def create_store(use_memory_store: bool) -> tuple[RecordStore, bool]:
    """
    Create the record store shared by all sessions.

    Returns:
        (store, offline); offline is True for the in-memory store
    """
    if use_memory_store:
        return InMemoryRecordStore(), True
    try:
        supabase_settings = get_settings().supabase
    except Exception as e:
        # Not configured - continue offline
        logger.warning("supabase_not_configured", error=str(e))
        return InMemoryRecordStore(), True
    return SupabaseRecordStore(SupabaseClient(supabase_settings)), False


def create_app_components(
    use_memory_store: Optional[bool] = None,
    store: Optional[RecordStore] = None,
    settings: Optional[AppSettings] = None,
    clock: Callable[[], date] = date.today,
) -> BookkeepingApp:
    """
    Factory function to create all application components.

    Args:
        use_memory_store: Run against the in-memory store. Defaults to
                    the USE_MEMORY_STORE setting; Supabase is also
                    skipped when it is not configured.
        store: Explicit store to use (tests).
        settings: App settings; read from the environment if omitted.
        clock: Source of "today" for the dashboard's current month.

    Returns:
        A wired BookkeepingApp (not booted yet)
    """
    settings = settings or get_settings().app
    if store is not None:
        offline = isinstance(store, InMemoryRecordStore)
    else:
        if use_memory_store is None:
            use_memory_store = settings.use_memory_store
        store, offline = create_store(use_memory_store)

    notifier = Notifier(duration_ms=settings.notification_duration_ms)
    audit_logger = AuditLogger()
    catalog = CatalogCache(store, settings, audit_logger)
    validator = DraftValidator(catalog)

    calendar = CalendarController(store, notifier, audit_logger, limit=settings.event_page_limit)
    dashboard = DashboardAggregator(store, calendar=calendar, audit_logger=audit_logger, clock=clock)

    shared = dict(audit_logger=audit_logger, on_change=dashboard.refresh)
    loaders: dict[View, EntityListLoader] = {
        View.INCOMES: IncomeListLoader(
            store, catalog, notifier, limit=settings.income_page_limit, **shared),
        View.EXPENSES: ExpenseListLoader(
            store, catalog, notifier, limit=settings.expense_page_limit, **shared),
        View.PROJECTS: ProjectListLoader(
            store, catalog, notifier, limit=settings.project_page_limit, **shared),
        View.CLIENTS: ClientListLoader(
            store, catalog, notifier, limit=settings.client_page_limit, **shared),
        View.DOCUMENTS: DocumentListLoader(
            store, catalog, notifier, limit=settings.document_page_limit, **shared),
    }

    form_classes = {
        View.INCOMES: IncomeFormHandler,
        View.EXPENSES: ExpenseFormHandler,
        View.PROJECTS: ProjectFormHandler,
        View.CLIENTS: ClientFormHandler,
        View.DOCUMENTS: DocumentFormHandler,
    }
    forms: dict[View, FormHandler] = {
        view: handler(
            store,
            catalog,
            notifier,
            validator=validator,
            loader=loaders[view],
            **shared,
        )
        for view, handler in form_classes.items()
    }

    router = ViewRouter(catalog, dashboard, loaders)

    return BookkeepingApp(
        store=store,
        notifier=notifier,
        audit_logger=audit_logger,
        catalog=catalog,
        calendar=calendar,
        dashboard=dashboard,
        router=router,
        loaders=loaders,
        forms=forms,
        offline=offline,
    )


# =============================================================================
# DEMO DATA (offline mode)
# =============================================================================

def seed_demo_data(store: InMemoryRecordStore, today: Optional[date] = None) -> None:
    """Fill an empty in-memory store with a few records to click through."""
    today = today or date.today()
    month_start = today.replace(day=1)

    store.seed(INCOME_CATEGORIES, [{"name": "Consulting"}, {"name": "Licensing"}])
    store.seed(EXPENSE_CATEGORIES, [{"name": "Hardware"}, {"name": "Software"}, {"name": "Travel"}])
    acme, = store.seed(CLIENTS, [{"name": "Acme AG", "email": "billing@acme.example"}])
    website, = store.seed(PROJECTS, [{
        "name": "Website relaunch",
        "client_id": acme["id"],
        "status": "active",
        "start_date": month_start.isoformat(),
        "budget_chf": "12000",
    }])
    store.seed(INCOMES, [{
        "tx_date": month_start.isoformat(),
        "project_id": website["id"],
        "client_id": acme["id"],
        "category_id": 1,
        "amount_chf": "4800.00",
        "status": "paid",
    }])
    store.seed(EXPENSES, [{
        "tx_date": month_start.isoformat(),
        "project_id": website["id"],
        "vendor": "Digitec",
        "category_id": 1,
        "amount_chf": "1299.00",
    }])
    kickoff = month_start + timedelta(days=2)
    store.seed(EVENTS, [{
        "title": "Kick-off Acme",
        "start_at": f"{kickoff.isoformat()}T09:00:00+00:00",
        "end_at": f"{kickoff.isoformat()}T10:00:00+00:00",
    }])
