"""
Entity List Loaders

One loader per table view (incomes, expenses, projects, clients,
documents). Every loader follows the same cycle:

1. Select one bounded page, newest first
2. Parse the rows and render them into a TableView (ids resolved to
   names through the catalog, amounts and dates formatted)
3. Replace the previous view in one assignment

If the select fails the previous view stays as it was; the failure is
only logged. Each row can be deleted: after an explicit confirmation
the record is deleted by id, a notification is posted, and the loader
re-runs itself plus whatever depends on it (catalog, dashboard).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, Optional

import structlog
from pydantic import BaseModel, ValidationError

from bookkeeper.audit import AuditLogger
from bookkeeper.formatting import fmt_chf, fmt_date
from bookkeeper.models.records import (
    Client,
    Document,
    Expense,
    Income,
    ProjectFinancials,
    RecordId,
)
from bookkeeper.services.catalog import CatalogCache
from bookkeeper.services.notifications import Notifier
from bookkeeper.services.storage import (
    CLIENTS,
    DOCUMENTS,
    EXPENSES,
    INCOMES,
    PROJECT_FINANCIALS,
    PROJECTS,
    RecordStore,
    StorageError,
)

logger = structlog.get_logger(__name__)

Refresh = Callable[[], Awaitable[Any]]

MISSING_NUMBER = "—"


@dataclass(frozen=True)
class TableRow:
    record_id: RecordId
    cells: tuple[str, ...]


@dataclass(frozen=True)
class TableView:
    """What a table shows: header plus already-formatted rows."""
    columns: tuple[str, ...]
    rows: tuple[TableRow, ...] = ()
    loaded: bool = False

    def as_dicts(self) -> list[dict[str, str]]:
        """Rows keyed by column name (handy for dataframes)."""
        return [dict(zip(self.columns, row.cells)) for row in self.rows]


class EntityListLoader(ABC):
    """
    Base class for table loaders.

    Subclasses declare where the rows come from and how one record
    renders; the load/delete cycle lives here.
    """

    name: ClassVar[str]
    title: ClassVar[str]
    collection: ClassVar[str]
    delete_collection: ClassVar[Optional[str]] = None
    model: ClassVar[type[BaseModel]]
    columns: ClassVar[tuple[str, ...]]
    order_by: ClassVar[Optional[str]] = None
    descending: ClassVar[bool] = True
    default_limit: ClassVar[int] = 300
    confirm_message: ClassVar[str] = "Really delete this entry?"

    # What else must be refreshed after a delete
    reloads_catalog: ClassVar[bool] = False
    refreshes_dashboard: ClassVar[bool] = True

    def __init__(
        self,
        store: RecordStore,
        catalog: CatalogCache,
        notifier: Notifier,
        audit_logger: Optional[AuditLogger] = None,
        limit: Optional[int] = None,
        on_change: Optional[Refresh] = None,
    ):
        self._store = store
        self._catalog = catalog
        self._notifier = notifier
        self._audit_logger = audit_logger
        self._limit = limit or self.default_limit
        self._on_change = on_change
        self._view = TableView(columns=self.columns)
        self._records: tuple[BaseModel, ...] = ()
        self._pending_deletes: set[RecordId] = set()

    @property
    def view(self) -> TableView:
        return self._view

    @property
    def records(self) -> tuple[BaseModel, ...]:
        return self._records

    @abstractmethod
    def render_row(self, record: Any) -> tuple[str, ...]:
        """Formatted cells for one record, in column order."""

    async def load(self) -> bool:
        """
        Fetch one page and replace the view.

        Returns False (and keeps the previous view) if the request or
        the parsing fails.
        """
        try:
            rows = await self._store.select(
                self.collection,
                order_by=self.order_by,
                descending=self.descending,
                limit=self._limit,
            )
            records = tuple(self.model.model_validate(row) for row in rows)
        except (StorageError, ValidationError) as e:
            logger.error("list_load_failed", view=self.name, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_load_failed(self.collection, e)
            return False

        self._records = records
        self._view = TableView(
            columns=self.columns,
            rows=tuple(TableRow(r.id, self.render_row(r)) for r in records),
            loaded=True,
        )
        return True

    async def delete(self, record_id: RecordId, confirmed: bool = False) -> bool:
        """
        Delete one record by id after explicit confirmation.

        Returns True if the store accepted the delete.
        """
        if not confirmed or record_id in self._pending_deletes:
            return False

        collection = self.delete_collection or self.collection
        self._pending_deletes.add(record_id)
        try:
            await self._store.delete(collection, record_id)
        except StorageError as e:
            logger.error("delete_failed", view=self.name, record_id=record_id, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_delete_failed(collection, record_id, e)
            self._notifier.error("Delete failed")
            return False
        finally:
            self._pending_deletes.discard(record_id)

        if self._audit_logger:
            self._audit_logger.log_deleted(collection, record_id)
        self._notifier.success("Deleted")
        await self.refresh_after_change()
        return True

    async def refresh_after_change(self) -> None:
        """Catalog first (names), then this table, then dependents."""
        if self.reloads_catalog:
            await self._catalog.reload()
        await self.load()
        if self.refreshes_dashboard and self._on_change is not None:
            await self._on_change()


class IncomeListLoader(EntityListLoader):
    name = "incomes"
    title = "Income"
    collection = INCOMES
    model = Income
    columns = ("Date", "Project", "Client", "Category", "Amount", "Status")
    order_by = "tx_date"
    default_limit = 300
    confirm_message = "Really delete this income entry?"

    def render_row(self, record: Income) -> tuple[str, ...]:
        return (
            fmt_date(record.tx_date),
            self._catalog.project_name(record.project_id),
            self._catalog.client_name(record.client_id),
            self._catalog.income_category_name(record.category_id),
            fmt_chf(record.amount_chf),
            record.status or "",
        )


class ExpenseListLoader(EntityListLoader):
    name = "expenses"
    title = "Expenses"
    collection = EXPENSES
    model = Expense
    columns = ("Date", "Project", "Vendor", "Category", "Amount")
    order_by = "tx_date"
    default_limit = 300
    confirm_message = "Really delete this expense?"

    def render_row(self, record: Expense) -> tuple[str, ...]:
        return (
            fmt_date(record.tx_date),
            self._catalog.project_name(record.project_id),
            record.vendor or "",
            self._catalog.expense_category_name(record.category_id),
            fmt_chf(record.amount_chf),
        )


class ProjectListLoader(EntityListLoader):
    """Projects with their income/expense/profit from v_projects_financials."""

    name = "projects"
    title = "Projects"
    collection = PROJECT_FINANCIALS
    delete_collection = PROJECTS
    model = ProjectFinancials
    columns = ("Name", "Client", "Status", "Income", "Expense", "Profit")
    order_by = None
    default_limit = 500
    confirm_message = "Really delete this project? (linked entries are kept)"
    reloads_catalog = True

    def render_row(self, record: ProjectFinancials) -> tuple[str, ...]:
        return (
            record.name,
            self._catalog.client_name(record.client_id),
            record.status or "",
            fmt_chf(record.income_chf),
            fmt_chf(record.expense_chf),
            fmt_chf(record.profit_chf),
        )


class ClientListLoader(EntityListLoader):
    name = "clients"
    title = "Clients"
    collection = CLIENTS
    model = Client
    columns = ("Name", "Email", "Phone")
    order_by = "created_at"
    default_limit = 500
    confirm_message = "Really delete this client?"
    reloads_catalog = True
    refreshes_dashboard = False

    def render_row(self, record: Client) -> tuple[str, ...]:
        return (record.name, record.email or "", record.phone or "")


class DocumentListLoader(EntityListLoader):
    name = "documents"
    title = "Documents"
    collection = DOCUMENTS
    model = Document
    columns = ("Number", "Type", "Client", "Project", "Status", "Total")
    order_by = "created_at"
    default_limit = 200
    confirm_message = "Really delete this document?"

    def render_row(self, record: Document) -> tuple[str, ...]:
        return (
            record.doc_number or MISSING_NUMBER,
            record.doc_type,
            self._catalog.client_name(record.client_id),
            self._catalog.project_name(record.project_id),
            record.status or "",
            fmt_chf(record.total),
        )
