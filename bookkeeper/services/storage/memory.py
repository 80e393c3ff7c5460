"""
In-Memory Record Store

Implements the RecordStore contract without a network, for tests and
for running the dashboard offline (USE_MEMORY_STORE=true).

It also emulates the parts of the hosted schema this app relies on:
- generated ids and created_at timestamps
- the v_monthly_overview and v_projects_financials views
- document totals maintained from their line items
"""

import copy
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional
from uuid import uuid4

from bookkeeper.formatting import month_key, to_decimal
from bookkeeper.models.records import RecordId
from bookkeeper.services.storage.interface import (
    CLIENTS,
    DOCUMENT_ITEMS,
    DOCUMENTS,
    EVENTS,
    EXPENSE_CATEGORIES,
    EXPENSES,
    INCOME_CATEGORIES,
    INCOMES,
    MONTHLY_OVERVIEW,
    PROJECT_FINANCIALS,
    PROJECTS,
    VIEWS,
    NotFoundError,
    RecordStore,
    Row,
    StorageError,
    Values,
)

TABLES = (
    CLIENTS,
    PROJECTS,
    INCOME_CATEGORIES,
    EXPENSE_CATEGORIES,
    INCOMES,
    EXPENSES,
    DOCUMENTS,
    DOCUMENT_ITEMS,
    EVENTS,
)

# Tables keyed by UUID strings in the hosted schema; the rest use bigint ids.
UUID_KEYED = frozenset({CLIENTS, PROJECTS, DOCUMENTS})


def _amount(value: Any) -> Decimal:
    number = to_decimal(value)
    return number if number is not None else Decimal("0")


def _sort_key(column: str) -> Callable[[Row], tuple]:
    def key(row: Row) -> tuple:
        value = row.get(column)
        return (value is None, value if value is not None else "")
    return key


class InMemoryRecordStore(RecordStore):
    """Dict-of-lists store with the same observable behaviour as Supabase."""

    def __init__(self, today: Callable[[], date] = date.today):
        self._tables: dict[str, list[Row]] = {name: [] for name in TABLES}
        self._today = today

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def seed(self, collection: str, rows: Iterable[Mapping[str, Any]]) -> list[Row]:
        """Insert rows synchronously (fixtures, demo data)."""
        return [self._insert_row(collection, row) for row in rows]

    def rows(self, collection: str) -> list[Row]:
        """Snapshot of a table's rows."""
        return copy.deepcopy(self._table(collection))

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    async def select(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Row]:
        if collection == MONTHLY_OVERVIEW:
            rows = self._monthly_overview()
        elif collection == PROJECT_FINANCIALS:
            rows = self._project_financials()
        else:
            rows = copy.deepcopy(self._table(collection))

        if order_by:
            rows.sort(key=_sort_key(order_by), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(
        self,
        collection: str,
        values: Values,
        returning: bool = True,
    ) -> list[Row]:
        batch = [values] if isinstance(values, Mapping) else list(values)
        created = [self._insert_row(collection, row) for row in batch]
        if collection == DOCUMENT_ITEMS:
            for document_id in {row["document_id"] for row in created}:
                self._recompute_document(document_id)
        return copy.deepcopy(created) if returning else []

    async def update(
        self,
        collection: str,
        record_id: RecordId,
        values: Mapping[str, Any],
    ) -> None:
        for row in self._table(collection, writable=True):
            if row["id"] == record_id:
                row.update(copy.deepcopy(dict(values)))
                return

    async def delete(self, collection: str, record_id: RecordId) -> None:
        table = self._table(collection, writable=True)
        table[:] = [row for row in table if row["id"] != record_id]
        if collection == DOCUMENTS:
            items = self._tables[DOCUMENT_ITEMS]
            items[:] = [row for row in items if row["document_id"] != record_id]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _table(self, collection: str, writable: bool = False) -> list[Row]:
        if writable and collection in VIEWS:
            raise StorageError(f"Cannot write to read-only view {collection}")
        try:
            return self._tables[collection]
        except KeyError:
            raise NotFoundError(f"Unknown collection: {collection}") from None

    def _insert_row(self, collection: str, values: Mapping[str, Any]) -> Row:
        table = self._table(collection, writable=True)
        row = copy.deepcopy(dict(values))
        if row.get("id") is None:
            row["id"] = str(uuid4()) if collection in UUID_KEYED else self._next_int_id(table)
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        if collection == DOCUMENTS:
            row.setdefault("status", "draft")
            row.setdefault("doc_number", None)
            row.setdefault("subtotal", "0")
            row.setdefault("tax_amount", "0")
            row.setdefault("total", "0")
        table.append(row)
        return row

    @staticmethod
    def _next_int_id(table: list[Row]) -> int:
        return max((row["id"] for row in table if isinstance(row["id"], int)), default=0) + 1

    def _recompute_document(self, document_id: RecordId) -> None:
        for document in self._tables[DOCUMENTS]:
            if document["id"] != document_id:
                continue
            subtotal = sum(
                (
                    _amount(item.get("qty")) * _amount(item.get("unit_price"))
                    for item in self._tables[DOCUMENT_ITEMS]
                    if item["document_id"] == document_id
                ),
                Decimal("0"),
            )
            tax = subtotal * _amount(document.get("tax_rate")) / Decimal(100)
            document["subtotal"] = str(subtotal)
            document["tax_amount"] = str(tax)
            document["total"] = str(subtotal + tax)

    def _monthly_overview(self) -> list[Row]:
        year = self._today().year
        months = {f"{year:04d}-{m:02d}": [Decimal("0"), Decimal("0")] for m in range(1, 13)}
        for index, collection in enumerate((INCOMES, EXPENSES)):
            for row in self._tables[collection]:
                if not row.get("tx_date"):
                    continue
                key = month_key(row["tx_date"])
                if key in months:
                    months[key][index] += _amount(row.get("amount_chf"))
        return [
            {"month_key": key, "income_chf": str(income), "expense_chf": str(expense)}
            for key, (income, expense) in months.items()
        ]

    def _project_financials(self) -> list[Row]:
        result = []
        for project in self._tables[PROJECTS]:
            income = sum(
                (_amount(r.get("amount_chf")) for r in self._tables[INCOMES]
                 if r.get("project_id") == project["id"]),
                Decimal("0"),
            )
            expense = sum(
                (_amount(r.get("amount_chf")) for r in self._tables[EXPENSES]
                 if r.get("project_id") == project["id"]),
                Decimal("0"),
            )
            result.append({
                "id": project["id"],
                "name": project["name"],
                "client_id": project.get("client_id"),
                "status": project.get("status"),
                "income_chf": str(income),
                "expense_chf": str(expense),
                "profit_chf": str(income - expense),
            })
        return result
