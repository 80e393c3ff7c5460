"""
Abstract Record Store Interface

DESIGN DECISION: Everything the dashboard persists goes through four
verbs against named collections: select, insert, update, delete.
This is exactly the surface the hosted PostgREST API offers, so:
1. The Supabase implementation is a thin translation
2. An in-memory implementation backs the tests and offline runs
3. Services never see vendor types, only dicts and StorageError

The interface is intentionally not an ORM. Rows travel as plain dicts;
services parse them into the pydantic models they need.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence, Union

from bookkeeper.models.records import RecordId

Row = dict[str, Any]
Values = Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]

# Named collections and read-only views in the hosted schema
CLIENTS = "clients"
PROJECTS = "projects"
INCOME_CATEGORIES = "income_categories"
EXPENSE_CATEGORIES = "expense_categories"
INCOMES = "incomes"
EXPENSES = "expenses"
DOCUMENTS = "documents"
DOCUMENT_ITEMS = "document_items"
EVENTS = "events"
MONTHLY_OVERVIEW = "v_monthly_overview"
PROJECT_FINANCIALS = "v_projects_financials"

VIEWS = frozenset({MONTHLY_OVERVIEW, PROJECT_FINANCIALS})


class RecordStore(ABC):
    """
    Abstract interface for the hosted record store.

    Any backend must implement these methods. All of them raise
    StorageError (or a subclass) on failure and never return partial
    results.
    """

    @abstractmethod
    async def select(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Row]:
        """
        Read one bounded, ordered page of rows.

        Args:
            collection: Table or view name
            order_by: Column to sort by (store order if None)
            descending: Sort direction
            limit: Maximum number of rows

        Returns:
            The rows as dicts

        Raises:
            StorageError: If the request fails
        """
        pass

    @abstractmethod
    async def insert(
        self,
        collection: str,
        values: Values,
        returning: bool = True,
    ) -> list[Row]:
        """
        Insert one row or a batch of rows.

        Args:
            collection: Table name
            values: A single mapping or a sequence of mappings
            returning: Ask the store to send the created rows back

        Returns:
            The created rows (with generated ids) if returning, else []

        Raises:
            StorageError: If the insert fails; nothing was written
        """
        pass

    @abstractmethod
    async def update(
        self,
        collection: str,
        record_id: RecordId,
        values: Mapping[str, Any],
    ) -> None:
        """
        Overwrite the given fields of the row with this id.

        Raises:
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, record_id: RecordId) -> None:
        """
        Hard-delete the row with this id.

        Referential cleanup, if any, is the store's business.

        Raises:
            StorageError: If the delete fails
        """
        pass


class StorageError(Exception):
    """Base exception for store operations."""
    pass


class NotFoundError(StorageError):
    """Collection or record not found in the store."""
    pass


class StoreUnavailableError(StorageError):
    """Could not reach or configure the store backend."""
    pass
