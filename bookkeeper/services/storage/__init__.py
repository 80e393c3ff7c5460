"""
Storage Services Package

Provides the abstract record store and its implementations.
Supabase is the production backend; the in-memory store mirrors it
for tests and offline use.
"""

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
    NotFoundError,
    RecordStore,
    Row,
    StorageError,
    StoreUnavailableError,
)
from bookkeeper.services.storage.memory import InMemoryRecordStore
from bookkeeper.services.storage.supabase_store import (
    SupabaseClient,
    SupabaseRecordStore,
)

__all__ = [
    # Collections
    "CLIENTS",
    "DOCUMENT_ITEMS",
    "DOCUMENTS",
    "EVENTS",
    "EXPENSE_CATEGORIES",
    "EXPENSES",
    "INCOME_CATEGORIES",
    "INCOMES",
    "MONTHLY_OVERVIEW",
    "PROJECT_FINANCIALS",
    "PROJECTS",
    # Interface
    "RecordStore",
    "Row",
    # Exceptions
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
    # Implementations
    "InMemoryRecordStore",
    "SupabaseClient",
    "SupabaseRecordStore",
]
