"""
Shared fixtures.

Every test runs against the in-memory store; nothing touches the
network. The reference date is fixed to 2025-03-15 so the monthly
overview and the "current month" are stable.
"""

from datetime import date, datetime, timezone

import pytest
import pytest_asyncio

from bookkeeper.audit import AuditLogger
from bookkeeper.config import AppSettings
from bookkeeper.services.catalog import CatalogCache
from bookkeeper.services.notifications import Notifier
from bookkeeper.services.storage import (
    CLIENTS,
    DOCUMENTS,
    EVENTS,
    EXPENSE_CATEGORIES,
    EXPENSES,
    INCOME_CATEGORIES,
    INCOMES,
    PROJECTS,
    InMemoryRecordStore,
    StorageError,
)

TODAY = date(2025, 3, 15)


class FailingStore(InMemoryRecordStore):
    """In-memory store that rejects chosen (operation, collection) pairs."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []

    def fail(self, operation: str, collection: str) -> None:
        self.failures.add((operation, collection))

    def heal(self) -> None:
        self.failures.clear()

    def _check(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        if (operation, collection) in self.failures:
            raise StorageError(f"simulated {operation} failure on {collection}")

    async def select(self, collection, **kwargs):
        self._check("select", collection)
        return await super().select(collection, **kwargs)

    async def insert(self, collection, values, returning=True):
        self._check("insert", collection)
        return await super().insert(collection, values, returning=returning)

    async def update(self, collection, record_id, values):
        self._check("update", collection)
        return await super().update(collection, record_id, values)

    async def delete(self, collection, record_id):
        self._check("delete", collection)
        return await super().delete(collection, record_id)


class ManualClock:
    """Settable clock for notification expiry."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def seed(store: InMemoryRecordStore) -> InMemoryRecordStore:
    store.seed(INCOME_CATEGORIES, [
        {"id": 1, "name": "Consulting"},
        {"id": 2, "name": "Licensing"},
    ])
    store.seed(EXPENSE_CATEGORIES, [
        {"id": 1, "name": "Hardware"},
        {"id": 2, "name": "Software"},
    ])
    store.seed(CLIENTS, [
        {"id": "c-acme", "name": "Acme AG", "email": "billing@acme.example",
         "created_at": "2025-01-01T00:00:00+00:00"},
        {"id": "c-beta", "name": "Beta GmbH", "phone": "+41 44 000 00 00",
         "created_at": "2025-02-01T00:00:00+00:00"},
    ])
    store.seed(PROJECTS, [
        {"id": "p-web", "name": "Website", "client_id": "c-acme", "status": "active",
         "created_at": "2025-01-05T00:00:00+00:00"},
        {"id": "p-app", "name": "Mobile app", "client_id": "c-beta", "status": "planned",
         "created_at": "2025-02-05T00:00:00+00:00"},
    ])
    store.seed(INCOMES, [
        {"id": 1, "tx_date": "2025-03-02", "project_id": "p-web", "client_id": "c-acme",
         "category_id": 1, "amount_chf": "1000.00", "status": "paid"},
        {"id": 2, "tx_date": "2025-01-10", "project_id": "p-app", "client_id": "c-beta",
         "category_id": 2, "amount_chf": "500.00", "status": "open"},
    ])
    store.seed(EXPENSES, [
        {"id": 1, "tx_date": "2025-03-05", "project_id": "p-web", "vendor": "Digitec",
         "category_id": 1, "amount_chf": "200.00"},
        {"id": 2, "tx_date": "2025-02-20", "project_id": None, "vendor": "GitHub",
         "category_id": 2, "amount_chf": "50.50"},
    ])
    store.seed(DOCUMENTS, [
        {"id": "d-1", "doc_number": "2025-001", "doc_type": "invoice", "client_id": "c-acme",
         "project_id": "p-web", "tax_rate": "8.1", "total": "1081.00",
         "created_at": "2025-03-01T00:00:00+00:00"},
    ])
    store.seed(EVENTS, [
        {"id": 1, "title": "Kick-off", "start_at": "2025-03-03T09:00:00+00:00",
         "end_at": "2025-03-03T10:00:00+00:00"},
        {"id": 2, "title": "Review", "start_at": "2025-03-10T14:00:00+00:00", "end_at": None},
    ])
    return store


@pytest.fixture
def store() -> FailingStore:
    return seed(FailingStore(today=lambda: TODAY))


@pytest.fixture
def empty_store() -> FailingStore:
    return FailingStore(today=lambda: TODAY)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier(clock) -> Notifier:
    return Notifier(duration_ms=1800, clock=clock)


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(use_memory_store=True)


@pytest_asyncio.fixture
async def catalog(store, settings, audit_logger) -> CatalogCache:
    cache = CatalogCache(store, settings, audit_logger)
    await cache.reload()
    return cache
