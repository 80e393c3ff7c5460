"""
Services package.

Service modules (catalog, loaders, forms, dashboard, calendar) are
imported directly; they must not be imported here because
bookkeeper.validation imports the catalog.
"""

from bookkeeper.services.notifications import (
    Notification,
    NotificationLevel,
    Notifier,
)
from bookkeeper.services.storage import (
    InMemoryRecordStore,
    NotFoundError,
    RecordStore,
    StorageError,
    StoreUnavailableError,
    SupabaseClient,
    SupabaseRecordStore,
)

__all__ = [
    # Notifications
    "Notification",
    "NotificationLevel",
    "Notifier",
    # Storage services
    "InMemoryRecordStore",
    "NotFoundError",
    "RecordStore",
    "StorageError",
    "StoreUnavailableError",
    "SupabaseClient",
    "SupabaseRecordStore",
]
