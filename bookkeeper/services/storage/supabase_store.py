"""
Supabase Record Store

DESIGN DECISION: The hosted Supabase project is the only backend.
It gives us, for free:
1. Postgres tables for every entity
2. Server-side views for the monthly overview and project financials
3. A REST API usable with the published anon key

TRADEOFFS:
- No multi-statement transactions over REST (document + items are
  two requests; see services/forms.py)
- The Python client is blocking, so calls run in worker threads to
  let the catalog's four selects overlap

Requests are never retried here. A failure is translated into
StorageError and reported by the caller.
"""

import asyncio
from typing import Any, Mapping, Optional

from postgrest.exceptions import APIError
from postgrest.types import ReturnMethod
from supabase import Client, ClientOptions, create_client

from bookkeeper.config import SupabaseSettings, get_settings
from bookkeeper.models.records import RecordId
from bookkeeper.services.storage.interface import (
    VIEWS,
    RecordStore,
    Row,
    StorageError,
    StoreUnavailableError,
    Values,
)


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Creates the vendor client lazily from settings.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[Client] = None
        self._settings = settings

    def connect(self) -> Client:
        """Create the Supabase client on first use."""
        if self._client is None:
            try:
                settings = self._settings or get_settings().supabase
                self._client = create_client(
                    settings.url,
                    settings.anon_key,
                    options=ClientOptions(schema=settings.db_schema),
                )
            except Exception as e:
                raise StoreUnavailableError(f"Failed to configure Supabase: {e}") from e
        return self._client

    def table(self, collection: str):
        """Query builder for a table or view."""
        return self.connect().table(collection)


def _describe(error: APIError) -> str:
    parts = [error.message or "request rejected"]
    if error.code:
        parts.append(f"code={error.code}")
    if error.details:
        parts.append(str(error.details))
    return " ".join(parts)


class SupabaseRecordStore(RecordStore):
    """
    Supabase implementation of the record store.

    Each method issues exactly one REST request.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def _execute(self, action: str, collection: str, build) -> list[Row]:
        def run() -> list[Row]:
            return build(self._client.table(collection)).execute().data or []

        try:
            return await asyncio.to_thread(run)
        except StorageError:
            raise
        except APIError as e:
            raise StorageError(f"Failed to {action} {collection}: {_describe(e)}") from e
        except Exception as e:
            raise StorageError(f"Failed to {action} {collection}: {e}") from e

    async def select(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Row]:
        """Select all columns of one page."""
        def build(table):
            query = table.select("*")
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            return query

        return await self._execute("select from", collection, build)

    async def insert(
        self,
        collection: str,
        values: Values,
        returning: bool = True,
    ) -> list[Row]:
        """Insert one row or a batch in a single request."""
        if collection in VIEWS:
            raise StorageError(f"Cannot insert into read-only view {collection}")
        payload: Any = dict(values) if isinstance(values, Mapping) else [dict(v) for v in values]
        method = ReturnMethod.representation if returning else ReturnMethod.minimal

        rows = await self._execute(
            "insert into",
            collection,
            lambda table: table.insert(payload, returning=method),
        )
        return rows if returning else []

    async def update(
        self,
        collection: str,
        record_id: RecordId,
        values: Mapping[str, Any],
    ) -> None:
        """Overwrite fields of one row by id."""
        if collection in VIEWS:
            raise StorageError(f"Cannot update read-only view {collection}")
        await self._execute(
            "update",
            collection,
            lambda table: table.update(dict(values)).eq("id", record_id),
        )

    async def delete(self, collection: str, record_id: RecordId) -> None:
        """Delete one row by id."""
        if collection in VIEWS:
            raise StorageError(f"Cannot delete from read-only view {collection}")
        await self._execute(
            "delete from",
            collection,
            lambda table: table.delete().eq("id", record_id),
        )
