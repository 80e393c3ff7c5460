"""
Catalog Cache

An in-memory snapshot of the reference data that tables and forms use
to show names instead of ids: clients, projects and the two category
sets.

DESIGN DECISION: The cache is never patched. `reload()` fetches all four
sources concurrently, waits for every one of them, and then swaps in a
brand-new immutable snapshot in one assignment. A source that fails
contributes an empty slice; the others are still used. Readers therefore
always see a snapshot that was built from one reload, never a mix.
"""

import asyncio
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

import structlog
from pydantic import BaseModel

from bookkeeper.audit import AuditLogger
from bookkeeper.config import AppSettings
from bookkeeper.models.records import Category, CategoryKind, Client, Project, RecordId
from bookkeeper.services.storage import (
    CLIENTS,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    PROJECTS,
    RecordStore,
)

logger = structlog.get_logger(__name__)

EMPTY_OPTION_LABEL = "–"


def _names(records) -> Mapping[RecordId, str]:
    return MappingProxyType({r.id: r.name for r in records})


@dataclass(frozen=True)
class CatalogSnapshot:
    """One consistent generation of reference data."""

    clients: tuple[Client, ...] = ()
    projects: tuple[Project, ...] = ()
    income_categories: tuple[Category, ...] = ()
    expense_categories: tuple[Category, ...] = ()
    client_names: Mapping[RecordId, str] = field(default_factory=lambda: MappingProxyType({}))
    project_names: Mapping[RecordId, str] = field(default_factory=lambda: MappingProxyType({}))
    income_category_names: Mapping[RecordId, str] = field(default_factory=lambda: MappingProxyType({}))
    expense_category_names: Mapping[RecordId, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        clients: tuple[Client, ...],
        projects: tuple[Project, ...],
        income_categories: tuple[Category, ...],
        expense_categories: tuple[Category, ...],
    ) -> "CatalogSnapshot":
        """Derive every lookup mapping from the given lists."""
        return cls(
            clients=clients,
            projects=projects,
            income_categories=income_categories,
            expense_categories=expense_categories,
            client_names=_names(clients),
            project_names=_names(projects),
            income_category_names=_names(income_categories),
            expense_category_names=_names(expense_categories),
        )


class CatalogCache:
    """
    Owner of the current CatalogSnapshot.

    Constructed at startup, replaced wholesale on reload(), read-only
    everywhere else.
    """

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._project_limit = settings.catalog_project_limit if settings else 1000
        self._audit_logger = audit_logger
        self._snapshot = CatalogSnapshot()

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    async def _fetch(self, collection: str, model: type[BaseModel], **query: Any) -> tuple:
        rows = await self._store.select(collection, **query)
        return tuple(model.model_validate(row) for row in rows)

    async def reload(self) -> CatalogSnapshot:
        """
        Re-fetch all four sources concurrently and replace the snapshot.

        Never raises for store or parse errors: they are logged and the
        affected slice is left empty.
        """
        sources = (
            (CLIENTS, Client, {"order_by": "name"}),
            (PROJECTS, Project, {
                "order_by": "created_at",
                "descending": True,
                "limit": self._project_limit,
            }),
            (INCOME_CATEGORIES, Category, {"order_by": "name"}),
            (EXPENSE_CATEGORIES, Category, {"order_by": "name"}),
        )
        results = await asyncio.gather(
            *(self._fetch(collection, model, **query) for collection, model, query in sources),
            return_exceptions=True,
        )

        slices: list[tuple] = []
        failed: list[str] = []
        for (collection, _, _), result in zip(sources, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("catalog_source_failed", collection=collection, error=str(result))
                if self._audit_logger:
                    self._audit_logger.log_load_failed(collection, result)
                slices.append(())
                failed.append(collection)
            else:
                slices.append(result)

        self._snapshot = CatalogSnapshot.build(*slices)

        if self._audit_logger:
            self._audit_logger.log_catalog_reloaded(
                counts={collection: len(s) for (collection, _, _), s in zip(sources, slices)},
                failed=failed,
            )
        return self._snapshot

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def clients(self) -> tuple[Client, ...]:
        return self._snapshot.clients

    @property
    def projects(self) -> tuple[Project, ...]:
        return self._snapshot.projects

    @property
    def income_categories(self) -> tuple[Category, ...]:
        return self._snapshot.income_categories

    @property
    def expense_categories(self) -> tuple[Category, ...]:
        return self._snapshot.expense_categories

    def client_name(self, client_id: Optional[RecordId]) -> str:
        return self._snapshot.client_names.get(client_id, "") if client_id is not None else ""

    def project_name(self, project_id: Optional[RecordId]) -> str:
        return self._snapshot.project_names.get(project_id, "") if project_id is not None else ""

    def category_name(self, kind: CategoryKind, category_id: Optional[RecordId]) -> str:
        if category_id is None:
            return ""
        names = (
            self._snapshot.income_category_names
            if kind == CategoryKind.INCOME
            else self._snapshot.expense_category_names
        )
        return names.get(category_id, "")

    def income_category_name(self, category_id: Optional[RecordId]) -> str:
        return self.category_name(CategoryKind.INCOME, category_id)

    def expense_category_name(self, category_id: Optional[RecordId]) -> str:
        return self.category_name(CategoryKind.EXPENSE, category_id)

    def has_category(self, kind: CategoryKind, category_id: Optional[RecordId]) -> bool:
        names = (
            self._snapshot.income_category_names
            if kind == CategoryKind.INCOME
            else self._snapshot.expense_category_names
        )
        return category_id is not None and category_id in names

    def has_client(self, client_id: Optional[RecordId]) -> bool:
        return client_id is not None and client_id in self._snapshot.client_names

    def has_project(self, project_id: Optional[RecordId]) -> bool:
        return project_id is not None and project_id in self._snapshot.project_names

    # ------------------------------------------------------------------
    # Select options
    # ------------------------------------------------------------------

    def options(self, source: str, include_empty: bool = True) -> list[tuple[Optional[RecordId], str]]:
        """
        (value, label) pairs for a dropdown.

        `source` is one of the catalog collections. Nullable references
        get a leading empty choice.
        """
        records = {
            CLIENTS: self._snapshot.clients,
            PROJECTS: self._snapshot.projects,
            INCOME_CATEGORIES: self._snapshot.income_categories,
            EXPENSE_CATEGORIES: self._snapshot.expense_categories,
        }[source]
        choices: list[tuple[Optional[RecordId], str]] = (
            [(None, EMPTY_OPTION_LABEL)] if include_empty else []
        )
        choices.extend((r.id, r.name) for r in records)
        return choices
