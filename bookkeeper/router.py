"""
View Router

Six fixed views, one active at a time. Activating a view sets the page
title and runs that view's loader; nothing else is carried between
switches.
"""

from enum import Enum
from typing import Mapping

import structlog

from bookkeeper.services.catalog import CatalogCache
from bookkeeper.services.dashboard import DashboardAggregator
from bookkeeper.services.loaders import EntityListLoader

logger = structlog.get_logger(__name__)


class View(str, Enum):
    DASHBOARD = "dashboard"
    INCOMES = "incomes"
    EXPENSES = "expenses"
    PROJECTS = "projects"
    CLIENTS = "clients"
    DOCUMENTS = "documents"


VIEW_TITLES = {
    View.DASHBOARD: "Dashboard",
    View.INCOMES: "Income",
    View.EXPENSES: "Expenses",
    View.PROJECTS: "Projects",
    View.CLIENTS: "Clients",
    View.DOCUMENTS: "Documents",
}


class ViewRouter:
    """Tracks the active view and triggers its loader."""

    def __init__(
        self,
        catalog: CatalogCache,
        dashboard: DashboardAggregator,
        loaders: Mapping[View, EntityListLoader],
    ):
        self._catalog = catalog
        self._dashboard = dashboard
        self._loaders = dict(loaders)
        self.active = View.DASHBOARD
        self.title = VIEW_TITLES[View.DASHBOARD]

    async def activate(self, view: View) -> bool:
        """
        Switch to `view` and load its data.

        Returns whatever the loader returned (False if it failed; the
        view then shows its previous rows).
        """
        view = View(view)
        self.active = view
        self.title = VIEW_TITLES[view]
        logger.debug("view_activated", view=view.value)
        return await self._load(view)

    async def refresh(self) -> None:
        """Catalog, then dashboard, then the active list view if any."""
        await self._catalog.reload()
        await self._dashboard.refresh()
        if self.active != View.DASHBOARD:
            await self._load(self.active)

    async def _load(self, view: View) -> bool:
        if view == View.DASHBOARD:
            return await self._dashboard.refresh()
        return await self._loaders[view].load()
