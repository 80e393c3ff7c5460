"""Tests for the catalog cache and the draft validator."""

import pytest

from bookkeeper.models.forms import DocumentHeaderDraft, ExpenseDraft, IncomeDraft, ProjectDraft
from bookkeeper.models.records import CategoryKind
from bookkeeper.models.audit import AuditEventType
from bookkeeper.services.catalog import EMPTY_OPTION_LABEL, CatalogCache
from bookkeeper.services.storage import CLIENTS, EXPENSE_CATEGORIES, INCOME_CATEGORIES, PROJECTS
from bookkeeper.validation import DraftValidator


class TestCatalogReload:
    """Tests for CatalogCache.reload()."""

    @pytest.mark.asyncio
    async def test_loads_all_four_sources(self, catalog):
        assert [c.name for c in catalog.clients] == ["Acme AG", "Beta GmbH"]
        assert [p.name for p in catalog.projects] == ["Mobile app", "Website"]  # newest first
        assert [c.name for c in catalog.income_categories] == ["Consulting", "Licensing"]
        assert [c.name for c in catalog.expense_categories] == ["Hardware", "Software"]

    @pytest.mark.asyncio
    async def test_resolves_names(self, catalog):
        assert catalog.client_name("c-acme") == "Acme AG"
        assert catalog.project_name("p-web") == "Website"
        assert catalog.income_category_name(2) == "Licensing"
        assert catalog.expense_category_name(1) == "Hardware"

    @pytest.mark.asyncio
    async def test_unknown_or_missing_ids_resolve_to_empty(self, catalog):
        assert catalog.client_name("nope") == ""
        assert catalog.client_name(None) == ""
        assert catalog.project_name(None) == ""
        assert catalog.category_name(CategoryKind.INCOME, 99) == ""

    @pytest.mark.asyncio
    async def test_failed_source_leaves_only_its_slice_empty(self, store, settings, audit_logger):
        store.fail("select", PROJECTS)
        cache = CatalogCache(store, settings, audit_logger)

        await cache.reload()

        assert cache.projects == ()
        assert cache.project_name("p-web") == ""
        assert cache.client_name("c-acme") == "Acme AG"
        assert len(cache.income_categories) == 2

        reloaded = audit_logger.recent_events[0]
        assert reloaded.event_type == AuditEventType.CATALOG_RELOADED
        assert reloaded.details["failed"] == [PROJECTS]

    @pytest.mark.asyncio
    async def test_reload_replaces_the_snapshot(self, store, catalog):
        before = catalog.snapshot
        store.seed(CLIENTS, [{"id": "c-new", "name": "Zeta SA"}])

        await catalog.reload()

        assert catalog.snapshot is not before
        assert catalog.client_name("c-new") == "Zeta SA"
        # The old snapshot was not patched
        assert "c-new" not in before.client_names

    @pytest.mark.asyncio
    async def test_deleted_client_disappears_after_reload(self, store, catalog):
        await store.delete(CLIENTS, "c-beta")
        await catalog.reload()
        assert catalog.client_name("c-beta") == ""

    @pytest.mark.asyncio
    async def test_project_limit_is_applied(self, store, audit_logger):
        from bookkeeper.config import AppSettings

        cache = CatalogCache(store, AppSettings(catalog_project_limit=1), audit_logger)
        await cache.reload()
        assert [p.id for p in cache.projects] == ["p-app"]


class TestCatalogOptions:
    """Tests for dropdown options."""

    @pytest.mark.asyncio
    async def test_nullable_reference_gets_empty_choice(self, catalog):
        options = catalog.options(CLIENTS)
        assert options[0] == (None, EMPTY_OPTION_LABEL)
        assert ("c-acme", "Acme AG") in options

    @pytest.mark.asyncio
    async def test_required_reference_has_no_empty_choice(self, catalog):
        options = catalog.options(EXPENSE_CATEGORIES, include_empty=False)
        assert options == [(1, "Hardware"), (2, "Software")]

    @pytest.mark.asyncio
    async def test_income_categories(self, catalog):
        assert len(catalog.options(INCOME_CATEGORIES)) == 3


class TestDraftValidator:
    """Tests for reference checks against the catalog."""

    @pytest.mark.asyncio
    async def test_valid_income(self, catalog):
        result = DraftValidator(catalog).validate_income(
            IncomeDraft(category_id=1, project_id="p-web", client_id="c-acme")
        )
        assert not result.has_errors
        assert result.issues == []

    @pytest.mark.asyncio
    async def test_income_without_category_is_rejected(self, catalog):
        result = DraftValidator(catalog).validate_income(IncomeDraft())
        assert result.has_errors
        assert result.issues[0].issue_type == "missing"

    @pytest.mark.asyncio
    async def test_category_of_the_wrong_kind_is_rejected(self, catalog):
        # 3 exists in neither set; categories are checked per kind
        result = DraftValidator(catalog).validate_expense(ExpenseDraft(category_id=3))
        assert result.has_errors

    @pytest.mark.asyncio
    async def test_unknown_project_is_only_a_warning(self, catalog):
        result = DraftValidator(catalog).validate_expense(
            ExpenseDraft(category_id=1, project_id="p-gone")
        )
        assert not result.has_errors
        assert result.issues[0].severity == "warning"

    @pytest.mark.asyncio
    async def test_project_ending_before_start_warns(self, catalog):
        result = DraftValidator(catalog).validate_project(
            ProjectDraft(name="Web", start_date="2025-03-10", end_date="2025-03-01")
        )
        assert not result.has_errors
        assert [i.field for i in result.issues] == ["end_date"]

    @pytest.mark.asyncio
    async def test_document_needs_a_known_client(self, catalog):
        validator = DraftValidator(catalog)
        assert validator.validate_document(DocumentHeaderDraft()).has_errors
        assert validator.validate_document(DocumentHeaderDraft(client_id="c-zzz")).has_errors
        assert not validator.validate_document(DocumentHeaderDraft(client_id="c-acme")).has_errors

    @pytest.mark.asyncio
    async def test_summary_lists_errors_first(self, catalog):
        result = DraftValidator(catalog).validate_income(IncomeDraft(project_id="p-gone"))
        assert DraftValidator.summary(result).startswith("Not saved: A category is required")
