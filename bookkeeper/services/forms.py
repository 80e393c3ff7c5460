"""
Entity Form Handlers

One handler per create form (income, expense, project, client,
document). A submission:

1. Is refused while a previous submission of the same form is in flight
2. Coerces the raw field values into a draft (lenient, never raises for
   bad numbers or blank optionals)
3. Checks the draft's references against the catalog
4. Inserts the record
5. On success: resets the form, posts a notification and refreshes
   the catalog / list / dashboard as needed
   On failure: logs, posts an error notification and keeps the values

Documents insert their line items in a second request after the header
succeeded. If that second request fails the header stays in the store;
nothing is rolled back.
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional

import structlog
from pydantic import ValidationError

from bookkeeper.audit import AuditLogger
from bookkeeper.billing import DocumentDraft, DocumentTotals
from bookkeeper.models.forms import (
    ClientDraft,
    DocumentHeaderDraft,
    ExpenseDraft,
    FormDraft,
    IncomeDraft,
    ProjectDraft,
    ValidationIssue,
    ValidationResult,
)
from bookkeeper.services.catalog import CatalogCache
from bookkeeper.services.loaders import EntityListLoader, Refresh
from bookkeeper.services.notifications import Notifier
from bookkeeper.services.storage import (
    CLIENTS,
    DOCUMENT_ITEMS,
    DOCUMENTS,
    EXPENSES,
    INCOMES,
    PROJECTS,
    RecordStore,
    Row,
    StorageError,
)
from bookkeeper.validation import DraftValidator

logger = structlog.get_logger(__name__)


class SubmitOutcome(str, Enum):
    SAVED = "saved"
    INVALID = "invalid"        # draft rejected before any request
    FAILED = "failed"          # insert rejected by the store
    PARTIAL = "partial"        # document header saved, line items not
    BUSY = "busy"              # previous submission still in flight


@dataclass
class SubmitResult:
    outcome: SubmitOutcome
    record: Optional[Row] = None
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome == SubmitOutcome.SAVED


def _issue_dicts(issues: list[ValidationIssue]) -> list[dict]:
    return [{"field": i.field, "type": i.issue_type, "message": i.message} for i in issues]


class FormHandler(ABC):
    """Shared submit cycle; subclasses pick the draft model and refreshes."""

    collection: ClassVar[str]
    draft_model: ClassVar[type[FormDraft]]
    success_message: ClassVar[str] = "Saved"
    failure_message: ClassVar[str] = "Save failed"
    reloads_catalog: ClassVar[bool] = False
    refreshes_dashboard: ClassVar[bool] = True

    def __init__(
        self,
        store: RecordStore,
        catalog: CatalogCache,
        notifier: Notifier,
        validator: Optional[DraftValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        loader: Optional[EntityListLoader] = None,
        on_change: Optional[Refresh] = None,
    ):
        self._store = store
        self._catalog = catalog
        self._notifier = notifier
        self._validator = validator or DraftValidator(catalog)
        self._audit_logger = audit_logger
        self._loader = loader
        self._on_change = on_change
        self._in_flight = False
        # Last submitted values; kept after a failure so the form can be retried
        self.values: dict[str, Any] = {}

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def reset(self) -> None:
        """Clear the form state."""
        self.values = {}

    def validate(self, draft: FormDraft) -> ValidationResult:
        """Reference checks for this form's draft (none by default)."""
        return ValidationResult()

    async def submit(self, fields: Mapping[str, Any]) -> SubmitResult:
        """Run one submission; see the module docstring for the cycle."""
        if self._in_flight:
            logger.info("submit_ignored_in_flight", form=self.collection)
            return SubmitResult(SubmitOutcome.BUSY)

        self._in_flight = True
        try:
            self.values = dict(fields)
            return await self._submit(fields)
        finally:
            self._in_flight = False

    async def _submit(self, fields: Mapping[str, Any]) -> SubmitResult:
        draft = self._build_draft(fields)
        if isinstance(draft, SubmitResult):
            return draft

        result = self.validate(draft)
        if result.has_errors:
            return self._reject(result.issues)
        for issue in result.issues:
            logger.warning("form_warning", form=self.collection, field=issue.field, message=issue.message)

        try:
            record = await self._persist(draft)
        except StorageError as e:
            logger.error("save_failed", form=self.collection, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_save_failed(self.collection, e)
            self._notifier.error(self.failure_message)
            return SubmitResult(SubmitOutcome.FAILED)

        if isinstance(record, SubmitResult):
            return record

        if self._audit_logger:
            self._audit_logger.log_created(self.collection, record.get("id") if record else None)
        self.reset()
        self._notifier.success(self.success_message)
        await self.refresh_after_save()
        return SubmitResult(SubmitOutcome.SAVED, record=record, issues=result.issues)

    def _build_draft(self, fields: Mapping[str, Any]):
        try:
            return self.draft_model.model_validate(dict(fields))
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    field=".".join(str(p) for p in err["loc"]) or "form",
                    issue_type=err["type"],
                    message=err["msg"],
                    severity="error",
                )
                for err in e.errors()
            ]
            return self._reject(issues)

    def _reject(self, issues: list[ValidationIssue]) -> SubmitResult:
        if self._audit_logger:
            self._audit_logger.log_validation_failed(self.collection, _issue_dicts(issues))
        self._notifier.error(DraftValidator.summary(ValidationResult(issues=issues)))
        return SubmitResult(SubmitOutcome.INVALID, issues=issues)

    async def _persist(self, draft: FormDraft):
        rows = await self._store.insert(self.collection, draft.to_payload())
        return rows[0] if rows else None

    async def refresh_after_save(self) -> None:
        """Catalog first (names), then the list, then the dashboard."""
        if self.reloads_catalog:
            await self._catalog.reload()
        if self._loader is not None:
            await self._loader.load()
        if self.refreshes_dashboard and self._on_change is not None:
            await self._on_change()


class IncomeFormHandler(FormHandler):
    collection = INCOMES
    draft_model = IncomeDraft
    success_message = "Income saved"

    def validate(self, draft: IncomeDraft) -> ValidationResult:
        return self._validator.validate_income(draft)


class ExpenseFormHandler(FormHandler):
    collection = EXPENSES
    draft_model = ExpenseDraft
    success_message = "Expense saved"

    def validate(self, draft: ExpenseDraft) -> ValidationResult:
        return self._validator.validate_expense(draft)


class ProjectFormHandler(FormHandler):
    collection = PROJECTS
    draft_model = ProjectDraft
    success_message = "Project saved"
    reloads_catalog = True

    def validate(self, draft: ProjectDraft) -> ValidationResult:
        return self._validator.validate_project(draft)


class ClientFormHandler(FormHandler):
    collection = CLIENTS
    draft_model = ClientDraft
    success_message = "Client saved"
    reloads_catalog = True
    refreshes_dashboard = False


class DocumentFormHandler(FormHandler):
    """
    Invoice/quote form with editable line items.

    `draft` holds the rows and tax rate the user is editing; its totals
    are recomputed on every edit. The header goes in first, then all
    items in one batch tagged with the new document id and positions
    1..n.
    """

    collection = DOCUMENTS
    draft_model = DocumentHeaderDraft
    success_message = "Document saved"
    failure_message = "Error: document"
    items_failure_message = "Error: line items"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.draft = DocumentDraft.seeded()

    @property
    def totals(self) -> DocumentTotals:
        return self.draft.totals

    def reset(self) -> None:
        super().reset()
        self.draft = DocumentDraft.seeded()

    def validate(self, draft: DocumentHeaderDraft) -> ValidationResult:
        return self._validator.validate_document(draft)

    def _build_draft(self, fields: Mapping[str, Any]):
        # Without an explicit rate the header takes the editor's
        tax_rate = fields.get("tax_rate", self.draft.tax_rate)
        return super()._build_draft({**fields, "tax_rate": tax_rate})

    async def _persist(self, draft: DocumentHeaderDraft):
        # Only a draft that passed validation updates the editor
        self.draft.set_tax_rate(draft.tax_rate)
        rows = await self._store.insert(DOCUMENTS, draft.to_payload())
        if not rows:
            raise StorageError("Document insert returned no row")
        document = rows[0]

        items = [
            item.model_dump(mode="json", exclude={"id"})
            for item in self.draft.to_items(document["id"])
        ]
        if not items:
            return document

        try:
            await self._store.insert(DOCUMENT_ITEMS, items, returning=False)
        except StorageError as e:
            # The header already exists; there is no compensation step.
            logger.error(
                "document_items_failed",
                document_id=document["id"],
                item_count=len(items),
                error=str(e),
            )
            if self._audit_logger:
                self._audit_logger.log_created(DOCUMENTS, document["id"])
                self._audit_logger.log_save_failed(
                    DOCUMENT_ITEMS, e, {"document_id": document["id"], "item_count": len(items)}
                )
            self._notifier.error(self.items_failure_message)
            return SubmitResult(SubmitOutcome.PARTIAL, record=document)

        return document
