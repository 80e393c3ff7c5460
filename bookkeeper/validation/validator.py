"""
Draft Validation

DESIGN DECISION: Field values are coerced leniently by the draft models
(models/forms.py) and are not validated again here. This module only
checks what the drafts cannot know on their own: whether the ids they
reference exist in the current catalog.

ERRORS (block the insert):
- a transaction without a category, or with a category of the wrong kind
- a document without a client, or with an unknown client

WARNINGS (reported, never block):
- optional project/client references the catalog does not know
  (the catalog may simply be stale)
- end/due dates before start/issue dates
"""

from typing import Optional

from bookkeeper.models.forms import (
    DocumentHeaderDraft,
    ExpenseDraft,
    IncomeDraft,
    ProjectDraft,
    ValidationIssue,
    ValidationResult,
)
from bookkeeper.models.records import CategoryKind, RecordId
from bookkeeper.services.catalog import CatalogCache


class DraftValidator:
    """Checks drafts against the catalog snapshot at submission time."""

    def __init__(self, catalog: CatalogCache):
        self._catalog = catalog

    def _category_issues(
        self,
        kind: CategoryKind,
        category_id: Optional[RecordId],
    ) -> list[ValidationIssue]:
        if category_id is None:
            return [ValidationIssue(
                field="category_id",
                issue_type="missing",
                message="A category is required",
                severity="error",
            )]
        if not self._catalog.has_category(kind, category_id):
            return [ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message=f"Unknown {kind.value} category: {category_id}",
                severity="error",
            )]
        return []

    def _optional_reference_issues(
        self,
        project_id: Optional[RecordId] = None,
        client_id: Optional[RecordId] = None,
    ) -> list[ValidationIssue]:
        issues = []
        if project_id is not None and not self._catalog.has_project(project_id):
            issues.append(ValidationIssue(
                field="project_id",
                issue_type="unknown_reference",
                message=f"Project {project_id} is not in the catalog",
                severity="warning",
            ))
        if client_id is not None and not self._catalog.has_client(client_id):
            issues.append(ValidationIssue(
                field="client_id",
                issue_type="unknown_reference",
                message=f"Client {client_id} is not in the catalog",
                severity="warning",
            ))
        return issues

    def validate_income(self, draft: IncomeDraft) -> ValidationResult:
        issues = self._category_issues(CategoryKind.INCOME, draft.category_id)
        issues += self._optional_reference_issues(draft.project_id, draft.client_id)
        return ValidationResult(issues=issues)

    def validate_expense(self, draft: ExpenseDraft) -> ValidationResult:
        issues = self._category_issues(CategoryKind.EXPENSE, draft.category_id)
        issues += self._optional_reference_issues(draft.project_id)
        return ValidationResult(issues=issues)

    def validate_project(self, draft: ProjectDraft) -> ValidationResult:
        issues = self._optional_reference_issues(client_id=draft.client_id)
        if draft.start_date and draft.end_date and draft.end_date < draft.start_date:
            issues.append(ValidationIssue(
                field="end_date",
                issue_type="inconsistent",
                message="Project ends before it starts",
                severity="warning",
            ))
        return ValidationResult(issues=issues)

    def validate_document(self, draft: DocumentHeaderDraft) -> ValidationResult:
        issues = []
        if draft.client_id is None:
            issues.append(ValidationIssue(
                field="client_id",
                issue_type="missing",
                message="A document needs a client",
                severity="error",
            ))
        elif not self._catalog.has_client(draft.client_id):
            issues.append(ValidationIssue(
                field="client_id",
                issue_type="unknown_reference",
                message=f"Unknown client: {draft.client_id}",
                severity="error",
            ))
        issues += self._optional_reference_issues(project_id=draft.project_id)
        if draft.issue_date and draft.due_date and draft.due_date < draft.issue_date:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="inconsistent",
                message="Due date is before issue date",
                severity="warning",
            ))
        return ValidationResult(issues=issues)

    @staticmethod
    def summary(result: ValidationResult) -> str:
        """One-line message for a transient notification."""
        errors = [i.message for i in result.issues if i.severity == "error"]
        if errors:
            return "Not saved: " + "; ".join(errors)
        warnings = [i.message for i in result.issues if i.severity == "warning"]
        if warnings:
            return "Check: " + "; ".join(warnings)
        return ""
