"""
Data Models Package

Pydantic models for store records, form drafts and audit events.
"""

from bookkeeper.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
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
from bookkeeper.models.records import (
    CalendarEvent,
    Category,
    CategoryKind,
    Client,
    Document,
    DocumentItem,
    DocumentType,
    Expense,
    Income,
    IncomeStatus,
    MonthlyOverview,
    Project,
    ProjectFinancials,
    ProjectStatus,
    RecordId,
)

__all__ = [
    # Records
    "CalendarEvent",
    "Category",
    "CategoryKind",
    "Client",
    "Document",
    "DocumentItem",
    "DocumentType",
    "Expense",
    "Income",
    "IncomeStatus",
    "MonthlyOverview",
    "Project",
    "ProjectFinancials",
    "ProjectStatus",
    "RecordId",
    # Drafts
    "ClientDraft",
    "DocumentHeaderDraft",
    "ExpenseDraft",
    "FormDraft",
    "IncomeDraft",
    "ProjectDraft",
    "ValidationIssue",
    "ValidationResult",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
