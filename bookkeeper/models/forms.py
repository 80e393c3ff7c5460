"""
Form Draft Models

A draft is what a form submits before it becomes a store record.

DESIGN DECISION: Drafts coerce leniently instead of rejecting input.
- Blank optional fields become None (never an empty string)
- Required amounts that do not parse become 0
- Optional amounts that do not parse are omitted (None)
- Negative amounts and tax rates become 0
Reference checks (does this category exist?) happen separately in
validation/validator.py because they need the catalog.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from bookkeeper.formatting import to_decimal, to_non_negative
from bookkeeper.models.records import (
    DocumentType,
    IncomeStatus,
    ProjectStatus,
    RecordId,
)


# =============================================================================
# LENIENT FIELD TYPES
# =============================================================================

def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _reference(value: Any) -> Any:
    value = _blank_to_none(value)
    # Select widgets hand back strings; integer keys must compare equal
    # to the ids the catalog holds.
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def _lenient_date(value: Any) -> Any:
    value = _blank_to_none(value)
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return value


def _optional_amount(value: Any) -> Optional[Decimal]:
    number = to_decimal(value)
    if number is None:
        return None
    return max(number, Decimal("0"))


OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
OptionalRef = Annotated[Optional[RecordId], BeforeValidator(_reference)]
OptionalDate = Annotated[Optional[date], BeforeValidator(_lenient_date)]
Amount = Annotated[Decimal, BeforeValidator(to_non_negative)]
OptionalAmount = Annotated[Optional[Decimal], BeforeValidator(_optional_amount)]


class FormDraft(BaseModel):
    """Base for all drafts."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    def to_payload(self) -> dict:
        """JSON-safe insert payload (dates as ISO strings, decimals as strings)."""
        return self.model_dump(mode="json")


# =============================================================================
# DRAFTS
# =============================================================================

class IncomeDraft(FormDraft):
    tx_date: OptionalDate = None
    project_id: OptionalRef = None
    client_id: OptionalRef = None
    category_id: OptionalRef = None
    amount_chf: Amount = Decimal("0")
    status: IncomeStatus = IncomeStatus.OPEN
    description: OptionalText = None


class ExpenseDraft(FormDraft):
    tx_date: OptionalDate = None
    project_id: OptionalRef = None
    vendor: OptionalText = None
    category_id: OptionalRef = None
    amount_chf: Amount = Decimal("0")
    description: OptionalText = None


class ProjectDraft(FormDraft):
    name: str = Field(..., min_length=1, max_length=200)
    client_id: OptionalRef = None
    start_date: OptionalDate = None
    end_date: OptionalDate = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    budget_chf: OptionalAmount = None
    notes: OptionalText = None


class ClientDraft(FormDraft):
    name: str = Field(..., min_length=1, max_length=200)
    email: OptionalText = None
    phone: OptionalText = None
    billing_address: OptionalText = None
    vat_number: OptionalText = None


class DocumentHeaderDraft(FormDraft):
    """Invoice/quote header; line items are submitted separately."""
    doc_type: DocumentType = DocumentType.INVOICE
    client_id: OptionalRef = None
    project_id: OptionalRef = None
    issue_date: OptionalDate = None
    due_date: OptionalDate = None
    tax_rate: Amount = Decimal("0")
    notes: OptionalText = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'unknown_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of checking a draft against the catalog."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

