"""
Record Models for Bookkeeper

These models describe the rows the hosted store hands back.
They are transient copies: the store owns every record, and nothing
here is written back except through an explicit insert/update/delete.

DESIGN DECISION: Read models are tolerant. Unknown columns are ignored
and free-form columns (status, doc_type) stay plain strings, so a new
value added on the database side never breaks a page load. The strict
enums below are used only when *we* write (see models/forms.py).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookkeeper.formatting import to_decimal

# Integer ids for categories and transactions, UUID strings for the rest.
RecordId = Union[int, str]


# =============================================================================
# ENUMS - values this app writes
# =============================================================================

class IncomeStatus(str, Enum):
    """Payment state of an income entry."""
    OPEN = "open"
    PAID = "paid"


class ProjectStatus(str, Enum):
    """Lifecycle state of a project."""
    PLANNED = "planned"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    DONE = "done"


class DocumentType(str, Enum):
    """Billing document kinds."""
    INVOICE = "invoice"
    QUOTE = "quote"


class CategoryKind(str, Enum):
    """Which category set a reference points into."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# STORE RECORDS
# =============================================================================

class StoreRecord(BaseModel):
    """Base for every row read from the store."""
    model_config = ConfigDict(extra="ignore")


def _amount_or_zero(value: Any) -> Decimal:
    number = to_decimal(value)
    return number if number is not None else Decimal("0")


class Client(StoreRecord):
    id: RecordId
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    billing_address: Optional[str] = None
    vat_number: Optional[str] = None
    created_at: Optional[datetime] = None


class Project(StoreRecord):
    id: RecordId
    name: str
    client_id: Optional[RecordId] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget_chf: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class Category(StoreRecord):
    """Income or expense category; the two sets live in separate tables."""
    id: RecordId
    name: str


class Income(StoreRecord):
    id: RecordId
    tx_date: Optional[date] = None
    project_id: Optional[RecordId] = None
    client_id: Optional[RecordId] = None
    category_id: Optional[RecordId] = None
    amount_chf: Decimal = Decimal("0")
    status: Optional[str] = None
    description: Optional[str] = None

    @field_validator('amount_chf', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return _amount_or_zero(v)


class Expense(StoreRecord):
    id: RecordId
    tx_date: Optional[date] = None
    project_id: Optional[RecordId] = None
    vendor: Optional[str] = None
    category_id: Optional[RecordId] = None
    amount_chf: Decimal = Decimal("0")
    description: Optional[str] = None

    @field_validator('amount_chf', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return _amount_or_zero(v)


class Document(StoreRecord):
    """Invoice or quote header. Totals are maintained by the store."""
    id: RecordId
    doc_number: Optional[str] = None
    doc_type: str
    client_id: Optional[RecordId] = None
    project_id: Optional[RecordId] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    tax_rate: Decimal = Decimal("0")
    subtotal: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total: Optional[Decimal] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator('tax_rate', mode='before')
    @classmethod
    def coerce_tax_rate(cls, v: Any) -> Decimal:
        return _amount_or_zero(v)


class DocumentItem(StoreRecord):
    """One line of a document. Positions start at 1 with no gaps."""
    id: Optional[RecordId] = None
    document_id: RecordId
    position: int = Field(..., ge=1)
    description: str = ""
    qty: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")


class CalendarEvent(StoreRecord):
    id: RecordId
    title: str
    start_at: datetime
    end_at: Optional[datetime] = None


# =============================================================================
# VIEWS (aggregated by the store)
# =============================================================================

class MonthlyOverview(StoreRecord):
    """One row of v_monthly_overview: a calendar month of the current year."""
    month_key: str = Field(..., min_length=7, max_length=7)
    income_chf: Decimal = Decimal("0")
    expense_chf: Decimal = Decimal("0")

    @field_validator('income_chf', 'expense_chf', mode='before')
    @classmethod
    def coerce_totals(cls, v: Any) -> Decimal:
        return _amount_or_zero(v)


class ProjectFinancials(StoreRecord):
    """One row of v_projects_financials."""
    id: RecordId
    name: str
    client_id: Optional[RecordId] = None
    status: Optional[str] = None
    income_chf: Decimal = Decimal("0")
    expense_chf: Decimal = Decimal("0")
    profit_chf: Decimal = Decimal("0")

    @field_validator('income_chf', 'expense_chf', 'profit_chf', mode='before')
    @classmethod
    def coerce_totals(cls, v: Any) -> Decimal:
        return _amount_or_zero(v)
