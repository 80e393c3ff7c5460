"""
Line-Item Totals Engine

Computes the figures shown under an invoice or quote while it is being
edited: a total per line, the subtotal, the tax and the grand total.

The engine is pure and recomputes everything from scratch on every
call. Input that is missing or not a number counts as zero; nothing
here raises on bad input.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Optional

from bookkeeper.formatting import to_non_negative
from bookkeeper.models.records import DocumentItem, RecordId

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass
class LineItemRow:
    """One editable row of the document form."""

    description: str = ""
    quantity: Any = Decimal("1")
    unit_price: Any = ZERO

    @property
    def qty(self) -> Decimal:
        return to_non_negative(self.quantity)

    @property
    def price(self) -> Decimal:
        return to_non_negative(self.unit_price)

    @property
    def total(self) -> Decimal:
        return self.qty * self.price


@dataclass(frozen=True)
class DocumentTotals:
    line_totals: tuple[Decimal, ...] = ()
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    total: Decimal = ZERO


def compute_totals(rows: Iterable[LineItemRow], tax_rate: Any) -> DocumentTotals:
    """
    Compute line totals, subtotal, tax and grand total.

    line total = quantity × unit price
    subtotal   = sum of line totals
    tax        = subtotal × rate / 100
    total      = subtotal + tax
    """
    line_totals = tuple(row.total for row in rows)
    subtotal = sum(line_totals, ZERO)
    tax = subtotal * to_non_negative(tax_rate) / HUNDRED
    return DocumentTotals(
        line_totals=line_totals,
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
    )


@dataclass
class DocumentDraft:
    """
    Editable line items and tax rate of the document form.

    Every mutation recomputes `totals` in full.
    """

    rows: list[LineItemRow] = field(default_factory=list)
    tax_rate: Any = ZERO
    totals: DocumentTotals = field(default_factory=DocumentTotals, init=False)

    def __post_init__(self):
        self.recompute()

    @classmethod
    def seeded(cls, tax_rate: Any = ZERO) -> "DocumentDraft":
        """A fresh form starts with one empty row."""
        return cls(rows=[LineItemRow()], tax_rate=tax_rate)

    def recompute(self) -> DocumentTotals:
        self.totals = compute_totals(self.rows, self.tax_rate)
        return self.totals

    def add_row(
        self,
        description: str = "",
        quantity: Any = Decimal("1"),
        unit_price: Any = ZERO,
    ) -> DocumentTotals:
        self.rows.append(LineItemRow(description, quantity, unit_price))
        return self.recompute()

    def remove_row(self, index: int) -> DocumentTotals:
        del self.rows[index]
        return self.recompute()

    def update_row(
        self,
        index: int,
        description: Optional[str] = None,
        quantity: Any = None,
        unit_price: Any = None,
    ) -> DocumentTotals:
        row = self.rows[index]
        if description is not None:
            row.description = description
        if quantity is not None:
            row.quantity = quantity
        if unit_price is not None:
            row.unit_price = unit_price
        return self.recompute()

    def set_tax_rate(self, tax_rate: Any) -> DocumentTotals:
        self.tax_rate = to_non_negative(tax_rate)
        return self.recompute()

    def reset(self) -> DocumentTotals:
        self.rows = [LineItemRow()]
        self.tax_rate = ZERO
        return self.recompute()

    def to_items(self, document_id: RecordId) -> list[DocumentItem]:
        """Line items for the store, positioned 1..n in row order."""
        return [
            DocumentItem(
                document_id=document_id,
                position=index,
                description=(row.description or "").strip(),
                qty=row.qty,
                unit_price=row.price,
            )
            for index, row in enumerate(self.rows, start=1)
        ]
