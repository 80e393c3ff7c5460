"""Invoice and quote line-item arithmetic."""

from bookkeeper.billing.totals import (
    DocumentDraft,
    DocumentTotals,
    LineItemRow,
    compute_totals,
)

__all__ = ["DocumentDraft", "DocumentTotals", "LineItemRow", "compute_totals"]
