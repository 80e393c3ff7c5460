"""Reference checks for form drafts."""

from bookkeeper.validation.validator import DraftValidator

__all__ = ["DraftValidator"]
