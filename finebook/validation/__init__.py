"""Input validation package."""

from finebook.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
