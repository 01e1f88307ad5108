"""
Ledger Input Validation

DESIGN DECISION: Validation reports issues, it never fixes them silently.

Two severities:
- error: the ledger refuses the operation and returns the message
- warning: the operation goes ahead and the message is passed back
  in LedgerResult.warnings for the caller to show

Structural rules (enum values, exactly one payment sub-variant) are enforced
by the pydantic models themselves. This module covers the rules that depend
on settings or on the relationship between several values.
"""

from decimal import Decimal
from typing import Optional

from finebook.config import LedgerSettings, get_settings
from finebook.models.ledger import MSBDetails
from finebook.models.results import ValidationIssue


class LedgerValidator:
    """
    Validates user input before the ledger engine commits it.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def validate_book_name(self, name: str) -> list[ValidationIssue]:
        """
        Check a book name after trimming.

        Uniqueness is checked by the engine, which knows the owner's books.
        """
        issues = []
        trimmed = name.strip()
        low = self._settings.book_name_min_length
        high = self._settings.book_name_max_length

        if not trimmed:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Book name cannot be empty.",
                severity="error",
            ))
        elif not low <= len(trimmed) <= high:
            issues.append(ValidationIssue(
                field="name",
                issue_type="length",
                message=f"Name must be between {low} and {high} characters.",
                severity="error",
            ))

        return issues

    def validate_registration(self, email: str, password: str) -> list[ValidationIssue]:
        issues = []

        if not email.strip():
            issues.append(ValidationIssue(
                field="email",
                issue_type="missing",
                message="Email is required.",
                severity="error",
            ))
        if not password:
            issues.append(ValidationIssue(
                field="password",
                issue_type="missing",
                message="Password is required.",
                severity="error",
            ))

        return issues

    def validate_msb_details(self, details: MSBDetails) -> list[ValidationIssue]:
        """
        Cross-check the remittance amounts.

        The receiving amount is what the ledger records, so a mismatch with
        source x rate is only a warning: the caller may have applied fees.
        """
        issues = []
        expected = details.source_amount * details.exchange_rate
        tolerance = Decimal(str(self._settings.msb_rate_tolerance))

        if expected > 0:
            diff = abs(details.receiving_amount - expected)
            if diff > expected * tolerance:
                issues.append(ValidationIssue(
                    field="receiving_amount",
                    issue_type="inconsistent",
                    message=(
                        f"Receiving amount ({details.receiving_amount}) differs from "
                        f"source amount x exchange rate ({expected})"
                    ),
                    severity="warning",
                ))

        return issues

    @staticmethod
    def first_error(issues: list[ValidationIssue]) -> Optional[ValidationIssue]:
        for issue in issues:
            if issue.severity == "error":
                return issue
        return None

    @staticmethod
    def warnings(issues: list[ValidationIssue]) -> tuple[str, ...]:
        return tuple(issue.message for issue in issues if issue.severity == "warning")
