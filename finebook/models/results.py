"""
Result Models for FineBook

DESIGN DECISION: Business failures are returned, never raised.
Every ledger operation hands back a LedgerResult with a success flag,
an error code and a human-readable message. The caller decides how to show it.

Error codes fall into four families:
- VALIDATION: the input conflicts with an invariant (duplicate email, bad name)
- AUTH: credentials did not match. The message never says which field.
- GUARD: a destructive operation was refused or not yet confirmed
- NOT_FOUND: the referenced user, book or transaction does not exist
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from finebook.models.ledger import MSBStatus, Transaction, utc_now


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTH = "auth"
    GUARD = "guard"
    NOT_FOUND = "not_found"


class LedgerErrorCode(str, Enum):
    """Every way a ledger operation can fail."""
    # Validation
    DUPLICATE_EMAIL = "duplicate_email"
    EMAIL_IN_USE = "email_in_use"
    INVALID_BOOK_NAME = "invalid_book_name"
    DUPLICATE_BOOK_NAME = "duplicate_book_name"
    INVALID_INPUT = "invalid_input"
    CATEGORY_MISMATCH = "category_mismatch"
    MSB_EDIT_REQUIRED = "msb_edit_required"

    # Authentication
    INVALID_CREDENTIALS = "invalid_credentials"
    WRONG_PASSWORD = "wrong_password"
    NOT_AUTHENTICATED = "not_authenticated"

    # Guarded destructive operations
    LAST_BOOK_OF_TYPE = "last_book_of_type"
    CONFIRMATION_REQUIRED = "confirmation_required"
    INVALID_CONFIRMATION = "invalid_confirmation"

    NOT_FOUND = "not_found"


_ERROR_KINDS = {
    LedgerErrorCode.DUPLICATE_EMAIL: ErrorKind.VALIDATION,
    LedgerErrorCode.EMAIL_IN_USE: ErrorKind.VALIDATION,
    LedgerErrorCode.INVALID_BOOK_NAME: ErrorKind.VALIDATION,
    LedgerErrorCode.DUPLICATE_BOOK_NAME: ErrorKind.VALIDATION,
    LedgerErrorCode.INVALID_INPUT: ErrorKind.VALIDATION,
    LedgerErrorCode.CATEGORY_MISMATCH: ErrorKind.VALIDATION,
    LedgerErrorCode.MSB_EDIT_REQUIRED: ErrorKind.VALIDATION,
    LedgerErrorCode.INVALID_CREDENTIALS: ErrorKind.AUTH,
    LedgerErrorCode.WRONG_PASSWORD: ErrorKind.AUTH,
    LedgerErrorCode.NOT_AUTHENTICATED: ErrorKind.AUTH,
    LedgerErrorCode.LAST_BOOK_OF_TYPE: ErrorKind.GUARD,
    LedgerErrorCode.CONFIRMATION_REQUIRED: ErrorKind.GUARD,
    LedgerErrorCode.INVALID_CONFIRMATION: ErrorKind.GUARD,
    LedgerErrorCode.NOT_FOUND: ErrorKind.NOT_FOUND,
}


class LedgerResult(BaseModel):
    """
    Outcome of a ledger operation.

    value holds the operation's payload on success: a new id, a
    DeletionRequest, or nothing for pure updates.
    """
    model_config = ConfigDict(frozen=True)

    success: bool
    value: Any = None
    error_code: Optional[LedgerErrorCode] = None
    message: Optional[str] = None
    warnings: tuple[str, ...] = ()

    @classmethod
    def ok(cls, value: Any = None, warnings: tuple[str, ...] = ()) -> "LedgerResult":
        return cls(success=True, value=value, warnings=tuple(warnings))

    @classmethod
    def fail(cls, error_code: LedgerErrorCode, message: str) -> "LedgerResult":
        return cls(success=False, error_code=error_code, message=message)

    @property
    def kind(self) -> Optional[ErrorKind]:
        """Error family, or None on success."""
        if self.error_code is None:
            return None
        return _ERROR_KINDS[self.error_code]

    def __bool__(self) -> bool:
        """True on success, so a failed result is falsy."""
        return self.success


class DeletionTarget(str, Enum):
    BOOK = "book"
    TRANSACTION = "transaction"


class DeletionRequest(BaseModel):
    """
    First phase of a guarded delete.

    CRITICAL: Nothing is deleted when this is issued. The caller shows
    the prompt, and only passes the token back once the user has confirmed.
    """
    model_config = ConfigDict(frozen=True)

    token: str
    target: DeletionTarget
    owner_id: str
    book_id: Optional[str] = None
    transaction_id: Optional[str] = None
    transaction_count: int = Field(
        default=0,
        ge=0,
        description="Transactions that will be removed along with the target"
    )
    prompt: str = Field(
        ...,
        description="Confirmation message to show the user"
    )
    requested_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

class MSBStatusBreakdown(BaseModel):
    """Remittance counts and receiving totals per settlement status."""
    model_config = ConfigDict(frozen=True)

    pending_count: int = 0
    paid_count: int = 0
    pending_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")

    @property
    def total_count(self) -> int:
        return self.pending_count + self.paid_count

    def count_for(self, status: MSBStatus) -> int:
        return self.pending_count if status == MSBStatus.PENDING else self.paid_count


class BookSummary(BaseModel):
    """
    Derived figures for one book.

    Computed on every read from the book's transactions. Never stored.
    """
    model_config = ConfigDict(frozen=True)

    book_id: str
    currency: str
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal
    transaction_count: int = Field(ge=0)
    transactions: tuple[Transaction, ...] = Field(
        default=(),
        description="Transactions newest first"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in ledger input."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'length', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Errors block the operation, warnings are passed back"
    )
