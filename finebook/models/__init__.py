"""
Data Models Package

This package contains all Pydantic models used in FineBook.
All data flowing through the ledger must conform to these schemas.
"""

from finebook.models.ledger import (
    BankDetails,
    Book,
    BookType,
    CashDetails,
    MSBDetails,
    MSBDigitalMethod,
    MSBPaymentType,
    MSBStatus,
    Transaction,
    TransactionCategory,
    TransactionType,
    UpiDetails,
    User,
    UserCollection,
    utc_now,
)
from finebook.models.results import (
    BookSummary,
    DeletionRequest,
    DeletionTarget,
    ErrorKind,
    LedgerErrorCode,
    LedgerResult,
    MSBStatusBreakdown,
    ValidationIssue,
)
from finebook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BankDetails",
    "Book",
    "BookType",
    "CashDetails",
    "MSBDetails",
    "MSBDigitalMethod",
    "MSBPaymentType",
    "MSBStatus",
    "Transaction",
    "TransactionCategory",
    "TransactionType",
    "UpiDetails",
    "User",
    "UserCollection",
    "utc_now",
    # Results
    "BookSummary",
    "DeletionRequest",
    "DeletionTarget",
    "ErrorKind",
    "LedgerErrorCode",
    "LedgerResult",
    "MSBStatusBreakdown",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
