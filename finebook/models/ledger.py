"""
Core Ledger Models for FineBook

These models define the strict schemas for everything the ledger stores:
users, their books, and the transactions inside each book.

They are designed to:
1. Be immutable, so a snapshot of all users can never be changed in place
2. Serialize to the durable record shape (camelCase keys, ISO-8601 dates)
3. Reject structurally impossible remittance payloads at construction

DESIGN DECISION: Every model is frozen and every collection is a tuple.
Mutations go through model_copy(update=...) in the ledger snapshot helpers.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _fits_record(value: Decimal) -> Decimal:
    """Reject amounts that would not read back unchanged from a JSON number."""
    if Decimal(repr(float(value))) != value:
        raise ValueError(
            "Amount is too large or too precise to be stored exactly"
        )
    return value


# Money is kept as Decimal in memory but written as a JSON number,
# matching the durable record.
Money = Annotated[
    Decimal,
    AfterValidator(_fits_record),
    PlainSerializer(float, return_type=float, when_used="json"),
]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class LedgerModel(BaseModel):
    """Base for all persisted ledger models."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BookType(str, Enum):
    """
    Book variant, fixed permanently when the book is created.
    """
    GENERAL = "GENERAL"
    MSB = "MSB"


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionCategory(str, Enum):
    """
    Mirrors the type of the book a transaction was created in.
    """
    GENERAL = "GENERAL"
    MSB = "MSB"


class MSBPaymentType(str, Enum):
    """How the remittance reaches the receiver."""
    DIGITAL = "DIGITAL"
    CASH = "CASH"


class MSBDigitalMethod(str, Enum):
    BANK = "BANK"
    UPI = "UPI"


class MSBStatus(str, Enum):
    """
    Settlement status of a remittance.

    Both directions are allowed: a PAID remittance may be set back to PENDING.
    """
    PENDING = "PENDING"
    PAID = "PAID"


# =============================================================================
# REMITTANCE (MSB) MODELS
# =============================================================================

class BankDetails(LedgerModel):
    """Bank transfer fields. holder_name is the receiver's name."""

    account_number: str = Field(..., min_length=1, max_length=50)
    holder_name: str = Field(..., min_length=1, max_length=200)
    receiver_phone: str = Field(default="", max_length=30)
    ifsc: str = Field(default="", max_length=20)
    bank_name: str = Field(default="", max_length=200)
    bank_location: str = Field(default="", max_length=200)
    pan: Optional[str] = Field(default=None, max_length=20)


class UpiDetails(LedgerModel):
    upi_id: str = Field(..., min_length=1, max_length=100)
    receiver_name: str = Field(..., min_length=1, max_length=200)
    receiver_phone: str = Field(default="", max_length=30)


class CashDetails(LedgerModel):
    """Cash pickup: the receiver presents token_code to collect."""

    receiver_name: str = Field(..., min_length=1, max_length=200)
    receiver_phone: str = Field(default="", max_length=30)
    token_code: str = Field(..., min_length=1, max_length=50)


class MSBDetails(LedgerModel):
    """
    Remittance metadata carried by an MSB transaction.

    Exactly one of bank_details / upi_details / cash_details is populated,
    selected by payment_type and, for DIGITAL payments, by digital_method.

    The ledger amount of the owning transaction always equals
    receiving_amount. That is enforced by the MSB workflow, not here.
    """

    sender_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Name of the person sending money"
    )
    sender_phone: str = Field(
        default="",
        max_length=30,
        description="Sender contact number"
    )

    payment_type: MSBPaymentType
    digital_method: Optional[MSBDigitalMethod] = None
    bank_details: Optional[BankDetails] = None
    upi_details: Optional[UpiDetails] = None
    cash_details: Optional[CashDetails] = None

    # Amounts
    source_amount: Money = Field(
        ...,
        ge=0,
        description="Amount handed over by the sender, e.g. 1000 CAD"
    )
    source_currency: str = Field(..., min_length=1, max_length=10)
    exchange_rate: Money = Field(
        ...,
        gt=0,
        description="Receiving units per source unit, e.g. 60"
    )
    receiving_amount: Money = Field(
        ...,
        ge=0,
        description="Amount paid out to the receiver, e.g. 60000 INR"
    )
    receiving_currency: str = Field(..., min_length=1, max_length=10)

    status: MSBStatus = Field(
        default=MSBStatus.PENDING,
        description="Settlement status"
    )

    @model_validator(mode='after')
    def validate_payment_channel(self) -> 'MSBDetails':
        """Check that the populated sub-variant matches the payment channel."""
        populated = {
            name
            for name in ("bank_details", "upi_details", "cash_details")
            if getattr(self, name) is not None
        }

        if self.payment_type == MSBPaymentType.CASH:
            if self.digital_method is not None:
                raise ValueError("Cash payments cannot have a digital method")
            expected = "cash_details"
        else:
            if self.digital_method is None:
                raise ValueError("Digital payments require a digital method")
            expected = (
                "bank_details"
                if self.digital_method == MSBDigitalMethod.BANK
                else "upi_details"
            )

        if populated != {expected}:
            raise ValueError(
                f"{self.payment_type.value} payment requires exactly "
                f"{expected} to be provided"
            )

        return self


# =============================================================================
# CORE LEDGER MODELS
# =============================================================================

class Transaction(LedgerModel):
    """
    A single ledger entry.

    id, category and date never change after creation. Only MSB-category
    transactions carry msb_details.
    """

    id: str = Field(..., min_length=1)
    description: str = Field(default="", max_length=500)
    amount: Money = Field(..., ge=0)
    type: TransactionType
    date: datetime = Field(
        ...,
        description="Creation timestamp (UTC)"
    )
    last_modified: Optional[datetime] = None
    category: TransactionCategory = TransactionCategory.GENERAL
    msb_details: Optional[MSBDetails] = None

    @field_validator('date', 'last_modified')
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps are read as UTC so they stay comparable."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode='after')
    def validate_msb_payload(self) -> 'Transaction':
        if self.msb_details is not None and self.category != TransactionCategory.MSB:
            raise ValueError("Only MSB transactions can carry MSB details")
        return self

    @property
    def is_msb(self) -> bool:
        return self.msb_details is not None


class Book(LedgerModel):
    """
    A named ledger owned by one user.

    The type is fixed at creation. Transactions are kept newest first.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    currency: str = Field(default="USD", min_length=1, max_length=20)
    type: BookType = BookType.GENERAL
    transactions: tuple[Transaction, ...] = ()

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None


class User(LedgerModel):
    """
    A registered user and everything they own.

    CRITICAL: password is an opaque comparison value. It is never hashed,
    and it must never be logged.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(default="", max_length=200)
    phone_number: str = Field(default="", max_length=30)
    email: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., repr=False)
    books: tuple[Book, ...] = ()

    def find_book(self, book_id: str) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def books_of_type(self, book_type: BookType) -> tuple[Book, ...]:
        return tuple(book for book in self.books if book.type == book_type)

    def find_transaction(
        self,
        transaction_id: str,
    ) -> tuple[Optional[Book], Optional[Transaction]]:
        """Locate a transaction in any of this user's books."""
        for book in self.books:
            transaction = book.find_transaction(transaction_id)
            if transaction is not None:
                return book, transaction
        return None, None


# The full snapshot of all users, validated and dumped as one unit.
UserCollection = TypeAdapter(tuple[User, ...])
