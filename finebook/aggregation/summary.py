"""
Book Aggregation

DESIGN DECISION: Every figure here is DERIVED, never stored.
Totals and orderings are recomputed from the book's transactions on each
call, so they can never drift from the data they describe.

Income counts an MSB transaction at its receiving amount; everything else
counts at its ledger amount.
"""

from decimal import Decimal
from typing import Iterable

from finebook.models.ledger import Book, MSBStatus, Transaction, TransactionType
from finebook.models.results import BookSummary, MSBStatusBreakdown


def _income_value(transaction: Transaction) -> Decimal:
    if transaction.msb_details is not None:
        return transaction.msb_details.receiving_amount
    return transaction.amount


def total_income(book: Book) -> Decimal:
    return sum(
        (_income_value(t) for t in book.transactions if t.type == TransactionType.INCOME),
        Decimal("0"),
    )


def total_expense(book: Book) -> Decimal:
    return sum(
        (t.amount for t in book.transactions if t.type == TransactionType.EXPENSE),
        Decimal("0"),
    )


def balance(book: Book) -> Decimal:
    return total_income(book) - total_expense(book)


def sort_newest_first(transactions: Iterable[Transaction]) -> tuple[Transaction, ...]:
    """
    Order by date, newest first.

    The sort is stable: transactions sharing a timestamp keep their
    existing relative order.
    """
    return tuple(sorted(transactions, key=lambda t: t.date, reverse=True))


def sorted_transactions(book: Book) -> tuple[Transaction, ...]:
    return sort_newest_first(book.transactions)


def summarize(book: Book) -> BookSummary:
    """All dashboard figures for one book."""
    income = total_income(book)
    expense = total_expense(book)
    return BookSummary(
        book_id=book.id,
        currency=book.currency,
        total_income=income,
        total_expense=expense,
        balance=income - expense,
        transaction_count=len(book.transactions),
        transactions=sorted_transactions(book),
    )


def msb_status_breakdown(book: Book) -> MSBStatusBreakdown:
    """Count and total the remittances in a book by settlement status."""
    counts = {MSBStatus.PENDING: 0, MSBStatus.PAID: 0}
    amounts = {MSBStatus.PENDING: Decimal("0"), MSBStatus.PAID: Decimal("0")}

    for transaction in book.transactions:
        details = transaction.msb_details
        if details is None:
            continue
        counts[details.status] += 1
        amounts[details.status] += details.receiving_amount

    return MSBStatusBreakdown(
        pending_count=counts[MSBStatus.PENDING],
        paid_count=counts[MSBStatus.PAID],
        pending_amount=amounts[MSBStatus.PENDING],
        paid_amount=amounts[MSBStatus.PAID],
    )
