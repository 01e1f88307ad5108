"""
Snapshot copy helpers.

The user collection is a tree of frozen models held in tuples. Changing
one transaction means rebuilding its book, the book's owner and the
collection, while every untouched branch is shared with the previous
snapshot. These helpers do that rebuilding so the engine never mutates
a model it has already published.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from finebook.aggregation import sort_newest_first
from finebook.models.ledger import Book, Transaction, User


class LedgerState(BaseModel):
    """
    Everything the engine holds, replaced as one value.

    users is the authoritative snapshot. The two pointers are session
    state and are not part of the durable record.
    """
    model_config = ConfigDict(frozen=True)

    users: tuple[User, ...] = ()
    current_user_id: Optional[str] = None
    active_book_id: Optional[str] = None


def find_user(users: tuple[User, ...], user_id: Optional[str]) -> Optional[User]:
    if user_id is None:
        return None
    for user in users:
        if user.id == user_id:
            return user
    return None


def replace_user(users: tuple[User, ...], updated: User) -> tuple[User, ...]:
    return tuple(updated if user.id == updated.id else user for user in users)


def append_user(users: tuple[User, ...], user: User) -> tuple[User, ...]:
    return users + (user,)


def replace_book(user: User, updated: Book) -> User:
    books = tuple(updated if book.id == updated.id else book for book in user.books)
    return user.model_copy(update={"books": books})


def append_book(user: User, book: Book) -> User:
    return user.model_copy(update={"books": user.books + (book,)})


def remove_book(user: User, book_id: str) -> User:
    books = tuple(book for book in user.books if book.id != book_id)
    return user.model_copy(update={"books": books})


def insert_transaction(book: Book, transaction: Transaction) -> Book:
    """Prepend, then re-sort newest first."""
    transactions = sort_newest_first((transaction,) + book.transactions)
    return book.model_copy(update={"transactions": transactions})


def replace_transaction(book: Book, updated: Transaction) -> Book:
    transactions = tuple(
        updated if transaction.id == updated.id else transaction
        for transaction in book.transactions
    )
    return book.model_copy(update={"transactions": transactions})


def remove_transaction(user: User, transaction_id: str) -> User:
    """Drop a transaction from whichever of the user's books holds it."""
    books = tuple(
        book.model_copy(update={
            "transactions": tuple(
                t for t in book.transactions if t.id != transaction_id
            ),
        })
        if book.find_transaction(transaction_id) is not None
        else book
        for book in user.books
    )
    return user.model_copy(update={"books": books})
