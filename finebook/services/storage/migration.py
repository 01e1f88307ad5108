"""
Schema Migration for the Durable Record

The stored collection carries no version number, so every load runs the
full list of migration steps on the raw JSON before validation. Each step
is named, does one thing, and is idempotent: running it on an already
migrated record changes nothing. New schema changes are appended to
MIGRATIONS so they compose with the older ones.
"""

from typing import Any, Callable

import structlog

from finebook.services.storage.interface import SerializationError


logger = structlog.get_logger(__name__)

RawUser = dict[str, Any]
MigrationStep = Callable[[RawUser], RawUser]


def default_book_type(user: RawUser) -> RawUser:
    """Books written before MSB support have no type; they are GENERAL."""
    books = []
    for book in user.get("books") or []:
        if not book.get("type"):
            book = {**book, "type": "GENERAL"}
        books.append(book)
    return {**user, "books": books}


def drop_legacy_msb_transactions(user: RawUser) -> RawUser:
    """
    Remove the deprecated top-level msbTransactions list.

    Remittances now live in MSB books; the old list is discarded, not moved.
    """
    if "msbTransactions" not in user:
        return user
    return {key: value for key, value in user.items() if key != "msbTransactions"}


def default_transaction_category(user: RawUser) -> RawUser:
    """Transactions without a category take it from their MSB payload."""
    books = []
    for book in user.get("books") or []:
        transactions = []
        for transaction in book.get("transactions") or []:
            if not transaction.get("category"):
                category = "MSB" if transaction.get("msbDetails") else "GENERAL"
                transaction = {**transaction, "category": category}
            transactions.append(transaction)
        books.append({**book, "transactions": transactions})
    return {**user, "books": books}


# Applied in order on every load.
MIGRATIONS: list[tuple[str, MigrationStep]] = [
    ("default_book_type", default_book_type),
    ("drop_legacy_msb_transactions", drop_legacy_msb_transactions),
    ("default_transaction_category", default_transaction_category),
]


def migrate_records(raw: Any) -> list[RawUser]:
    """
    Bring a raw stored collection up to the current schema.

    Args:
        raw: The decoded JSON document

    Returns:
        The migrated user records, in stored order

    Raises:
        SerializationError: If the document is not a list of user objects
    """
    if not isinstance(raw, list):
        raise SerializationError(
            f"Expected a list of users, got {type(raw).__name__}"
        )

    migrated = []
    for index, user in enumerate(raw):
        if not isinstance(user, dict):
            raise SerializationError(f"User record {index} is not an object")
        for name, step in MIGRATIONS:
            updated = step(user)
            if updated != user:
                logger.debug("record_migrated", step=name, user_index=index)
            user = updated
        migrated.append(user)

    return migrated
