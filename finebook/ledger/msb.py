"""
MSB (remittance) Workflow

Remittance transactions are always INCOME, always MSB category, and their
ledger amount always equals the receiving amount in their MSB details.
This module is the only place that creates or edits them, so that
invariant holds both at creation and after every edit.

Settlement status has two states, PENDING and PAID. Both directions are
allowed; setting the current value again is a harmless repeat write.
"""

from typing import Optional

from pydantic import ValidationError

from finebook.ledger import snapshot
from finebook.ledger.engine import LedgerEngine, invalid_input, revalidate
from finebook.models.audit import AuditEventBuilder, AuditEventType
from finebook.models.ledger import (
    Book,
    BookType,
    MSBDetails,
    MSBStatus,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from finebook.models.results import LedgerErrorCode, LedgerResult


class MSBWorkflow:
    """
    Creates and edits remittances through a LedgerEngine.

    Every change is committed by the engine, so it is persisted and
    audited like any other ledger mutation.
    """

    def __init__(self, engine: LedgerEngine):
        self._engine = engine

    def add_msb_transaction(
        self,
        owner_id: str,
        book_id: str,
        description: str,
        details: MSBDetails,
    ) -> LedgerResult:
        """
        Record a remittance in an MSB book.

        The ledger amount is taken from details.receiving_amount. Any
        mismatch between source x rate and the receiving amount comes back
        as a warning, not a failure.
        """
        user, book, failure = self._engine.resolve_book(owner_id, book_id)
        if failure is not None:
            return failure

        if book.type != BookType.MSB:
            return LedgerResult.fail(
                LedgerErrorCode.CATEGORY_MISMATCH,
                "Remittances can only be added to an MSB book.",
            )

        try:
            transaction = Transaction(
                id=self._engine.new_id(),
                description=description,
                amount=details.receiving_amount,
                type=TransactionType.INCOME,
                date=self._engine.now(),
                category=TransactionCategory.MSB,
                msb_details=details,
            )
        except ValidationError as e:
            return invalid_input(e)

        self._engine.commit_user(
            snapshot.replace_book(user, snapshot.insert_transaction(book, transaction))
        )
        self._engine.audit(AuditEventBuilder.transaction_changed(
            AuditEventType.MSB_TRANSACTION_ADDED,
            owner_id,
            transaction.id,
            book_id=book_id,
            amount=str(transaction.amount),
        ))

        validator = self._engine.validator
        return LedgerResult.ok(
            transaction.id,
            warnings=validator.warnings(validator.validate_msb_details(details)),
        )

    def update_msb_transaction(
        self,
        owner_id: str,
        book_id: str,
        transaction_id: str,
        description: str,
        details: MSBDetails,
    ) -> LedgerResult:
        """
        Replace the description and the whole MSB payload.

        The amount is recomputed from the new receiving amount. id, type,
        category and date are unchanged.
        """
        user, book, failure = self._engine.resolve_book(owner_id, book_id)
        if failure is not None:
            return failure

        transaction = book.find_transaction(transaction_id)
        if transaction is None:
            return LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "Transaction not found.")

        if transaction.category != TransactionCategory.MSB:
            return LedgerResult.fail(
                LedgerErrorCode.CATEGORY_MISMATCH,
                "Only remittances carry MSB details.",
            )

        try:
            updated = revalidate(
                transaction,
                description=description,
                msb_details=details,
                amount=details.receiving_amount,
                last_modified=self._engine.now(),
            )
        except ValidationError as e:
            return invalid_input(e)

        self._engine.commit_user(
            snapshot.replace_book(user, snapshot.replace_transaction(book, updated))
        )
        self._engine.audit(AuditEventBuilder.transaction_changed(
            AuditEventType.MSB_TRANSACTION_UPDATED,
            owner_id,
            transaction_id,
            book_id=book_id,
            amount=str(updated.amount),
        ))

        validator = self._engine.validator
        return LedgerResult.ok(
            transaction_id,
            warnings=validator.warnings(validator.validate_msb_details(details)),
        )

    def update_msb_status(
        self,
        owner_id: str,
        transaction_id: str,
        status: MSBStatus,
    ) -> LedgerResult:
        """
        Set the settlement status of a remittance.

        A transaction without MSB details is left alone and the call still
        succeeds. last_modified is not stamped: status is settlement
        bookkeeping, not an edit of the entry.
        """
        user, failure = self._engine.resolve_user(owner_id)
        if failure is not None:
            return failure

        book, transaction = user.find_transaction(transaction_id)
        if transaction is None:
            return LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "Transaction not found.")

        if transaction.msb_details is None:
            return LedgerResult.ok(transaction_id)

        try:
            status = MSBStatus(status)
        except ValueError:
            return LedgerResult.fail(
                LedgerErrorCode.INVALID_INPUT,
                f"Unknown settlement status: {status}",
            )

        previous = transaction.msb_details.status
        updated = transaction.model_copy(update={
            "msb_details": transaction.msb_details.model_copy(update={"status": status}),
        })

        self._engine.commit_user(
            snapshot.replace_book(user, snapshot.replace_transaction(book, updated))
        )
        self._engine.audit(AuditEventBuilder.msb_status_updated(
            owner_id, transaction_id, previous.value, status.value,
        ))
        return LedgerResult.ok(transaction_id)

    @staticmethod
    def pending_transactions(book: Book) -> tuple[Transaction, ...]:
        """Remittances not yet paid out, newest first."""
        return tuple(
            t for t in book.transactions
            if t.msb_details is not None and t.msb_details.status == MSBStatus.PENDING
        )

    def status_of(self, owner_id: str, transaction_id: str) -> Optional[MSBStatus]:
        user = self._engine.get_user(owner_id)
        if user is None:
            return None
        _, transaction = user.find_transaction(transaction_id)
        if transaction is None or transaction.msb_details is None:
            return None
        return transaction.msb_details.status
