"""
Ledger Engine

This module owns every change to users, books and transactions.

DESIGN DECISION: The engine enforces the ledger's boundaries:
- Emails are unique across all users, ignoring case
- Book names are unique per user, ignoring case
- The last book of a type can never be deleted
- Nothing is deleted without an explicit confirmation token
- Business failures come back as LedgerResult values, never as exceptions

Every mutation builds a new snapshot with the copy helpers in
finebook.ledger.snapshot, swaps it in with a single assignment and then
writes the whole collection through to the durable store. A failed write is
logged and otherwise ignored: the in-memory snapshot stays authoritative.
"""

from typing import Any, Callable, Optional
from uuid import uuid4

import structlog
from pydantic import BaseModel, ValidationError

from finebook.audit import AuditLogger
from finebook.config import LedgerSettings, get_settings
from finebook.ledger import snapshot
from finebook.ledger.snapshot import LedgerState
from finebook.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finebook.models.ledger import (
    Book,
    BookType,
    Transaction,
    TransactionCategory,
    TransactionType,
    User,
    utc_now,
)
from finebook.models.results import (
    DeletionRequest,
    DeletionTarget,
    LedgerErrorCode,
    LedgerResult,
)
from finebook.services.storage import DurablePersistentStore, EphemeralSessionStore
from finebook.validation import LedgerValidator


logger = structlog.get_logger(__name__)


def invalid_input(error: ValidationError) -> LedgerResult:
    """Turn a pydantic ValidationError into a returned failure."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "input"
    return LedgerResult.fail(
        LedgerErrorCode.INVALID_INPUT,
        f"{location}: {first['msg']}",
    )


def revalidate(model: BaseModel, **changes: Any) -> BaseModel:
    """
    Copy a frozen model with changes applied, re-running validation.

    model_copy(update=...) skips validation, so field constraints would not
    be checked on edits.
    """
    return type(model).model_validate({**model.model_dump(), **changes})


class LedgerEngine:
    """
    CRUD over users, books and transactions.

    Usage:
        engine = LedgerEngine(store, session)
        engine.bootstrap()
        result = engine.register("Alice", "555-0100", "a@x.com", "pw")
        if result:
            user_id = result.value
    """

    def __init__(
        self,
        store: DurablePersistentStore,
        session: EphemeralSessionStore,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Callable[[], Any] = utc_now,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            store: Durable store for the user collection
            session: Store for the logged-in user id
            audit_logger: Receives an event for every committed change.
                          If None, events only go to the local log.
            settings: Ledger rules. Defaults to the environment settings.
            clock: Returns the current aware datetime
            id_factory: Returns a fresh unique id string
        """
        self._store = store
        self._session = session
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().ledger
        self._validator = LedgerValidator(self._settings)
        self._clock = clock
        self._id_factory = id_factory or (lambda: str(uuid4()))
        self._state = LedgerState()
        self._pending_deletes: dict[str, DeletionRequest] = {}

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def users(self) -> tuple[User, ...]:
        return self._state.users

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    @property
    def current_user(self) -> Optional[User]:
        return snapshot.find_user(self._state.users, self._state.current_user_id)

    @property
    def active_book(self) -> Optional[Book]:
        user = self.current_user
        if user is None or self._state.active_book_id is None:
            return None
        return user.find_book(self._state.active_book_id)

    def get_user(self, user_id: str) -> Optional[User]:
        return snapshot.find_user(self._state.users, user_id)

    def books_of_type(self, user_id: str, book_type: BookType) -> tuple[Book, ...]:
        user = self.get_user(user_id)
        return user.books_of_type(book_type) if user else ()

    def now(self):
        return self._clock()

    def new_id(self) -> str:
        return self._id_factory()

    def audit(self, event: AuditEvent) -> None:
        self._audit_logger.log(event)

    # =========================================================================
    # COMMIT AND PERSISTENCE
    # =========================================================================

    def _set_state(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)

    def commit(self, users: tuple[User, ...], **pointers: Any) -> None:
        """
        Replace the snapshot in one step, then write it through.

        Args:
            users: The new user collection
            pointers: Optional current_user_id / active_book_id changes
        """
        self._set_state(users=users, **pointers)
        self._persist()

    def commit_user(self, user: User, **pointers: Any) -> None:
        self.commit(snapshot.replace_user(self._state.users, user), **pointers)

    def _persist(self) -> None:
        try:
            self._store.save(self._state.users)
        except Exception as e:
            # The in-memory snapshot stays authoritative; no retry
            logger.error("collection_save_failed", error=str(e))
            self.audit(AuditEventBuilder.storage_failed("save", str(e)))

    def bootstrap(self) -> LedgerState:
        """
        Load the durable collection and reconcile the session pointer.

        A session naming an unknown user is discarded. A valid one is
        restored with that user's first GENERAL book active.
        """
        try:
            users = tuple(self._store.load())
        except Exception as e:
            logger.error("collection_load_failed", error=str(e))
            self.audit(AuditEventBuilder.storage_failed("load", str(e)))
            users = ()

        self.audit(AuditEventBuilder.collection_loaded(len(users), type(self._store).__name__))

        current_user_id = None
        active_book_id = None
        session_user_id = self._session.get()

        if session_user_id:
            user = snapshot.find_user(users, session_user_id)
            if user is None:
                self._session.clear()
                self.audit(AuditEventBuilder.session(session_user_id, restored=False))
            else:
                current_user_id = user.id
                active_book_id = self._first_book_id(user, BookType.GENERAL)
                self.audit(AuditEventBuilder.session(user.id, restored=True))

        self._pending_deletes.clear()
        self._state = LedgerState(
            users=users,
            current_user_id=current_user_id,
            active_book_id=active_book_id,
        )
        return self._state

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    @staticmethod
    def _first_book_id(user: User, book_type: BookType) -> Optional[str]:
        books = user.books_of_type(book_type)
        return books[0].id if books else None

    def resolve_user(self, user_id: str) -> tuple[Optional[User], Optional[LedgerResult]]:
        user = self.get_user(user_id)
        if user is None:
            return None, LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "User not found.")
        return user, None

    def resolve_book(
        self,
        owner_id: str,
        book_id: str,
    ) -> tuple[Optional[User], Optional[Book], Optional[LedgerResult]]:
        user, failure = self.resolve_user(owner_id)
        if failure is not None:
            return None, None, failure
        book = user.find_book(book_id)
        if book is None:
            return user, None, LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "Book not found.")
        return user, book, None

    def _pointer_updates(self, owner_id: str, active_book_id: Optional[str]) -> dict:
        """Only the logged-in user's actions move the active book."""
        if owner_id == self._state.current_user_id:
            return {"active_book_id": active_book_id}
        return {}

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def register(
        self,
        name: str,
        phone_number: str,
        email: str,
        password: str,
    ) -> LedgerResult:
        """
        Create a user with one default GENERAL book and log them in.

        Fails with DUPLICATE_EMAIL if any user has the same email, ignoring case.
        """
        error = self._validator.first_error(
            self._validator.validate_registration(email, password)
        )
        if error is not None:
            return LedgerResult.fail(LedgerErrorCode.INVALID_INPUT, error.message)

        email_key = email.strip().lower()
        if any(user.email.lower() == email_key for user in self._state.users):
            return LedgerResult.fail(
                LedgerErrorCode.DUPLICATE_EMAIL,
                "An account with this email already exists.",
            )

        try:
            default_book = Book(
                id=self.new_id(),
                name=self._settings.default_book_name,
                currency=self._settings.default_currency,
                type=BookType.GENERAL,
            )
            user = User(
                id=self.new_id(),
                name=name,
                phone_number=phone_number,
                email=email,
                password=password,
                books=(default_book,),
            )
        except ValidationError as e:
            return invalid_input(e)

        self.commit(
            snapshot.append_user(self._state.users, user),
            current_user_id=user.id,
            active_book_id=default_book.id,
        )
        self._session.set(user.id)
        self._pending_deletes.clear()
        self.audit(AuditEventBuilder.user_registered(user.id, user.email))
        return LedgerResult.ok(user.id)

    def login(self, email: str, password: str) -> LedgerResult:
        """
        Exact match on email and password.

        The failure message never says which of the two was wrong.
        """
        user = next(
            (
                u for u in self._state.users
                if u.email == email and u.password == password
            ),
            None,
        )
        if user is None:
            self.audit(AuditEventBuilder.login(None, email, succeeded=False))
            return LedgerResult.fail(
                LedgerErrorCode.INVALID_CREDENTIALS,
                "Invalid email or password.",
            )

        self._set_state(
            current_user_id=user.id,
            active_book_id=self._first_book_id(user, BookType.GENERAL),
        )
        self._session.set(user.id)
        self._pending_deletes.clear()
        self.audit(AuditEventBuilder.login(user.id, email, succeeded=True))
        return LedgerResult.ok(user.id)

    def logout(self) -> LedgerResult:
        """Clear the session pointer. No ledger data changes."""
        user_id = self._state.current_user_id
        self._set_state(current_user_id=None, active_book_id=None)
        self._session.clear()
        self._pending_deletes.clear()
        self.audit(AuditEventBuilder.logged_out(user_id))
        return LedgerResult.ok()

    def update_user_profile(
        self,
        user_id: str,
        name: str,
        phone_number: str,
        email: str,
    ) -> LedgerResult:
        """The email may stay the same; it may not match another user's."""
        user, failure = self.resolve_user(user_id)
        if failure is not None:
            return failure

        email_key = email.strip().lower()
        if any(
            other.id != user_id and other.email.lower() == email_key
            for other in self._state.users
        ):
            return LedgerResult.fail(
                LedgerErrorCode.EMAIL_IN_USE,
                "This email address is already in use by another account.",
            )

        try:
            updated = revalidate(user, name=name, phone_number=phone_number, email=email)
        except ValidationError as e:
            return invalid_input(e)

        changed = [
            field for field in ("name", "phone_number", "email")
            if getattr(updated, field) != getattr(user, field)
        ]
        self.commit_user(updated)
        self.audit(AuditEventBuilder.profile_updated(user_id, changed))
        return LedgerResult.ok()

    def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> LedgerResult:
        user, failure = self.resolve_user(user_id)
        if failure is not None:
            return failure

        if user.password != current_password:
            return LedgerResult.fail(
                LedgerErrorCode.WRONG_PASSWORD,
                "Incorrect current password.",
            )
        if not new_password:
            return LedgerResult.fail(
                LedgerErrorCode.INVALID_INPUT,
                "New password cannot be empty.",
            )

        self.commit_user(user.model_copy(update={"password": new_password}))
        self.audit(AuditEventBuilder.password_changed(user_id))
        return LedgerResult.ok()

    # =========================================================================
    # BOOKS
    # =========================================================================

    def select_book(self, book_id: str) -> LedgerResult:
        """Make one of the logged-in user's books active."""
        user = self.current_user
        if user is None:
            return LedgerResult.fail(LedgerErrorCode.NOT_AUTHENTICATED, "Not logged in.")
        if user.find_book(book_id) is None:
            return LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "Book not found.")
        self._set_state(active_book_id=book_id)
        return LedgerResult.ok(book_id)

    def add_book(
        self,
        owner_id: str,
        name: str,
        currency: str,
        book_type: BookType = BookType.GENERAL,
    ) -> LedgerResult:
        """
        Create a book and make it active.

        The name is trimmed, must fit the configured length bounds, and must
        not match another of the owner's books ignoring case.
        """
        user, failure = self.resolve_user(owner_id)
        if failure is not None:
            return failure

        error = self._validator.first_error(self._validator.validate_book_name(name))
        if error is not None:
            return LedgerResult.fail(LedgerErrorCode.INVALID_BOOK_NAME, error.message)

        trimmed = name.strip()
        if any(book.name.lower() == trimmed.lower() for book in user.books):
            return LedgerResult.fail(
                LedgerErrorCode.DUPLICATE_BOOK_NAME,
                f'A book named "{trimmed}" already exists.',
            )

        try:
            book = Book(
                id=self.new_id(),
                name=trimmed,
                currency=currency,
                type=book_type,
            )
        except ValidationError as e:
            return invalid_input(e)

        self.commit_user(
            snapshot.append_book(user, book),
            **self._pointer_updates(owner_id, book.id),
        )
        self.audit(AuditEventBuilder.book_created(owner_id, book.id, book.name, book.type.value))
        return LedgerResult.ok(book.id)

    def update_book_currency(
        self,
        owner_id: str,
        book_id: str,
        currency: str,
    ) -> LedgerResult:
        user, book, failure = self.resolve_book(owner_id, book_id)
        if failure is not None:
            return failure

        try:
            updated = revalidate(book, currency=currency)
        except ValidationError as e:
            return invalid_input(e)

        self.commit_user(snapshot.replace_book(user, updated))
        self.audit(AuditEventBuilder.book_currency_updated(owner_id, book_id, updated.currency))
        return LedgerResult.ok()

    def _last_of_type(self, user: User, book: Book) -> Optional[LedgerResult]:
        if len(user.books_of_type(book.type)) <= 1:
            self.audit(AuditEventBuilder.delete_refused(
                user.id, DeletionTarget.BOOK.value, book.id, "last_book_of_type",
            ))
            return LedgerResult.fail(
                LedgerErrorCode.LAST_BOOK_OF_TYPE,
                "This is your only book of this type and cannot be deleted.",
            )
        return None

    def request_delete_book(self, owner_id: str, book_id: str) -> LedgerResult:
        """
        First phase of deleting a book.

        Refuses immediately, without issuing a token, when the book is the
        owner's last of its type.

        Returns:
            LedgerResult whose value is a DeletionRequest
        """
        user, book, failure = self.resolve_book(owner_id, book_id)
        if failure is not None:
            return failure

        refused = self._last_of_type(user, book)
        if refused is not None:
            return refused

        count = len(book.transactions)
        request = DeletionRequest(
            token=uuid4().hex,
            target=DeletionTarget.BOOK,
            owner_id=owner_id,
            book_id=book_id,
            transaction_count=count,
            prompt=(
                f'Are you sure you want to permanently delete the book "{book.name}"? '
                f"This will also delete all {count} associated transactions. "
                "This action cannot be undone."
            ),
            requested_at=self.now(),
        )
        return self._issue(request, book_id)

    def delete_book(
        self,
        owner_id: str,
        book_id: str,
        confirmation_token: Optional[str] = None,
    ) -> LedgerResult:
        """
        Delete a book and all its transactions.

        Requires the token from request_delete_book. A remaining book of the
        same type, if any, becomes active.
        """
        user, book, failure = self.resolve_book(owner_id, book_id)
        if failure is not None:
            return failure

        refused = self._last_of_type(user, book)
        if refused is not None:
            return refused

        rejected = self._redeem(
            confirmation_token, DeletionTarget.BOOK, owner_id, book_id=book_id,
        )
        if rejected is not None:
            return rejected

        updated = snapshot.remove_book(user, book_id)
        next_active = self._first_book_id(updated, book.type)
        self.commit_user(updated, **self._pointer_updates(owner_id, next_active))
        self.audit(AuditEventBuilder.book_deleted(
            owner_id, book_id, book.name, len(book.transactions),
        ))
        return LedgerResult.ok(next_active)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(
        self,
        owner_id: str,
        book_id: str,
        description: str,
        amount: Any,
        transaction_type: TransactionType,
    ) -> LedgerResult:
        """
        Add a GENERAL transaction stamped with the current time.

        MSB books only accept remittances; use MSBWorkflow for those.
        """
        user, book, failure = self.resolve_book(owner_id, book_id)
        if failure is not None:
            return failure

        if book.type != BookType.GENERAL:
            return LedgerResult.fail(
                LedgerErrorCode.CATEGORY_MISMATCH,
                "Remittance books only accept MSB transactions.",
            )

        try:
            transaction = Transaction(
                id=self.new_id(),
                description=description,
                amount=amount,
                type=transaction_type,
                date=self.now(),
                category=TransactionCategory.GENERAL,
            )
        except ValidationError as e:
            return invalid_input(e)

        self.commit_user(
            snapshot.replace_book(user, snapshot.insert_transaction(book, transaction))
        )
        self.audit(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_ADDED,
            owner_id,
            transaction.id,
            book_id=book_id,
            amount=str(transaction.amount),
        ))
        return LedgerResult.ok(transaction.id)

    def update_transaction(
        self,
        owner_id: str,
        book_id: str,
        transaction_id: str,
        description: Optional[str] = None,
        amount: Any = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> LedgerResult:
        """
        Merge new description, amount and type into a transaction.

        id, category and date never change. MSB transactions are refused:
        their amount is derived from the remittance details.
        """
        user, book, failure = self.resolve_book(owner_id, book_id)
        if failure is not None:
            return failure

        transaction = book.find_transaction(transaction_id)
        if transaction is None:
            return LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "Transaction not found.")

        if transaction.category == TransactionCategory.MSB:
            return LedgerResult.fail(
                LedgerErrorCode.MSB_EDIT_REQUIRED,
                "Remittances must be edited with their MSB details.",
            )

        changes: dict[str, Any] = {"last_modified": self.now()}
        if description is not None:
            changes["description"] = description
        if amount is not None:
            changes["amount"] = amount
        if transaction_type is not None:
            changes["type"] = transaction_type

        try:
            updated = revalidate(transaction, **changes)
        except ValidationError as e:
            return invalid_input(e)

        self.commit_user(snapshot.replace_book(user, snapshot.replace_transaction(book, updated)))
        self.audit(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_UPDATED,
            owner_id,
            transaction_id,
            book_id=book_id,
            amount=str(updated.amount),
        ))
        return LedgerResult.ok(transaction_id)

    def request_delete_transaction(self, owner_id: str, transaction_id: str) -> LedgerResult:
        """First phase of deleting a transaction."""
        user, failure = self.resolve_user(owner_id)
        if failure is not None:
            return failure

        book, transaction = user.find_transaction(transaction_id)
        if transaction is None:
            return LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "Transaction not found.")

        request = DeletionRequest(
            token=uuid4().hex,
            target=DeletionTarget.TRANSACTION,
            owner_id=owner_id,
            book_id=book.id,
            transaction_id=transaction_id,
            prompt=(
                "Are you sure you want to delete this transaction? "
                "This action cannot be undone."
            ),
            requested_at=self.now(),
        )
        return self._issue(request, transaction_id)

    def delete_transaction(
        self,
        owner_id: str,
        transaction_id: str,
        confirmation_token: Optional[str] = None,
    ) -> LedgerResult:
        user, failure = self.resolve_user(owner_id)
        if failure is not None:
            return failure

        book, transaction = user.find_transaction(transaction_id)
        if transaction is None:
            return LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "Transaction not found.")

        rejected = self._redeem(
            confirmation_token,
            DeletionTarget.TRANSACTION,
            owner_id,
            transaction_id=transaction_id,
        )
        if rejected is not None:
            return rejected

        self.commit_user(snapshot.remove_transaction(user, transaction_id))
        self.audit(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_DELETED,
            owner_id,
            transaction_id,
            book_id=book.id,
        ))
        return LedgerResult.ok()

    # =========================================================================
    # GUARDED DELETES
    # =========================================================================

    def _issue(self, request: DeletionRequest, target_id: str) -> LedgerResult:
        # At most one outstanding request per target
        stale = [
            token for token, pending in self._pending_deletes.items()
            if pending.target == request.target
            and pending.owner_id == request.owner_id
            and pending.book_id == request.book_id
            and pending.transaction_id == request.transaction_id
        ]
        for token in stale:
            del self._pending_deletes[token]

        self._pending_deletes[request.token] = request
        self.audit(AuditEventBuilder.delete_requested(
            request.owner_id, request.target.value, target_id, request.token,
        ))
        return LedgerResult.ok(request)

    def _redeem(
        self,
        token: Optional[str],
        target: DeletionTarget,
        owner_id: str,
        book_id: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> Optional[LedgerResult]:
        """
        Consume a confirmation token. Returns a failure, or None when the
        token matches this exact deletion.
        """
        if not token:
            return LedgerResult.fail(
                LedgerErrorCode.CONFIRMATION_REQUIRED,
                "This action cannot be undone and must be confirmed first.",
            )

        request = self._pending_deletes.get(token)
        if (
            request is None
            or request.target != target
            or request.owner_id != owner_id
            or (book_id is not None and request.book_id != book_id)
            or (transaction_id is not None and request.transaction_id != transaction_id)
        ):
            return LedgerResult.fail(
                LedgerErrorCode.INVALID_CONFIRMATION,
                "The confirmation does not match this deletion.",
            )

        del self._pending_deletes[token]
        return None

    def pending_deletion(self, token: str) -> Optional[DeletionRequest]:
        return self._pending_deletes.get(token)

    def cancel_delete(self, token: str) -> LedgerResult:
        """Drop a pending deletion without deleting anything."""
        if self._pending_deletes.pop(token, None) is None:
            return LedgerResult.fail(
                LedgerErrorCode.INVALID_CONFIRMATION,
                "No pending deletion for this confirmation.",
            )
        return LedgerResult.ok()

    def confirm_delete(self, token: str) -> LedgerResult:
        """Second phase: carry out whichever deletion the token was issued for."""
        request = self._pending_deletes.get(token)
        if request is None:
            return LedgerResult.fail(
                LedgerErrorCode.INVALID_CONFIRMATION,
                "No pending deletion for this confirmation.",
            )

        if request.target == DeletionTarget.BOOK:
            return self.delete_book(request.owner_id, request.book_id, token)
        return self.delete_transaction(request.owner_id, request.transaction_id, token)
