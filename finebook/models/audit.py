"""
Audit Models for FineBook

Every committed change to the ledger is recorded as an audit event.
This provides:
1. Traceability of who changed which book or transaction
2. Debugging information when storage misbehaves
3. A history the user can inspect

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Passwords never appear in an event, not even in details.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finebook.models.ledger import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    One event type per ledger operation, plus storage and session events.
    """
    # Accounts
    USER_REGISTERED = "user_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGGED_OUT = "logged_out"
    PROFILE_UPDATED = "profile_updated"
    PASSWORD_CHANGED = "password_changed"

    # Books
    BOOK_CREATED = "book_created"
    BOOK_DELETED = "book_deleted"
    BOOK_CURRENCY_UPDATED = "book_currency_updated"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Remittances
    MSB_TRANSACTION_ADDED = "msb_transaction_added"
    MSB_TRANSACTION_UPDATED = "msb_transaction_updated"
    MSB_STATUS_UPDATED = "msb_status_updated"

    # Guarded deletes
    DELETE_REQUESTED = "delete_requested"
    DELETE_REFUSED = "delete_refused"

    # Storage and session
    COLLECTION_LOADED = "collection_loaded"
    STORAGE_LOAD_FAILED = "storage_load_failed"
    STORAGE_SAVE_FAILED = "storage_save_failed"
    SESSION_RESTORED = "session_restored"
    SESSION_DISCARDED = "session_discarded"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every committed mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'book', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the entity, if known"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=True,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.book_created(user_id, book_id, name, "MSB")
        event = AuditEventBuilder.storage_failed("save", str(error))
    """

    @staticmethod
    def user_registered(user_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description=f"User registered: {email}",
            details={"email": email},
        )

    @staticmethod
    def login(user_id: Optional[str], email: str, succeeded: bool) -> AuditEvent:
        if succeeded:
            return AuditEvent(
                event_type=AuditEventType.LOGIN_SUCCEEDED,
                entity_type="user",
                entity_id=user_id,
                user_id=user_id,
                description="User logged in",
            )
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description="Login failed: invalid credentials",
            details={"email": email},
        )

    @staticmethod
    def logged_out(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGGED_OUT,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="User logged out",
        )

    @staticmethod
    def profile_updated(user_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="Profile updated",
            details={"fields": fields},
        )

    @staticmethod
    def password_changed(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASSWORD_CHANGED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="Password changed",
        )

    @staticmethod
    def book_created(
        user_id: str,
        book_id: str,
        name: str,
        book_type: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BOOK_CREATED,
            entity_type="book",
            entity_id=book_id,
            user_id=user_id,
            description=f"Book created: {name}",
            details={"name": name, "type": book_type},
        )

    @staticmethod
    def book_deleted(
        user_id: str,
        book_id: str,
        name: str,
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BOOK_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="book",
            entity_id=book_id,
            user_id=user_id,
            description=f"Book deleted: {name} ({transaction_count} transactions)",
            details={"name": name, "transaction_count": transaction_count},
        )

    @staticmethod
    def book_currency_updated(user_id: str, book_id: str, currency: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BOOK_CURRENCY_UPDATED,
            entity_type="book",
            entity_id=book_id,
            user_id=user_id,
            description=f"Book currency set to {currency}",
            details={"currency": currency},
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        user_id: str,
        transaction_id: str,
        book_id: Optional[str] = None,
        amount: Optional[str] = None,
    ) -> AuditEvent:
        """Added / updated / deleted, for both general and MSB transactions."""
        action = event_type.value.replace("_", " ")
        details: dict[str, Any] = {}
        if book_id is not None:
            details["book_id"] = book_id
        if amount is not None:
            details["amount"] = amount
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            description=action.capitalize(),
            details=details,
        )

    @staticmethod
    def msb_status_updated(
        user_id: str,
        transaction_id: str,
        previous: str,
        status: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MSB_STATUS_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            description=f"Remittance status: {previous} -> {status}",
            details={"previous": previous, "status": status},
        )

    @staticmethod
    def delete_requested(
        user_id: str,
        target: str,
        target_id: str,
        token: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_REQUESTED,
            entity_type=target,
            entity_id=target_id,
            user_id=user_id,
            description=f"Deletion of {target} requested, awaiting confirmation",
            details={"token": token},
        )

    @staticmethod
    def delete_refused(
        user_id: str,
        target: str,
        target_id: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_REFUSED,
            severity=AuditSeverity.WARNING,
            entity_type=target,
            entity_id=target_id,
            user_id=user_id,
            description=f"Deletion of {target} refused",
            details={"reason": reason},
        )

    @staticmethod
    def collection_loaded(user_count: int, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_LOADED,
            description=f"Loaded {user_count} users",
            details={"user_count": user_count, "source": source},
            is_user_action=False,
        )

    @staticmethod
    def storage_failed(operation: str, error_message: str) -> AuditEvent:
        event_type = (
            AuditEventType.STORAGE_LOAD_FAILED
            if operation == "load"
            else AuditEventType.STORAGE_SAVE_FAILED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            description=f"Storage {operation} failed",
            error_message=error_message,
            details={"operation": operation},
            is_user_action=False,
        )

    @staticmethod
    def session(user_id: str, restored: bool) -> AuditEvent:
        if restored:
            return AuditEvent(
                event_type=AuditEventType.SESSION_RESTORED,
                entity_type="user",
                entity_id=user_id,
                user_id=user_id,
                description="Session restored at startup",
                is_user_action=False,
            )
        return AuditEvent(
            event_type=AuditEventType.SESSION_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            description="Session pointer named an unknown user and was discarded",
            is_user_action=False,
        )
