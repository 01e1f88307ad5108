"""
Abstract Storage Interfaces

DESIGN DECISION: The ledger never touches files or globals directly.
It talks to two narrow interfaces that are injected at construction:

1. DurablePersistentStore - the full user collection, loaded once and
   rewritten after every committed mutation
2. EphemeralSessionStore - the id of the logged-in user

This allows us to:
1. Use in-memory storage for testing
2. Swap the JSON file for another backend later
3. Keep business logic decoupled from storage implementation
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from finebook.models.audit import AuditEvent
from finebook.models.ledger import User


class DurablePersistentStore(ABC):
    """
    Durable persistence of the whole user collection.

    The collection is always read and written as one unit.
    """

    @abstractmethod
    def load(self) -> tuple[User, ...]:
        """
        Load and migrate the stored collection.

        Returns:
            The users in stored order. An absent or unreadable record
            yields an empty tuple. Implementations log the failure and
            do NOT raise.
        """
        pass

    @abstractmethod
    def save(self, users: Sequence[User]) -> None:
        """
        Replace the stored collection with users.

        Raises:
            StorageError: If the collection could not be written
        """
        pass


class EphemeralSessionStore(ABC):
    """
    Holds the id of the currently authenticated user.

    Its lifetime is independent of the durable collection.
    """

    @abstractmethod
    def get(self) -> Optional[str]:
        """Return the stored user id, or None when logged out."""
        pass

    @abstractmethod
    def set(self, user_id: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class SerializationError(StorageError):
    """The stored record could not be parsed or validated."""
    pass
