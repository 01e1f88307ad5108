"""
In-memory storage, for tests and for embedding the ledger without files.

InMemoryUserStore keeps the serialized JSON text rather than the model
objects, so loads go through the same parse and migration path as the
file store.
"""

from typing import Optional, Sequence

import structlog

from finebook.models.audit import AuditEvent
from finebook.models.ledger import User
from finebook.services.storage.codec import decode_collection, encode_collection
from finebook.services.storage.interface import (
    AuditStorageInterface,
    DurablePersistentStore,
    EphemeralSessionStore,
    SerializationError,
    StorageError,
)


logger = structlog.get_logger(__name__)


class InMemoryUserStore(DurablePersistentStore):

    def __init__(self, text: Optional[str] = None, fail_on_save: bool = False):
        """
        Args:
            text: Initial serialized collection, e.g. a legacy record
            fail_on_save: Make every save raise StorageError
        """
        self.text = text
        self.fail_on_save = fail_on_save
        self.save_count = 0

    def load(self) -> tuple[User, ...]:
        if self.text is None:
            return ()
        try:
            return decode_collection(self.text)
        except SerializationError as e:
            logger.error("collection_load_failed", source="memory", error=str(e))
            return ()

    def save(self, users: Sequence[User]) -> None:
        if self.fail_on_save:
            raise StorageError("Simulated write failure")
        self.text = encode_collection(users)
        self.save_count += 1


class InMemorySessionStore(EphemeralSessionStore):

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id

    def get(self) -> Optional[str]:
        return self._user_id

    def set(self, user_id: str) -> None:
        self._user_id = user_id

    def clear(self) -> None:
        self._user_id = None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True
