"""Services package."""

from finebook.services.storage import (
    AuditStorageInterface,
    DurablePersistentStore,
    EphemeralSessionStore,
    FileSessionStore,
    InMemoryAuditStorage,
    InMemorySessionStore,
    InMemoryUserStore,
    JsonFileUserStore,
    SerializationError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "DurablePersistentStore",
    "EphemeralSessionStore",
    "FileSessionStore",
    "InMemoryAuditStorage",
    "InMemorySessionStore",
    "InMemoryUserStore",
    "JsonFileUserStore",
    "SerializationError",
    "StorageError",
]
