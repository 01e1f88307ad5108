"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The ledger ships a JSON file backend and an in-memory backend; both
share the same codec and schema migrations.
"""

from finebook.services.storage.interface import (
    AuditStorageInterface,
    DurablePersistentStore,
    EphemeralSessionStore,
    SerializationError,
    StorageError,
)
from finebook.services.storage.codec import decode_collection, encode_collection
from finebook.services.storage.migration import MIGRATIONS, migrate_records
from finebook.services.storage.json_file import FileSessionStore, JsonFileUserStore
from finebook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemorySessionStore,
    InMemoryUserStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DurablePersistentStore",
    "EphemeralSessionStore",
    # Exceptions
    "SerializationError",
    "StorageError",
    # Codec and migrations
    "MIGRATIONS",
    "decode_collection",
    "encode_collection",
    "migrate_records",
    # Implementations
    "FileSessionStore",
    "InMemoryAuditStorage",
    "InMemorySessionStore",
    "InMemoryUserStore",
    "JsonFileUserStore",
]
