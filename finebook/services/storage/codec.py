"""
Encoding and decoding of the durable record.

The record is a JSON array of user objects with camelCase keys.
Decoding always runs the schema migrations before validation.
"""

import json
from typing import Sequence

from pydantic import ValidationError

from finebook.models.ledger import User, UserCollection
from finebook.services.storage.interface import SerializationError
from finebook.services.storage.migration import migrate_records


def encode_collection(users: Sequence[User]) -> str:
    """Serialize the full collection. Absent optional fields are omitted."""
    return UserCollection.dump_json(
        tuple(users),
        by_alias=True,
        exclude_none=True,
        indent=2,
    ).decode("utf-8")


def decode_collection(text: str) -> tuple[User, ...]:
    """
    Parse, migrate and validate a stored collection.

    Raises:
        SerializationError: If the text is not a valid collection
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Stored collection is not valid JSON: {e}") from e

    try:
        migrated = migrate_records(raw)
    except (AttributeError, TypeError) as e:
        raise SerializationError(f"Stored collection has an unexpected shape: {e}") from e

    try:
        return UserCollection.validate_python(migrated)
    except ValidationError as e:
        raise SerializationError(
            f"Stored collection failed validation with {e.error_count()} errors"
        ) from e
