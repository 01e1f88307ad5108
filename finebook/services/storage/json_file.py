"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON file holds the whole user collection because:
1. The ledger always loads and saves the collection as one unit
2. No database setup required for a personal ledger
3. The file is human-readable and easy to back up

TRADEOFFS:
- The whole file is rewritten on every save (fine for personal data volumes)
- No multi-writer safety; a single process owns the file

Writes go to a temporary file that replaces the target, so a crash mid-write
leaves the previous collection intact.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import structlog

from finebook.models.ledger import User
from finebook.services.storage.codec import decode_collection, encode_collection
from finebook.services.storage.interface import (
    DurablePersistentStore,
    EphemeralSessionStore,
    SerializationError,
    StorageError,
)


logger = structlog.get_logger(__name__)


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class JsonFileUserStore(DurablePersistentStore):
    """
    Durable user collection stored as a JSON array in one file.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> tuple[User, ...]:
        if not self._path.exists():
            logger.info("collection_absent", path=str(self._path))
            return ()

        try:
            text = self._path.read_text(encoding="utf-8")
            users = decode_collection(text)
        except (OSError, UnicodeDecodeError, SerializationError) as e:
            # Unreadable record: start empty, never raise to the caller
            logger.error(
                "collection_load_failed",
                path=str(self._path),
                error=str(e),
            )
            return ()

        logger.info("collection_loaded", path=str(self._path), user_count=len(users))
        return users

    def save(self, users: Sequence[User]) -> None:
        try:
            text = encode_collection(users)
            _atomic_write(self._path, text)
        except (OSError, ValueError, TypeError) as e:
            raise StorageError(f"Failed to write {self._path}: {e}") from e

        logger.debug("collection_saved", path=str(self._path), user_count=len(users))


class FileSessionStore(EphemeralSessionStore):
    """
    Session pointer kept in a small JSON file.

    The file lets a session survive a restart of the process. It has no
    link to the collection file; a stale id is discarded by the engine.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    def get(self) -> Optional[str]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("session_read_failed", path=str(self._path), error=str(e))
            return None

        user_id = data.get("currentUser") if isinstance(data, dict) else None
        return user_id if isinstance(user_id, str) and user_id else None

    def set(self, user_id: str) -> None:
        try:
            _atomic_write(self._path, json.dumps({"currentUser": user_id}))
        except OSError as e:
            logger.error("session_write_failed", path=str(self._path), error=str(e))

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("session_clear_failed", path=str(self._path), error=str(e))
