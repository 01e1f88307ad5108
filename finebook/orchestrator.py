"""
Application wiring for FineBook

This module builds a ready-to-use ledger from settings:
1. Storage (JSON files, or memory when storage is disabled)
2. Audit logging
3. Ledger engine, bootstrapped from the stored collection
4. MSB workflow on top of the engine

The presentation layer calls into the returned objects and nothing else.
"""

import logging
from typing import NamedTuple, Optional

import structlog

from finebook.audit import AuditLogger
from finebook.config import Settings, get_settings
from finebook.ledger import LedgerEngine, MSBWorkflow
from finebook.services.storage import (
    AuditStorageInterface,
    DurablePersistentStore,
    EphemeralSessionStore,
    FileSessionStore,
    InMemorySessionStore,
    InMemoryUserStore,
    JsonFileUserStore,
)


logger = structlog.get_logger(__name__)


class LedgerComponents(NamedTuple):
    engine: LedgerEngine
    msb: MSBWorkflow
    store: DurablePersistentStore
    session: EphemeralSessionStore


def create_ledger(
    use_storage: bool = True,
    settings: Optional[Settings] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> LedgerComponents:
    """
    Factory function to create all ledger components.

    Args:
        use_storage: Whether to use the JSON files from StorageSettings.
                    Set to False for an in-memory ledger.
        settings: Settings to use instead of the cached environment settings
        audit_storage: Optional audit log backend

    Returns:
        LedgerComponents with a bootstrapped engine
    """
    settings = settings or get_settings()
    app_settings = settings.app
    logging.getLogger("finebook").setLevel(app_settings.effective_log_level)

    if use_storage:
        storage_settings = settings.storage
        store: DurablePersistentStore = JsonFileUserStore(storage_settings.users_path)
        session: EphemeralSessionStore = FileSessionStore(storage_settings.session_path)
    else:
        store = InMemoryUserStore()
        session = InMemorySessionStore()

    engine = LedgerEngine(
        store=store,
        session=session,
        audit_logger=AuditLogger(audit_storage),
        settings=settings.ledger,
    )
    state = engine.bootstrap()
    logger.info(
        "ledger_ready",
        environment=app_settings.app_environment,
        user_count=len(state.users),
        session_restored=state.current_user_id is not None,
    )

    return LedgerComponents(
        engine=engine,
        msb=MSBWorkflow(engine),
        store=store,
        session=session,
    )
