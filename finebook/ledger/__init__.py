"""Ledger package: the engine, remittance workflow and snapshot helpers."""

from finebook.ledger.snapshot import LedgerState
from finebook.ledger.engine import LedgerEngine
from finebook.ledger.msb import MSBWorkflow

__all__ = ["LedgerEngine", "LedgerState", "MSBWorkflow"]
