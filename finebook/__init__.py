"""
FineBook - Ledger Core

The data-management engine behind a personal bookkeeping ledger:
users own books, books hold transactions, and remittance (MSB) books
track currency transfers with a settlement status.

DESIGN PRINCIPLES:
1. Every change produces a new immutable snapshot
2. Business failures are returned, never raised
3. Nothing is deleted without explicit confirmation
4. Derived figures are computed, never stored
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FineBook Team"
