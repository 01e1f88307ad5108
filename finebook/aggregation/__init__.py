"""Aggregation package: derived figures over a book."""

from finebook.aggregation.summary import (
    balance,
    msb_status_breakdown,
    sort_newest_first,
    sorted_transactions,
    summarize,
    total_expense,
    total_income,
)

__all__ = [
    "balance",
    "msb_status_breakdown",
    "sort_newest_first",
    "sorted_transactions",
    "summarize",
    "total_expense",
    "total_income",
]
