"""Ledger queries package."""

from finance_tracker.queries.statistics import (
    ALL,
    category_breakdown,
    compute_statistics,
    filter_transactions,
    format_amount,
    format_currency,
    matches_filters,
    newest_first,
    share_of_total,
)

__all__ = [
    "ALL",
    "category_breakdown",
    "compute_statistics",
    "filter_transactions",
    "format_amount",
    "format_currency",
    "matches_filters",
    "newest_first",
    "share_of_total",
]
