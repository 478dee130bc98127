"""Validation package."""

from finance_tracker.validation.validator import (
    TransactionValidator,
    parse_amount,
    parse_date,
    parse_transaction_type,
)

__all__ = [
    "TransactionValidator",
    "parse_amount",
    "parse_date",
    "parse_transaction_type",
]
