"""
Data Models Package

This package contains all Pydantic models used by the finance tracker.
Everything the ledger stores or returns conforms to these schemas.
"""

from finance_tracker.models.transaction import (
    DEFAULT_CATEGORIES,
    MAX_AMOUNT,
    AddTransactionResult,
    CategoryStats,
    ImportResult,
    LedgerStatistics,
    MutationResult,
    PersistenceResult,
    RowRejection,
    SnapshotLoadResult,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    utc_now,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "DEFAULT_CATEGORIES",
    "MAX_AMOUNT",
    "AddTransactionResult",
    "CategoryStats",
    "ImportResult",
    "LedgerStatistics",
    "MutationResult",
    "PersistenceResult",
    "RowRejection",
    "SnapshotLoadResult",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
