"""
Audit Models for the Finance Tracker

Every change to the ledger is logged for audit purposes.
This provides:
1. Traceability of every add, delete, clear and import
2. Debugging information when persistence goes wrong
3. A way to reconstruct what happened to a ledger over time

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Clearing the ledger does not clear its audit trail.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"
    LEDGER_CLEARED = "ledger_cleared"
    VALIDATION_FAILED = "validation_failed"

    # CSV
    CSV_EXPORTED = "csv_exported"
    CSV_IMPORTED = "csv_imported"

    # Persistence
    SNAPSHOT_SAVED = "snapshot_saved"
    SNAPSHOT_LOADED = "snapshot_loaded"
    SNAPSHOT_RECORDS_DROPPED = "snapshot_records_dropped"
    PERSISTENCE_FAILED = "persistence_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger change creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'ledger', 'snapshot')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_json_line(self) -> str:
        """Serialize as one line of a JSON-lines audit file."""
        return json.dumps(self.to_log_dict(), default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(transaction_id, "expense", "12.50", "Food")
        event = AuditEventBuilder.ledger_cleared(removed_count=3)
    """

    @staticmethod
    def transaction_added(
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        category: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{transaction_type.capitalize()} added: {category} - {amount}",
            details={
                "type": transaction_type,
                "amount": amount,
                "category": category,
            },
        )

    @staticmethod
    def transaction_deleted(transaction_id: UUID, description: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction deleted: {description}"[:500],
        )

    @staticmethod
    def ledger_cleared(removed_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description=f"All transactions cleared ({removed_count} removed)",
            details={"removed_count": removed_count},
        )

    @staticmethod
    def validation_failed(issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            description=f"Transaction rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def csv_exported(row_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_EXPORTED,
            entity_type="ledger",
            description=f"Exported {row_count} transactions to CSV",
            details={"row_count": row_count},
        )

    @staticmethod
    def csv_imported(imported_count: int, skipped_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORTED,
            severity=AuditSeverity.WARNING if skipped_count else AuditSeverity.INFO,
            entity_type="ledger",
            description=(
                f"Imported {imported_count} transactions from CSV"
                f" ({skipped_count} rows skipped)"
            ),
            details={
                "imported_count": imported_count,
                "skipped_count": skipped_count,
            },
        )

    @staticmethod
    def snapshot_saved(key: str, transaction_count: int, bytes_written: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="snapshot",
            description=f"Snapshot saved under '{key}'",
            details={
                "key": key,
                "transaction_count": transaction_count,
                "bytes_written": bytes_written,
            },
        )

    @staticmethod
    def snapshot_loaded(key: str, loaded_count: int, schema_version: Optional[int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            entity_type="snapshot",
            description=f"Snapshot loaded from '{key}' with {loaded_count} transactions",
            details={
                "key": key,
                "loaded_count": loaded_count,
                "schema_version": schema_version,
            },
        )

    @staticmethod
    def snapshot_records_dropped(key: str, reasons: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_RECORDS_DROPPED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            description=f"Dropped {len(reasons)} malformed records from '{key}'",
            details={"key": key, "reasons": reasons},
        )

    @staticmethod
    def persistence_failed(operation: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            description=f"Snapshot {operation} failed; ledger is running in memory only",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
