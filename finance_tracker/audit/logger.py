"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Traceability of adds, deletes, clears and imports
2. A record of when the ledger fell back to memory-only mode
3. Debugging capability when snapshots come back with dropped records

The audit logger:
- Is synchronous, like the ledger itself
- Gracefully handles failures (a broken audit file never blocks a ledger change)
"""

from typing import Optional
from uuid import UUID

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder
from finance_tracker.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_transaction_added(
        self,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        category: str,
    ) -> None:
        """Log a new transaction."""
        self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
        ))

    def log_transaction_deleted(self, transaction_id: UUID, description: str) -> None:
        self.log(AuditEventBuilder.transaction_deleted(transaction_id, description))

    def log_ledger_cleared(self, removed_count: int) -> None:
        self.log(AuditEventBuilder.ledger_cleared(removed_count))

    def log_validation_failed(self, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(issues))

    def log_csv_exported(self, row_count: int) -> None:
        self.log(AuditEventBuilder.csv_exported(row_count))

    def log_csv_imported(self, imported_count: int, skipped_count: int) -> None:
        self.log(AuditEventBuilder.csv_imported(imported_count, skipped_count))

    def log_snapshot_saved(self, key: str, transaction_count: int, bytes_written: int) -> None:
        self.log(AuditEventBuilder.snapshot_saved(key, transaction_count, bytes_written))

    def log_snapshot_loaded(
        self,
        key: str,
        loaded_count: int,
        schema_version: Optional[int],
        drop_reasons: list[str],
    ) -> None:
        """Log a snapshot load, plus a warning if records were dropped."""
        self.log(AuditEventBuilder.snapshot_loaded(key, loaded_count, schema_version))
        if drop_reasons:
            self.log(AuditEventBuilder.snapshot_records_dropped(key, drop_reasons))

    def log_persistence_failed(self, operation: str, error_message: str) -> None:
        self.log(AuditEventBuilder.persistence_failed(operation, error_message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
