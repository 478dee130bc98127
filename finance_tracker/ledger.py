"""
The Ledger

This module ties the finance tracker together. The Ledger owns the list of
transactions and is the only thing that changes it:

1. Add / delete / clear-all / CSV import mutate the collection
2. Every mutation is followed by a snapshot write and a listener callback
3. Filters, statistics and CSV export are read-only views over it

DESIGN DECISION: The ledger is a plain object. Whoever needs it (the
Streamlit app, tests, a script) creates one with create_ledger() or the
constructor and passes it around. There is no process-wide instance.

Persistence is best-effort. When the store cannot be written, the change
still stands in memory, the result says so, and the ledger keeps working
in memory-only mode until a later save succeeds.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Iterator, Optional, Sequence, Union
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.config import Settings, get_settings
from finance_tracker.exports import export_csv, export_filename, parse_csv
from finance_tracker.models.transaction import (
    DEFAULT_CATEGORIES,
    AddTransactionResult,
    ImportResult,
    LedgerStatistics,
    MutationResult,
    PersistenceResult,
    SnapshotLoadResult,
    Transaction,
    TransactionType,
)
from finance_tracker.queries import (
    ALL,
    category_breakdown,
    compute_statistics,
    filter_transactions,
    format_amount,
    newest_first,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    BlobStoreInterface,
    InMemoryBlobStore,
    JsonFileBlobStore,
    JsonLinesAuditStorage,
    SnapshotFormatError,
    StorageError,
    decode_snapshot,
    encode_snapshot,
)
from finance_tracker.validation import TransactionValidator


logger = structlog.get_logger(__name__)

LedgerListener = Callable[["Ledger"], None]


class Ledger:
    """
    Owns the transaction collection and every operation over it.

    Collection order is insertion order. It is used for CSV export and
    snapshots; the list view sorts newest-first on top of it.
    """

    def __init__(
        self,
        store: BlobStoreInterface,
        snapshot_key: str = "financeTrackerData",
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        product_name: str = "personal-finance-tracker",
        display_limit: int = 20,
        default_categories: Sequence[str] = DEFAULT_CATEGORIES,
    ):
        self._store = store
        self._snapshot_key = snapshot_key
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._product_name = product_name
        self._display_limit = display_limit
        self._default_categories = tuple(default_categories)

        self._transactions: list[Transaction] = []
        self._listeners: list[LedgerListener] = []
        self._persisted = True
        self._last_persistence_error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Collection access
    # -------------------------------------------------------------------------

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions)

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(tuple(self._transactions))

    def get(self, transaction_id: Union[UUID, str]) -> Optional[Transaction]:
        wanted = _as_uuid(transaction_id)
        for tx in self._transactions:
            if tx.id == wanted:
                return tx
        return None

    @property
    def is_persisted(self) -> bool:
        """False while the store is behind the in-memory state."""
        return self._persisted

    @property
    def last_persistence_error(self) -> Optional[str]:
        return self._last_persistence_error

    # -------------------------------------------------------------------------
    # Presentation hooks
    # -------------------------------------------------------------------------

    def subscribe(self, listener: LedgerListener) -> None:
        """Call `listener(ledger)` after every change to the collection."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: LedgerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _commit(self) -> tuple[bool, Optional[str]]:
        """Persist and notify after a mutation. Returns (persisted, warning)."""
        result = self.save_snapshot()
        self._notify()
        if result.success:
            return True, None
        return False, f"Changes are kept in memory only: {result.error_message}"

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_transaction(
        self,
        description: str,
        amount: Union[Decimal, float, int, str, None],
        category: str,
        transaction_type: Union[TransactionType, str],
    ) -> AddTransactionResult:
        """
        Record a new transaction.

        Invalid input is rejected with the reasons in `issues` and the
        ledger is left untouched.
        """
        validation = self._validator.validate_new(
            description=description,
            amount=amount,
            category=category,
            transaction_type=transaction_type,
        )
        if not validation.is_valid:
            self._audit_logger.log_validation_failed(
                [issue.model_dump() for issue in validation.issues]
            )
            return AddTransactionResult(
                changed=False,
                persisted=self._persisted,
                issues=validation.issues,
            )

        transaction = validation.transaction
        audit_amount = format_amount(transaction.amount)
        self._transactions.append(transaction)
        self._audit_logger.log_transaction_added(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=audit_amount,
            category=transaction.category,
        )

        persisted, warning = self._commit()
        return AddTransactionResult(
            changed=True,
            persisted=persisted,
            warning=warning,
            transaction=transaction,
            issues=validation.issues,
        )

    def delete_transaction(self, transaction_id: Union[UUID, str]) -> MutationResult:
        """
        Remove the transaction with this id.

        Unknown ids are a no-op, so deleting twice is the same as deleting once.
        """
        transaction = self.get(transaction_id)
        if transaction is None:
            return MutationResult(changed=False, persisted=self._persisted)

        self._transactions = [tx for tx in self._transactions if tx.id != transaction.id]
        self._audit_logger.log_transaction_deleted(transaction.id, transaction.display_label)

        persisted, warning = self._commit()
        return MutationResult(changed=True, persisted=persisted, warning=warning)

    def clear_all(self) -> MutationResult:
        """
        Remove every transaction. There is no undo.

        Asking the user to confirm is the caller's job.
        """
        removed = len(self._transactions)
        self._transactions = []
        self._audit_logger.log_ledger_cleared(removed)

        persisted, warning = self._commit()
        return MutationResult(changed=removed > 0, persisted=persisted, warning=warning)

    def import_csv(self, text: str) -> ImportResult:
        """
        Append every acceptable row of an exported CSV file.

        Rows are not merged with existing transactions; each imported row
        gets a fresh id. Rows that cannot be read are skipped and listed in
        `rejected_rows`.
        """
        parsed = parse_csv(text, validator=self._validator)
        self._audit_logger.log_csv_imported(
            imported_count=len(parsed.transactions),
            skipped_count=len(parsed.rejected_rows),
        )

        if not parsed.transactions:
            return ImportResult(
                changed=False,
                persisted=self._persisted,
                rejected_rows=parsed.rejected_rows,
            )

        self._transactions.extend(parsed.transactions)
        persisted, warning = self._commit()
        return ImportResult(
            changed=True,
            persisted=persisted,
            warning=warning,
            imported_count=len(parsed.transactions),
            rejected_rows=parsed.rejected_rows,
        )

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def filter(
        self,
        query: str = "",
        type_filter: Union[TransactionType, str, None] = ALL,
        category_filter: Optional[str] = ALL,
    ) -> list[Transaction]:
        """Transactions matching all filters, in collection order."""
        return filter_transactions(self._transactions, query, type_filter, category_filter)

    def display_list(
        self,
        query: str = "",
        type_filter: Union[TransactionType, str, None] = ALL,
        category_filter: Optional[str] = ALL,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """What the list view shows: filtered, newest first, truncated."""
        return newest_first(
            self.filter(query, type_filter, category_filter),
            limit=self._display_limit if limit is None else limit,
        )

    def compute_statistics(self) -> Optional[LedgerStatistics]:
        """Statistics over the whole ledger, or None when it is empty."""
        return compute_statistics(self._transactions)

    def category_breakdown(
        self,
        query: str = "",
        type_filter: Union[TransactionType, str, None] = ALL,
        category_filter: Optional[str] = ALL,
    ) -> dict[str, Decimal]:
        """Chart data: expense totals per category over the filtered view."""
        return category_breakdown(self.filter(query, type_filter, category_filter))

    def categories(self) -> list[str]:
        """Configured categories, then any others in use, without repeats."""
        seen = dict.fromkeys(self._default_categories)
        for tx in self._transactions:
            seen.setdefault(tx.category)
        return list(seen)

    def export_csv(self) -> str:
        """The whole ledger as CSV text, in collection order."""
        text = export_csv(self._transactions)
        self._audit_logger.log_csv_exported(len(self._transactions))
        return text

    def export_filename(self, today: Optional[date] = None) -> str:
        return export_filename(self._product_name, today)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save_snapshot(self) -> PersistenceResult:
        """
        Write the whole collection to the blob store.

        Never raises for store problems; a failed save is reported and
        leaves the ledger in memory-only mode.
        """
        payload = encode_snapshot(self._transactions)
        try:
            written = self._store.set(self._snapshot_key, payload)
        except StorageError as e:
            self._persisted = False
            self._last_persistence_error = str(e)
            self._audit_logger.log_persistence_failed("save", str(e))
            return PersistenceResult(success=False, error_message=str(e))

        self._persisted = True
        self._last_persistence_error = None
        self._audit_logger.log_snapshot_saved(
            self._snapshot_key, len(self._transactions), written
        )
        return PersistenceResult(success=True, bytes_written=written)

    def load_snapshot(self) -> SnapshotLoadResult:
        """
        Replace the collection with the stored snapshot.

        Malformed records are dropped one by one. A snapshot that cannot be
        read at all leaves the ledger empty and is reported, never raised.
        """
        try:
            text = self._store.get(self._snapshot_key)
        except StorageError as e:
            self._transactions = []
            self._persisted = False
            self._last_persistence_error = str(e)
            self._audit_logger.log_persistence_failed("load", str(e))
            self._notify()
            return SnapshotLoadResult(success=False, error_message=str(e))

        if text is None:
            self._transactions = []
            self._notify()
            logger.debug("snapshot_missing", key=self._snapshot_key)
            return SnapshotLoadResult(success=True)

        try:
            decoded = decode_snapshot(text, validator=self._validator)
        except SnapshotFormatError as e:
            self._transactions = []
            self._persisted = False
            self._last_persistence_error = (
                f"Stored snapshot is unreadable and will be replaced on the next save: {e}"
            )
            self._audit_logger.log_error("snapshot_format", str(e), {"key": self._snapshot_key})
            logger.warning("snapshot_will_be_replaced", key=self._snapshot_key)
            self._notify()
            return SnapshotLoadResult(success=False, error_message=str(e))

        self._transactions = decoded.transactions
        self._persisted = True
        self._last_persistence_error = None
        self._audit_logger.log_snapshot_loaded(
            key=self._snapshot_key,
            loaded_count=len(decoded.transactions),
            schema_version=decoded.schema_version,
            drop_reasons=decoded.drop_reasons,
        )
        self._notify()
        return SnapshotLoadResult(
            success=True,
            loaded_count=len(decoded.transactions),
            dropped_count=decoded.dropped_count,
            schema_version=decoded.schema_version,
            drop_reasons=decoded.drop_reasons,
        )


def _as_uuid(value: Union[UUID, str]) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def create_ledger(
    settings: Optional[Settings] = None,
    store: Optional[BlobStoreInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    load: bool = True,
) -> Ledger:
    """
    Factory function to build a ledger from configuration.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Blob store override; built from storage settings if None
        audit_storage: Audit storage override; a JSON-lines file next to
                       the snapshot when auditing is enabled
        load: Rehydrate from the store before returning

    Returns:
        A ready-to-use Ledger
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage

    if store is None:
        if storage_settings.backend == "memory":
            store = InMemoryBlobStore(max_bytes=storage_settings.max_blob_bytes)
        else:
            store = JsonFileBlobStore(
                storage_settings.data_dir,
                max_bytes=storage_settings.max_blob_bytes,
            )

    if (
        audit_storage is None
        and storage_settings.audit_enabled
        and storage_settings.backend == "file"
    ):
        audit_storage = JsonLinesAuditStorage(storage_settings.audit_log_path)

    ledger = Ledger(
        store=store,
        snapshot_key=storage_settings.snapshot_key,
        audit_logger=AuditLogger(audit_storage),
        product_name=app_settings.product_name,
        display_limit=app_settings.display_limit,
        default_categories=app_settings.categories_list,
    )

    if load:
        result = ledger.load_snapshot()
        if not result.success:
            logger.warning(
                "ledger_started_empty",
                key=storage_settings.snapshot_key,
                error=result.error_message,
            )

    return ledger
