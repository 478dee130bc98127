"""
Abstract Storage Interface

DESIGN DECISION: The ledger only ever sees a key-value blob store.
This allows us to:
1. Keep snapshots in plain files on disk
2. Use in-memory storage for testing
3. Swap in another backend without touching ledger logic

The interface is intentionally tiny - one value per key, strings in and out.
Serialization of the ledger is the snapshot codec's job, not the store's.
"""

from abc import ABC, abstractmethod
from typing import Optional

from finance_tracker.models.audit import AuditEvent


class BlobStoreInterface(ABC):
    """
    Abstract interface for an opaque key-value blob store.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under `key`.

        Returns:
            The stored string, or None if the key was never written

        Raises:
            StoreUnavailableError: If the store cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> int:
        """
        Store `value` under `key`, replacing any previous value.

        Returns:
            Number of bytes written

        Raises:
            QuotaExceededError: If the value is larger than the store allows
            StoreUnavailableError: If the store cannot be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove `key` from the store.

        Returns:
            True if a value was removed, False if there was none
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoreUnavailableError(StorageError):
    """The store could not be read or written."""
    pass


class QuotaExceededError(StorageError):
    """The value is larger than the store accepts."""

    def __init__(self, key: str, size: int, limit: int):
        super().__init__(
            f"Value for '{key}' is {size} bytes, store limit is {limit} bytes"
        )
        self.key = key
        self.size = size
        self.limit = limit


class SnapshotFormatError(StorageError):
    """A stored snapshot could not be decoded as a whole."""
    pass
