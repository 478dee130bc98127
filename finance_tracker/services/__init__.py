"""Services package."""

from finance_tracker.services.storage import (
    AuditStorageInterface,
    BlobStoreInterface,
    InMemoryAuditStorage,
    InMemoryBlobStore,
    JsonFileBlobStore,
    JsonLinesAuditStorage,
    QuotaExceededError,
    SnapshotFormatError,
    StorageError,
    StoreUnavailableError,
)

__all__ = [
    "AuditStorageInterface",
    "BlobStoreInterface",
    "InMemoryAuditStorage",
    "InMemoryBlobStore",
    "JsonFileBlobStore",
    "JsonLinesAuditStorage",
    "QuotaExceededError",
    "SnapshotFormatError",
    "StorageError",
    "StoreUnavailableError",
]
