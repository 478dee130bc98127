"""
Storage Services Package

Provides the blob store interface, file and in-memory implementations,
the snapshot codec and audit storage.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BlobStoreInterface,
    QuotaExceededError,
    SnapshotFormatError,
    StorageError,
    StoreUnavailableError,
)
from finance_tracker.services.storage.json_file import (
    JsonFileBlobStore,
    JsonLinesAuditStorage,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBlobStore,
)
from finance_tracker.services.storage.snapshot import (
    SNAPSHOT_SCHEMA_VERSION,
    DecodedSnapshot,
    decode_snapshot,
    encode_snapshot,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BlobStoreInterface",
    # Exceptions
    "QuotaExceededError",
    "SnapshotFormatError",
    "StorageError",
    "StoreUnavailableError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryBlobStore",
    "JsonFileBlobStore",
    "JsonLinesAuditStorage",
    # Snapshot codec
    "SNAPSHOT_SCHEMA_VERSION",
    "DecodedSnapshot",
    "decode_snapshot",
    "encode_snapshot",
]
