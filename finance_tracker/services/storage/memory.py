"""In-memory storage backends, used by tests and the `memory` backend setting."""

from typing import Optional

from finance_tracker.models.audit import AuditEvent
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BlobStoreInterface,
    QuotaExceededError,
)


class InMemoryBlobStore(BlobStoreInterface):
    """Dict-backed blob store. Nothing survives the process."""

    def __init__(self, max_bytes: Optional[int] = None):
        self._values: dict[str, str] = {}
        self._max_bytes = max_bytes

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> int:
        size = len(value.encode("utf-8"))
        if self._max_bytes is not None and size > self._max_bytes:
            raise QuotaExceededError(key, size, self._max_bytes)
        self._values[key] = value
        return size

    def delete(self, key: str) -> bool:
        return self._values.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._values)


class InMemoryAuditStorage(AuditStorageInterface):
    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
