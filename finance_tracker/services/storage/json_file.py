"""
File-backed Storage Implementation

DESIGN DECISION: Each key is one file inside the data directory, which
mirrors how browser local storage holds one string per key:
1. The snapshot can be inspected or backed up with ordinary tools
2. No database setup required
3. Writes go to a temp file first and are then renamed into place, so a
   crash mid-write never leaves a half-written snapshot behind

TRADEOFFS:
- The whole ledger is rewritten on every change (fine for personal use)
- One writer at a time; there is no locking between processes
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BlobStoreInterface,
    QuotaExceededError,
    StorageError,
    StoreUnavailableError,
)


logger = structlog.get_logger(__name__)


class JsonFileBlobStore(BlobStoreInterface):
    """
    Blob store keeping one `<key>.json` file per key.

    The directory is created on first write, not on construction, so a
    read-only location still allows loading.
    """

    def __init__(self, directory: Path, max_bytes: Optional[int] = None):
        self._directory = Path(directory)
        self._max_bytes = max_bytes

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StoreUnavailableError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> int:
        path = self._path_for(key)
        data = value.encode("utf-8")
        if self._max_bytes is not None and len(data) > self._max_bytes:
            raise QuotaExceededError(key, len(data), self._max_bytes)

        tmp_name = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._directory, prefix=f".{key}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreUnavailableError(f"Failed to write {path}: {e}") from e

        logger.debug("blob_written", key=key, path=str(path), bytes=len(data))
        return len(data)

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreUnavailableError(f"Failed to delete {path}: {e}") from e


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit log, one JSON object per line.

    Unreadable lines are skipped when reading back; they never stop the
    rest of the trail from loading.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(event.to_json_line() + "\n")
            return True
        except OSError as e:
            raise StoreUnavailableError(f"Failed to append audit event: {e}") from e

    def _line_to_event(self, line: str) -> AuditEvent:
        data = json.loads(line)
        return AuditEvent(
            event_id=data["event_id"],
            timestamp=data["timestamp"],
            event_type=AuditEventType(data["event_type"]),
            severity=AuditSeverity(data["severity"]),
            entity_type=data.get("entity_type"),
            entity_id=data.get("entity_id"),
            description=data["description"],
            details=data.get("details") or {},
            error_message=data.get("error_message"),
        )

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events (newest first)."""
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StoreUnavailableError(f"Failed to read audit log: {e}") from e

        events = []
        for line in reversed(lines):
            if not line.strip():
                continue
            try:
                events.append(self._line_to_event(line))
            except (ValueError, KeyError):
                continue
            if len(events) >= limit:
                break
        return events
