"""
Snapshot Codec

Turns the ledger's transactions into the single string kept in the blob
store, and back.

Layout (schema_version 1):

    {"schema_version": 1, "transactions": [{...}, ...]}

A bare JSON array is the older unversioned layout (version 0). It is still
readable: amounts there carry a sign and ids are numbers, so both are
normalized on the way in.

DESIGN DECISION: Decoding is per record. A record that fails the schema
check is dropped with a reason and the rest of the snapshot still loads.
Only a snapshot that cannot be read as a whole raises SnapshotFormatError.
"""

import json
from dataclasses import dataclass, field
from typing import Iterable, Optional

from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage.interface import SnapshotFormatError
from finance_tracker.validation import TransactionValidator


SNAPSHOT_SCHEMA_VERSION = 1
LEGACY_SCHEMA_VERSION = 0


@dataclass
class DecodedSnapshot:
    """Transactions recovered from a snapshot, plus what was dropped."""

    schema_version: int
    transactions: list[Transaction] = field(default_factory=list)
    drop_reasons: list[str] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.drop_reasons)


def encode_snapshot(transactions: Iterable[Transaction]) -> str:
    """Serialize transactions in collection order."""
    payload = {
        "schema_version": SNAPSHOT_SCHEMA_VERSION,
        "transactions": [tx.model_dump(mode="json") for tx in transactions],
    }
    return json.dumps(payload, ensure_ascii=False)


def decode_snapshot(
    text: str,
    validator: Optional[TransactionValidator] = None,
) -> DecodedSnapshot:
    """
    Parse a stored snapshot.

    Raises:
        SnapshotFormatError: If the text is not JSON, or not one of the
            known layouts
    """
    validator = validator or TransactionValidator()

    try:
        payload = json.loads(text)
    except ValueError as e:
        raise SnapshotFormatError(f"Snapshot is not valid JSON: {e}") from e

    if isinstance(payload, list):
        version = LEGACY_SCHEMA_VERSION
        records = payload
    elif isinstance(payload, dict):
        version = payload.get("schema_version")
        if version != SNAPSHOT_SCHEMA_VERSION:
            raise SnapshotFormatError(f"Unsupported snapshot schema version: {version!r}")
        records = payload.get("transactions")
        if not isinstance(records, list):
            raise SnapshotFormatError("Snapshot has no 'transactions' list")
    else:
        raise SnapshotFormatError(
            f"Snapshot must be an object or a list, got {type(payload).__name__}"
        )

    decoded = DecodedSnapshot(schema_version=version)
    seen_ids = set()
    for index, record in enumerate(records):
        result = validator.validate_snapshot_record(
            record, legacy=version == LEGACY_SCHEMA_VERSION
        )
        if not result.is_valid:
            decoded.drop_reasons.append(f"record {index}: {result.summary()}")
            continue

        transaction = result.transaction
        if transaction.id in seen_ids:
            decoded.drop_reasons.append(f"record {index}: duplicate id {transaction.id}")
            continue
        seen_ids.add(transaction.id)
        decoded.transactions.append(transaction)

    return decoded
