"""Shared fixtures: in-memory stores, a failing store and a stepping clock."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.ledger import Ledger
from finance_tracker.models import Transaction, TransactionType
from finance_tracker.services.storage import (
    BlobStoreInterface,
    InMemoryAuditStorage,
    InMemoryBlobStore,
    StoreUnavailableError,
)
from finance_tracker.validation import TransactionValidator


class SteppingClock:
    """Returns a later time on every call, one minute apart."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + timedelta(minutes=1)
        return value


class FlakyBlobStore(BlobStoreInterface):
    """In-memory store that can be told to fail reads and writes."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.fail_writes = False
        self.fail_reads = False

    def get(self, key):
        if self.fail_reads:
            raise StoreUnavailableError("disk not mounted")
        return self.values.get(key)

    def set(self, key, value):
        if self.fail_writes:
            raise StoreUnavailableError("disk is read-only")
        self.values[key] = value
        return len(value.encode("utf-8"))

    def delete(self, key):
        return self.values.pop(key, None) is not None


def make_transaction(**kwargs) -> Transaction:
    base = dict(
        description="Coffee",
        amount=Decimal("3.50"),
        category="Food",
        type=TransactionType.EXPENSE,
        date=datetime(2024, 1, 5, 12, 0, tzinfo=timezone.utc),
    )
    base.update(kwargs)
    return Transaction(**base)


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def store():
    return InMemoryBlobStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def ledger(store, audit_storage, clock):
    return Ledger(
        store=store,
        validator=TransactionValidator(clock=clock),
        audit_logger=AuditLogger(audit_storage),
    )
