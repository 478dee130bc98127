"""Tests for the Ledger: mutations, views, persistence and the factory."""

import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_tracker.audit import AuditLogger
from finance_tracker.config import Settings
from finance_tracker.ledger import Ledger, create_ledger
from finance_tracker.models import AuditEventType, TransactionType
from finance_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryBlobStore,
    decode_snapshot,
)
from finance_tracker.validation import TransactionValidator

from tests.conftest import FlakyBlobStore, SteppingClock, make_transaction


SNAPSHOT_KEY = "financeTrackerData"


def stored_transactions(store):
    return decode_snapshot(store.get(SNAPSHOT_KEY)).transactions


def event_types(audit_storage):
    return [event.event_type for event in audit_storage.get_recent_events()]


class TestAddTransaction:
    """Tests for recording new transactions."""

    def test_add_assigns_id_and_date(self, ledger):
        result = ledger.add_transaction("Lunch", "12.50", "Food", "expense")
        assert result.accepted
        assert result.changed
        assert result.persisted
        assert result.warning is None
        tx = result.transaction
        assert tx.id is not None
        assert tx.date.tzinfo is not None
        assert ledger.get(tx.id) == tx

    def test_add_persists_snapshot(self, ledger, store):
        result = ledger.add_transaction("Lunch", "12.50", "Food", "expense")
        assert stored_transactions(store) == [result.transaction]

    def test_rejected_input_changes_nothing(self, ledger, store, audit_storage):
        result = ledger.add_transaction("", "abc", "Food", "expense")
        assert not result.accepted
        assert not result.changed
        assert len(ledger) == 0
        assert store.get(SNAPSHOT_KEY) is None
        assert {issue.field for issue in result.issues} == {"description", "amount"}
        assert AuditEventType.VALIDATION_FAILED in event_types(audit_storage)

    def test_oversized_amount_rejected_without_side_effects(self, ledger, store, audit_storage):
        result = ledger.add_transaction("Lottery", "1e30", "Other", "income")
        assert not result.accepted
        assert not result.changed
        assert result.issues[0].issue_type == "out_of_range"
        assert len(ledger) == 0
        assert store.get(SNAPSHOT_KEY) is None
        assert AuditEventType.TRANSACTION_ADDED not in event_types(audit_storage)

    def test_count_grows_by_accepted_adds(self, ledger):
        attempts = [
            ("Pay", "1000", "Salary", "income"),
            ("", "5", "Food", "expense"),
            ("Rent", "250", "Bills", "expense"),
            ("Gift", "-3", "Other", "income"),
            ("Bus", "2.40", "Transportation", "EXPENSE"),
        ]
        accepted = sum(ledger.add_transaction(*attempt).accepted for attempt in attempts)
        assert accepted == 3
        assert len(ledger) == 3

    def test_add_is_audited(self, ledger, audit_storage):
        result = ledger.add_transaction("Lunch", "12.5", "Food", "expense")
        added = [
            e for e in audit_storage.get_recent_events()
            if e.event_type == AuditEventType.TRANSACTION_ADDED
        ]
        assert added[0].entity_id == result.transaction.id
        assert added[0].details["amount"] == "12.50"

    def test_transactions_view_is_read_only(self, ledger):
        ledger.add_transaction("Lunch", "5", "Food", "expense")
        assert isinstance(ledger.transactions, tuple)
        assert list(ledger) == list(ledger.transactions)


class TestDeleteAndClear:
    """Tests for removing transactions."""

    def test_delete(self, ledger, store):
        keep = ledger.add_transaction("Keep", "1", "Food", "expense").transaction
        drop = ledger.add_transaction("Drop", "2", "Food", "expense").transaction

        result = ledger.delete_transaction(drop.id)
        assert result.changed
        assert result.persisted
        assert ledger.transactions == (keep,)
        assert stored_transactions(store) == [keep]

    def test_delete_is_idempotent(self, ledger):
        tx = ledger.add_transaction("Lunch", "5", "Food", "expense").transaction
        assert ledger.delete_transaction(tx.id).changed is True
        second = ledger.delete_transaction(tx.id)
        assert second.changed is False
        assert len(ledger) == 0

    def test_delete_accepts_string_id(self, ledger):
        tx = ledger.add_transaction("Lunch", "5", "Food", "expense").transaction
        assert ledger.delete_transaction(str(tx.id)).changed
        assert len(ledger) == 0

    def test_delete_unknown_id_is_noop(self, ledger, store):
        ledger.add_transaction("Lunch", "5", "Food", "expense")
        before = store.get(SNAPSHOT_KEY)
        assert ledger.delete_transaction(uuid4()).changed is False
        assert ledger.delete_transaction("not-a-uuid").changed is False
        assert len(ledger) == 1
        assert store.get(SNAPSHOT_KEY) == before

    def test_clear_all(self, ledger, store, audit_storage):
        for name in ["a", "b", "c"]:
            ledger.add_transaction(name, "1", "Food", "expense")
        result = ledger.clear_all()
        assert result.changed
        assert len(ledger) == 0
        assert stored_transactions(store) == []
        assert AuditEventType.LEDGER_CLEARED in event_types(audit_storage)

    def test_clear_empty_ledger_still_persists(self, ledger, store):
        result = ledger.clear_all()
        assert result.changed is False
        assert result.persisted is True
        assert stored_transactions(store) == []


class TestViews:
    """Tests for filters, statistics and the list view."""

    def test_statistics_example(self, ledger):
        ledger.add_transaction("March pay", "1000", "Salary", "income")
        ledger.add_transaction("Rent", "250", "Bills", "expense")
        stats = ledger.compute_statistics()
        assert stats.total_income == Decimal("1000")
        assert stats.total_expenses == Decimal("250")
        assert stats.balance == Decimal("750")
        assert stats.per_category["Bills"].total == Decimal("250")
        assert stats.per_category["Bills"].count == 1
        assert stats.per_category["Bills"].average == Decimal("250")

    def test_empty_statistics(self, ledger):
        assert ledger.compute_statistics() is None

    def test_filter_does_not_mutate(self, ledger):
        ledger.add_transaction("Lunch", "5", "Food", "expense")
        ledger.add_transaction("Pay", "100", "Salary", "income")
        before = ledger.transactions
        assert len(ledger.filter(type_filter="income")) == 1
        assert ledger.transactions == before

    def test_display_list_newest_first(self, ledger):
        first = ledger.add_transaction("First", "1", "Food", "expense").transaction
        second = ledger.add_transaction("Second", "2", "Food", "expense").transaction
        assert ledger.display_list() == [second, first]

    def test_display_list_limit(self, store):
        ledger = Ledger(
            store=store,
            validator=TransactionValidator(clock=SteppingClock()),
            display_limit=3,
        )
        for index in range(5):
            ledger.add_transaction(f"Item {index}", "1", "Food", "expense")
        shown = ledger.display_list()
        assert [tx.description for tx in shown] == ["Item 4", "Item 3", "Item 2"]
        assert len(ledger.display_list(limit=10)) == 5

    def test_category_breakdown_follows_filters(self, ledger):
        ledger.add_transaction("Rent", "250", "Bills", "expense")
        ledger.add_transaction("Lunch", "10", "Food", "expense")
        ledger.add_transaction("Pay", "1000", "Salary", "income")
        assert ledger.category_breakdown() == {
            "Bills": Decimal("250"),
            "Food": Decimal("10"),
        }
        assert ledger.category_breakdown(query="lunch") == {"Food": Decimal("10")}

    def test_categories_include_custom_ones(self, store):
        ledger = Ledger(store=store, default_categories=["Food", "Other"])
        ledger.add_transaction("Vet", "80", "Pets", "expense")
        ledger.add_transaction("Lunch", "5", "Food", "expense")
        assert ledger.categories() == ["Food", "Other", "Pets"]

    def test_export_filename(self, store):
        ledger = Ledger(store=store, product_name="my-money")
        assert ledger.export_filename(date(2024, 1, 5)) == "my-money-2024-01-05.csv"


class TestCsvRoundTrip:
    """Tests for export and import through the ledger."""

    def test_export_then_import_reproduces_transactions(self, ledger):
        ledger.add_transaction('He said "hi"', "12.5", "Food", "expense")
        ledger.add_transaction("March pay", "1000", "Salary", "income")
        ledger.add_transaction("Dinner, with friends", "40.456", "Food", "expense")
        before = [
            (tx.date.date(), tx.description, tx.category, tx.type, tx.amount.quantize(Decimal("0.01")))
            for tx in ledger
        ]
        old_ids = {tx.id for tx in ledger}

        text = ledger.export_csv()
        ledger.clear_all()
        result = ledger.import_csv(text)

        assert result.imported_count == 3
        assert result.rejected_rows == []
        after = [
            (tx.date.date(), tx.description, tx.category, tx.type, tx.amount)
            for tx in ledger
        ]
        assert after == before
        assert old_ids.isdisjoint(tx.id for tx in ledger)

    def test_import_appends_without_merging(self, ledger):
        ledger.add_transaction("Lunch", "5", "Food", "expense")
        text = ledger.export_csv()
        ledger.import_csv(text)
        ledger.import_csv(text)
        assert len(ledger) == 3

    def test_import_reports_skipped_rows(self, ledger, audit_storage):
        text = "\n".join([
            "Date,Description,Category,Type,Amount",
            '2024-01-05,"Lunch",Food,expense,12.50',
            'someday,"Broken",Food,expense,1.00',
        ])
        result = ledger.import_csv(text)
        assert result.changed
        assert result.imported_count == 1
        assert result.skipped_count == 1
        assert result.rejected_rows[0].line_number == 3
        assert AuditEventType.CSV_IMPORTED in event_types(audit_storage)

    def test_import_skips_unrepresentable_rows(self, ledger):
        """Oversized amounts and dates before year one are skipped, export still works."""
        text = "\n".join([
            "Date,Description,Category,Type,Amount",
            '2024-01-05,"Lunch",Food,expense,12.50',
            '2024-01-06,"Lottery",Other,income,1e30',
            '0001-01-01T00:00:00+01:00,"Ancient",Food,expense,1.00',
        ])
        result = ledger.import_csv(text)
        assert result.imported_count == 1
        assert [row.line_number for row in result.rejected_rows] == [3, 4]
        assert ledger.export_csv().split("\n")[1] == 'Jan 5, 2024,"Lunch",Food,expense,12.50'

    def test_import_nothing_does_not_persist(self, ledger, store):
        result = ledger.import_csv("Date,Description,Category,Type,Amount\n")
        assert result.changed is False
        assert result.imported_count == 0
        assert store.get(SNAPSHOT_KEY) is None


class TestPersistence:
    """Tests for snapshot save and load."""

    def test_load_round_trip(self, store, ledger):
        ledger.add_transaction("Lunch", "5", "Food", "expense")
        ledger.add_transaction("Pay", "100", "Salary", "income")

        reloaded = Ledger(store=store)
        result = reloaded.load_snapshot()
        assert result.success
        assert result.loaded_count == 2
        assert result.schema_version == 1
        assert reloaded.transactions == ledger.transactions

    def test_load_missing_snapshot(self, store):
        ledger = Ledger(store=store)
        result = ledger.load_snapshot()
        assert result.success
        assert result.loaded_count == 0
        assert len(ledger) == 0

    def test_load_drops_malformed_record(self, store, audit_storage):
        """One record without a category is dropped; the other loads."""
        good = make_transaction()
        bad = make_transaction().model_dump(mode="json")
        del bad["category"]
        store.set(SNAPSHOT_KEY, json.dumps({
            "schema_version": 1,
            "transactions": [good.model_dump(mode="json"), bad],
        }))

        ledger = Ledger(store=store, audit_logger=AuditLogger(audit_storage))
        result = ledger.load_snapshot()
        assert result.success
        assert result.loaded_count == 1
        assert result.dropped_count == 1
        assert ledger.transactions == (good,)
        assert AuditEventType.SNAPSHOT_RECORDS_DROPPED in event_types(audit_storage)

    def test_load_drops_unrepresentable_records(self, store):
        good = make_transaction()
        oversized = make_transaction().model_dump(mode="json")
        oversized["amount"] = "1e30"
        ancient = make_transaction().model_dump(mode="json")
        ancient["date"] = "0001-01-01T00:00:00+01:00"
        store.set(SNAPSHOT_KEY, json.dumps({
            "schema_version": 1,
            "transactions": [good.model_dump(mode="json"), oversized, ancient],
        }))

        ledger = Ledger(store=store)
        result = ledger.load_snapshot()
        assert result.success
        assert result.loaded_count == 1
        assert result.dropped_count == 2
        assert ledger.transactions == (good,)
        assert ledger.export_csv().count("\n") == 1

    def test_load_legacy_snapshot(self, store):
        store.set(SNAPSHOT_KEY, json.dumps([{
            "id": 1704445200000,
            "description": "Lunch",
            "amount": -12.5,
            "category": "Food",
            "type": "expense",
            "date": "2024-01-05T09:00:00.000Z",
        }]))
        ledger = Ledger(store=store)
        result = ledger.load_snapshot()
        assert result.schema_version == 0
        assert ledger.transactions[0].amount == Decimal("12.5")
        assert ledger.transactions[0].is_expense

    def test_corrupt_snapshot_starts_empty(self, store):
        ledger = Ledger(store=store)
        ledger.add_transaction("Lost on load", "1", "Food", "expense")
        store.set(SNAPSHOT_KEY, "{not json")
        result = ledger.load_snapshot()
        assert not result.success
        assert result.error_message
        assert len(ledger) == 0
        assert not ledger.is_persisted
        assert "will be replaced" in ledger.last_persistence_error

        ledger.add_transaction("After reload", "2", "Food", "expense")
        assert ledger.is_persisted
        assert [tx.description for tx in stored_transactions(store)] == ["After reload"]

    def test_unreadable_store_on_load(self):
        store = FlakyBlobStore()
        store.fail_reads = True
        ledger = Ledger(store=store)
        result = ledger.load_snapshot()
        assert not result.success
        assert not ledger.is_persisted
        assert "disk not mounted" in ledger.last_persistence_error

    def test_write_failure_keeps_change_in_memory(self, audit_storage):
        store = FlakyBlobStore()
        store.fail_writes = True
        ledger = Ledger(store=store, audit_logger=AuditLogger(audit_storage))

        result = ledger.add_transaction("Lunch", "5", "Food", "expense")
        assert result.accepted
        assert result.persisted is False
        assert "memory only" in result.warning
        assert len(ledger) == 1
        assert ledger.is_persisted is False
        assert AuditEventType.PERSISTENCE_FAILED in event_types(audit_storage)

        store.fail_writes = False
        second = ledger.add_transaction("Dinner", "8", "Food", "expense")
        assert second.persisted
        assert ledger.is_persisted
        assert ledger.last_persistence_error is None
        assert len(stored_transactions(store)) == 2

    def test_quota_exceeded(self):
        ledger = Ledger(store=InMemoryBlobStore(max_bytes=300))
        result = ledger.add_transaction("x" * 200, "5", "Food", "expense")
        assert result.accepted
        assert result.persisted is False
        assert "bytes" in result.warning
        assert len(ledger) == 1

    def test_save_snapshot_reports_bytes(self, ledger):
        ledger.add_transaction("Lunch", "5", "Food", "expense")
        result = ledger.save_snapshot()
        assert result.success
        assert result.bytes_written > 0


class TestListeners:
    """Tests for change notifications."""

    def test_listener_called_on_every_change(self, ledger):
        calls = []
        ledger.subscribe(lambda changed: calls.append(len(changed)))

        tx = ledger.add_transaction("Lunch", "5", "Food", "expense").transaction
        ledger.add_transaction("", "5", "Food", "expense")
        ledger.delete_transaction(tx.id)
        ledger.import_csv('Date,Description,Category,Type,Amount\n2024-01-05,"A",Food,expense,1')
        ledger.clear_all()

        assert calls == [1, 0, 1, 0]

    def test_unsubscribe(self, ledger):
        calls = []

        def listener(changed):
            calls.append(changed)

        ledger.subscribe(listener)
        ledger.subscribe(listener)
        ledger.add_transaction("Lunch", "5", "Food", "expense")
        ledger.unsubscribe(listener)
        ledger.add_transaction("Dinner", "5", "Food", "expense")
        assert len(calls) == 1


class TestCreateLedger:
    """Tests for the factory."""

    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("DISPLAY_LIMIT", "5")
        ledger = create_ledger(settings=Settings())
        assert len(ledger) == 0
        assert ledger.add_transaction("Lunch", "5", "Food", "expense").persisted

    def test_file_backend_survives_restart(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "file")
        monkeypatch.setenv("FINANCE_STORAGE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("PRODUCT_NAME", "my-money")

        first = create_ledger(settings=Settings())
        tx = first.add_transaction("Lunch", "5", "Food", "expense").transaction
        assert (tmp_path / "financeTrackerData.json").exists()
        assert (tmp_path / "audit.jsonl").exists()

        second = create_ledger(settings=Settings())
        assert second.transactions == (tx,)
        assert second.export_filename(date(2024, 1, 5)) == "my-money-2024-01-05.csv"

    def test_explicit_store_and_audit(self):
        store = InMemoryBlobStore()
        audit_storage = InMemoryAuditStorage()
        store.set(SNAPSHOT_KEY, json.dumps({
            "schema_version": 1,
            "transactions": [make_transaction(type=TransactionType.INCOME).model_dump(mode="json")],
        }))
        ledger = create_ledger(settings=Settings(), store=store, audit_storage=audit_storage)
        assert len(ledger) == 1
        assert AuditEventType.SNAPSHOT_LOADED in event_types(audit_storage)

    def test_skip_load(self, monkeypatch):
        monkeypatch.setenv("FINANCE_STORAGE_AUDIT_ENABLED", "false")
        store = InMemoryBlobStore()
        store.set(SNAPSHOT_KEY, "{not json")
        ledger = create_ledger(settings=Settings(), store=store, load=False)
        assert len(ledger) == 0
