"""Tests for warnings that are carried across a page rerun."""

from feedback import PENDING_WARNINGS_KEY, queue_warning, take_warnings
from finance_tracker.ledger import Ledger

from tests.conftest import FlakyBlobStore


class TestPendingWarnings:
    """Tests for parking warnings in session state."""

    def test_warning_survives_until_taken(self):
        state = {}
        queue_warning(state, "Not saved: disk is read-only")
        assert take_warnings(state) == ["Not saved: disk is read-only"]
        assert PENDING_WARNINGS_KEY not in state

    def test_taking_twice_returns_nothing_the_second_time(self):
        state = {}
        queue_warning(state, "Not saved")
        take_warnings(state)
        assert take_warnings(state) == []

    def test_empty_warning_is_ignored(self):
        state = {}
        queue_warning(state, None)
        queue_warning(state, "")
        assert state == {}

    def test_warnings_keep_their_order(self):
        state = {}
        queue_warning(state, "first")
        queue_warning(state, "second")
        assert take_warnings(state) == ["first", "second"]

    def test_delete_warning_from_unsaved_ledger_is_parked(self):
        """A memory-only delete produces a warning that outlives the rerun."""
        store = FlakyBlobStore()
        unsaved = Ledger(store=store)
        added = unsaved.add_transaction("Lunch", "5", "Food", "expense")
        store.fail_writes = True
        result = unsaved.delete_transaction(added.transaction.id)

        assert result.warning.startswith("Changes are kept in memory only")
        state = {}
        queue_warning(state, result.warning)
        assert take_warnings(state) == [result.warning]
