"""
Finance Tracker - Source Package

A personal finance ledger: record income and expenses, see totals and a
per-category breakdown, filter the list, and move data in and out as CSV.

DESIGN PRINCIPLES:
1. One owner for the transaction list (the Ledger)
2. Bad input is reported, never half-applied
3. Persistence failures never lose in-memory data
4. Every change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"

from finance_tracker.ledger import Ledger, create_ledger

__all__ = ["Ledger", "create_ledger"]
