"""
Ledger Queries

Pure functions over a sequence of transactions: filtering, aggregate
statistics, the list view order and the chart breakdown.

DESIGN DECISION: Nothing here mutates its input or keeps state.
The ledger passes its collection in and gets new values back, so the same
inputs always give the same outputs.
"""

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence, Union

from finance_tracker.models.transaction import (
    CategoryStats,
    LedgerStatistics,
    Transaction,
    TransactionType,
)


ALL = "all"

TWO_PLACES = Decimal("0.01")


def _normalize_type_filter(type_filter: Union[str, TransactionType, None]) -> str:
    if type_filter is None:
        return ALL
    if isinstance(type_filter, TransactionType):
        return type_filter.value
    return type_filter.strip().lower() or ALL


def matches_filters(
    transaction: Transaction,
    query: str = "",
    type_filter: Union[str, TransactionType, None] = ALL,
    category_filter: Optional[str] = ALL,
) -> bool:
    """
    True when the transaction passes all three filters.

    `query` is a case-insensitive substring of the description or the
    category. "all" (or an empty value) disables the type and category
    filters.
    """
    needle = (query or "").strip().lower()
    if needle and not (
        needle in transaction.description.lower()
        or needle in transaction.category.lower()
    ):
        return False

    wanted_type = _normalize_type_filter(type_filter)
    if wanted_type != ALL and transaction.type.value != wanted_type:
        return False

    if category_filter and category_filter != ALL and transaction.category != category_filter:
        return False

    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    query: str = "",
    type_filter: Union[str, TransactionType, None] = ALL,
    category_filter: Optional[str] = ALL,
) -> list[Transaction]:
    """Subsequence of `transactions` passing the filters, order preserved."""
    return [
        tx for tx in transactions
        if matches_filters(tx, query, type_filter, category_filter)
    ]


def compute_statistics(transactions: Sequence[Transaction]) -> Optional[LedgerStatistics]:
    """
    Aggregate report over every transaction given.

    Returns None for an empty sequence. Averages are 0 when there is
    nothing to average.
    """
    if not transactions:
        return None

    total_income = Decimal("0")
    total_expenses = Decimal("0")
    income_count = 0
    expense_count = 0
    category_totals: dict[str, dict] = defaultdict(
        lambda: {"total": Decimal("0"), "count": 0}
    )

    for tx in transactions:
        if tx.is_income:
            total_income += tx.amount
            income_count += 1
        else:
            total_expenses += tx.amount
            expense_count += 1
            category_totals[tx.category]["total"] += tx.amount
            category_totals[tx.category]["count"] += 1

    per_category = {
        category: CategoryStats(
            total=values["total"],
            count=values["count"],
            average=values["total"] / values["count"],
        )
        for category, values in category_totals.items()
    }

    return LedgerStatistics(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
        average_income=total_income / income_count if income_count else Decimal("0"),
        average_expense=total_expenses / expense_count if expense_count else Decimal("0"),
        transaction_count=len(transactions),
        income_count=income_count,
        expense_count=expense_count,
        per_category=per_category,
    )


def newest_first(
    transactions: Iterable[Transaction],
    limit: Optional[int] = None,
) -> list[Transaction]:
    """
    Order for the list view.

    The sort is stable, so transactions sharing a timestamp keep their
    insertion order.
    """
    ordered = sorted(transactions, key=lambda tx: tx.date, reverse=True)
    if limit is not None:
        return ordered[:limit]
    return ordered


def category_breakdown(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Expense magnitude per category, in first-seen order (chart data)."""
    breakdown: dict[str, Decimal] = {}
    for tx in transactions:
        if tx.is_expense:
            breakdown[tx.category] = breakdown.get(tx.category, Decimal("0")) + tx.amount
    return breakdown


def share_of_total(value: Decimal, total: Decimal) -> Decimal:
    """Percentage of `total`, one decimal place. 0 when total is 0."""
    if not total:
        return Decimal("0.0")
    return (value / total * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """Exactly two decimals, half-up, no grouping (CSV form)."""
    return str(amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def format_currency(
    amount: Decimal,
    symbol: str = "$",
    transaction_type: Optional[TransactionType] = None,
) -> str:
    """
    Display form, e.g. "$1,250.00".

    With a transaction type the sign is shown explicitly: "+$10.00" for
    income and "-$10.00" for expense.
    """
    value = amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if transaction_type is not None:
        sign = "+" if transaction_type == TransactionType.INCOME else "-"
        return f"{sign}{symbol}{abs(value):,.2f}"
    if value < 0:
        return f"-{symbol}{abs(value):,.2f}"
    return f"{symbol}{value:,.2f}"
