"""CSV export and import for the ledger."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Iterator, List, Optional

from finance_tracker.models.transaction import RowRejection, Transaction
from finance_tracker.queries.statistics import format_amount
from finance_tracker.validation import TransactionValidator, parse_date


CSV_HEADER = ["Date", "Description", "Category", "Type", "Amount"]

# Fixed English abbreviations so export does not depend on the process locale
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

_NEEDS_QUOTING = (",", '"', "\n", "\r")


@dataclass
class ParsedCsv:
    """Rows accepted from an import, and the ones skipped with a reason."""

    transactions: List[Transaction] = field(default_factory=list)
    rejected_rows: List[RowRejection] = field(default_factory=list)


def format_csv_date(value: datetime | date) -> str:
    """Calendar date without time, e.g. ``Jan 5, 2024``."""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.day}, {value.year}"


def quote_field(value: str) -> str:
    """Always quote, doubling inner quotes."""
    return '"' + value.replace('"', '""') + '"'


def _quote_if_needed(value: str) -> str:
    if any(ch in value for ch in _NEEDS_QUOTING):
        return quote_field(value)
    return value


def export_csv(transactions: Iterable[Transaction]) -> str:
    """
    Serialize transactions in the order given.

    The description column is always quoted. Category is quoted only when
    it contains a delimiter or a quote.
    """
    lines = [",".join(CSV_HEADER)]
    for tx in transactions:
        lines.append(",".join([
            format_csv_date(tx.date),
            quote_field(tx.description),
            _quote_if_needed(tx.category),
            tx.type.value,
            format_amount(tx.amount),
        ]))
    return "\n".join(lines)


def export_filename(product_name: str, today: Optional[date] = None) -> str:
    """``<product-name>-<YYYY-MM-DD>.csv``"""
    today = today or date.today()
    return f"{product_name}-{today.isoformat()}.csv"


def _iter_rows(text: str) -> Iterator[tuple[int, List[str]]]:
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    for row in reader:
        yield reader.line_num, row


def _is_blank(row: List[str]) -> bool:
    return not any(cell.strip() for cell in row)


def _rejoin_split_date(row: List[str], width: int) -> List[str]:
    """
    Undo the split of an unquoted ``Jan 5, 2024`` date.

    Export writes the date without quotes, so its comma yields one extra
    column. The first two cells are merged only when the result reads as
    a date.
    """
    if len(row) != width + 1:
        return row
    merged = f"{row[0]},{row[1]}"
    if parse_date(merged) is None:
        return row
    return [merged] + row[2:]


def parse_csv(
    text: str,
    validator: Optional[TransactionValidator] = None,
) -> ParsedCsv:
    """
    Parse exported CSV text into new transactions.

    The first non-blank row is the header. Its names are not checked, only
    its column count: rows with a different number of columns are skipped.
    An unquoted exported date such as ``Jan 5, 2024`` is put back together
    before the count is checked, so export output always re-imports.
    Every skipped row is reported with its line number and reason.
    """
    validator = validator or TransactionValidator()
    parsed = ParsedCsv()

    rows = _iter_rows(text)
    header = None
    for _, row in rows:
        if not _is_blank(row):
            header = row
            break
    if header is None:
        return parsed

    for line_number, row in rows:
        if _is_blank(row):
            continue
        row = _rejoin_split_date(row, len(header))
        if len(row) != len(header):
            parsed.rejected_rows.append(RowRejection(
                line_number=line_number,
                reason=f"expected {len(header)} columns, got {len(row)}",
            ))
            continue
        if len(row) < len(CSV_HEADER):
            parsed.rejected_rows.append(RowRejection(
                line_number=line_number,
                reason=f"need at least {len(CSV_HEADER)} columns, got {len(row)}",
            ))
            continue

        date_text, description, category, type_text, amount_text = row[:len(CSV_HEADER)]
        result = validator.validate_csv_row(
            date_text=date_text,
            description=description,
            category=category,
            type_text=type_text,
            amount_text=amount_text,
        )
        if result.is_valid:
            parsed.transactions.append(result.transaction)
        else:
            parsed.rejected_rows.append(RowRejection(
                line_number=line_number,
                reason=result.summary(),
            ))

    return parsed
