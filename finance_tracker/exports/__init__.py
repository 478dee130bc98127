"""CSV export/import package."""

from finance_tracker.exports.csv_codec import (
    CSV_HEADER,
    ParsedCsv,
    export_csv,
    export_filename,
    format_csv_date,
    parse_csv,
)

__all__ = [
    "CSV_HEADER",
    "ParsedCsv",
    "export_csv",
    "export_filename",
    "format_csv_date",
    "parse_csv",
]
