"""
Transaction Validation

DESIGN DECISION: Every way a transaction can enter the ledger goes through
this module:

- FORM INPUT: add_transaction() from the presentation layer
- CSV ROWS: one row at a time during import
- SNAPSHOT RECORDS: one record at a time while rehydrating the ledger

Each check produces a ValidationResult instead of raising. A rejected
candidate never reaches the ledger, and the caller decides whether a
rejection is shown to the user (form input) or silently counted (CSV rows,
snapshot records).

IMPORTANT: Validation never guesses. A value that cannot be read exactly
is rejected and reported.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import ValidationError

from finance_tracker.models.transaction import (
    MAX_AMOUNT,
    AddTransactionResult,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    utc_now,
)


# Formats accepted for dates in imported CSV files, tried in order.
# The first one is what export writes.
CSV_DATE_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d %b %Y",
)

SNAPSHOT_REQUIRED_FIELDS = ("id", "description", "amount", "category", "type", "date")


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Read an amount from form input, CSV text or a JSON value.

    Returns None for anything that is not a finite number. Booleans are
    not numbers here even though Python treats them as ints.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not amount.is_finite():
        return None
    return amount


def parse_transaction_type(value: Any) -> Optional[TransactionType]:
    """Case-insensitive lookup of the type discriminant."""
    if isinstance(value, TransactionType):
        return value
    if not isinstance(value, str):
        return None
    try:
        return TransactionType(value.strip().lower())
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[datetime]:
    """
    Read a date from CSV text or a snapshot value.

    Calendar dates become midnight UTC. Naive timestamps are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parsed = None
        for fmt in CSV_DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        if parsed is None:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # an offset can push the UTC value outside years 1..9999
        return None


def _missing(field: str, label: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="missing",
        message=f"{label} is required",
        suggested_fix=fix,
    )


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _too_large(amount: Decimal) -> ValidationIssue:
    return ValidationIssue(
        field="amount",
        issue_type="out_of_range",
        message=f"Amount {amount} is larger than the maximum of {MAX_AMOUNT}",
    )


class TransactionValidator:
    """
    Validates candidate transactions from every entry point.

    Stateless apart from the clock, which tests can replace.
    """

    def __init__(self, clock=utc_now):
        self._clock = clock

    def _build(
        self,
        issues: list[ValidationIssue],
        **fields: Any,
    ) -> ValidationResult:
        """Build the transaction if no errors were found so far."""
        if any(issue.severity == "error" for issue in issues):
            return ValidationResult(is_valid=False, issues=issues)

        try:
            transaction = Transaction(**fields)
        except ValidationError as e:
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "transaction"
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_value",
                    message=f"{field}: {error['msg']}",
                ))
            return ValidationResult(is_valid=False, issues=issues)

        return ValidationResult(is_valid=True, transaction=transaction, issues=issues)

    def validate_new(
        self,
        description: Any,
        amount: Any,
        category: Any,
        transaction_type: Any,
    ) -> ValidationResult:
        """
        Validate form input for a new transaction.

        All four fields are required and the amount must be a positive,
        finite number. `id` and `date` are assigned here, not by the caller.
        """
        issues = []

        description_text = _text(description)
        if not description_text:
            issues.append(_missing(
                "description", "Description",
                "Describe what the money was for",
            ))

        parsed_amount = parse_amount(amount)
        if amount is None or (isinstance(amount, str) and not amount.strip()):
            issues.append(_missing("amount", "Amount"))
        elif parsed_amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="not_finite",
                message=f"Amount ({amount!r}) is not a valid number",
                suggested_fix="Enter a number such as 12.50",
            ))
        elif parsed_amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                suggested_fix="Choose income or expense with the type field instead of a sign",
            ))
        elif parsed_amount > MAX_AMOUNT:
            issues.append(_too_large(parsed_amount))

        category_text = _text(category)
        if not category_text:
            issues.append(_missing("category", "Category"))

        parsed_type = parse_transaction_type(transaction_type)
        if not _text(transaction_type):
            issues.append(_missing("type", "Type"))
        elif parsed_type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Type must be 'income' or 'expense', got {transaction_type!r}",
            ))

        return self._build(
            issues,
            id=uuid4(),
            description=description_text,
            amount=parsed_amount,
            category=category_text,
            type=parsed_type,
            date=self._clock(),
        )

    def validate_csv_row(
        self,
        date_text: str,
        description: str,
        category: str,
        type_text: str,
        amount_text: str,
    ) -> ValidationResult:
        """
        Validate one imported CSV row.

        Signed amounts from older exports are accepted; only the magnitude
        is kept because the type column already says which way money moved.
        """
        issues = []

        parsed_date = parse_date(date_text)
        if parsed_date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=f"Unreadable date {date_text!r}",
            ))

        description_text = _text(description)
        if not description_text:
            issues.append(_missing("description", "Description"))

        parsed_amount = parse_amount(amount_text)
        if parsed_amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="not_finite",
                message=f"Amount {amount_text!r} is not a finite number",
            ))
        elif abs(parsed_amount) > MAX_AMOUNT:
            issues.append(_too_large(abs(parsed_amount)))

        category_text = _text(category)
        if not category_text:
            issues.append(_missing("category", "Category"))

        parsed_type = parse_transaction_type(type_text)
        if parsed_type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Type must be 'income' or 'expense', got {type_text!r}",
            ))

        return self._build(
            issues,
            id=uuid4(),
            description=description_text,
            amount=abs(parsed_amount) if parsed_amount is not None else None,
            category=category_text,
            type=parsed_type,
            date=parsed_date,
        )

    def validate_snapshot_record(
        self,
        record: Any,
        legacy: bool = False,
    ) -> ValidationResult:
        """
        Schema check for one persisted record.

        Every required field must be present with the right type. With
        `legacy=True` the unversioned layout is accepted too: signed
        amounts become magnitudes and non-UUID ids get a fresh UUID.
        """
        if not isinstance(record, dict):
            return ValidationResult(
                is_valid=False,
                issues=[ValidationIssue(
                    field="record",
                    issue_type="invalid_type",
                    message=f"Record is a {type(record).__name__}, not an object",
                )],
            )

        issues = []
        for field in SNAPSHOT_REQUIRED_FIELDS:
            value = record.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                issues.append(_missing(field, field.capitalize()))
        if issues:
            return ValidationResult(is_valid=False, issues=issues)

        raw_id = record["id"]
        try:
            record_id = UUID(str(raw_id))
        except ValueError:
            if not legacy:
                issues.append(ValidationIssue(
                    field="id",
                    issue_type="invalid_format",
                    message=f"Id {raw_id!r} is not a UUID",
                ))
            record_id = uuid4()

        raw_amount = record["amount"]
        if legacy and isinstance(raw_amount, str):
            # the legacy layout only ever stored JSON numbers
            parsed_amount = None
        else:
            parsed_amount = parse_amount(raw_amount)
        if parsed_amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="not_finite",
                message=f"Amount {raw_amount!r} is not a finite number",
            ))
        elif legacy:
            parsed_amount = abs(parsed_amount)
        elif parsed_amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Stored amount must not be negative",
            ))
        if parsed_amount is not None and parsed_amount > MAX_AMOUNT:
            issues.append(_too_large(parsed_amount))

        parsed_type = parse_transaction_type(record["type"])
        if parsed_type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Unknown type {record['type']!r}",
            ))

        parsed_date = parse_date(record["date"])
        if parsed_date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=f"Unreadable date {record['date']!r}",
            ))

        for field in ("description", "category"):
            if not isinstance(record[field], str):
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_type",
                    message=f"{field.capitalize()} must be a string",
                ))

        return self._build(
            issues,
            id=record_id,
            description=record["description"],
            amount=parsed_amount,
            category=record["category"],
            type=parsed_type,
            date=parsed_date,
        )

    def get_user_friendly_summary(
        self,
        result: Union[ValidationResult, AddTransactionResult],
    ) -> str:
        """
        Short message for the add form.

        Only the problems actually found are listed, so a bad amount is
        never reported as a missing field.
        """
        errors = [issue for issue in result.issues if issue.severity == "error"]
        if not errors:
            return "✅ Transaction looks good."

        lines = ["❌ Please fix the following:"]
        for issue in errors:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")
        return "\n".join(lines)
