"""
Core Data Models for the Finance Tracker

These models define the schemas for everything the ledger holds or returns.
They are designed to:
1. Keep the sign of an amount in exactly one place (the type discriminant)
2. Report validation problems as data, not exceptions
3. Be serializable for snapshots, CSV and the audit trail

DESIGN DECISION: Amounts are stored as an unsigned Decimal magnitude.
Whether money came in or went out is carried only by `type`, and the signed
value is derived from it when needed.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """
    Discriminant for a transaction.

    The set is closed: a transaction is either money received or money spent.
    """
    INCOME = "income"
    EXPENSE = "expense"


# Offered by the add form. Categories are open-ended; anything non-empty is
# accepted by the ledger.
DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Salary",
    "Freelance",
    "Investment",
    "Food",
    "Transportation",
    "Bills",
    "Shopping",
    "Entertainment",
    "Healthcare",
    "Education",
    "Other",
)

# Largest magnitude a single transaction may carry. Rounding it or a sum of
# many of them to cents stays inside the default 28-digit decimal context.
MAX_AMOUNT = Decimal("999999999999.99")


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    One recorded income or expense event.

    `id` and `date` are assigned by the ledger, never by the caller.
    There is no update operation: a transaction is immutable once created.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Free-text label (may be empty)"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        le=MAX_AMOUNT,
        allow_inf_nan=False,
        description="Unsigned magnitude"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category label"
    )
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )
    date: datetime = Field(
        default_factory=utc_now,
        description="When the transaction was recorded (UTC)"
    )

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def signed_amount(self) -> Decimal:
        """Positive for income, negative for expense."""
        return self.amount if self.is_income else -self.amount

    @property
    def display_label(self) -> str:
        """Description, or the category when the description is empty."""
        return self.description or self.category


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'not_finite')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Outcome of validating one candidate transaction.

    When `is_valid` is True, `transaction` holds the accepted, normalized
    transaction. Otherwise `issues` explains why it was rejected.
    """

    is_valid: bool
    transaction: Optional[Transaction] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def summary(self) -> str:
        """All error messages joined on one line."""
        return "; ".join(
            issue.message for issue in self.issues if issue.severity == "error"
        )


# =============================================================================
# STATISTICS MODELS
# =============================================================================

class CategoryStats(BaseModel):
    """Expense totals for one category."""

    total: Decimal
    count: int = Field(ge=0)
    average: Decimal


class LedgerStatistics(BaseModel):
    """
    Aggregate report over the full ledger.

    Only produced for a non-empty ledger; an empty ledger has no report at
    all, so "no data" is never confused with "everything is zero".
    """

    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    average_income: Decimal
    average_expense: Decimal
    transaction_count: int = Field(ge=1)
    income_count: int = Field(ge=0)
    expense_count: int = Field(ge=0)
    per_category: dict[str, CategoryStats] = Field(
        default_factory=dict,
        description="Expense-only breakdown by category"
    )


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class MutationResult(BaseModel):
    """
    Result of any operation that may change the ledger.

    `persisted` is False when the change only exists in memory because the
    store could not be written; `warning` then says why.
    """

    changed: bool
    persisted: bool = False
    warning: Optional[str] = None


class AddTransactionResult(MutationResult):
    """Result of adding one transaction."""

    transaction: Optional[Transaction] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.transaction is not None


class RowRejection(BaseModel):
    """A CSV row that was skipped during import."""

    line_number: int = Field(ge=1)
    reason: str


class ImportResult(MutationResult):
    """Result of a CSV import."""

    imported_count: int = Field(default=0, ge=0)
    rejected_rows: list[RowRejection] = Field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.rejected_rows)


class PersistenceResult(BaseModel):
    """Result of writing the snapshot to the blob store."""

    success: bool
    error_message: Optional[str] = None
    bytes_written: int = Field(default=0, ge=0)


class SnapshotLoadResult(BaseModel):
    """Result of rehydrating the ledger from the blob store."""

    success: bool
    loaded_count: int = Field(default=0, ge=0)
    dropped_count: int = Field(default=0, ge=0)
    schema_version: Optional[int] = None
    error_message: Optional[str] = None
    drop_reasons: list[str] = Field(default_factory=list)
