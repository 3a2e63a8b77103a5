"""
Statement Import Models

A Statement is an uploaded financial document; each of its CSV rows
becomes a ParsedTransaction and then a pending Expense.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models.dates import DateParseResult, FormatInference
from expense_tracker.models.expense import utc_now
from expense_tracker.models.validation import ValidationResult


class StatementStatus(str, Enum):
    """Processing state of an uploaded statement."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class UnparsedDatePolicy(str, Enum):
    """
    What the importer does with a row whose date cannot be read.

    IMPORT_AS_NOW reproduces the old behavior (stamp the row with the
    import time) but every such row is still listed in the report.
    """
    SKIP = "skip"
    IMPORT_AS_NOW = "import_as_now"


class Statement(BaseModel):
    """An uploaded statement and its processing progress."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(default="csv", max_length=16)
    source: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Statement source, e.g. 'amex', 'chase', 'bank'"
    )
    uploaded_at: datetime = Field(default_factory=utc_now)
    processed_at: Optional[datetime] = None
    status: StatementStatus = StatementStatus.PENDING
    total_transactions: Optional[int] = Field(default=None, ge=0)
    processed_transactions: Optional[int] = Field(default=None, ge=0)
    error_message: Optional[str] = None


class ParsedTransaction(BaseModel):
    """One statement row after parsing, before it is stored."""

    row_number: int = Field(..., ge=1, description="1-based line number in the file")
    raw_date: str
    date_result: DateParseResult
    amount: Decimal = Field(..., ge=0)
    description: str
    original_amount: str
    suggested_category_id: Optional[UUID] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def has_date(self) -> bool:
        return self.date_result.is_parsed


class SkippedRow(BaseModel):
    """A statement row that did not become an expense."""

    row_number: int = Field(..., ge=1)
    line: str
    reason: str


class ParseOutcome(BaseModel):
    """Everything the CSV parser produced for one statement."""

    transactions: list[ParsedTransaction] = Field(default_factory=list)
    skipped: list[SkippedRow] = Field(default_factory=list)
    inference: Optional[FormatInference] = None


class ImportReport(BaseModel):
    """
    Result of importing one statement.

    Returned to the caller instead of being printed; nothing about the
    import is only visible in a console.
    """

    statement_id: UUID
    status: StatementStatus
    total_transactions: int = Field(default=0, ge=0)
    imported: int = Field(default=0, ge=0)
    skipped: list[SkippedRow] = Field(default_factory=list)
    unparsed_dates: list[SkippedRow] = Field(
        default_factory=list,
        description="Rows whose date could not be read (skipped or stamped with import time)"
    )
    failures: list[str] = Field(default_factory=list)
    expense_ids: list[UUID] = Field(default_factory=list)
    validation: list[ValidationResult] = Field(
        default_factory=list,
        description="Validation results of imported rows that raised any issue"
    )
    inference: Optional[FormatInference] = None

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
