"""
Two-Stage Transaction Validation

STAGE 1 - SCHEMA VALIDATION:
- Amount present and non-zero
- Description present
- Date readable

STAGE 2 - SEMANTIC VALIDATION:
- Future dates (the typical symptom of swapped day/month fields)
- Very old dates
- Ambiguous day/month order
- Absurd amounts

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the reviewer (or a correction rule) can act.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from expense_tracker.config import ImportSettings, get_settings
from expense_tracker.models.dates import DateFormat, ParsedDate
from expense_tracker.models.statement import ParsedTransaction
from expense_tracker.models.validation import ValidationIssue, ValidationResult


class TransactionValidator:
    """
    Validates parsed statement transactions through a two-stage pipeline.

    Stage 2 only runs when stage 1 found no errors.
    """

    def __init__(
        self,
        settings: Optional[ImportSettings] = None,
        today: Optional[date] = None,
    ):
        """
        Args:
            settings: Import thresholds. Defaults to the global settings.
            today: Reference date for future/old checks (for tests).
        """
        self._settings = settings or get_settings().imports
        self._today = today

    def _validate_schema(
        self,
        tx: ParsedTransaction,
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 1: required values. Returns (is_valid, issues)."""
        issues = []

        if tx.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message=f"Amount {tx.original_amount!r} is zero or unreadable",
                severity="error",
            ))

        if not tx.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Transaction has no description",
                severity="error",
            ))

        if not tx.has_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="unparseable",
                message=f"Date {tx.raw_date!r} could not be read: {tx.date_result.reason}",
                severity="error",
                suggested_fix="Set the statement date format explicitly and re-import",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        tx: ParsedTransaction,
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 2: plausibility. Returns (is_valid, issues)."""
        issues = []
        today = self._today or date.today()
        result = tx.date_result

        if isinstance(result, ParsedDate):
            max_future = today + timedelta(days=self._settings.future_date_tolerance_days)
            if result.value > max_future:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message=f"Transaction date ({result.value}) is in the future",
                    severity="warning",
                    suggested_fix="Day and month may be swapped; check the statement format",
                ))

            oldest = today - timedelta(days=self._settings.max_date_age_days)
            if result.value < oldest:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="suspicious_date",
                    message=f"Transaction date ({result.value}) seems unusually old",
                    severity="warning",
                ))

            if result.ambiguous:
                reading = "free-form text" if result.format == DateFormat.FREEFORM else "day-first"
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="ambiguous_date",
                    message=f"Date {tx.raw_date!r} was read as {reading} ({result.value})",
                    severity="info",
                ))

        if tx.amount > Decimal(str(self._settings.max_amount)):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount {tx.amount} is unusually large",
                severity="warning",
                suggested_fix="Check the decimal separator of the statement",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(self, tx: ParsedTransaction) -> ValidationResult:
        """Run both stages for one transaction."""
        schema_valid, issues = self._validate_schema(tx)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(tx)
            issues.extend(semantic_issues)

        return ValidationResult(
            row_number=tx.row_number,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=issues,
        )

    def validate_all(self, transactions: list[ParsedTransaction]) -> list[ValidationResult]:
        return [self.validate(tx) for tx in transactions]
