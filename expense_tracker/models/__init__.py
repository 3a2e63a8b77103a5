"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    ALLOWED_TRANSITIONS,
    BudgetPeriod,
    Category,
    Expense,
    Partner,
    VerificationStatus,
    utc_now,
)
from expense_tracker.models.dates import (
    DateFormat,
    DateFormatHint,
    DateParseResult,
    DateRange,
    DateRangePreset,
    FormatInference,
    ParsedDate,
    UnparseableDate,
    month_key,
)
from expense_tracker.models.statement import (
    ImportReport,
    ParseOutcome,
    ParsedTransaction,
    SkippedRow,
    Statement,
    StatementStatus,
    UnparsedDatePolicy,
)
from expense_tracker.models.correction import (
    AppliedCorrection,
    CorrectionDecision,
    CorrectionFailure,
    CorrectionReport,
)
from expense_tracker.models.validation import ValidationIssue, ValidationResult
from expense_tracker.models.budget import (
    AlertLevel,
    BudgetAlert,
    BudgetOverview,
    CategorySpending,
    MonthlySummary,
    PartnerTotal,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "ALLOWED_TRANSITIONS",
    "BudgetPeriod",
    "Category",
    "Expense",
    "Partner",
    "VerificationStatus",
    "utc_now",
    # Date models
    "DateFormat",
    "DateFormatHint",
    "DateParseResult",
    "DateRange",
    "DateRangePreset",
    "FormatInference",
    "ParsedDate",
    "UnparseableDate",
    "month_key",
    # Statement models
    "ImportReport",
    "ParseOutcome",
    "ParsedTransaction",
    "SkippedRow",
    "Statement",
    "StatementStatus",
    "UnparsedDatePolicy",
    # Correction models
    "AppliedCorrection",
    "CorrectionDecision",
    "CorrectionFailure",
    "CorrectionReport",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Budget models
    "AlertLevel",
    "BudgetAlert",
    "BudgetOverview",
    "CategorySpending",
    "MonthlySummary",
    "PartnerTotal",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
