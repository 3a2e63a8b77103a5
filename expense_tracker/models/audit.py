"""
Audit Models for Expense Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of imports, reviews and repairs
2. Debugging information when dates or amounts look wrong
3. Ability to reconstruct what a correction run changed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expense_tracker.models.expense import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Statement import
    STATEMENT_IMPORT_STARTED = "statement_import_started"
    STATEMENT_IMPORT_COMPLETED = "statement_import_completed"
    STATEMENT_IMPORT_FAILED = "statement_import_failed"
    ROW_SKIPPED = "row_skipped"
    DATE_UNPARSEABLE = "date_unparseable"
    DATE_FALLBACK_USED = "date_fallback_used"

    # Human review
    EXPENSE_VERIFIED = "expense_verified"
    EXPENSE_REJECTED = "expense_rejected"

    # Batch repair
    CORRECTION_APPLIED = "correction_applied"
    CORRECTION_FAILED = "correction_failed"
    CORRECTION_RUN_COMPLETED = "correction_run_completed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'statement')"
    )
    entity_id: Optional[UUID] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one import)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_reviewed(expense_id, status, correlation_id)
    """

    @staticmethod
    def import_started(
        statement_id: UUID,
        file_name: str,
        source: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_IMPORT_STARTED,
            entity_type="statement",
            entity_id=statement_id,
            correlation_id=correlation_id,
            description=f"Statement import started: {file_name}",
            details={"file_name": file_name, "source": source},
            is_user_action=True,
        )

    @staticmethod
    def import_completed(
        statement_id: UUID,
        imported: int,
        skipped: int,
        unparsed_dates: int,
        failures: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if failures or unparsed_dates else AuditSeverity.INFO,
            entity_type="statement",
            entity_id=statement_id,
            correlation_id=correlation_id,
            description=f"Statement imported: {imported} expenses, {skipped} rows skipped",
            details={
                "imported": imported,
                "skipped": skipped,
                "unparsed_dates": unparsed_dates,
                "failures": failures,
            },
        )

    @staticmethod
    def import_failed(
        statement_id: UUID,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="statement",
            entity_id=statement_id,
            correlation_id=correlation_id,
            description="Statement import failed",
            error_message=error_message,
        )

    @staticmethod
    def row_skipped(
        statement_id: UUID,
        row_number: int,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROW_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="statement",
            entity_id=statement_id,
            correlation_id=correlation_id,
            description=f"Row {row_number} skipped: {reason}",
            details={"row_number": row_number, "reason": reason},
        )

    @staticmethod
    def date_unparseable(
        statement_id: UUID,
        row_number: int,
        raw_date: str,
        policy: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATE_UNPARSEABLE,
            severity=AuditSeverity.WARNING,
            entity_type="statement",
            entity_id=statement_id,
            correlation_id=correlation_id,
            description=f"Row {row_number} has an unreadable date: {raw_date!r}",
            details={"row_number": row_number, "raw_date": raw_date, "policy": policy},
        )

    @staticmethod
    def date_fallback_used(
        expense_id: UUID,
        raw_date: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATE_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Unreadable date {raw_date!r} replaced with import time",
            details={"raw_date": raw_date},
        )

    @staticmethod
    def expense_reviewed(
        expense_id: UUID,
        verified: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.EXPENSE_VERIFIED if verified
                else AuditEventType.EXPENSE_REJECTED
            ),
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="User verified expense" if verified else "User rejected expense",
            is_user_action=True,
        )

    @staticmethod
    def correction_applied(
        expense_id: UUID,
        rule: str,
        before: dict,
        after: dict,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CORRECTION_APPLIED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"{rule}: {reason}",
            details={"rule": rule, "before": before, "after": after},
        )

    @staticmethod
    def correction_failed(
        expense_id: UUID,
        rule: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CORRECTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"{rule}: correction failed",
            error_message=error_message,
            details={"rule": rule},
        )

    @staticmethod
    def correction_run_completed(
        statement_id: UUID,
        rule: str,
        summary: dict,
        dry_run: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CORRECTION_RUN_COMPLETED,
            severity=AuditSeverity.WARNING if summary.get("failures") else AuditSeverity.INFO,
            entity_type="statement",
            entity_id=statement_id,
            correlation_id=correlation_id,
            description=(
                f"{rule}{' (dry run)' if dry_run else ''}: "
                f"{summary.get('corrected', 0)} corrected, {summary.get('skipped', 0)} skipped"
            ),
            details={"rule": rule, "dry_run": dry_run, **summary},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
