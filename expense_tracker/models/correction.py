"""
Correction Models

A correction rule looks at one stored expense and either leaves it
alone or proposes a CorrectionDecision. The runner turns decisions into
updates and reports the outcome as a CorrectionReport.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from expense_tracker.models.expense import utc_now


class CorrectionDecision(BaseModel):
    """
    Replacement values a rule proposes for one expense.

    Only the fields that are set are written.
    """

    date: Optional[datetime] = None
    amount: Optional[Decimal] = None
    reason: str = Field(..., min_length=1)

    def as_update(self) -> dict:
        update = {}
        if self.date is not None:
            update["date"] = self.date
        if self.amount is not None:
            update["amount"] = self.amount
        return update


class AppliedCorrection(BaseModel):
    """A correction that was written (or would be, on a dry run)."""

    expense_id: UUID
    before: dict
    after: dict
    reason: str


class CorrectionFailure(BaseModel):
    """An expense the rule could not decide on, or whose update failed after all retries."""

    expense_id: UUID
    error: str
    attempted: dict


class CorrectionReport(BaseModel):
    """
    Structured outcome of one correction run.

    corrected: records updated (or that would be, when dry_run)
    skipped:   records the rule left alone or that already held the value
    failures:  records the rule or the update failed on; earlier updates are NOT rolled back
    """

    statement_id: UUID
    rule: str
    dry_run: bool = False
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    examined: int = Field(default=0, ge=0)
    corrected: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    failures: list[CorrectionFailure] = Field(default_factory=list)
    applied: list[AppliedCorrection] = Field(default_factory=list)

    month_distribution_before: dict[str, int] = Field(default_factory=dict)
    month_distribution_after: dict[str, int] = Field(default_factory=dict)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def is_noop(self) -> bool:
        return self.corrected == 0 and not self.failures

    def summary(self) -> dict:
        return {
            "corrected": self.corrected,
            "skipped": self.skipped,
            "failures": [f.model_dump(mode="json") for f in self.failures],
        }
