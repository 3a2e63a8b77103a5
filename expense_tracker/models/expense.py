"""
Core Data Models for Expense Tracker

These models define the schemas for categories, partners, expenses and
budget periods. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: Amounts are Decimal, never float. Budget math is done
in Decimal and only rounded when presented.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class VerificationStatus(str, Enum):
    """
    Review state of an imported expense.

    CRITICAL: Transitions are one-shot. An expense leaves PENDING
    exactly once, to VERIFIED or REJECTED, and never changes again.
    """
    PENDING = "pending"    # Imported, awaiting user review
    VERIFIED = "verified"  # User confirmed the transaction
    REJECTED = "rejected"  # User rejected the transaction


ALLOWED_TRANSITIONS: dict[VerificationStatus, frozenset[VerificationStatus]] = {
    VerificationStatus.PENDING: frozenset(
        {VerificationStatus.VERIFIED, VerificationStatus.REJECTED}
    ),
    VerificationStatus.VERIFIED: frozenset(),
    VerificationStatus.REJECTED: frozenset(),
}


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Category(BaseModel):
    """
    Spending category.

    budget is the monthly limit used for alerts; categories without a
    positive budget never raise alerts.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    emoji: str = Field(default="", max_length=16)
    color: str = Field(default="#888888", max_length=32)
    budget: Optional[Decimal] = Field(
        default=None,
        ge=0,
        decimal_places=2,
        description="Monthly budget limit"
    )

    @property
    def budget_amount(self) -> Decimal:
        return self.budget or Decimal("0")


class Partner(BaseModel):
    """One of the people sharing the expense book."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default="#888888", max_length=32)


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(BaseModel):
    """
    A single transaction record.

    Expenses created from a statement import start PENDING and carry
    their provenance (statement_id, original_amount, source_label) so
    later repairs can be traced back to the raw statement values.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(
        ...,
        decimal_places=2,
        description="Amount spent"
    )
    description: str = Field(..., min_length=1, max_length=500)
    category_id: UUID
    partner_id: UUID
    date: datetime = Field(
        default_factory=utc_now,
        description="When the transaction happened"
    )
    created_at: datetime = Field(default_factory=utc_now)

    # Provenance
    statement_id: Optional[UUID] = None
    original_amount: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Amount string exactly as it appeared in the statement"
    )
    source_label: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Statement source, e.g. 'amex' or 'bank'"
    )

    verification_status: VerificationStatus = Field(
        default=VerificationStatus.PENDING
    )

    @field_validator('date', 'created_at')
    @classmethod
    def normalize_to_utc(cls, v: datetime) -> datetime:
        """Store every instant as aware UTC; naive values are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def can_transition_to(self, status: VerificationStatus) -> bool:
        """Check whether the verification status may move to `status`."""
        return status in ALLOWED_TRANSITIONS[self.verification_status]

    @property
    def is_pending(self) -> bool:
        return self.verification_status == VerificationStatus.PENDING

    @property
    def counts_as_spending(self) -> bool:
        """Rejected expenses are kept for audit but excluded from totals."""
        return self.verification_status != VerificationStatus.REJECTED


class BudgetPeriod(BaseModel):
    """A named budgeting window (e.g. 'Summer 2025'), usable as a dashboard range."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    start_date: datetime
    end_date: datetime
    is_active: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('start_date', 'end_date', 'created_at')
    @classmethod
    def normalize_to_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode='after')
    def validate_dates(self) -> 'BudgetPeriod':
        if self.end_date < self.start_date:
            raise ValueError("Budget period end cannot be before start")
        return self
