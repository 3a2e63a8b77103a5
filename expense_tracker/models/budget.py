"""
Budget Analytics Models

Output shapes of the dashboard calculations. All money values are
Decimal rounded to cents; percentages are plain floats.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from expense_tracker.models.dates import DateRange


class AlertLevel(str, Enum):
    """How close a category is to its budget."""
    SUCCESS = "success"  # Well within budget
    INFO = "info"        # Half the budget used
    WARNING = "warning"  # Most of the budget used
    DANGER = "danger"    # Over budget


class CategorySpending(BaseModel):
    """Spending of one category over a date range."""

    category_id: UUID
    category_name: str
    emoji: str = ""
    total: Decimal
    count: int = Field(ge=0)
    budget: Decimal = Field(
        default=Decimal("0"),
        description="Monthly budget of the category"
    )
    prorated_budget: Decimal = Field(
        default=Decimal("0"),
        description="Monthly budget scaled to the length of the range"
    )
    percentage: Optional[float] = Field(
        default=None,
        description="Share of the prorated budget spent; None without a budget"
    )

    @property
    def remaining(self) -> Decimal:
        return self.prorated_budget - self.total

    @property
    def is_over_budget(self) -> bool:
        return self.prorated_budget > 0 and self.total > self.prorated_budget


class PartnerTotal(BaseModel):
    partner_id: UUID
    partner_name: str
    total: Decimal
    count: int = Field(ge=0)


class MonthlySummary(BaseModel):
    """Totals of one calendar month."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    total: Decimal
    expense_count: int = Field(ge=0)
    by_partner: list[PartnerTotal] = Field(default_factory=list)
    by_category: list[CategorySpending] = Field(
        default_factory=list,
        description="Categories with spending in the month"
    )


class BudgetAlert(BaseModel):
    """Budget status of one category for one month."""

    category_id: UUID
    category_name: str
    emoji: str = ""
    spent: Decimal
    budget: Decimal
    percentage: float
    level: AlertLevel
    message: str

    @property
    def remaining(self) -> Decimal:
        return self.budget - self.spent


class BudgetOverview(BaseModel):
    """Dashboard headline numbers for a date range."""

    date_range: DateRange
    total_spent: Decimal
    total_budget: Decimal
    prorated_budget: Decimal
    expense_count: int = Field(ge=0)
    pending_count: int = Field(ge=0)

    @property
    def remaining(self) -> Decimal:
        return self.prorated_budget - self.total_spent

    @property
    def is_over_budget(self) -> bool:
        return self.remaining < 0
