"""Shared fixtures: reference data and in-memory storage."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from expense_tracker.models.expense import Category, Expense, Partner
from expense_tracker.services.storage import InMemoryAuditStorage, InMemoryExpenseStorage


CATEGORY_NAMES = [
    "Groceries",
    "Eating out",
    "Entertainment",
    "Subscription",
    "Transport",
    "Gifts",
    "Vacation",
    "Supplement/medicine",
]


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def categories() -> list[Category]:
    budgets = {"Groceries": Decimal("300.00"), "Eating out": Decimal("100.00")}
    return [
        Category(name=name, emoji="*", budget=budgets.get(name))
        for name in CATEGORY_NAMES
    ]


@pytest.fixture
def by_name(categories) -> dict[str, Category]:
    return {c.name: c for c in categories}


@pytest.fixture
def partners() -> list[Partner]:
    return [Partner(name="Alex"), Partner(name="Sam")]


@pytest.fixture
def storage(categories, partners) -> InMemoryExpenseStorage:
    return InMemoryExpenseStorage(categories=categories, partners=partners)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def make_expense(categories, partners):
    """Factory for expenses in the first category, paid by the first partner."""
    def _make(**overrides) -> Expense:
        values = {
            "amount": Decimal("10.00"),
            "description": "Test expense",
            "category_id": categories[0].id,
            "partner_id": partners[0].id,
            "date": utc(2025, 6, 10),
        }
        values.update(overrides)
        return Expense(**values)
    return _make
