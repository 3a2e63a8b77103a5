"""
In-Memory Storage

Dict-backed implementations of the storage interfaces. Used by the test
suite and for dry runs of repairs against an exported snapshot.

Records are copied on the way in and out so callers can't mutate
stored state behind the storage's back.
"""

from datetime import datetime
from typing import Any, Iterable, Optional
from uuid import UUID

import structlog

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import (
    Category,
    Expense,
    Partner,
    VerificationStatus,
)
from expense_tracker.models.statement import Statement
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StatementStorageInterface,
)


logger = structlog.get_logger(__name__)


class InMemoryExpenseStorage(ExpenseStorageInterface, StatementStorageInterface):
    """Expense, category, partner and statement store kept in dicts."""

    def __init__(
        self,
        categories: Optional[Iterable[Category]] = None,
        partners: Optional[Iterable[Partner]] = None,
        expenses: Optional[Iterable[Expense]] = None,
    ):
        self._categories: dict[UUID, Category] = {c.id: c for c in categories or []}
        self._partners: dict[UUID, Partner] = {p.id: p for p in partners or []}
        self._expenses: dict[UUID, Expense] = {
            e.id: e.model_copy(deep=True) for e in expenses or []
        }
        self._statements: dict[UUID, Statement] = {}

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def create_expense(self, expense: Expense) -> Expense:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense {expense.id} already exists")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return expense.model_copy(deep=True)

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy(deep=True) if expense else None

    async def update_expense(self, expense_id: UUID, changes: dict[str, Any]) -> Expense:
        current = self._expenses.get(expense_id)
        if current is None:
            raise NotFoundError(f"Expense {expense_id} not found")

        # Re-validate so a bad update can't store an invalid record
        updated = Expense.model_validate({**current.model_dump(), **changes})
        self._expenses[expense_id] = updated
        logger.debug("expense_updated", expense_id=str(expense_id), fields=sorted(changes))
        return updated.model_copy(deep=True)

    async def list_expenses(
        self,
        statement_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
        partner_id: Optional[UUID] = None,
        status: Optional[VerificationStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Expense]:
        results = []
        for expense in self._expenses.values():
            if statement_id and expense.statement_id != statement_id:
                continue
            if category_id and expense.category_id != category_id:
                continue
            if partner_id and expense.partner_id != partner_id:
                continue
            if status and expense.verification_status != status:
                continue
            if date_from and expense.date < date_from:
                continue
            if date_to and expense.date > date_to:
                continue
            results.append(expense.model_copy(deep=True))

        results.sort(key=lambda e: (e.date, e.created_at))
        return results

    async def list_categories(self) -> list[Category]:
        return list(self._categories.values())

    async def list_partners(self) -> list[Partner]:
        return list(self._partners.values())

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    async def create_statement(self, statement: Statement) -> Statement:
        if statement.id in self._statements:
            raise DuplicateError(f"Statement {statement.id} already exists")
        self._statements[statement.id] = statement.model_copy(deep=True)
        return statement.model_copy(deep=True)

    async def get_statement(self, statement_id: UUID) -> Optional[Statement]:
        statement = self._statements.get(statement_id)
        return statement.model_copy(deep=True) if statement else None

    async def update_statement(self, statement_id: UUID, changes: dict[str, Any]) -> Statement:
        current = self._statements.get(statement_id)
        if current is None:
            raise NotFoundError(f"Statement {statement_id} not found")
        updated = Statement.model_validate({**current.model_dump(), **changes})
        self._statements[statement_id] = updated
        return updated.model_copy(deep=True)

    async def list_statements(self) -> list[Statement]:
        return sorted(
            (s.model_copy(deep=True) for s in self._statements.values()),
            key=lambda s: s.uploaded_at,
        )


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
