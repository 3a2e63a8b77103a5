"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep business logic decoupled from the relational store
2. Use in-memory storage for testing and one-off repair runs
3. Add caching layers transparently

The interface is intentionally simple - we're not building a full ORM.
Just the operations import, review, repair and dashboards need.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import (
    Category,
    Expense,
    Partner,
    VerificationStatus,
)
from expense_tracker.models.statement import Statement


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (PostgreSQL, SQLite, memory)
    must implement these methods.
    """

    @abstractmethod
    async def create_expense(self, expense: Expense) -> Expense:
        """
        Persist a new expense.

        Raises:
            DuplicateError: If an expense with the same id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """Return the expense, or None if it does not exist."""
        pass

    @abstractmethod
    async def update_expense(self, expense_id: UUID, changes: dict[str, Any]) -> Expense:
        """
        Apply field changes to one expense and return the updated record.

        Raises:
            NotFoundError: If the expense doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        statement_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
        partner_id: Optional[UUID] = None,
        status: Optional[VerificationStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Expense]:
        """
        List expenses with optional filters, oldest first.

        date_from and date_to are inclusive.
        """
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def list_partners(self) -> list[Partner]:
        pass


class StatementStorageInterface(ABC):
    """Abstract interface for uploaded statement records."""

    @abstractmethod
    async def create_statement(self, statement: Statement) -> Statement:
        pass

    @abstractmethod
    async def get_statement(self, statement_id: UUID) -> Optional[Statement]:
        pass

    @abstractmethod
    async def update_statement(self, statement_id: UUID, changes: dict[str, Any]) -> Statement:
        """
        Raises:
            NotFoundError: If the statement doesn't exist
        """
        pass

    @abstractmethod
    async def list_statements(self) -> list[Statement]:
        """All statements, oldest upload first."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one flow, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """All events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
