"""
Expense Verification

Imported expenses wait in PENDING until a person verifies or rejects
them. The decision is final: a verified or rejected expense cannot be
reviewed again.
"""

from typing import Optional, Union
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.expense import Expense, VerificationStatus
from expense_tracker.services.storage import ExpenseStorageInterface, NotFoundError


logger = structlog.get_logger(__name__)

ACTIONS: dict[str, VerificationStatus] = {
    "verify": VerificationStatus.VERIFIED,
    "verified": VerificationStatus.VERIFIED,
    "reject": VerificationStatus.REJECTED,
    "rejected": VerificationStatus.REJECTED,
}


class InvalidVerificationActionError(ValueError):
    """The requested review action is not verify or reject."""
    pass


class InvalidTransitionError(ValueError):
    """The expense was already reviewed."""

    def __init__(self, expense_id: UUID, current: VerificationStatus, requested: VerificationStatus):
        self.expense_id = expense_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Expense {expense_id} is {current.value} and cannot become {requested.value}"
        )


def resolve_action(action: Union[str, VerificationStatus]) -> VerificationStatus:
    """Map a review action ('verify', 'reject' or a status) to its target status."""
    key = action.value if isinstance(action, VerificationStatus) else str(action).strip().lower()
    status = ACTIONS.get(key)
    if status is None:
        raise InvalidVerificationActionError(
            f"Unknown verification action {action!r}; expected 'verify' or 'reject'"
        )
    return status


class VerificationService:
    """Applies review decisions to pending expenses."""

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def apply(
        self,
        expense_id: UUID,
        action: Union[str, VerificationStatus],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Verify or reject one pending expense.

        Raises:
            InvalidVerificationActionError: If action is not verify/reject
            NotFoundError: If the expense does not exist
            InvalidTransitionError: If the expense is no longer pending
        """
        target = resolve_action(action)

        expense = await self._storage.get_expense(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense {expense_id} not found")

        if not expense.can_transition_to(target):
            raise InvalidTransitionError(expense_id, expense.verification_status, target)

        updated = await self._storage.update_expense(
            expense_id,
            {"verification_status": target},
        )

        logger.info("expense_reviewed", expense_id=str(expense_id), status=target.value)
        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.expense_reviewed(
                expense_id=expense_id,
                verified=target == VerificationStatus.VERIFIED,
                correlation_id=correlation_id,
            ))
        return updated

    async def pending_for_statement(self, statement_id: UUID) -> list[Expense]:
        """The review queue of one statement, oldest first."""
        return await self._storage.list_expenses(
            statement_id=statement_id,
            status=VerificationStatus.PENDING,
        )
