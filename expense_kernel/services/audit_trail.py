"""
AuditTrail -- append-only, per-expense log of workflow events.

Responsibility:
    Appends one ApprovalEvent per audited transition and reads an
    expense's events back, in order, for history views.

Architecture position:
    Kernel > Services.  Called by ExpenseWorkflowEngine inside the same
    unit of work as the status change it records.

Invariants enforced:
    - Events are appended, never mutated or deleted (ORM listeners on
      ApprovalEventModel back this up).
    - Each event gets the next per-expense sequence; history is returned
      in ascending sequence order.
    - History is only returned after the expense is verified to belong to
      the active tenant.

Failure modes:
    - ExpenseNotFoundError when reading the history of an absent or
      foreign expense.
"""

from __future__ import annotations

from uuid import UUID

from expense_kernel.domain.authorization import require_valid_context
from expense_kernel.domain.clock import Clock
from expense_kernel.domain.dtos import ApprovalEvent, Expense
from expense_kernel.domain.values import ApprovalAction, RequestContext
from expense_kernel.domain.views import ApprovalEventView
from expense_kernel.exceptions import ExpenseNotFoundError
from expense_kernel.logging_config import get_logger
from expense_kernel.store.contract import DirectoryStore, ExpenseRecordStore

logger = get_logger("services.audit_trail")


class AuditTrail:
    """Append and read approval events."""

    def __init__(
        self,
        expenses: ExpenseRecordStore,
        directory: DirectoryStore,
        clock: Clock,
    ):
        self._expenses = expenses
        self._directory = directory
        self._clock = clock

    def record(
        self,
        ctx: RequestContext,
        expense: Expense,
        action: ApprovalAction,
        comment: str | None = None,
    ) -> ApprovalEvent:
        """Append one event for ``expense``, acted by the caller."""
        event = self._expenses.append_event(
            ApprovalEvent(
                tenant_id=expense.tenant_id,
                expense_id=expense.id,
                actor_id=ctx.user_id,
                action=action,
                comment=comment,
                created_at=self._clock.now(),
            )
        )
        logger.info(
            "audit_event_recorded",
            extra={
                "audit_action": action.value,
                "sequence": event.sequence,
                "event_id": str(event.id),
            },
        )
        return event

    def events(self, ctx: RequestContext, expense_id: UUID) -> list[ApprovalEvent]:
        """Raw events of one expense, in sequence order."""
        if self._expenses.find_by_id(ctx.tenant_id, expense_id) is None:
            raise ExpenseNotFoundError(str(expense_id))
        return self._expenses.find_events(ctx.tenant_id, expense_id)

    def history(self, ctx: RequestContext, expense_id: UUID) -> list[ApprovalEventView]:
        """Events of one expense with actor names, ascending."""
        require_valid_context(ctx)
        events = self.events(ctx, expense_id)
        actors = self._directory.find_users(ctx.tenant_id, {e.actor_id for e in events})
        return [ApprovalEventView.build(e, actors.get(e.actor_id)) for e in events]
