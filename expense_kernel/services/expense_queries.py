"""
ExpenseQueries -- tenant-scoped read paths over expenses.

Responsibility:
    The four list views (own, pending approvals, awaiting reimbursement,
    approval history), single-expense reads, and response assembly that
    enriches records with owner, category and actor display data.

Architecture position:
    Kernel > Services.  Read-only: never saves, never appends events.
    Depends on the ExpenseRecordStore and DirectoryStore contracts only.

Invariants enforced:
    - Every query is scoped by ``ctx.tenant_id``; another tenant's record
      is reported as ExpenseNotFoundError, never as ForbiddenError.
    - Pending approvals never include the caller's own expenses.
    - View gates: pending and history need MANAGER/FINANCE/ADMIN,
      awaiting reimbursement needs FINANCE/ADMIN.

Failure modes:
    - ExpenseNotFoundError for an absent or foreign expense id.
    - RoleNotPermittedError when the caller's role does not grant the view.
"""

from __future__ import annotations

from uuid import UUID

from expense_kernel.domain.authorization import (
    APPROVER_ROLES,
    REIMBURSER_ROLES,
    require_role,
    require_valid_context,
)
from expense_kernel.domain.dtos import Expense
from expense_kernel.domain.values import ExpenseStatus, RequestContext
from expense_kernel.domain.views import ExpenseView
from expense_kernel.exceptions import ExpenseNotFoundError
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.store.contract import DirectoryStore, ExpenseRecordStore

logger = get_logger("services.expense_queries")

HISTORY_STATUSES = (
    ExpenseStatus.APPROVED,
    ExpenseStatus.REJECTED,
    ExpenseStatus.REIMBURSED,
)


class ExpenseViewAssembler:
    """Builds ExpenseView records with display data from the same tenant."""

    def __init__(self, directory: DirectoryStore):
        self._directory = directory

    def one(self, expense: Expense) -> ExpenseView:
        return self.many(expense.tenant_id, [expense])[0]

    def many(self, tenant_id: UUID, expenses: list[Expense]) -> list[ExpenseView]:
        users = self._directory.find_users(tenant_id, {e.user_id for e in expenses})
        categories = self._directory.find_categories(
            tenant_id, {e.category_id for e in expenses},
        )
        return [
            ExpenseView.build(e, users.get(e.user_id), categories.get(e.category_id))
            for e in expenses
        ]


class ExpenseQueries:
    """Tenant-scoped expense read views."""

    def __init__(self, expenses: ExpenseRecordStore, directory: DirectoryStore):
        self._expenses = expenses
        self._assembler = ExpenseViewAssembler(directory)

    def load(self, ctx: RequestContext, expense_id: UUID) -> Expense:
        """Tenant-scoped load of one record.

        Raises:
            ExpenseNotFoundError: Absent, or owned by another tenant.
        """
        expense = self._expenses.find_by_id(ctx.tenant_id, expense_id)
        if expense is None:
            raise ExpenseNotFoundError(str(expense_id))
        return expense

    def get(self, ctx: RequestContext, expense_id: UUID) -> ExpenseView:
        """Any member of the tenant may read an expense by id."""
        require_valid_context(ctx)
        return self._assembler.one(self.load(ctx, expense_id))

    def own_expenses(self, ctx: RequestContext) -> list[ExpenseView]:
        require_valid_context(ctx)
        records = self._expenses.find_by_owner(ctx.tenant_id, ctx.user_id)
        return self._assembler.many(ctx.tenant_id, records)

    def pending_approvals(self, ctx: RequestContext) -> list[ExpenseView]:
        """SUBMITTED expenses of other users, newest first."""
        require_valid_context(ctx)
        require_role(ctx, APPROVER_ROLES, "view pending approvals")
        records = self._expenses.find_by_status(
            ctx.tenant_id,
            (ExpenseStatus.SUBMITTED,),
            exclude_user_id=ctx.user_id,
        )
        with LogContext.bind_request(ctx):
            logger.debug("pending_approvals_listed", extra={"count": len(records)})
        return self._assembler.many(ctx.tenant_id, records)

    def awaiting_reimbursement(self, ctx: RequestContext) -> list[ExpenseView]:
        require_valid_context(ctx)
        require_role(ctx, REIMBURSER_ROLES, "view expenses awaiting reimbursement")
        records = self._expenses.find_by_status(ctx.tenant_id, (ExpenseStatus.APPROVED,))
        return self._assembler.many(ctx.tenant_id, records)

    def approval_history(self, ctx: RequestContext) -> list[ExpenseView]:
        """Decided expenses, most recently updated first."""
        require_valid_context(ctx)
        require_role(ctx, APPROVER_ROLES, "view approval history")
        records = self._expenses.find_by_status(
            ctx.tenant_id, HISTORY_STATUSES, order_by="updated_at",
        )
        return self._assembler.many(ctx.tenant_id, records)
