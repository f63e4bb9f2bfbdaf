"""
ExpenseWorkflowEngine -- executes expense status transitions.

Responsibility:
    Create, update, submit, approve, reject, reimburse and delete
    expenses.  Each operation validates its input, checks the caller's role,
    loads the record scoped to the caller's tenant, checks ownership and
    the source status against EXPENSE_WORKFLOW, mutates, saves with a
    compare-and-swap, and appends the audit event the transition emits.

Architecture position:
    Kernel > Services -- imperative shell around the pure transition
    table in ``domain.workflow``.  Stateless between calls; all durable
    state lives behind the record store contracts.  Flushes only; the
    caller's ``session_scope()`` commits or rolls back.

Invariants enforced:
    - Check order: input validation, role guard, tenant-scoped load,
      ownership guard, state guard, mutation.  Nothing is written until
      every check has passed.
    - The tenant id always comes from the RequestContext.  Payloads carry
      no tenant, owner or status.
    - Approve and reject are refused to the expense owner for every role.
    - Every audited transition appends exactly one event in the same unit
      of work as its status change.  Create, update and delete append none.
    - Approver and reimburser names are snapshotted onto the record.
    - updated_at is stamped on every mutation from the injected Clock.

Failure modes:
    - ValidationFailedError: malformed payload or rejection reason.
    - RoleNotPermittedError / NotOwnerError / SelfApprovalError /
      InactivePrincipalError: authorization failed.
    - ExpenseNotFoundError / CategoryNotFoundError: absent or foreign id.
    - InvalidTransitionError: action not legal from the current status.
    - OptimisticLockError: the record changed since it was loaded.  The
      engine does not retry; the caller may reload and try again.

Audit relevance:
    Logs ``expense_<action>`` on success and ``expense_operation_denied``
    with the error code on every refused operation.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from uuid import UUID, uuid4

from expense_kernel.domain.authorization import (
    APPROVER_ROLES,
    REIMBURSER_ROLES,
    require_not_owner,
    require_owner,
    require_role,
    require_valid_context,
)
from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.domain.dtos import Expense, ExpenseDraft
from expense_kernel.domain.validation import validate_draft, validate_rejection_reason
from expense_kernel.domain.values import RequestContext
from expense_kernel.domain.views import ExpenseView
from expense_kernel.domain.workflow import (
    EXPENSE_WORKFLOW,
    Transition,
    WorkflowAction,
    resolve_transition,
)
from expense_kernel.exceptions import CategoryNotFoundError, ExpenseKernelError
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.services.audit_trail import AuditTrail
from expense_kernel.services.expense_queries import ExpenseQueries, ExpenseViewAssembler
from expense_kernel.store.contract import DirectoryStore, ExpenseRecordStore

logger = get_logger("services.expense_workflow")


class ExpenseWorkflowEngine:
    """
    The expense state machine, applied to stored records.

    Contract:
        Every public method takes the RequestContext as its first argument
        and returns an ExpenseView (delete returns None).
    """

    def __init__(
        self,
        expenses: ExpenseRecordStore,
        directory: DirectoryStore,
        clock: Clock | None = None,
        audit: AuditTrail | None = None,
    ):
        self._expenses = expenses
        self._directory = directory
        self._clock = clock or SystemClock()
        self._audit = audit or AuditTrail(expenses, directory, self._clock)
        self._queries = ExpenseQueries(expenses, directory)
        self._assembler = ExpenseViewAssembler(directory)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(
        self,
        ctx: RequestContext,
        action: WorkflowAction,
        expense_id: UUID | None = None,
    ) -> Iterator[None]:
        with LogContext.bind_request(ctx, action=action.value, expense_id=expense_id):
            try:
                require_valid_context(ctx)
                yield
            except ExpenseKernelError as exc:
                logger.warning(
                    "expense_operation_denied",
                    extra={"error_code": exc.code, "reason": str(exc)},
                )
                raise

    def _require_category(self, ctx: RequestContext, category_id: UUID) -> None:
        if self._directory.get_category(ctx.tenant_id, category_id) is None:
            raise CategoryNotFoundError(str(category_id))

    def _actor_name(self, ctx: RequestContext) -> str | None:
        if ctx.principal.name:
            return ctx.principal.name
        user = self._directory.get_user(ctx.tenant_id, ctx.user_id)
        return user.name if user else None

    def _commit_transition(
        self,
        ctx: RequestContext,
        expense: Expense,
        transition: Transition,
        comment: str | None = None,
        **changes,
    ) -> Expense:
        """Save the mutated record and append the event it emits."""
        saved = self._expenses.save(
            replace(
                expense,
                status=transition.to_state,
                updated_at=self._clock.now(),
                **changes,
            )
        )
        if transition.is_audited:
            self._audit.record(ctx, saved, transition.audit_action, comment)
        logger.info(
            f"expense_{transition.action.value}",
            extra={
                "from_status": expense.status.value,
                "to_status": saved.status.value,
                "version": saved.version,
            },
        )
        return saved

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, ctx: RequestContext, expense_id: UUID) -> ExpenseView:
        return self._queries.get(ctx, expense_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create(self, ctx: RequestContext, draft: ExpenseDraft) -> ExpenseView:
        """Create a DRAFT expense owned by the caller.  Not audited."""
        with self._operation(ctx, WorkflowAction.CREATE):
            clean = validate_draft(draft)
            self._require_category(ctx, clean.category_id)
            transition = EXPENSE_WORKFLOW.transition_for(WorkflowAction.CREATE)

            now = self._clock.now()
            saved = self._expenses.save(
                Expense(
                    id=uuid4(),
                    tenant_id=ctx.tenant_id,
                    user_id=ctx.user_id,
                    category_id=clean.category_id,
                    title=clean.title,
                    description=clean.description,
                    amount=clean.amount,
                    expense_date=clean.expense_date,
                    receipt_url=clean.receipt_url,
                    status=transition.to_state,
                    created_at=now,
                    updated_at=now,
                )
            )
            with LogContext.bind(expense_id=saved.id):
                logger.info(
                    "expense_created",
                    extra={"amount": saved.amount, "category_id": str(saved.category_id)},
                )
            return self._assembler.one(saved)

    def update(
        self, ctx: RequestContext, expense_id: UUID, draft: ExpenseDraft,
    ) -> ExpenseView:
        """Replace the editable fields of a DRAFT or REJECTED expense.

        A REJECTED expense returns to DRAFT and its rejection reason is
        cleared.  Not audited.
        """
        with self._operation(ctx, WorkflowAction.UPDATE, expense_id):
            clean = validate_draft(draft)
            expense = self._queries.load(ctx, expense_id)
            require_owner(ctx, expense.user_id, expense.id, WorkflowAction.UPDATE.value)
            transition = resolve_transition(WorkflowAction.UPDATE, expense.status)
            self._require_category(ctx, clean.category_id)

            changes = dict(
                category_id=clean.category_id,
                title=clean.title,
                description=clean.description,
                amount=clean.amount,
                expense_date=clean.expense_date,
                receipt_url=clean.receipt_url,
            )
            if transition.action == WorkflowAction.REVISE:
                changes["rejection_reason"] = None
            saved = self._commit_transition(ctx, expense, transition, **changes)
            return self._assembler.one(saved)

    def submit(self, ctx: RequestContext, expense_id: UUID) -> ExpenseView:
        with self._operation(ctx, WorkflowAction.SUBMIT, expense_id):
            expense = self._queries.load(ctx, expense_id)
            require_owner(ctx, expense.user_id, expense.id, WorkflowAction.SUBMIT.value)
            transition = resolve_transition(WorkflowAction.SUBMIT, expense.status)
            saved = self._commit_transition(
                ctx, expense, transition, submitted_at=self._clock.now(),
            )
            return self._assembler.one(saved)

    def approve(self, ctx: RequestContext, expense_id: UUID) -> ExpenseView:
        """Approve a SUBMITTED expense of another user."""
        with self._operation(ctx, WorkflowAction.APPROVE, expense_id):
            require_role(ctx, APPROVER_ROLES, WorkflowAction.APPROVE.value)
            expense = self._queries.load(ctx, expense_id)
            require_not_owner(ctx, expense.user_id, expense.id, WorkflowAction.APPROVE.value)
            transition = resolve_transition(WorkflowAction.APPROVE, expense.status)
            saved = self._commit_transition(
                ctx,
                expense,
                transition,
                approved_at=self._clock.now(),
                approved_by_id=ctx.user_id,
                approved_by_name=self._actor_name(ctx),
            )
            return self._assembler.one(saved)

    def reject(
        self, ctx: RequestContext, expense_id: UUID, reason: str,
    ) -> ExpenseView:
        """Reject a SUBMITTED expense of another user.

        The reason is stored on the record and as the event comment.
        """
        with self._operation(ctx, WorkflowAction.REJECT, expense_id):
            text = validate_rejection_reason(reason)
            require_role(ctx, APPROVER_ROLES, WorkflowAction.REJECT.value)
            expense = self._queries.load(ctx, expense_id)
            require_not_owner(ctx, expense.user_id, expense.id, WorkflowAction.REJECT.value)
            transition = resolve_transition(WorkflowAction.REJECT, expense.status)
            saved = self._commit_transition(
                ctx, expense, transition, comment=text, rejection_reason=text,
            )
            return self._assembler.one(saved)

    def reimburse(self, ctx: RequestContext, expense_id: UUID) -> ExpenseView:
        with self._operation(ctx, WorkflowAction.REIMBURSE, expense_id):
            require_role(ctx, REIMBURSER_ROLES, WorkflowAction.REIMBURSE.value)
            expense = self._queries.load(ctx, expense_id)
            transition = resolve_transition(WorkflowAction.REIMBURSE, expense.status)
            saved = self._commit_transition(
                ctx,
                expense,
                transition,
                reimbursed_at=self._clock.now(),
                reimbursed_by_id=ctx.user_id,
                reimbursed_by_name=self._actor_name(ctx),
            )
            return self._assembler.one(saved)

    def delete(self, ctx: RequestContext, expense_id: UUID) -> None:
        """Remove a DRAFT expense.  Its audit trail, if any, is kept."""
        with self._operation(ctx, WorkflowAction.DELETE, expense_id):
            expense = self._queries.load(ctx, expense_id)
            require_owner(ctx, expense.user_id, expense.id, WorkflowAction.DELETE.value)
            resolve_transition(WorkflowAction.DELETE, expense.status)
            self._expenses.delete(expense)
            logger.info("expense_deleted", extra={"from_status": expense.status.value})
