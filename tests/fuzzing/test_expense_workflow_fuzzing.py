"""
Hypothesis fuzzing of the expense workflow engine.

Random sequences of (actor, action) are applied to a fresh expense and
compared against a small reference model of the transition table:
- Every call either succeeds exactly when the model says it may, or raises
  an ExpenseKernelError
- The final status matches the model
- The audit trail holds one event per successful audited transition, in
  order, numbered 1..n
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from expense_kernel.domain.values import ApprovalAction, ExpenseStatus, Role
from expense_kernel.exceptions import ExpenseKernelError, ExpenseNotFoundError
from tests.factories import ctx_for, make_draft

ACTORS = ("owner", Role.MANAGER, Role.FINANCE, Role.ADMIN)
ACTIONS = ("update", "submit", "approve", "reject", "reimburse", "delete")

AUDIT_FOR = {
    "submit": ApprovalAction.SUBMITTED,
    "approve": ApprovalAction.APPROVED,
    "reject": ApprovalAction.REJECTED,
    "reimburse": ApprovalAction.REIMBURSED,
}

DELETED = "DELETED"


def expected_outcome(status, actor, action):
    """Reference model: the status after the call, or None if it must fail."""
    if status == DELETED:
        return None
    role = Role.EMPLOYEE if actor == "owner" else actor
    is_owner = actor == "owner"

    if action == "update":
        ok = is_owner and status in (ExpenseStatus.DRAFT, ExpenseStatus.REJECTED)
        return ExpenseStatus.DRAFT if ok else None
    if action == "submit":
        ok = is_owner and status == ExpenseStatus.DRAFT
        return ExpenseStatus.SUBMITTED if ok else None
    if action == "delete":
        ok = is_owner and status == ExpenseStatus.DRAFT
        return DELETED if ok else None
    if action in ("approve", "reject"):
        ok = (
            role in (Role.MANAGER, Role.FINANCE, Role.ADMIN)
            and not is_owner
            and status == ExpenseStatus.SUBMITTED
        )
        target = ExpenseStatus.APPROVED if action == "approve" else ExpenseStatus.REJECTED
        return target if ok else None
    if action == "reimburse":
        ok = role in (Role.FINANCE, Role.ADMIN) and status == ExpenseStatus.APPROVED
        return ExpenseStatus.REIMBURSED if ok else None
    raise AssertionError(action)


def perform(services, acme, ctx, action, expense_id):
    workflow = services.workflow
    if action == "update":
        return workflow.update(
            ctx, expense_id, make_draft(acme.meals.id, amount=Decimal("12.34")),
        )
    if action == "reject":
        return workflow.reject(ctx, expense_id, "Needs a receipt")
    return getattr(workflow, action)(ctx, expense_id)


steps_strategy = st.lists(
    st.tuples(st.sampled_from(ACTORS), st.sampled_from(ACTIONS)),
    min_size=1,
    max_size=12,
)


class TestWorkflowFuzzing:
    @given(steps=steps_strategy)
    @settings(
        max_examples=60,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_engine_matches_reference_model(
        self, services, acme, expense_store, deterministic_clock, steps,
    ):
        owner_ctx = ctx_for(acme.employee)
        created = services.workflow.create(owner_ctx, make_draft(acme.travel.id))

        status = ExpenseStatus.DRAFT
        expected_events = []
        for actor, action in steps:
            deterministic_clock.advance(1)
            ctx = owner_ctx if actor == "owner" else ctx_for(acme.user(actor))
            expected = expected_outcome(status, actor, action)
            try:
                view = perform(services, acme, ctx, action, created.id)
            except ExpenseKernelError:
                assert expected is None, f"{actor} {action} from {status} should succeed"
                continue

            assert expected is not None, f"{actor} {action} from {status} should fail"
            status = expected
            if view is not None:
                assert view.status == status
            if action in AUDIT_FOR:
                expected_events.append(AUDIT_FOR[action])

        events = expense_store.find_events(acme.tenant.id, created.id)
        assert [e.action for e in events] == expected_events
        assert [e.sequence for e in events] == list(range(1, len(events) + 1))

        if status == DELETED:
            with pytest.raises(ExpenseNotFoundError):
                services.workflow.get(owner_ctx, created.id)
        else:
            assert services.workflow.get(owner_ctx, created.id).status == status
