"""
Tests for the expense transition table (expense_kernel/domain/workflow.py).

The table is pure data; these tests pin down which action is legal from
which status, what it leads to and which event it emits.
"""

import pytest

from expense_kernel.domain.values import ApprovalAction, ExpenseStatus
from expense_kernel.domain.workflow import (
    EXPENSE_WORKFLOW,
    Transition,
    Workflow,
    WorkflowAction,
    resolve_transition,
)
from expense_kernel.exceptions import InvalidTransitionError

LEGAL = {
    (WorkflowAction.UPDATE, ExpenseStatus.DRAFT): (ExpenseStatus.DRAFT, WorkflowAction.UPDATE),
    (WorkflowAction.UPDATE, ExpenseStatus.REJECTED): (ExpenseStatus.DRAFT, WorkflowAction.REVISE),
    (WorkflowAction.SUBMIT, ExpenseStatus.DRAFT): (ExpenseStatus.SUBMITTED, WorkflowAction.SUBMIT),
    (WorkflowAction.APPROVE, ExpenseStatus.SUBMITTED): (ExpenseStatus.APPROVED, WorkflowAction.APPROVE),
    (WorkflowAction.REJECT, ExpenseStatus.SUBMITTED): (ExpenseStatus.REJECTED, WorkflowAction.REJECT),
    (WorkflowAction.REIMBURSE, ExpenseStatus.APPROVED): (ExpenseStatus.REIMBURSED, WorkflowAction.REIMBURSE),
    (WorkflowAction.DELETE, ExpenseStatus.DRAFT): (None, WorkflowAction.DELETE),
}

STORED_ACTIONS = (
    WorkflowAction.UPDATE,
    WorkflowAction.SUBMIT,
    WorkflowAction.APPROVE,
    WorkflowAction.REJECT,
    WorkflowAction.REIMBURSE,
    WorkflowAction.DELETE,
)


class TestResolveTransition:
    @pytest.mark.parametrize("action", STORED_ACTIONS)
    @pytest.mark.parametrize("status", list(ExpenseStatus))
    def test_every_action_from_every_status(self, action, status):
        expected = LEGAL.get((action, status))
        if expected is None:
            with pytest.raises(InvalidTransitionError) as exc_info:
                resolve_transition(action, status)
            assert exc_info.value.current_status == status.value
            assert exc_info.value.action == action.value
        else:
            transition = resolve_transition(action, status)
            assert transition.to_state == expected[0]
            assert transition.action == expected[1]

    def test_update_of_rejected_resolves_to_revise(self):
        transition = resolve_transition(WorkflowAction.UPDATE, ExpenseStatus.REJECTED)
        assert transition.action == WorkflowAction.REVISE
        assert transition.to_state == ExpenseStatus.DRAFT

    def test_error_names_required_statuses(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            resolve_transition(WorkflowAction.UPDATE, ExpenseStatus.APPROVED)
        assert set(exc_info.value.required_statuses) == {"DRAFT", "REJECTED"}

    def test_reimbursed_is_terminal(self):
        assert EXPENSE_WORKFLOW.transitions_from(ExpenseStatus.REIMBURSED) == ()


class TestAuditActions:
    @pytest.mark.parametrize(
        "action, audit",
        [
            (WorkflowAction.SUBMIT, ApprovalAction.SUBMITTED),
            (WorkflowAction.APPROVE, ApprovalAction.APPROVED),
            (WorkflowAction.REJECT, ApprovalAction.REJECTED),
            (WorkflowAction.REIMBURSE, ApprovalAction.REIMBURSED),
        ],
    )
    def test_status_changes_are_audited(self, action, audit):
        transition = EXPENSE_WORKFLOW.transition_for(action)
        assert transition.is_audited
        assert transition.audit_action == audit

    @pytest.mark.parametrize(
        "action",
        [
            WorkflowAction.CREATE,
            WorkflowAction.UPDATE,
            WorkflowAction.REVISE,
            WorkflowAction.DELETE,
        ],
    )
    def test_edits_are_not_audited(self, action):
        assert not EXPENSE_WORKFLOW.transition_for(action).is_audited


class TestWorkflowDefinition:
    def test_initial_state_is_draft(self):
        assert EXPENSE_WORKFLOW.initial_state == ExpenseStatus.DRAFT
        assert EXPENSE_WORKFLOW.transition_for(WorkflowAction.CREATE).to_state == ExpenseStatus.DRAFT

    @pytest.mark.parametrize(
        "status, editable",
        [
            (ExpenseStatus.DRAFT, True),
            (ExpenseStatus.REJECTED, True),
            (ExpenseStatus.SUBMITTED, False),
            (ExpenseStatus.APPROVED, False),
            (ExpenseStatus.REIMBURSED, False),
        ],
    )
    def test_is_editable(self, status, editable):
        assert EXPENSE_WORKFLOW.is_editable(status) is editable

    def test_transition_out_of_terminal_state_rejected(self):
        with pytest.raises(ValueError, match="terminal"):
            Workflow(
                name="broken",
                description="reimbursed can be reopened",
                initial_state=ExpenseStatus.DRAFT,
                states=tuple(ExpenseStatus),
                terminal_states=(ExpenseStatus.REIMBURSED,),
                transitions=(
                    Transition(
                        action=WorkflowAction.UPDATE,
                        from_states=(ExpenseStatus.REIMBURSED,),
                        to_state=ExpenseStatus.DRAFT,
                    ),
                ),
            )

    def test_initial_state_must_be_a_state(self):
        with pytest.raises(ValueError, match="Initial state"):
            Workflow(
                name="broken",
                description="",
                initial_state=ExpenseStatus.DRAFT,
                states=(ExpenseStatus.SUBMITTED,),
                transitions=(),
            )

    def test_transition_for_unknown_action(self):
        workflow = Workflow(
            name="tiny",
            description="",
            initial_state=ExpenseStatus.DRAFT,
            states=(ExpenseStatus.DRAFT,),
            transitions=(),
        )
        with pytest.raises(KeyError):
            workflow.transition_for(WorkflowAction.SUBMIT)
