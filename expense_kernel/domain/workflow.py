"""
Expense workflow definition (``expense_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the expense state machine and the transition table
itself.  The workflow engine consults ``EXPENSE_WORKFLOW`` for every
action; nothing else decides which status an action may start from.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``store/``, ``services/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* Every status is covered: ``transitions_from`` is exhaustive over
  ``ExpenseStatus``.
* An action attempted from a status not in its ``from_states`` raises
  ``InvalidTransitionError`` naming the required source states.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from expense_kernel.domain.values import ApprovalAction, ExpenseStatus
from expense_kernel.exceptions import InvalidTransitionError


class WorkflowAction(str, Enum):
    """Operations the workflow engine performs on an expense."""

    CREATE = "create"
    UPDATE = "update"
    REVISE = "revise"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    REIMBURSE = "reimburse"
    DELETE = "delete"


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the workflow engine does.
    """
    name: str
    description: str


IS_OWNER = Guard("is_owner", "Caller owns the expense")
IS_NOT_OWNER = Guard("is_not_owner", "Caller does not own the expense")
APPROVER_ROLE = Guard("approver_role", "Caller is MANAGER, FINANCE or ADMIN")
REIMBURSER_ROLE = Guard("reimburser_role", "Caller is FINANCE or ADMIN")
VALID_PAYLOAD = Guard("valid_payload", "Amount positive; category exists in tenant")
REASON_GIVEN = Guard("reason_given", "Rejection reason is 5-500 characters")


@dataclass(frozen=True)
class Transition:
    """A valid status transition of an expense.

    Contract: frozen.  ``from_states`` empty means the action creates the
    record.  ``to_state`` None means the action removes it.  ``audit_action``
    is the event appended when the transition commits; None for actions
    that are not audited.
    """
    action: WorkflowAction
    from_states: tuple[ExpenseStatus, ...]
    to_state: ExpenseStatus | None
    guards: tuple[Guard, ...] = ()
    audit_action: ApprovalAction | None = None

    @property
    def is_audited(self) -> bool:
        return self.audit_action is not None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``.
    """
    name: str
    description: str
    initial_state: ExpenseStatus
    states: tuple[ExpenseStatus, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[ExpenseStatus, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Initial state {self.initial_state.value} is not a workflow state"
            )
        for t in self.transitions:
            for s in t.from_states:
                if s not in self.states:
                    raise ValueError(f"{t.action.value}: unknown source state {s.value}")
                if s in self.terminal_states:
                    raise ValueError(
                        f"{t.action.value}: terminal state {s.value} has a transition"
                    )
            if t.to_state is not None and t.to_state not in self.states:
                raise ValueError(f"{t.action.value}: unknown target state {t.to_state.value}")

    def transition_for(self, action: WorkflowAction) -> Transition:
        for t in self.transitions:
            if t.action == action:
                return t
        raise KeyError(action)

    def transitions_from(self, status: ExpenseStatus) -> tuple[Transition, ...]:
        """All transitions whose source states include ``status``."""
        return tuple(t for t in self.transitions if status in t.from_states)

    def is_editable(self, status: ExpenseStatus) -> bool:
        return any(
            t.action in (WorkflowAction.UPDATE, WorkflowAction.REVISE)
            for t in self.transitions_from(status)
        )


EXPENSE_WORKFLOW = Workflow(
    name="expense",
    description="Expense claim approval and reimbursement lifecycle",
    initial_state=ExpenseStatus.DRAFT,
    states=tuple(ExpenseStatus),
    terminal_states=(ExpenseStatus.REIMBURSED,),
    transitions=(
        Transition(
            action=WorkflowAction.CREATE,
            from_states=(),
            to_state=ExpenseStatus.DRAFT,
            guards=(VALID_PAYLOAD,),
        ),
        Transition(
            action=WorkflowAction.UPDATE,
            from_states=(ExpenseStatus.DRAFT,),
            to_state=ExpenseStatus.DRAFT,
            guards=(IS_OWNER, VALID_PAYLOAD),
        ),
        # Update of a rejected expense: returns it to DRAFT, reason cleared.
        Transition(
            action=WorkflowAction.REVISE,
            from_states=(ExpenseStatus.REJECTED,),
            to_state=ExpenseStatus.DRAFT,
            guards=(IS_OWNER, VALID_PAYLOAD),
        ),
        Transition(
            action=WorkflowAction.SUBMIT,
            from_states=(ExpenseStatus.DRAFT,),
            to_state=ExpenseStatus.SUBMITTED,
            guards=(IS_OWNER,),
            audit_action=ApprovalAction.SUBMITTED,
        ),
        Transition(
            action=WorkflowAction.APPROVE,
            from_states=(ExpenseStatus.SUBMITTED,),
            to_state=ExpenseStatus.APPROVED,
            guards=(APPROVER_ROLE, IS_NOT_OWNER),
            audit_action=ApprovalAction.APPROVED,
        ),
        Transition(
            action=WorkflowAction.REJECT,
            from_states=(ExpenseStatus.SUBMITTED,),
            to_state=ExpenseStatus.REJECTED,
            guards=(APPROVER_ROLE, IS_NOT_OWNER, REASON_GIVEN),
            audit_action=ApprovalAction.REJECTED,
        ),
        Transition(
            action=WorkflowAction.REIMBURSE,
            from_states=(ExpenseStatus.APPROVED,),
            to_state=ExpenseStatus.REIMBURSED,
            guards=(REIMBURSER_ROLE,),
            audit_action=ApprovalAction.REIMBURSED,
        ),
        Transition(
            action=WorkflowAction.DELETE,
            from_states=(ExpenseStatus.DRAFT,),
            to_state=None,
            guards=(IS_OWNER,),
        ),
    ),
)


def resolve_transition(
    action: WorkflowAction,
    current_status: ExpenseStatus,
    workflow: Workflow = EXPENSE_WORKFLOW,
) -> Transition:
    """Return the transition ``action`` takes from ``current_status``.

    Update is the one action with two rows: from DRAFT it is a plain
    update, from REJECTED it resolves to the revise transition.

    Raises:
        InvalidTransitionError: The action is not legal from this status.
    """
    if action == WorkflowAction.UPDATE:
        candidates = (
            workflow.transition_for(WorkflowAction.UPDATE),
            workflow.transition_for(WorkflowAction.REVISE),
        )
    else:
        candidates = (workflow.transition_for(action),)

    for t in candidates:
        if current_status in t.from_states:
            return t

    required = tuple(s.value for t in candidates for s in t.from_states)
    raise InvalidTransitionError(
        action=action.value,
        current_status=current_status.value,
        required_statuses=required,
    )
