"""
Pure domain layer.

This module contains value objects, DTOs, the expense transition table and
the authorization and validation rules, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable.  Time comes from an injected Clock.
"""

from expense_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from expense_kernel.domain.dtos import (
    ApprovalEvent,
    Category,
    Expense,
    ExpenseDraft,
    Tenant,
    UserAccount,
)
from expense_kernel.domain.values import (
    ApprovalAction,
    ExpenseStatus,
    Principal,
    RequestContext,
    Role,
)
from expense_kernel.domain.workflow import (
    EXPENSE_WORKFLOW,
    Transition,
    Workflow,
    WorkflowAction,
    resolve_transition,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ApprovalEvent",
    "Category",
    "Expense",
    "ExpenseDraft",
    "Tenant",
    "UserAccount",
    "ApprovalAction",
    "ExpenseStatus",
    "Principal",
    "RequestContext",
    "Role",
    "EXPENSE_WORKFLOW",
    "Transition",
    "Workflow",
    "WorkflowAction",
    "resolve_transition",
]
