"""
Data Transfer Objects for the expense kernel.

Frozen dataclasses passed between the workflow engine and the record
store.  ORM models convert to and from these via ``to_dto``/``from_dto``;
services never hand ORM instances to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from expense_kernel.domain.values import ApprovalAction, ExpenseStatus, Role


@dataclass(frozen=True)
class ExpenseDraft:
    """Caller-supplied fields for create and update.

    Deliberately carries no tenant, owner or status: those come from the
    request context and the state machine, never from the payload.
    """

    title: str
    amount: Decimal
    category_id: UUID
    expense_date: date
    description: str | None = None
    receipt_url: str | None = None


@dataclass(frozen=True)
class Expense:
    """One expense claim.

    ``version`` is the concurrency token: 0 means never persisted; the
    store assigns 1 on insert and +1 on every successful save.
    """

    id: UUID
    tenant_id: UUID
    user_id: UUID
    category_id: UUID
    title: str
    amount: Decimal
    expense_date: date
    created_at: datetime
    updated_at: datetime
    status: ExpenseStatus = ExpenseStatus.DRAFT
    description: str | None = None
    receipt_url: str | None = None
    rejection_reason: str | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by_id: UUID | None = None
    approved_by_name: str | None = None
    reimbursed_at: datetime | None = None
    reimbursed_by_id: UUID | None = None
    reimbursed_by_name: str | None = None
    version: int = 0

    @property
    def is_persisted(self) -> bool:
        return self.version > 0


@dataclass(frozen=True)
class ApprovalEvent:
    """One immutable audit record of a workflow action.

    ``sequence`` orders events of one expense (1, 2, 3, ...); it is
    assigned by the store on append.
    """

    tenant_id: UUID
    expense_id: UUID
    actor_id: UUID
    action: ApprovalAction
    created_at: datetime
    comment: str | None = None
    sequence: int = 0
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class Tenant:
    """An isolated organization."""

    id: UUID
    name: str
    slug: str
    created_at: datetime
    invite_code: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Category:
    """An expense category owned by one tenant."""

    id: UUID
    tenant_id: UUID
    name: str
    icon: str = "📋"
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class CategoryTemplate:
    """A category seeded into new tenants.  Supplied by configuration."""

    name: str
    icon: str
    description: str | None = None


@dataclass(frozen=True)
class UserAccount:
    """A user of one tenant.  Credentials live outside the kernel."""

    id: UUID
    tenant_id: UUID
    email: str
    name: str
    role: Role
    created_at: datetime
    department: str | None = None
    is_active: bool = True
