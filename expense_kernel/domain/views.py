"""
Response views returned by the services.

Records enriched with display data looked up in the same tenant: owner
name and department, category name and icon, actor names.  Lookups that
find nothing leave the display field as None; they never fail the read.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from expense_kernel.domain.dtos import (
    ApprovalEvent,
    Category,
    Expense,
    Tenant,
    UserAccount,
)
from expense_kernel.domain.values import ApprovalAction, ExpenseStatus, Role


def _plain(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


class _ViewMixin:
    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict: UUIDs, dates and amounts as strings."""
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class ExpenseView(_ViewMixin):
    id: UUID
    title: str
    description: str | None
    amount: Decimal
    status: ExpenseStatus
    rejection_reason: str | None
    user_id: UUID
    user_name: str | None
    user_department: str | None
    category_id: UUID
    category_name: str | None
    category_icon: str | None
    created_at: datetime
    updated_at: datetime
    submitted_at: datetime | None
    approved_at: datetime | None
    approved_by_name: str | None
    reimbursed_at: datetime | None
    reimbursed_by_name: str | None
    receipt_url: str | None
    expense_date: date
    version: int

    @classmethod
    def build(
        cls,
        expense: Expense,
        owner: UserAccount | None,
        category: Category | None,
    ) -> ExpenseView:
        return cls(
            id=expense.id,
            title=expense.title,
            description=expense.description,
            amount=expense.amount,
            status=expense.status,
            rejection_reason=expense.rejection_reason,
            user_id=expense.user_id,
            user_name=owner.name if owner else None,
            user_department=owner.department if owner else None,
            category_id=expense.category_id,
            category_name=category.name if category else None,
            category_icon=category.icon if category else None,
            created_at=expense.created_at,
            updated_at=expense.updated_at,
            submitted_at=expense.submitted_at,
            approved_at=expense.approved_at,
            approved_by_name=expense.approved_by_name,
            reimbursed_at=expense.reimbursed_at,
            reimbursed_by_name=expense.reimbursed_by_name,
            receipt_url=expense.receipt_url,
            expense_date=expense.expense_date,
            version=expense.version,
        )


@dataclass(frozen=True)
class ApprovalEventView(_ViewMixin):
    id: UUID
    sequence: int
    action: ApprovalAction
    comment: str | None
    actor_id: UUID
    actor_name: str | None
    created_at: datetime

    @classmethod
    def build(cls, event: ApprovalEvent, actor: UserAccount | None) -> ApprovalEventView:
        return cls(
            id=event.id,
            sequence=event.sequence,
            action=event.action,
            comment=event.comment,
            actor_id=event.actor_id,
            actor_name=actor.name if actor else None,
            created_at=event.created_at,
        )


@dataclass(frozen=True)
class CategoryView(_ViewMixin):
    id: UUID
    name: str
    icon: str
    description: str | None
    is_active: bool

    @classmethod
    def build(cls, category: Category) -> CategoryView:
        return cls(
            id=category.id,
            name=category.name,
            icon=category.icon,
            description=category.description,
            is_active=category.is_active,
        )


@dataclass(frozen=True)
class UserView(_ViewMixin):
    id: UUID
    email: str
    name: str
    department: str | None
    role: Role
    is_active: bool
    created_at: datetime

    @classmethod
    def build(cls, user: UserAccount) -> UserView:
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            department=user.department,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
        )


@dataclass(frozen=True)
class TenantView(_ViewMixin):
    """Public listing entry; never exposes the invite code."""

    id: UUID
    name: str
    slug: str

    @classmethod
    def build(cls, tenant: Tenant) -> TenantView:
        return cls(id=tenant.id, name=tenant.name, slug=tenant.slug)
