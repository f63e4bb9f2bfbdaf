"""
Record store contracts (``expense_kernel.store.contract``).

Responsibility
--------------
The storage interfaces the workflow engine and directory services depend
on.  Services are written against these protocols, not against a
database; ``store.sql`` provides the SQLAlchemy implementation.

Invariants enforced
-------------------
* The tenant id is a mandatory positional parameter of every lookup.
  There is no find-by-id-only path.
* A record of another tenant is reported exactly like an absent one
  (``None`` / empty list).
* ``ExpenseRecordStore.save`` is a compare-and-swap on ``version``: it
  succeeds only if the stored version equals the version the caller
  loaded, and raises ``OptimisticLockError`` otherwise.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal, Protocol, runtime_checkable
from uuid import UUID

from expense_kernel.domain.dtos import (
    ApprovalEvent,
    Category,
    Expense,
    Tenant,
    UserAccount,
)
from expense_kernel.domain.values import ExpenseStatus

OrderBy = Literal["created_at", "updated_at"]


@runtime_checkable
class ExpenseRecordStore(Protocol):
    """Tenant-keyed storage for expenses and their approval events."""

    def find_by_id(self, tenant_id: UUID, expense_id: UUID) -> Expense | None:
        ...

    def find_by_owner(self, tenant_id: UUID, user_id: UUID) -> list[Expense]:
        """All of one user's expenses, newest ``created_at`` first."""
        ...

    def find_by_status(
        self,
        tenant_id: UUID,
        statuses: Iterable[ExpenseStatus],
        exclude_user_id: UUID | None = None,
        order_by: OrderBy = "created_at",
    ) -> list[Expense]:
        """Expenses in any of ``statuses``, newest first by ``order_by``."""
        ...

    def save(self, expense: Expense) -> Expense:
        """Insert (version 0) or compare-and-swap update.

        Returns:
            The stored record with its new version.

        Raises:
            OptimisticLockError: The stored version differs from
                ``expense.version``, or the row is gone.
        """
        ...

    def delete(self, expense: Expense) -> None:
        """Remove the record, compare-and-swap on version."""
        ...

    def append_event(self, event: ApprovalEvent) -> ApprovalEvent:
        """Append one audit event; assigns the next per-expense sequence."""
        ...

    def find_events(self, tenant_id: UUID, expense_id: UUID) -> list[ApprovalEvent]:
        """Events of one expense in ascending sequence order."""
        ...


@runtime_checkable
class DirectoryStore(Protocol):
    """Tenant-keyed storage for tenants, categories and users."""

    # Tenants

    def get_tenant(self, tenant_id: UUID) -> Tenant | None:
        ...

    def find_tenant_by_slug(self, slug: str) -> Tenant | None:
        ...

    def find_tenant_by_invite_code(self, invite_code: str) -> Tenant | None:
        ...

    def list_active_tenants(self) -> list[Tenant]:
        ...

    def list_tenants_without_invite_code(self) -> list[Tenant]:
        ...

    def add_tenant(self, tenant: Tenant) -> Tenant:
        ...

    def save_tenant(self, tenant: Tenant) -> Tenant:
        ...

    # Categories

    def get_category(self, tenant_id: UUID, category_id: UUID) -> Category | None:
        ...

    def find_category_by_name(self, tenant_id: UUID, name: str) -> Category | None:
        ...

    def list_categories(self, tenant_id: UUID, active_only: bool = True) -> list[Category]:
        ...

    def find_categories(self, tenant_id: UUID, ids: Iterable[UUID]) -> dict[UUID, Category]:
        ...

    def add_category(self, category: Category) -> Category:
        ...

    def save_category(self, category: Category) -> Category:
        ...

    # Users

    def get_user(self, tenant_id: UUID, user_id: UUID) -> UserAccount | None:
        ...

    def find_user_by_email(self, tenant_id: UUID, email: str) -> UserAccount | None:
        ...

    def list_users(self, tenant_id: UUID) -> list[UserAccount]:
        ...

    def count_users(self, tenant_id: UUID) -> int:
        ...

    def find_users(self, tenant_id: UUID, ids: Iterable[UUID]) -> dict[UUID, UserAccount]:
        ...

    def add_user(self, user: UserAccount) -> UserAccount:
        ...

    def save_user(self, user: UserAccount) -> UserAccount:
        ...
