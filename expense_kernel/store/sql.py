"""
SQLAlchemy record stores.

Responsibility:
    Implements ExpenseRecordStore and DirectoryStore on a caller-owned
    ``Session``.  Stores flush; they never commit or roll back.

Architecture position:
    Kernel > Store.  May import from db/, models/, domain/ and exceptions.

Invariants enforced:
    - Every query filters on tenant_id.
    - Expense updates and deletes are compare-and-swap statements:
      ``WHERE id = :id AND tenant_id = :tenant AND version = :expected``.
      Zero rows affected means the caller's copy is stale.
    - Reads use ``populate_existing`` so a row rewritten by a CAS statement
      is never served from a stale identity map.
    - Approval events are inserted, never updated or deleted.

Failure modes:
    - OptimisticLockError on a stale save or delete.
    - IntegrityError on a concurrent append that computed the same
      sequence (UNIQUE(expense_id, sequence)); the unit of work rolls back.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from expense_kernel.domain.dtos import (
    ApprovalEvent,
    Category,
    Expense,
    Tenant,
    UserAccount,
)
from expense_kernel.domain.values import ExpenseStatus
from expense_kernel.exceptions import (
    CategoryNotFoundError,
    OptimisticLockError,
    TenantNotFoundError,
    UserNotFoundError,
)
from expense_kernel.logging_config import get_logger
from expense_kernel.models.approval_event import ApprovalEventModel
from expense_kernel.models.category import CategoryModel
from expense_kernel.models.expense import ExpenseModel
from expense_kernel.models.tenant import TenantModel
from expense_kernel.models.user import UserModel
from expense_kernel.store.contract import OrderBy

logger = get_logger("store.sql")

_FRESH = {"populate_existing": True}


class SqlExpenseRecordStore:
    """ExpenseRecordStore on SQLAlchemy."""

    def __init__(self, session: Session):
        self._session = session

    def find_by_id(self, tenant_id: UUID, expense_id: UUID) -> Expense | None:
        model = self._session.execute(
            select(ExpenseModel)
            .where(ExpenseModel.id == expense_id, ExpenseModel.tenant_id == tenant_id)
            .execution_options(**_FRESH)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def find_by_owner(self, tenant_id: UUID, user_id: UUID) -> list[Expense]:
        models = self._session.execute(
            select(ExpenseModel)
            .where(ExpenseModel.tenant_id == tenant_id, ExpenseModel.user_id == user_id)
            .order_by(ExpenseModel.created_at.desc(), ExpenseModel.id.desc())
            .execution_options(**_FRESH)
        ).scalars()
        return [m.to_dto() for m in models]

    def find_by_status(
        self,
        tenant_id: UUID,
        statuses: Iterable[ExpenseStatus],
        exclude_user_id: UUID | None = None,
        order_by: OrderBy = "created_at",
    ) -> list[Expense]:
        status_values = [s.value for s in statuses]
        sort_column = (
            ExpenseModel.updated_at if order_by == "updated_at" else ExpenseModel.created_at
        )
        stmt = select(ExpenseModel).where(
            ExpenseModel.tenant_id == tenant_id,
            ExpenseModel.status.in_(status_values),
        )
        if exclude_user_id is not None:
            stmt = stmt.where(ExpenseModel.user_id != exclude_user_id)
        stmt = stmt.order_by(sort_column.desc(), ExpenseModel.id.desc())
        models = self._session.execute(stmt.execution_options(**_FRESH)).scalars()
        return [m.to_dto() for m in models]

    def save(self, expense: Expense) -> Expense:
        if not expense.is_persisted:
            model = ExpenseModel.from_dto(replace(expense, version=1))
            self._session.add(model)
            self._session.flush()
            logger.debug(
                "expense_inserted",
                extra={"expense_id": str(expense.id), "version": 1},
            )
            return model.to_dto()

        new_version = expense.version + 1
        result = self._session.execute(
            update(ExpenseModel)
            .where(
                ExpenseModel.id == expense.id,
                ExpenseModel.tenant_id == expense.tenant_id,
                ExpenseModel.version == expense.version,
            )
            .values(**ExpenseModel.mutable_values(expense), version=new_version)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "optimistic_lock_conflict",
                extra={
                    "expense_id": str(expense.id),
                    "expected_version": expense.version,
                },
            )
            raise OptimisticLockError("Expense", str(expense.id), expense.version)

        logger.debug(
            "expense_updated",
            extra={"expense_id": str(expense.id), "version": new_version},
        )
        return replace(expense, version=new_version)

    def delete(self, expense: Expense) -> None:
        result = self._session.execute(
            delete(ExpenseModel)
            .where(
                ExpenseModel.id == expense.id,
                ExpenseModel.tenant_id == expense.tenant_id,
                ExpenseModel.version == expense.version,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "optimistic_lock_conflict",
                extra={
                    "expense_id": str(expense.id),
                    "expected_version": expense.version,
                },
            )
            raise OptimisticLockError("Expense", str(expense.id), expense.version)
        logger.debug("expense_deleted", extra={"expense_id": str(expense.id)})

    def append_event(self, event: ApprovalEvent) -> ApprovalEvent:
        last = self._session.execute(
            select(func.max(ApprovalEventModel.sequence))
            .where(
                ApprovalEventModel.tenant_id == event.tenant_id,
                ApprovalEventModel.expense_id == event.expense_id,
            )
        ).scalar_one()
        stored = replace(event, sequence=(last or 0) + 1)
        self._session.add(ApprovalEventModel.from_dto(stored))
        self._session.flush()
        logger.debug(
            "approval_event_appended",
            extra={
                "expense_id": str(stored.expense_id),
                "sequence": stored.sequence,
                "audit_action": stored.action.value,
            },
        )
        return stored

    def find_events(self, tenant_id: UUID, expense_id: UUID) -> list[ApprovalEvent]:
        models = self._session.execute(
            select(ApprovalEventModel)
            .where(
                ApprovalEventModel.tenant_id == tenant_id,
                ApprovalEventModel.expense_id == expense_id,
            )
            .order_by(ApprovalEventModel.sequence)
        ).scalars()
        return [m.to_dto() for m in models]


class SqlDirectoryStore:
    """DirectoryStore on SQLAlchemy."""

    def __init__(self, session: Session):
        self._session = session

    # Tenants

    def get_tenant(self, tenant_id: UUID) -> Tenant | None:
        model = self._session.get(TenantModel, tenant_id)
        return model.to_dto() if model is not None else None

    def find_tenant_by_slug(self, slug: str) -> Tenant | None:
        model = self._session.execute(
            select(TenantModel).where(TenantModel.slug == slug)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def find_tenant_by_invite_code(self, invite_code: str) -> Tenant | None:
        model = self._session.execute(
            select(TenantModel).where(TenantModel.invite_code == invite_code)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_active_tenants(self) -> list[Tenant]:
        models = self._session.execute(
            select(TenantModel)
            .where(TenantModel.is_active.is_(True))
            .order_by(TenantModel.name)
        ).scalars()
        return [m.to_dto() for m in models]

    def list_tenants_without_invite_code(self) -> list[Tenant]:
        models = self._session.execute(
            select(TenantModel)
            .where(TenantModel.invite_code.is_(None))
            .order_by(TenantModel.created_at)
        ).scalars()
        return [m.to_dto() for m in models]

    def add_tenant(self, tenant: Tenant) -> Tenant:
        model = TenantModel.from_dto(tenant)
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def save_tenant(self, tenant: Tenant) -> Tenant:
        model = self._session.get(TenantModel, tenant.id)
        if model is None:
            raise TenantNotFoundError(str(tenant.id))
        model.name = tenant.name
        model.slug = tenant.slug
        model.invite_code = tenant.invite_code
        model.is_active = tenant.is_active
        self._session.flush()
        return model.to_dto()

    # Categories

    def _category_model(self, tenant_id: UUID, category_id: UUID) -> CategoryModel | None:
        return self._session.execute(
            select(CategoryModel).where(
                CategoryModel.id == category_id,
                CategoryModel.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()

    def get_category(self, tenant_id: UUID, category_id: UUID) -> Category | None:
        model = self._category_model(tenant_id, category_id)
        return model.to_dto() if model is not None else None

    def find_category_by_name(self, tenant_id: UUID, name: str) -> Category | None:
        model = self._session.execute(
            select(CategoryModel).where(
                CategoryModel.tenant_id == tenant_id,
                func.lower(CategoryModel.name) == name.lower(),
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_categories(self, tenant_id: UUID, active_only: bool = True) -> list[Category]:
        stmt = select(CategoryModel).where(CategoryModel.tenant_id == tenant_id)
        if active_only:
            stmt = stmt.where(CategoryModel.is_active.is_(True))
        models = self._session.execute(stmt.order_by(CategoryModel.name)).scalars()
        return [m.to_dto() for m in models]

    def find_categories(self, tenant_id: UUID, ids: Iterable[UUID]) -> dict[UUID, Category]:
        wanted = set(ids)
        if not wanted:
            return {}
        models = self._session.execute(
            select(CategoryModel).where(
                CategoryModel.tenant_id == tenant_id,
                CategoryModel.id.in_(wanted),
            )
        ).scalars()
        return {m.id: m.to_dto() for m in models}

    def add_category(self, category: Category) -> Category:
        model = CategoryModel.from_dto(category)
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def save_category(self, category: Category) -> Category:
        model = self._category_model(category.tenant_id, category.id)
        if model is None:
            raise CategoryNotFoundError(str(category.id))
        model.name = category.name
        model.icon = category.icon
        model.description = category.description
        model.is_active = category.is_active
        self._session.flush()
        return model.to_dto()

    # Users

    def _user_model(self, tenant_id: UUID, user_id: UUID) -> UserModel | None:
        return self._session.execute(
            select(UserModel).where(
                UserModel.id == user_id,
                UserModel.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()

    def get_user(self, tenant_id: UUID, user_id: UUID) -> UserAccount | None:
        model = self._user_model(tenant_id, user_id)
        return model.to_dto() if model is not None else None

    def find_user_by_email(self, tenant_id: UUID, email: str) -> UserAccount | None:
        model = self._session.execute(
            select(UserModel).where(
                UserModel.tenant_id == tenant_id,
                UserModel.email == email.lower(),
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_users(self, tenant_id: UUID) -> list[UserAccount]:
        models = self._session.execute(
            select(UserModel)
            .where(UserModel.tenant_id == tenant_id)
            .order_by(UserModel.name)
        ).scalars()
        return [m.to_dto() for m in models]

    def count_users(self, tenant_id: UUID) -> int:
        return self._session.execute(
            select(func.count(UserModel.id)).where(UserModel.tenant_id == tenant_id)
        ).scalar_one()

    def find_users(self, tenant_id: UUID, ids: Iterable[UUID]) -> dict[UUID, UserAccount]:
        wanted = set(ids)
        if not wanted:
            return {}
        models = self._session.execute(
            select(UserModel).where(
                UserModel.tenant_id == tenant_id,
                UserModel.id.in_(wanted),
            )
        ).scalars()
        return {m.id: m.to_dto() for m in models}

    def add_user(self, user: UserAccount) -> UserAccount:
        model = UserModel.from_dto(user)
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def save_user(self, user: UserAccount) -> UserAccount:
        model = self._user_model(user.tenant_id, user.id)
        if model is None:
            raise UserNotFoundError(str(user.id))
        model.name = user.name
        model.department = user.department
        model.role = user.role.value
        model.is_active = user.is_active
        self._session.flush()
        return model.to_dto()
