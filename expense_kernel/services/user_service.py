"""
UserService -- tenant user administration.

Responsibility:
    Lists a tenant's users and lets administrators change role, active
    flag and department.

Architecture position:
    Kernel > Services.  Depends on the DirectoryStore contract.

Invariants enforced:
    - Every operation requires ADMIN and is scoped to the caller's tenant.
    - An administrator cannot change their own role or deactivate their
      own account.  Changing their own department is allowed.

Failure modes:
    - RoleNotPermittedError for non-admin callers.
    - UserNotFoundError for an absent or foreign user id.
    - SelfAdministrationError for role/active changes on oneself.
    - ValidationFailedError for a role name outside the Role vocabulary.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from expense_kernel.domain.authorization import (
    ADMIN_ROLES,
    require_role,
    require_valid_context,
)
from expense_kernel.domain.dtos import UserAccount
from expense_kernel.domain.validation import parse_role
from expense_kernel.domain.values import RequestContext, Role
from expense_kernel.domain.views import UserView
from expense_kernel.exceptions import SelfAdministrationError, UserNotFoundError
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.store.contract import DirectoryStore

logger = get_logger("services.user")


class UserService:
    """Administration of the users of one tenant."""

    def __init__(self, directory: DirectoryStore):
        self._directory = directory

    def list_users(self, ctx: RequestContext) -> list[UserView]:
        self._require_admin(ctx, "list users")
        return [UserView.build(u) for u in self._directory.list_users(ctx.tenant_id)]

    def update_role(self, ctx: RequestContext, user_id: UUID, role: Role | str) -> UserView:
        self._require_admin(ctx, "change user role")
        new_role = parse_role(role)
        user = self._load(ctx, user_id)
        if user.id == ctx.user_id:
            raise SelfAdministrationError("change role", str(user_id))
        saved = self._directory.save_user(replace(user, role=new_role))
        with LogContext.bind_request(ctx):
            logger.info(
                "user_role_changed",
                extra={
                    "user_id": str(user_id),
                    "old_role": user.role.value,
                    "new_role": saved.role.value,
                },
            )
        return UserView.build(saved)

    def toggle_active(self, ctx: RequestContext, user_id: UUID) -> UserView:
        self._require_admin(ctx, "toggle user active")
        user = self._load(ctx, user_id)
        if user.id == ctx.user_id:
            raise SelfAdministrationError("deactivate", str(user_id))
        saved = self._directory.save_user(replace(user, is_active=not user.is_active))
        with LogContext.bind_request(ctx):
            logger.info(
                "user_active_toggled",
                extra={"user_id": str(user_id), "is_active": saved.is_active},
            )
        return UserView.build(saved)

    def update_department(
        self, ctx: RequestContext, user_id: UUID, department: str | None,
    ) -> UserView:
        self._require_admin(ctx, "change user department")
        user = self._load(ctx, user_id)
        saved = self._directory.save_user(
            replace(user, department=(department or "").strip() or None)
        )
        logger.info("user_department_changed", extra={"user_id": str(user_id)})
        return UserView.build(saved)

    def _require_admin(self, ctx: RequestContext, action: str) -> None:
        require_valid_context(ctx)
        require_role(ctx, ADMIN_ROLES, action)

    def _load(self, ctx: RequestContext, user_id: UUID) -> UserAccount:
        user = self._directory.get_user(ctx.tenant_id, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user
