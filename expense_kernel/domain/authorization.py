"""
Authorization rules (``expense_kernel.domain.authorization``).

Responsibility
--------------
Role and ownership predicates that gate workflow transitions, query views
and administration operations.  Every function either returns ``None`` or
raises a ``ForbiddenError`` subclass.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Invariants enforced
-------------------
* MANAGER and FINANCE are peers: both approve and reject, only FINANCE
  (and ADMIN) reimburse.  ADMIN may do everything.
* Ownership is orthogonal to role.  The not-owner rule on approve and
  reject holds for every role, ADMIN included.
* A denied check is always a ForbiddenError, never a NotFoundError.
"""

from __future__ import annotations

from uuid import UUID

from expense_kernel.domain.values import Principal, RequestContext, Role
from expense_kernel.exceptions import (
    InactivePrincipalError,
    NotOwnerError,
    RoleNotPermittedError,
    SelfApprovalError,
    TenantMismatchError,
)

APPROVER_ROLES: frozenset[Role] = frozenset({Role.MANAGER, Role.FINANCE, Role.ADMIN})
REIMBURSER_ROLES: frozenset[Role] = frozenset({Role.FINANCE, Role.ADMIN})
ADMIN_ROLES: frozenset[Role] = frozenset({Role.ADMIN})


def _role_names(roles: frozenset[Role]) -> tuple[str, ...]:
    return tuple(sorted(r.value for r in roles))


def require_role(ctx: RequestContext, allowed: frozenset[Role], action: str) -> None:
    """Raise RoleNotPermittedError unless the caller holds one of ``allowed``."""
    if ctx.role not in allowed:
        raise RoleNotPermittedError(
            action=action,
            role=ctx.role.value,
            allowed_roles=_role_names(allowed),
        )


def require_owner(ctx: RequestContext, owner_id: UUID, expense_id: UUID, action: str) -> None:
    if ctx.user_id != owner_id:
        raise NotOwnerError(
            action=action, expense_id=str(expense_id), actor_id=str(ctx.user_id),
        )


def require_not_owner(
    ctx: RequestContext, owner_id: UUID, expense_id: UUID, action: str,
) -> None:
    """Self-approval guard for approve and reject."""
    if ctx.user_id == owner_id:
        raise SelfApprovalError(
            action=action, expense_id=str(expense_id), actor_id=str(ctx.user_id),
        )


def require_active(principal: Principal) -> None:
    if not principal.is_active:
        raise InactivePrincipalError(str(principal.user_id))


def require_valid_context(ctx: RequestContext) -> None:
    """Check the context before any workflow operation.

    The principal must be active and bound to the context's tenant.
    """
    require_active(ctx.principal)
    if ctx.principal.tenant_id != ctx.tenant_id:
        raise TenantMismatchError(str(ctx.user_id))


# Query view gates


def can_view_pending(role: Role) -> bool:
    return role in APPROVER_ROLES


def can_view_awaiting_reimbursement(role: Role) -> bool:
    return role in REIMBURSER_ROLES


def can_view_history(role: Role) -> bool:
    return role in APPROVER_ROLES
