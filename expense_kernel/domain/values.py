"""
Value objects for the expense workflow (``expense_kernel.domain.values``).

Responsibility
--------------
Closed vocabularies (status, audit action, role), the per-request
principal and request context, and the fixed-point amount helper.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Status and audit-action strings are persisted verbatim; they are part
  of the audit contract read back by history views.
* A RequestContext's tenant id is always the principal's tenant id.  It is
  never taken from caller-supplied payload data.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID


class ExpenseStatus(str, Enum):
    """Expense lifecycle states."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REIMBURSED = "REIMBURSED"


class ApprovalAction(str, Enum):
    """Workflow actions recorded in the audit trail."""

    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REIMBURSED = "REIMBURSED"


class Role(str, Enum):
    """Principal roles.

    MANAGER and FINANCE are peers with different rights, not levels of
    one hierarchy.  See ``domain.authorization``.
    """

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    FINANCE = "FINANCE"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Principal:
    """The authenticated actor for one request.

    Supplied by an IdentityProvider; never persisted by the kernel.
    ``name`` is snapshotted onto expenses by approve and reimburse.
    """

    user_id: UUID
    tenant_id: UUID
    role: Role
    is_active: bool = True
    name: str = ""


@dataclass(frozen=True)
class RequestContext:
    """Immutable tenant scope for one request.

    Threaded explicitly through every workflow call in place of ambient
    thread-local state.
    """

    tenant_id: UUID
    principal: Principal

    @classmethod
    def for_principal(cls, principal: Principal) -> RequestContext:
        """Build the context from a validated principal."""
        return cls(tenant_id=principal.tenant_id, principal=principal)

    @property
    def user_id(self) -> UUID:
        return self.principal.user_id

    @property
    def role(self) -> Role:
        return self.principal.role


AMOUNT_DECIMAL_PLACES = 2
MAX_AMOUNT = Decimal("9999999999.99")


def round_amount(value: Decimal) -> Decimal:
    """Quantize a monetary amount to cents, half-up.

    The only sanctioned rounding for expense amounts.
    """
    quantum = Decimal(1).scaleb(-AMOUNT_DECIMAL_PLACES)
    return value.quantize(quantum, rounding=ROUND_HALF_UP)
