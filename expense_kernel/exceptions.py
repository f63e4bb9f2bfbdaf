"""
Typed Exception Hierarchy for the Expense Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Workflow callers (an API layer, a CLI, a batch job) must react to failures
by KIND, not by parsing messages:

  - a NotFound becomes a 404, a Forbidden a 403, a Conflict a retry
  - message wording can change without breaking callers
  - tests assert on types and structured attributes

Every exception:
  1. Is a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes

Example:
    try:
        engine.approve(ctx, expense_id)
    except OptimisticLockError as e:
        retry_with_fresh_record(e.entity_id)
    except ForbiddenError as e:
        api_response(403, code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ExpenseKernelError (base)
    |
    +-- NotFoundError
    |   +-- ExpenseNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- UserNotFoundError
    |   +-- TenantNotFoundError
    |   +-- InviteCodeNotFoundError
    |
    +-- InvalidTransitionError
    |
    +-- ForbiddenError
    |   +-- RoleNotPermittedError
    |   +-- NotOwnerError
    |   +-- SelfApprovalError
    |   +-- SelfAdministrationError
    |   +-- InactivePrincipalError
    |   +-- TenantMismatchError
    |
    +-- ValidationFailedError
    |
    +-- ConflictError
    |   +-- OptimisticLockError
    |
    +-- AlreadyExistsError
    |   +-- DuplicateCategoryError
    |   +-- DuplicateEmailError
    |   +-- TenantSlugTakenError
    |   +-- InviteCodeCollisionError
    |
    +-- AuthenticationError
    |
    +-- ImmutabilityViolationError
    |
    +-- UnknownStatusError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | EXPENSE_NOT_FOUND           | Absent, or owned by another tenant
                | CATEGORY_NOT_FOUND          | Category absent in active tenant
                | USER_NOT_FOUND              | User absent in active tenant
                | TENANT_NOT_FOUND            | Tenant id unknown
                | INVITE_CODE_NOT_FOUND       | No tenant has this invite code
----------------|-----------------------------|-----------------------------------------
Transition      | INVALID_TRANSITION          | Action not legal from current status
----------------|-----------------------------|-----------------------------------------
Forbidden       | ROLE_NOT_PERMITTED          | Principal's role lacks the right
                | NOT_OWNER                   | Owner-only action by someone else
                | SELF_APPROVAL               | Approve/reject of one's own expense
                | SELF_ADMINISTRATION         | Admin changing own role/active flag
                | INACTIVE_PRINCIPAL          | Deactivated user
                | TENANT_MISMATCH             | Principal bound to another tenant
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_FAILED           | Malformed payload (see field_errors)
----------------|-----------------------------|-----------------------------------------
Conflict        | OPTIMISTIC_LOCK_CONFLICT    | Save against a stale version
----------------|-----------------------------|-----------------------------------------
Already exists  | DUPLICATE_CATEGORY          | Category name taken in tenant
                | DUPLICATE_EMAIL             | Email registered in tenant
                | TENANT_SLUG_TAKEN           | Organization slug taken
                | INVITE_CODE_COLLISION       | Could not allocate a unique code
----------------|-----------------------------|-----------------------------------------
Other           | AUTHENTICATION_FAILED       | Credential resolves to no user
                | IMMUTABILITY_VIOLATION      | Update/delete of an approval event
                | UNKNOWN_STATUS              | Stored status outside the vocabulary

===============================================================================
DESIGN DECISIONS
===============================================================================

1. NotFound never reveals tenancy. ExpenseNotFoundError is raised for both
   "absent" and "belongs to another tenant"; the message and attributes
   are identical in both cases.

2. Forbidden is distinct from NotFound. Authorization failures carry the
   rule that failed; callers map them to a different semantic code.

3. Only ConflictError is retryable, and only by the caller after reloading.
"""


class ExpenseKernelError(Exception):
    """
    Base exception for all expense kernel errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "EXPENSE_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(ExpenseKernelError):
    """Base exception for records that do not exist in the active tenant."""

    code: str = "NOT_FOUND"


class ExpenseNotFoundError(NotFoundError):
    """Expense does not exist in the active tenant."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class CategoryNotFoundError(NotFoundError):
    """Category does not exist in the active tenant."""

    code: str = "CATEGORY_NOT_FOUND"

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Category not found: {category_id}")


class UserNotFoundError(NotFoundError):
    """User does not exist in the active tenant."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class TenantNotFoundError(NotFoundError):
    """Tenant does not exist."""

    code: str = "TENANT_NOT_FOUND"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant not found: {tenant_id}")


class InviteCodeNotFoundError(NotFoundError):
    """No tenant is registered under the invite code."""

    code: str = "INVITE_CODE_NOT_FOUND"

    def __init__(self, invite_code: str):
        self.invite_code = invite_code
        super().__init__("Invalid invite code")


# Workflow exceptions


class InvalidTransitionError(ExpenseKernelError):
    """Action is not legal from the expense's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        action: str,
        current_status: str,
        required_statuses: tuple[str, ...],
    ):
        self.action = action
        self.current_status = current_status
        self.required_statuses = required_statuses
        super().__init__(
            f"Cannot {action} expense in status {current_status}: "
            f"requires {' or '.join(required_statuses)}"
        )


# Authorization exceptions


class ForbiddenError(ExpenseKernelError):
    """Base exception for role and ownership guard failures."""

    code: str = "FORBIDDEN"


class RoleNotPermittedError(ForbiddenError):
    """Principal's role does not grant the requested action."""

    code: str = "ROLE_NOT_PERMITTED"

    def __init__(self, action: str, role: str, allowed_roles: tuple[str, ...]):
        self.action = action
        self.role = role
        self.allowed_roles = allowed_roles
        super().__init__(
            f"Role {role} may not {action}; requires one of {', '.join(allowed_roles)}"
        )


class NotOwnerError(ForbiddenError):
    """Owner-only action attempted by a different user."""

    code: str = "NOT_OWNER"

    def __init__(self, action: str, expense_id: str, actor_id: str):
        self.action = action
        self.expense_id = expense_id
        self.actor_id = actor_id
        super().__init__(f"Not authorized to {action} expense {expense_id}")


class SelfApprovalError(ForbiddenError):
    """Approver acted on their own expense."""

    code: str = "SELF_APPROVAL"

    def __init__(self, action: str, expense_id: str, actor_id: str):
        self.action = action
        self.expense_id = expense_id
        self.actor_id = actor_id
        super().__init__(f"Cannot {action} your own expense {expense_id}")


class SelfAdministrationError(ForbiddenError):
    """Administrator attempted to change their own role or active flag."""

    code: str = "SELF_ADMINISTRATION"

    def __init__(self, operation: str, user_id: str):
        self.operation = operation
        self.user_id = user_id
        super().__init__(f"Cannot {operation} on your own account")


class InactivePrincipalError(ForbiddenError):
    """Principal is deactivated."""

    code: str = "INACTIVE_PRINCIPAL"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Account is deactivated: {user_id}")


class TenantMismatchError(ForbiddenError):
    """Principal is bound to a different tenant than the request context."""

    code: str = "TENANT_MISMATCH"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Principal {user_id} does not belong to the active tenant")


# Validation exceptions


class ValidationFailedError(ExpenseKernelError):
    """Input payload failed validation.

    ``field_errors`` is a list of ``{"field": ..., "message": ...}`` dicts.
    """

    code: str = "VALIDATION_FAILED"

    def __init__(self, field_errors: list[dict]):
        self.field_errors = field_errors
        fields = ", ".join(e["field"] for e in field_errors)
        super().__init__(f"Validation failed: {fields}")


# Concurrency exceptions


class ConflictError(ExpenseKernelError):
    """Base exception for concurrent modification conflicts."""

    code: str = "CONFLICT"


class OptimisticLockError(ConflictError):
    """Save against a stale concurrency token."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str, expected_version: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            f"version {expected_version} is stale"
        )


# Uniqueness exceptions


class AlreadyExistsError(ExpenseKernelError):
    """Base exception for unique-field collisions."""

    code: str = "ALREADY_EXISTS"


class DuplicateCategoryError(AlreadyExistsError):
    """Category name already used in the tenant."""

    code: str = "DUPLICATE_CATEGORY"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category with this name already exists: {name}")


class DuplicateEmailError(AlreadyExistsError):
    """Email already registered in the tenant."""

    code: str = "DUPLICATE_EMAIL"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email already registered in this organization: {email}")


class TenantSlugTakenError(AlreadyExistsError):
    """Organization slug already taken."""

    code: str = "TENANT_SLUG_TAKEN"

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Organization name already taken: {slug}")


class InviteCodeCollisionError(AlreadyExistsError):
    """No unique invite code could be allocated."""

    code: str = "INVITE_CODE_COLLISION"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique invite code after {attempts} attempts")


# Identity exceptions


class AuthenticationError(ExpenseKernelError):
    """Credential does not resolve to a known user."""

    code: str = "AUTHENTICATION_FAILED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Authentication failed: {reason}")


# Storage boundary exceptions


class ImmutabilityViolationError(ExpenseKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class UnknownStatusError(ExpenseKernelError):
    """Stored value is outside the closed status or action vocabulary."""

    code: str = "UNKNOWN_STATUS"

    def __init__(self, entity_type: str, entity_id: str, value: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.value = value
        super().__init__(f"Unknown status {value!r} on {entity_type} {entity_id}")
