"""
TenantService -- organizations, invite codes and sign-up.

Responsibility:
    Public tenant listing, registration of a new organization with its
    first (ADMIN) user, joining an existing organization by invite code,
    reading the invite code, and backfilling codes for old tenants.

Architecture position:
    Kernel > Services.  Depends on the DirectoryStore contract and on
    CategoryService for seeding.  Password handling and token issuance
    stay outside the kernel: sign-up returns the new user and the
    Principal the caller's auth layer issues a credential for.

Invariants enforced:
    - Slugs are derived from the organization name (lower case, runs of
      non-alphanumerics collapsed to one hyphen) and are unique.
    - Invite codes are numeric, of the configured length, and unique.
    - The first user of a tenant is ADMIN; later users join as EMPLOYEE.
    - Email is unique per tenant.
    - ``list_active_tenants`` is the only operation that needs no
      principal.

Failure modes:
    - TenantSlugTakenError / DuplicateEmailError / InviteCodeCollisionError.
    - InviteCodeNotFoundError for an unknown or inactive tenant's code.
    - ValidationFailedError for blank names or malformed emails.
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Callable
from dataclasses import dataclass, replace
from uuid import UUID, uuid4

from expense_kernel.domain.authorization import (
    ADMIN_ROLES,
    require_role,
    require_valid_context,
)
from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.domain.dtos import Tenant, UserAccount
from expense_kernel.domain.validation import validate_email, validate_name
from expense_kernel.domain.values import Principal, RequestContext, Role
from expense_kernel.domain.views import TenantView, UserView
from expense_kernel.exceptions import (
    DuplicateEmailError,
    InviteCodeCollisionError,
    InviteCodeNotFoundError,
    TenantNotFoundError,
    TenantSlugTakenError,
    ValidationFailedError,
)
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.services.category_service import CategoryService
from expense_kernel.store.contract import DirectoryStore

logger = get_logger("services.tenant")

MAX_INVITE_CODE_ATTEMPTS = 20


def slugify(name: str) -> str:
    """'Acme Corp.' -> 'acme-corp'"""
    slug = re.sub(r"[^a-z0-9]", "-", name.lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def random_invite_code(length: int) -> str:
    """Numeric code of exactly ``length`` digits, no leading zero."""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


@dataclass(frozen=True)
class Registration:
    """Result of sign-up: the tenant, the new user and their principal."""

    tenant: Tenant
    user: UserView
    principal: Principal


class TenantService:
    """Tenant directory and sign-up."""

    def __init__(
        self,
        directory: DirectoryStore,
        categories: CategoryService,
        clock: Clock | None = None,
        invite_code_length: int = 6,
        code_generator: Callable[[int], str] = random_invite_code,
    ):
        self._directory = directory
        self._categories = categories
        self._clock = clock or SystemClock()
        self._invite_code_length = invite_code_length
        self._code_generator = code_generator

    def list_active_tenants(self) -> list[TenantView]:
        """Organizations shown on the sign-up screen.  No principal needed."""
        return [TenantView.build(t) for t in self._directory.list_active_tenants()]

    def register_organization(
        self,
        name: str,
        admin_email: str,
        admin_name: str,
        department: str | None = None,
    ) -> Registration:
        """Create a tenant, seed its categories and add its first user as ADMIN."""
        org_name = validate_name(name, "organization", max_length=255)
        email = validate_email(admin_email)
        user_name = validate_name(admin_name, "name")
        slug = slugify(org_name)
        if not slug:
            raise ValidationFailedError([{
                "field": "organization",
                "message": "Organization name must contain letters or digits",
            }])
        if self._directory.find_tenant_by_slug(slug) is not None:
            raise TenantSlugTakenError(slug)

        tenant = self._directory.add_tenant(Tenant(
            id=uuid4(),
            name=org_name,
            slug=slug,
            invite_code=self._allocate_invite_code(),
            created_at=self._clock.now(),
        ))
        self._categories.seed_defaults(tenant.id)

        with LogContext.bind(tenant_id=tenant.id):
            logger.info("organization_registered", extra={"slug": slug})
            return self._add_member(tenant, email, user_name, department, Role.ADMIN)

    def join_with_invite_code(
        self,
        invite_code: str,
        email: str,
        name: str,
        department: str | None = None,
    ) -> Registration:
        """Join the tenant owning ``invite_code``.

        The first user of a tenant without users becomes ADMIN.
        """
        code = (invite_code or "").strip()
        tenant = self._directory.find_tenant_by_invite_code(code) if code else None
        if tenant is None or not tenant.is_active:
            raise InviteCodeNotFoundError(code)

        clean_email = validate_email(email)
        user_name = validate_name(name, "name")
        role = Role.ADMIN if self._directory.count_users(tenant.id) == 0 else Role.EMPLOYEE
        with LogContext.bind(tenant_id=tenant.id):
            return self._add_member(tenant, clean_email, user_name, department, role)

    def get_invite_code(self, ctx: RequestContext) -> str | None:
        require_valid_context(ctx)
        require_role(ctx, ADMIN_ROLES, "view invite code")
        tenant = self._directory.get_tenant(ctx.tenant_id)
        if tenant is None:
            raise TenantNotFoundError(str(ctx.tenant_id))
        return tenant.invite_code

    def backfill_invite_codes(self) -> list[UUID]:
        """Give every tenant without an invite code a fresh one.

        Returns:
            Ids of the tenants that were updated.
        """
        updated = []
        for tenant in self._directory.list_tenants_without_invite_code():
            self._directory.save_tenant(
                replace(tenant, invite_code=self._allocate_invite_code())
            )
            updated.append(tenant.id)
        if updated:
            logger.info("invite_codes_backfilled", extra={"count": len(updated)})
        return updated

    def _allocate_invite_code(self) -> str:
        for _ in range(MAX_INVITE_CODE_ATTEMPTS):
            code = self._code_generator(self._invite_code_length)
            if self._directory.find_tenant_by_invite_code(code) is None:
                return code
        raise InviteCodeCollisionError(MAX_INVITE_CODE_ATTEMPTS)

    def _add_member(
        self,
        tenant: Tenant,
        email: str,
        name: str,
        department: str | None,
        role: Role,
    ) -> Registration:
        if self._directory.find_user_by_email(tenant.id, email) is not None:
            raise DuplicateEmailError(email)
        user = self._directory.add_user(UserAccount(
            id=uuid4(),
            tenant_id=tenant.id,
            email=email,
            name=name,
            department=(department or "").strip() or None,
            role=role,
            created_at=self._clock.now(),
        ))
        logger.info(
            "user_registered",
            extra={"user_id": str(user.id), "role": user.role.value},
        )
        return Registration(
            tenant=tenant,
            user=UserView.build(user),
            principal=Principal(
                user_id=user.id,
                tenant_id=tenant.id,
                role=user.role,
                is_active=user.is_active,
                name=user.name,
            ),
        )
