"""
Tests for TenantService -- organization sign-up, invite codes and the
public tenant listing.
"""

from uuid import uuid4

import pytest

from expense_kernel.domain.dtos import Tenant
from expense_kernel.domain.values import RequestContext, Role
from expense_kernel.exceptions import (
    DuplicateEmailError,
    InviteCodeCollisionError,
    InviteCodeNotFoundError,
    RoleNotPermittedError,
    TenantSlugTakenError,
    ValidationFailedError,
)
from expense_kernel.services import build_services
from expense_kernel.services.category_service import CategoryService
from expense_kernel.services.tenant_service import (
    TenantService,
    random_invite_code,
    slugify,
)


def ctx_for_registration(registration) -> RequestContext:
    return RequestContext.for_principal(registration.principal)


class TestHelpers:
    @pytest.mark.parametrize(
        "name, slug",
        [
            ("Acme Corp.", "acme-corp"),
            ("  Wayne   Enterprises ", "wayne-enterprises"),
            ("Ünïcode Ltd", "n-code-ltd"),
            ("!!!", ""),
        ],
    )
    def test_slugify(self, name, slug):
        assert slugify(name) == slug

    @pytest.mark.parametrize("length", [4, 6, 12])
    def test_random_invite_code(self, length):
        code = random_invite_code(length)
        assert len(code) == length
        assert code.isdigit()
        assert code[0] != "0"


class TestRegisterOrganization:
    def test_register(self, services, deterministic_clock):
        registration = services.tenants.register_organization(
            "Acme Corp", "Founder@Acme.test", "Founder", department="Board",
        )
        assert registration.tenant.slug == "acme-corp"
        assert len(registration.tenant.invite_code) == 6
        assert registration.user.role == Role.ADMIN
        assert registration.user.email == "founder@acme.test"
        assert registration.user.department == "Board"
        assert registration.principal.tenant_id == registration.tenant.id
        assert registration.principal.name == "Founder"

        ctx = ctx_for_registration(registration)
        names = [c.name for c in services.categories.list_categories(ctx)]
        assert names == ["Meals", "Travel"]

    def test_slug_taken(self, services):
        services.tenants.register_organization("Acme Corp", "a@acme.test", "A")
        with pytest.raises(TenantSlugTakenError):
            services.tenants.register_organization("ACME corp!", "b@acme.test", "B")

    def test_name_without_letters_rejected(self, services):
        with pytest.raises(ValidationFailedError):
            services.tenants.register_organization("!!!", "a@acme.test", "A")

    def test_bad_email_rejected(self, services):
        with pytest.raises(ValidationFailedError):
            services.tenants.register_organization("Acme", "not-an-email", "A")

    def test_registration_logged(self, services, captured_logs):
        services.tenants.register_organization("Acme", "a@acme.test", "A")
        logs = captured_logs()
        registered = next(r for r in logs if r["message"] == "organization_registered")
        assert registered["slug"] == "acme"
        assert "user_registered" in [r["message"] for r in logs]


class TestJoinWithInviteCode:
    def test_join_as_employee(self, services):
        founder = services.tenants.register_organization("Acme", "a@acme.test", "A")
        joined = services.tenants.join_with_invite_code(
            f" {founder.tenant.invite_code} ", "b@acme.test", "B",
        )
        assert joined.tenant.id == founder.tenant.id
        assert joined.user.role == Role.EMPLOYEE

    def test_first_member_of_empty_tenant_is_admin(
        self, services, directory, deterministic_clock,
    ):
        directory.add_tenant(Tenant(
            id=uuid4(), name="Empty", slug="empty",
            created_at=deterministic_clock.now(), invite_code="777777",
        ))
        joined = services.tenants.join_with_invite_code("777777", "x@empty.test", "X")
        assert joined.user.role == Role.ADMIN

    def test_unknown_code(self, services):
        with pytest.raises(InviteCodeNotFoundError):
            services.tenants.join_with_invite_code("000000", "b@acme.test", "B")

    def test_blank_code(self, services):
        with pytest.raises(InviteCodeNotFoundError):
            services.tenants.join_with_invite_code("   ", "b@acme.test", "B")

    def test_inactive_tenant_code(self, services, directory, deterministic_clock):
        directory.add_tenant(Tenant(
            id=uuid4(), name="Closed", slug="closed",
            created_at=deterministic_clock.now(), invite_code="555555", is_active=False,
        ))
        with pytest.raises(InviteCodeNotFoundError):
            services.tenants.join_with_invite_code("555555", "b@closed.test", "B")

    def test_duplicate_email_in_tenant(self, services):
        founder = services.tenants.register_organization("Acme", "a@acme.test", "A")
        with pytest.raises(DuplicateEmailError):
            services.tenants.join_with_invite_code(
                founder.tenant.invite_code, "A@ACME.test", "Again",
            )

    def test_same_email_in_other_tenant_allowed(self, services):
        acme = services.tenants.register_organization("Acme", "a@shared.test", "A")
        globex = services.tenants.register_organization("Globex", "g@globex.test", "G")
        joined = services.tenants.join_with_invite_code(
            globex.tenant.invite_code, "a@shared.test", "A",
        )
        assert joined.tenant.id != acme.tenant.id


class TestInviteCodes:
    def test_admin_reads_code(self, services):
        registration = services.tenants.register_organization("Acme", "a@acme.test", "A")
        ctx = ctx_for_registration(registration)
        assert services.tenants.get_invite_code(ctx) == registration.tenant.invite_code

    def test_non_admin_refused(self, services, employee_ctx):
        with pytest.raises(RoleNotPermittedError):
            services.tenants.get_invite_code(employee_ctx)

    def test_collision_retried(self, directory, deterministic_clock):
        directory.add_tenant(Tenant(
            id=uuid4(), name="Taken", slug="taken",
            created_at=deterministic_clock.now(), invite_code="111111",
        ))
        codes = iter(["111111", "222222"])
        service = TenantService(
            directory, CategoryService(directory), deterministic_clock,
            code_generator=lambda length: next(codes),
        )
        registration = service.register_organization("Acme", "a@acme.test", "A")
        assert registration.tenant.invite_code == "222222"

    def test_collision_exhausted(self, directory, deterministic_clock):
        directory.add_tenant(Tenant(
            id=uuid4(), name="Taken", slug="taken",
            created_at=deterministic_clock.now(), invite_code="111111",
        ))
        service = TenantService(
            directory, CategoryService(directory), deterministic_clock,
            code_generator=lambda length: "111111",
        )
        with pytest.raises(InviteCodeCollisionError):
            service.register_organization("Acme", "a@acme.test", "A")

    def test_backfill(self, services, acme, globex, admin_ctx):
        updated = services.tenants.backfill_invite_codes()
        assert set(updated) == {acme.tenant.id, globex.tenant.id}
        assert services.tenants.get_invite_code(admin_ctx) is not None
        assert services.tenants.backfill_invite_codes() == []

    def test_configured_code_length(self, session, deterministic_clock):
        services = build_services(session, clock=deterministic_clock, invite_code_length=8)
        registration = services.tenants.register_organization("Acme", "a@acme.test", "A")
        assert len(registration.tenant.invite_code) == 8


class TestListActiveTenants:
    def test_lists_active_by_name(
        self, services, acme, globex, directory, deterministic_clock,
    ):
        directory.add_tenant(Tenant(
            id=uuid4(), name="Closed", slug="closed",
            created_at=deterministic_clock.now(), is_active=False,
        ))
        views = services.tenants.list_active_tenants()
        assert [v.slug for v in views] == ["acme", "globex"]
        assert "invite_code" not in views[0].to_dict()
