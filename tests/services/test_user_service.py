"""Tests for UserService -- tenant user administration."""

from uuid import uuid4

import pytest

from expense_kernel.domain.values import Role
from expense_kernel.exceptions import (
    RoleNotPermittedError,
    SelfAdministrationError,
    UserNotFoundError,
    ValidationFailedError,
)
from expense_kernel.services.identity import Credential
from tests.factories import ctx_for


class TestUserAdministration:
    def test_list_users_sorted_by_name(self, services, admin_ctx):
        names = [u.name for u in services.users.list_users(admin_ctx)]
        assert names == ["U1", "U2", "U3", "U4"]

    @pytest.mark.parametrize("role", [Role.EMPLOYEE, Role.MANAGER, Role.FINANCE])
    def test_non_admin_refused(self, services, acme, role):
        ctx = ctx_for(acme.user(role))
        with pytest.raises(RoleNotPermittedError):
            services.users.list_users(ctx)
        with pytest.raises(RoleNotPermittedError):
            services.users.update_role(ctx, acme.employee.id, Role.MANAGER)

    def test_promote(self, services, acme, admin_ctx, captured_logs):
        view = services.users.update_role(admin_ctx, acme.employee.id, Role.MANAGER)
        assert view.role == Role.MANAGER
        log = next(r for r in captured_logs() if r["message"] == "user_role_changed")
        assert log["old_role"] == "EMPLOYEE"
        assert log["new_role"] == "MANAGER"

    def test_role_change_applies_on_next_request(
        self, services, acme, admin_ctx, submitted_expense,
    ):
        services.users.update_role(admin_ctx, acme.finance.id, Role.EMPLOYEE)
        ctx = services.identity.context_for(Credential(acme.finance.id, acme.tenant.id))
        assert ctx.role == Role.EMPLOYEE
        with pytest.raises(RoleNotPermittedError):
            services.workflow.approve(ctx, submitted_expense.id)

    def test_role_given_by_name(self, services, acme, admin_ctx):
        view = services.users.update_role(admin_ctx, acme.employee.id, "FINANCE")
        assert view.role == Role.FINANCE

    @pytest.mark.parametrize("role", ["SUPERUSER", "manager", "", None])
    def test_unknown_role_rejected(self, services, acme, admin_ctx, role):
        with pytest.raises(ValidationFailedError) as exc_info:
            services.users.update_role(admin_ctx, acme.employee.id, role)
        assert exc_info.value.field_errors[0]["field"] == "role"
        users = {u.id: u for u in services.users.list_users(admin_ctx)}
        assert users[acme.employee.id].role == Role.EMPLOYEE

    def test_admin_cannot_change_own_role(self, services, acme, admin_ctx):
        with pytest.raises(SelfAdministrationError):
            services.users.update_role(admin_ctx, acme.admin.id, Role.EMPLOYEE)

    def test_toggle_active(self, services, acme, admin_ctx):
        assert services.users.toggle_active(admin_ctx, acme.manager.id).is_active is False
        assert services.users.toggle_active(admin_ctx, acme.manager.id).is_active is True

    def test_admin_cannot_deactivate_self(self, services, acme, admin_ctx):
        with pytest.raises(SelfAdministrationError):
            services.users.toggle_active(admin_ctx, acme.admin.id)

    def test_update_department(self, services, acme, admin_ctx):
        assert services.users.update_department(
            admin_ctx, acme.employee.id, "  Sales ",
        ).department == "Sales"
        assert services.users.update_department(
            admin_ctx, acme.employee.id, "",
        ).department is None

    def test_unknown_or_foreign_user(self, services, admin_ctx, globex):
        with pytest.raises(UserNotFoundError):
            services.users.toggle_active(admin_ctx, uuid4())
        with pytest.raises(UserNotFoundError):
            services.users.update_role(admin_ctx, globex.employee.id, Role.ADMIN)
