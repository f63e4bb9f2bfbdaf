"""
Kernel services.

``build_services`` wires the SQL record stores on one caller-owned session
to every service, so that all of them write inside the same unit of work.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.orm import Session

from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.domain.dtos import CategoryTemplate
from expense_kernel.services.audit_trail import AuditTrail
from expense_kernel.services.category_service import CategoryService
from expense_kernel.services.expense_queries import ExpenseQueries
from expense_kernel.services.expense_workflow import ExpenseWorkflowEngine
from expense_kernel.services.identity import (
    Credential,
    DirectoryIdentityProvider,
    IdentityProvider,
)
from expense_kernel.services.tenant_service import Registration, TenantService
from expense_kernel.services.user_service import UserService
from expense_kernel.store.sql import SqlDirectoryStore, SqlExpenseRecordStore


@dataclass(frozen=True)
class KernelServices:
    """Every service, bound to one session."""

    workflow: ExpenseWorkflowEngine
    queries: ExpenseQueries
    audit: AuditTrail
    categories: CategoryService
    users: UserService
    tenants: TenantService
    identity: DirectoryIdentityProvider


def build_services(
    session: Session,
    clock: Clock | None = None,
    default_categories: Sequence[CategoryTemplate] = (),
    invite_code_length: int = 6,
) -> KernelServices:
    """Wire all services to SQL stores on ``session``.

    Usage:
        with session_scope() as session:
            services = build_services(session, default_categories=templates)
            services.workflow.submit(ctx, expense_id)
    """
    clock = clock or SystemClock()
    expenses = SqlExpenseRecordStore(session)
    directory = SqlDirectoryStore(session)
    audit = AuditTrail(expenses, directory, clock)
    categories = CategoryService(directory, default_categories)
    return KernelServices(
        workflow=ExpenseWorkflowEngine(expenses, directory, clock, audit),
        queries=ExpenseQueries(expenses, directory),
        audit=audit,
        categories=categories,
        users=UserService(directory),
        tenants=TenantService(
            directory, categories, clock, invite_code_length=invite_code_length,
        ),
        identity=DirectoryIdentityProvider(directory),
    )


__all__ = [
    "AuditTrail",
    "CategoryService",
    "Credential",
    "DirectoryIdentityProvider",
    "ExpenseQueries",
    "ExpenseWorkflowEngine",
    "IdentityProvider",
    "KernelServices",
    "Registration",
    "TenantService",
    "UserService",
    "build_services",
]
