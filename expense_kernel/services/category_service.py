"""
CategoryService -- tenant expense categories.

Responsibility:
    Lists categories (seeding the configured defaults into a tenant that
    has no active category), and lets administrators create, rename and
    activate/deactivate them.

Architecture position:
    Kernel > Services.  Depends on the DirectoryStore contract.  Default
    categories are injected as CategoryTemplate values; the kernel never
    reads configuration itself.

Invariants enforced:
    - Category names are unique per tenant, compared case-insensitively.
    - Administration requires ADMIN.
    - Deactivation hides a category from ``list_categories`` but existing
      expenses keep referencing it.

Failure modes:
    - DuplicateCategoryError on a name collision.
    - CategoryNotFoundError for an absent or foreign category id.
    - RoleNotPermittedError for non-admin administration calls.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from uuid import UUID, uuid4

from expense_kernel.domain.authorization import (
    ADMIN_ROLES,
    require_role,
    require_valid_context,
)
from expense_kernel.domain.dtos import Category, CategoryTemplate
from expense_kernel.domain.validation import validate_name
from expense_kernel.domain.values import RequestContext
from expense_kernel.domain.views import CategoryView
from expense_kernel.exceptions import CategoryNotFoundError, DuplicateCategoryError
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.store.contract import DirectoryStore

logger = get_logger("services.category")

DEFAULT_ICON = "📋"


class CategoryService:
    """Category listing and administration."""

    def __init__(
        self,
        directory: DirectoryStore,
        default_categories: Sequence[CategoryTemplate] = (),
    ):
        self._directory = directory
        self._defaults = tuple(default_categories)

    def seed_defaults(self, tenant_id: UUID) -> list[Category]:
        """Add every default category the tenant does not have yet, by name."""
        added = []
        for template in self._defaults:
            if self._directory.find_category_by_name(tenant_id, template.name) is None:
                added.append(self._directory.add_category(Category(
                    id=uuid4(),
                    tenant_id=tenant_id,
                    name=template.name,
                    icon=template.icon,
                    description=template.description,
                )))
        if added:
            logger.info(
                "default_categories_seeded",
                extra={"tenant_id": str(tenant_id), "count": len(added)},
            )
        return added

    def list_categories(self, ctx: RequestContext) -> list[CategoryView]:
        """Active categories; seeds the defaults when there are none."""
        require_valid_context(ctx)
        categories = self._directory.list_categories(ctx.tenant_id)
        if not categories:
            self.seed_defaults(ctx.tenant_id)
            categories = self._directory.list_categories(ctx.tenant_id)
        return [CategoryView.build(c) for c in categories]

    def list_all_categories(self, ctx: RequestContext) -> list[CategoryView]:
        """Active and inactive categories, for administrators."""
        require_valid_context(ctx)
        require_role(ctx, ADMIN_ROLES, "list all categories")
        return [
            CategoryView.build(c)
            for c in self._directory.list_categories(ctx.tenant_id, active_only=False)
        ]

    def create_category(
        self,
        ctx: RequestContext,
        name: str,
        icon: str | None = None,
        description: str | None = None,
    ) -> CategoryView:
        require_valid_context(ctx)
        require_role(ctx, ADMIN_ROLES, "create category")
        clean_name = validate_name(name, "name")
        if self._directory.find_category_by_name(ctx.tenant_id, clean_name) is not None:
            raise DuplicateCategoryError(clean_name)

        category = self._directory.add_category(Category(
            id=uuid4(),
            tenant_id=ctx.tenant_id,
            name=clean_name,
            icon=icon or DEFAULT_ICON,
            description=description,
        ))
        with LogContext.bind_request(ctx):
            logger.info(
                "category_created",
                extra={"category_id": str(category.id), "category_name": category.name},
            )
        return CategoryView.build(category)

    def update_category(
        self,
        ctx: RequestContext,
        category_id: UUID,
        name: str,
        icon: str | None = None,
        description: str | None = None,
    ) -> CategoryView:
        """Rename and re-describe a category.  A None icon keeps the current one."""
        require_valid_context(ctx)
        require_role(ctx, ADMIN_ROLES, "update category")
        clean_name = validate_name(name, "name")
        category = self._load(ctx, category_id)

        existing = self._directory.find_category_by_name(ctx.tenant_id, clean_name)
        if existing is not None and existing.id != category.id:
            raise DuplicateCategoryError(clean_name)

        saved = self._directory.save_category(replace(
            category,
            name=clean_name,
            icon=icon if icon is not None else category.icon,
            description=description,
        ))
        logger.info("category_updated", extra={"category_id": str(saved.id)})
        return CategoryView.build(saved)

    def toggle_category_active(self, ctx: RequestContext, category_id: UUID) -> CategoryView:
        require_valid_context(ctx)
        require_role(ctx, ADMIN_ROLES, "toggle category")
        category = self._load(ctx, category_id)
        saved = self._directory.save_category(
            replace(category, is_active=not category.is_active)
        )
        logger.info(
            "category_toggled",
            extra={"category_id": str(saved.id), "is_active": saved.is_active},
        )
        return CategoryView.build(saved)

    def _load(self, ctx: RequestContext, category_id: UUID) -> Category:
        category = self._directory.get_category(ctx.tenant_id, category_id)
        if category is None:
            raise CategoryNotFoundError(str(category_id))
        return category
