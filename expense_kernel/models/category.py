"""
Module: expense_kernel.models.category
Responsibility: ORM persistence for expense categories.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain DTOs only.

Invariants enforced:
    - (tenant_id, name) is unique.

Failure modes:
    - IntegrityError on duplicate (tenant_id, name).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.domain.dtos import Category


class CategoryModel(Base):
    """An expense category owned by one tenant."""

    __tablename__ = "categories"

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_categories_tenant_name"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="📋")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Category {self.name}>"

    def to_dto(self) -> Category:
        """Convert ORM model to frozen domain DTO."""
        return Category(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            icon=self.icon,
            description=self.description,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto: Category) -> CategoryModel:
        """Create ORM model from domain DTO."""
        return cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            name=dto.name,
            icon=dto.icon,
            description=dto.description,
            is_active=dto.is_active,
        )
