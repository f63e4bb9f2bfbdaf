"""
Module: expense_kernel.models.tenant
Responsibility: ORM persistence for tenants (organizations).
Architecture position: Kernel > Models.  May import from db/base.py and
    domain DTOs only.

Invariants enforced:
    - slug is globally unique (organization names map to one slug).
    - invite_code is globally unique; NULL only for tenants created before
      invite codes existed (see TenantService.backfill_invite_codes).

Failure modes:
    - IntegrityError on duplicate slug or invite code.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base
from expense_kernel.domain.dtos import Tenant


class TenantModel(Base):
    """An isolated organization; every other row carries its id."""

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    invite_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Tenant {self.slug}>"

    def to_dto(self) -> Tenant:
        """Convert ORM model to frozen domain DTO."""
        return Tenant(
            id=self.id,
            name=self.name,
            slug=self.slug,
            invite_code=self.invite_code,
            is_active=self.is_active,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: Tenant) -> TenantModel:
        """Create ORM model from domain DTO."""
        return cls(
            id=dto.id,
            name=dto.name,
            slug=dto.slug,
            invite_code=dto.invite_code,
            is_active=dto.is_active,
            created_at=dto.created_at,
        )
