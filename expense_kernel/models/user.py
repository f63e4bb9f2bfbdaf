"""
Module: expense_kernel.models.user
Responsibility: ORM persistence for tenant users.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain DTOs only.

Invariants enforced:
    - (tenant_id, email) is unique: one account per email per organization.
    - role is one of EMPLOYEE, MANAGER, FINANCE, ADMIN (DB check constraint).

Failure modes:
    - IntegrityError on duplicate (tenant_id, email).
    - UnknownStatusError when a stored role is outside the vocabulary.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.domain.dtos import UserAccount
from expense_kernel.domain.values import Role
from expense_kernel.exceptions import UnknownStatusError


class UserModel(Base):
    """A user of one tenant.  Credentials are held by the identity provider."""

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
        CheckConstraint(
            "role IN ('EMPLOYEE', 'MANAGER', 'FINANCE', 'ADMIN')",
            name="ck_users_valid_role",
        ),
        Index("ix_users_tenant", "tenant_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="EMPLOYEE")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"

    def to_dto(self) -> UserAccount:
        """Convert ORM model to frozen domain DTO."""
        try:
            role = Role(self.role)
        except ValueError:
            raise UnknownStatusError("User", str(self.id), self.role) from None
        return UserAccount(
            id=self.id,
            tenant_id=self.tenant_id,
            email=self.email,
            name=self.name,
            department=self.department,
            role=role,
            is_active=self.is_active,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: UserAccount) -> UserModel:
        """Create ORM model from domain DTO."""
        return cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            email=dto.email,
            name=dto.name,
            department=dto.department,
            role=dto.role.value,
            is_active=dto.is_active,
            created_at=dto.created_at,
        )
