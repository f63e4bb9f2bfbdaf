"""
Module: expense_kernel.models.expense
Responsibility: ORM persistence for expense claims.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain DTOs only.

Invariants enforced:
    - status is one of DRAFT, SUBMITTED, APPROVED, REJECTED, REIMBURSED
      (DB check constraint) and is parsed into ExpenseStatus at the storage
      boundary; an unknown stored value raises UnknownStatusError in
      to_dto(), never later in business logic.
    - amount > 0 (DB check constraint), Numeric(12, 2).
    - version >= 1.  The row is only ever updated through the record
      store's compare-and-swap save, which bumps version by exactly one.

Failure modes:
    - UnknownStatusError on an out-of-vocabulary status.
    - IntegrityError on a violated check constraint.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.domain.dtos import Expense
from expense_kernel.domain.values import ExpenseStatus
from expense_kernel.exceptions import UnknownStatusError


class ExpenseModel(Base):
    """One expense claim.

    Guarantees:
        - tenant_id, user_id and created_at are never rewritten by the store.
        - approved_by_name / reimbursed_by_name are snapshots, not references.
    """

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'SUBMITTED', 'APPROVED', 'REJECTED', 'REIMBURSED')",
            name="ck_expenses_valid_status",
        ),
        CheckConstraint("amount > 0", name="ck_expenses_positive_amount"),
        CheckConstraint("version >= 1", name="ck_expenses_version"),
        # Own expenses view
        Index("ix_expenses_tenant_user_created", "tenant_id", "user_id", "created_at"),
        # Pending / awaiting reimbursement / history views
        Index("ix_expenses_tenant_status_updated", "tenant_id", "status", "updated_at"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    category_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("categories.id"), nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    expense_date: Mapped[date] = mapped_column(nullable=False)
    receipt_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_by_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reimbursed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reimbursed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reimbursed_by_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<Expense {self.id} status={self.status} v{self.version}>"

    def to_dto(self) -> Expense:
        """Convert ORM model to frozen domain DTO.

        Raises:
            UnknownStatusError: Stored status is outside the vocabulary.
        """
        try:
            status = ExpenseStatus(self.status)
        except ValueError:
            raise UnknownStatusError("Expense", str(self.id), self.status) from None
        return Expense(
            id=self.id,
            tenant_id=self.tenant_id,
            user_id=self.user_id,
            category_id=self.category_id,
            title=self.title,
            description=self.description,
            amount=self.amount,
            expense_date=self.expense_date,
            receipt_url=self.receipt_url,
            status=status,
            rejection_reason=self.rejection_reason,
            created_at=self.created_at,
            updated_at=self.updated_at,
            submitted_at=self.submitted_at,
            approved_at=self.approved_at,
            approved_by_id=self.approved_by_id,
            approved_by_name=self.approved_by_name,
            reimbursed_at=self.reimbursed_at,
            reimbursed_by_id=self.reimbursed_by_id,
            reimbursed_by_name=self.reimbursed_by_name,
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: Expense) -> ExpenseModel:
        """Create ORM model from domain DTO.  Used for inserts only."""
        return cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            user_id=dto.user_id,
            category_id=dto.category_id,
            title=dto.title,
            description=dto.description,
            amount=dto.amount,
            expense_date=dto.expense_date,
            receipt_url=dto.receipt_url,
            status=dto.status.value,
            rejection_reason=dto.rejection_reason,
            created_at=dto.created_at,
            updated_at=dto.updated_at,
            submitted_at=dto.submitted_at,
            approved_at=dto.approved_at,
            approved_by_id=dto.approved_by_id,
            approved_by_name=dto.approved_by_name,
            reimbursed_at=dto.reimbursed_at,
            reimbursed_by_id=dto.reimbursed_by_id,
            reimbursed_by_name=dto.reimbursed_by_name,
            version=dto.version,
        )

    @staticmethod
    def mutable_values(dto: Expense) -> dict:
        """Column values a compare-and-swap save may rewrite."""
        return {
            "category_id": dto.category_id,
            "title": dto.title,
            "description": dto.description,
            "amount": dto.amount,
            "expense_date": dto.expense_date,
            "receipt_url": dto.receipt_url,
            "status": dto.status.value,
            "rejection_reason": dto.rejection_reason,
            "updated_at": dto.updated_at,
            "submitted_at": dto.submitted_at,
            "approved_at": dto.approved_at,
            "approved_by_id": dto.approved_by_id,
            "approved_by_name": dto.approved_by_name,
            "reimbursed_at": dto.reimbursed_at,
            "reimbursed_by_id": dto.reimbursed_by_id,
            "reimbursed_by_name": dto.reimbursed_by_name,
        }
