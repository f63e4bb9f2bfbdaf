"""
Module: expense_kernel.models.approval_event
Responsibility: ORM persistence for the expense audit trail.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain DTOs only.

Invariants enforced:
    - Append-only: ORM listeners reject UPDATE and DELETE.
    - action is one of SUBMITTED, APPROVED, REJECTED, REIMBURSED.
    - UNIQUE(expense_id, sequence): one total order per expense.  Two
      concurrent appends that computed the same next sequence cannot both
      commit.
    - expense_id is not a foreign key: the trail of a revised draft that is
      later deleted outlives the expense row.

Failure modes:
    - ImmutabilityViolationError on event UPDATE/DELETE.
    - IntegrityError on a duplicate (expense_id, sequence).
    - UnknownStatusError on an out-of-vocabulary stored action.

Audit relevance:
    This table is the audit contract read back by history views.  Action
    strings are persisted verbatim.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.domain.dtos import ApprovalEvent
from expense_kernel.domain.values import ApprovalAction
from expense_kernel.exceptions import ImmutabilityViolationError, UnknownStatusError


class ApprovalEventModel(Base):
    """Persistent workflow event.  Append-only."""

    __tablename__ = "approval_events"

    __table_args__ = (
        CheckConstraint(
            "action IN ('SUBMITTED', 'APPROVED', 'REJECTED', 'REIMBURSED')",
            name="ck_approval_events_valid_action",
        ),
        UniqueConstraint(
            "expense_id", "sequence",
            name="uq_approval_events_expense_sequence",
        ),
        Index("ix_approval_events_tenant_expense", "tenant_id", "expense_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False,
    )
    expense_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ApprovalEvent {self.id} expense={self.expense_id} "
            f"#{self.sequence} {self.action}>"
        )

    def to_dto(self) -> ApprovalEvent:
        """Convert ORM model to frozen domain DTO."""
        try:
            action = ApprovalAction(self.action)
        except ValueError:
            raise UnknownStatusError("ApprovalEvent", str(self.id), self.action) from None
        return ApprovalEvent(
            id=self.id,
            tenant_id=self.tenant_id,
            expense_id=self.expense_id,
            actor_id=self.actor_id,
            action=action,
            comment=self.comment,
            sequence=self.sequence,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: ApprovalEvent) -> ApprovalEventModel:
        """Create ORM model from domain DTO."""
        return cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            expense_id=dto.expense_id,
            actor_id=dto.actor_id,
            action=dto.action.value,
            comment=dto.comment,
            sequence=dto.sequence,
            created_at=dto.created_at,
        )


# =============================================================================
# ORM-Level Immutability for Events (Append-Only)
# =============================================================================


@event.listens_for(ApprovalEventModel, "before_update")
def prevent_event_update(mapper, connection, target):
    """Prevent updates to approval event records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalEvent",
        entity_id=str(target.id),
        reason="Approval events are immutable -- cannot modify",
    )


@event.listens_for(ApprovalEventModel, "before_delete")
def prevent_event_delete(mapper, connection, target):
    """Prevent deletion of approval event records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalEvent",
        entity_id=str(target.id),
        reason="Approval events are immutable -- cannot delete",
    )
