"""
ORM model tests for expense persistence.

Tests: ExpenseModel and ApprovalEventModel -- DTO conversion, structural
constraints and append-only enforcement of approval events.

These are ORM-level tests only.  Service-layer behaviour is tested elsewhere.
"""

from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from expense_kernel.domain.dtos import ApprovalEvent, Expense
from expense_kernel.domain.values import ApprovalAction, ExpenseStatus
from expense_kernel.exceptions import ImmutabilityViolationError, UnknownStatusError
from expense_kernel.models.approval_event import ApprovalEventModel
from expense_kernel.models.expense import ExpenseModel
from expense_kernel.models.user import UserModel

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _expense(acme, **overrides) -> Expense:
    fields = dict(
        id=uuid4(),
        tenant_id=acme.tenant.id,
        user_id=acme.employee.id,
        category_id=acme.travel.id,
        title="Train ticket",
        amount=Decimal("19.90"),
        expense_date=date(2024, 1, 1),
        created_at=NOW,
        updated_at=NOW,
    )
    fields.update(overrides)
    return Expense(**fields)


def _event(acme, expense_id, sequence=0) -> ApprovalEvent:
    return ApprovalEvent(
        tenant_id=acme.tenant.id,
        expense_id=expense_id,
        actor_id=acme.employee.id,
        action=ApprovalAction.SUBMITTED,
        created_at=NOW,
        sequence=sequence,
    )


def _expense_stub() -> Expense:
    return Expense(
        id=uuid4(),
        tenant_id=uuid4(),
        user_id=uuid4(),
        category_id=uuid4(),
        title="Stub",
        amount=Decimal("1.00"),
        expense_date=date(2024, 1, 1),
        created_at=NOW,
        updated_at=NOW,
    )


# ---------------------------------------------------------------------------
# ExpenseModel
# ---------------------------------------------------------------------------


class TestExpenseModel:
    def test_insert_assigns_version_one(self, acme, expense_store):
        saved = expense_store.save(_expense(acme))
        assert saved.version == 1
        assert saved.is_persisted

    def test_round_trip_preserves_amount_and_timestamps(self, acme, expense_store):
        saved = expense_store.save(_expense(acme, amount=Decimal("1234567.89")))
        loaded = expense_store.find_by_id(acme.tenant.id, saved.id)
        assert loaded.amount == Decimal("1234567.89")
        assert loaded.created_at == NOW
        assert loaded.created_at.tzinfo is not None
        assert loaded.status == ExpenseStatus.DRAFT

    def test_unknown_status_refused_on_read(self):
        model = ExpenseModel.from_dto(replace(_expense_stub(), version=1))
        model.status = "ARCHIVED"
        with pytest.raises(UnknownStatusError) as exc_info:
            model.to_dto()
        assert exc_info.value.value == "ARCHIVED"

    def test_non_positive_amount_rejected_by_database(self, acme, session):
        session.add(ExpenseModel.from_dto(replace(
            _expense(acme, amount=Decimal("0.00")), version=1,
        )))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_save_never_moves_tenant_or_owner(self, acme, globex, expense_store):
        saved = expense_store.save(_expense(acme))
        moved = expense_store.save(
            replace(saved, title="Renamed", user_id=globex.employee.id)
        )
        loaded = expense_store.find_by_id(acme.tenant.id, saved.id)
        assert loaded.title == "Renamed"
        assert loaded.user_id == acme.employee.id
        assert moved.version == 2

    def test_find_by_id_scoped_to_tenant(self, acme, globex, expense_store):
        saved = expense_store.save(_expense(acme))
        assert expense_store.find_by_id(globex.tenant.id, saved.id) is None


# ---------------------------------------------------------------------------
# ApprovalEventModel
# ---------------------------------------------------------------------------


class TestApprovalEventModel:
    def test_append_numbers_events(self, acme, expense_store):
        expense = expense_store.save(_expense(acme))
        first = expense_store.append_event(_event(acme, expense.id))
        second = expense_store.append_event(_event(acme, expense.id))
        assert (first.sequence, second.sequence) == (1, 2)

    def test_update_refused(self, acme, session, expense_store):
        expense = expense_store.save(_expense(acme))
        stored = expense_store.append_event(_event(acme, expense.id))

        model = session.get(ApprovalEventModel, stored.id)
        model.comment = "rewritten"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "ApprovalEvent"

    def test_delete_refused(self, acme, session, expense_store):
        expense = expense_store.save(_expense(acme))
        stored = expense_store.append_event(_event(acme, expense.id))

        session.delete(session.get(ApprovalEventModel, stored.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_duplicate_sequence_rejected(self, acme, session, expense_store):
        expense = expense_store.save(_expense(acme))
        session.add(ApprovalEventModel.from_dto(_event(acme, expense.id, sequence=1)))
        session.add(ApprovalEventModel.from_dto(_event(acme, expense.id, sequence=1)))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_unknown_action_refused_on_read(self, acme):
        model = ApprovalEventModel.from_dto(_event(acme, uuid4(), sequence=1))
        model.action = "ESCALATED"
        with pytest.raises(UnknownStatusError):
            model.to_dto()


class TestUserModel:
    def test_unknown_role_refused_on_read(self, acme, session):
        model = session.get(UserModel, acme.employee.id)
        model.role = "AUDITOR"
        with pytest.raises(UnknownStatusError):
            model.to_dto()
