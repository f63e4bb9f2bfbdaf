"""
Input validation for workflow payloads.

Pure checks with no I/O.  Every failing field is collected and reported
together in one ValidationFailedError rather than stopping at the first.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from expense_kernel.domain.dtos import ExpenseDraft
from expense_kernel.domain.values import MAX_AMOUNT, Role, round_amount
from expense_kernel.exceptions import ValidationFailedError

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
RECEIPT_URL_MAX_LENGTH = 2048
REASON_MIN_LENGTH = 5
REASON_MAX_LENGTH = 500


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def _check_amount(amount: Any, errors: list[dict]) -> Decimal | None:
    if amount is None:
        errors.append(_error("amount", "Amount is required"))
        return None
    if isinstance(amount, (float, bool)) or not isinstance(amount, (Decimal, int)):
        errors.append(_error("amount", "Amount must be a Decimal"))
        return None
    value = Decimal(amount)
    if not value.is_finite():
        errors.append(_error("amount", "Amount is not a finite number"))
        return None
    try:
        quantized = round_amount(value)
    except InvalidOperation:
        errors.append(_error("amount", f"Amount must not exceed {MAX_AMOUNT}"))
        return None
    if quantized <= 0:
        errors.append(_error("amount", "Amount must be greater than 0"))
        return None
    if quantized > MAX_AMOUNT:
        errors.append(_error("amount", f"Amount must not exceed {MAX_AMOUNT}"))
        return None
    return quantized


def validate_draft(draft: ExpenseDraft) -> ExpenseDraft:
    """Validate a create/update payload.

    Returns:
        The draft with its title stripped and its amount quantized to cents.

    Raises:
        ValidationFailedError: One or more fields are invalid.
    """
    errors: list[dict] = []

    title = (draft.title or "").strip()
    if not title:
        errors.append(_error("title", "Title is required"))
    elif not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
        errors.append(_error(
            "title",
            f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters",
        ))

    if draft.description is not None and len(draft.description) > DESCRIPTION_MAX_LENGTH:
        errors.append(_error(
            "description",
            f"Description must not exceed {DESCRIPTION_MAX_LENGTH} characters",
        ))

    amount = _check_amount(draft.amount, errors)

    if draft.category_id is None:
        errors.append(_error("category_id", "Category is required"))

    if draft.expense_date is None:
        errors.append(_error("expense_date", "Expense date is required"))
    elif not isinstance(draft.expense_date, date):
        errors.append(_error("expense_date", "Expense date must be a date"))

    if draft.receipt_url is not None and len(draft.receipt_url) > RECEIPT_URL_MAX_LENGTH:
        errors.append(_error(
            "receipt_url",
            f"Receipt URL must not exceed {RECEIPT_URL_MAX_LENGTH} characters",
        ))

    if errors:
        raise ValidationFailedError(errors)

    return replace(draft, title=title, amount=amount)


def validate_rejection_reason(reason: str | None) -> str:
    """Return the stripped reason or raise ValidationFailedError."""
    text = (reason or "").strip()
    if not text:
        raise ValidationFailedError([_error("reason", "Rejection reason is required")])
    if not REASON_MIN_LENGTH <= len(text) <= REASON_MAX_LENGTH:
        raise ValidationFailedError([_error(
            "reason",
            f"Reason must be between {REASON_MIN_LENGTH} and {REASON_MAX_LENGTH} characters",
        )])
    return text


def validate_name(value: str | None, field: str, max_length: int = 100) -> str:
    """Required short text field (category, user and organization names)."""
    text = (value or "").strip()
    if not text:
        raise ValidationFailedError([_error(field, f"{field.capitalize()} is required")])
    if len(text) > max_length:
        raise ValidationFailedError([_error(
            field, f"{field.capitalize()} must not exceed {max_length} characters",
        )])
    return text


def validate_email(value: str | None) -> str:
    """Normalize an email to lower case; minimal shape check only."""
    text = (value or "").strip().lower()
    local, sep, domain = text.partition("@")
    if not sep or not local or "." not in domain:
        raise ValidationFailedError([_error("email", "A valid email is required")])
    return text


def parse_role(value: Role | str | None) -> Role:
    """Role from its stored name, e.g. ``"MANAGER"``."""
    try:
        return Role(value)
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationFailedError([_error("role", f"Role must be one of {allowed}")]) from None
