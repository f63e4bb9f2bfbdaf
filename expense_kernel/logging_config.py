"""
Structured JSON logging for the expense kernel.

Every kernel log line is one JSON object: ``ts``, ``level``, ``logger`` and
``message``, then the bound request fields, then the record's ``extra``.
Kernel exceptions attached with ``exc_info`` are flattened into ``exc_*``
fields so a denied operation can be filtered by ``exc_code``.

Request fields are bound per operation from the RequestContext::

    with LogContext.bind_request(ctx, action="approve", expense_id=expense_id):
        logger.info("expense_approve")

They are log annotations only.  Data access is scoped by the RequestContext
passed to each service call, never by what is bound here.
"""

from __future__ import annotations

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from expense_kernel.domain.values import RequestContext

_LOGGER_PREFIX = "expense_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "tenant_id",
    "actor_id",
    "expense_id",
    "action",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound: ContextVar[Mapping[str, str]] = ContextVar("expense_log_fields", default=_EMPTY)


class LogContext:
    """Request fields attached to every log line emitted in the current context."""

    @staticmethod
    def current() -> dict[str, str]:
        return dict(_bound.get())

    @staticmethod
    def clear() -> None:
        _bound.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Layer fields over the current ones until the block exits.

        None values are skipped; everything else is stored as ``str``.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(_bound.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _bound.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _bound.reset(token)

    @classmethod
    def bind_request(
        cls,
        ctx: RequestContext,
        action: str | None = None,
        expense_id: UUID | None = None,
    ):
        """Bind tenant and actor from ``ctx``, plus the operation being run."""
        return cls.bind(
            tenant_id=ctx.tenant_id,
            actor_id=ctx.user_id,
            action=action,
            expense_id=expense_id,
        )


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(
    vars(logging.makeLogRecord({})).keys()
) | {"message", "asctime", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (tuple, frozenset, set)):
        return [_jsonable(v) for v in value]
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Kernel exceptions keep their details as public attributes.
    fields.update(
        (f"exc_{name}", value)
        for name, value in vars(exc).items()
        if not name.startswith("_")
    )
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_bound.get(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_jsonable)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_installed: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``expense_kernel`` namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """Install the JSON handler on the kernel logger.

    Only the first call installs anything; later calls return the handler
    already in place and leave the level alone.
    """
    global _installed
    if _installed is not None:
        return _installed

    installed = handler if handler is not None else logging.StreamHandler(sys.stderr)
    installed.setFormatter(StructuredFormatter())

    kernel = logging.getLogger(_LOGGER_PREFIX)
    kernel.setLevel(level.upper() if isinstance(level, str) else level)
    kernel.propagate = False
    kernel.addHandler(installed)
    _installed = installed
    return installed


def reset_logging() -> None:
    """Remove the installed handler so configure_logging() can run again."""
    global _installed
    kernel = logging.getLogger(_LOGGER_PREFIX)
    if _installed is not None:
        kernel.removeHandler(_installed)
        _installed = None
    kernel.setLevel(logging.WARNING)
    kernel.propagate = True
