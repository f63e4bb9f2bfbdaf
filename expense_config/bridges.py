"""
Bridges from Settings to kernel inputs.

The kernel never imports expense_config; these functions translate a
Settings value into the arguments kernel entry points take.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from expense_config.schema import Settings
from expense_kernel.db.engine import init_engine_from_url
from expense_kernel.domain.clock import Clock
from expense_kernel.logging_config import configure_logging
from expense_kernel.services import KernelServices, build_services


def init_from_settings(settings: Settings) -> Engine:
    """Configure logging, then initialize the engine from ``settings``."""
    configure_logging(level=settings.logging.level)
    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )


def services_for(
    session: Session, settings: Settings, clock: Clock | None = None,
) -> KernelServices:
    """Build the kernel services with the configured directory settings."""
    return build_services(
        session,
        clock=clock,
        default_categories=settings.directory.default_categories,
        invite_code_length=settings.directory.invite_code_length,
    )
