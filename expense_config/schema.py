"""
Settings schema.

Frozen dataclasses the YAML settings file is parsed into.  The loader
builds them; everything else only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from expense_kernel.domain.dtos import CategoryTemplate

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Arguments for ``expense_kernel.db.init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class DirectorySettings:
    """Tenant directory behaviour."""

    invite_code_length: int = 6
    default_categories: tuple[CategoryTemplate, ...] = ()


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    """The complete runtime settings."""

    database: DatabaseSettings
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    directory: DirectorySettings = field(default_factory=DirectorySettings)
    source: str = "<defaults>"
