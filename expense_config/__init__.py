"""
expense_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads the settings
    file or the ``EXPENSEOPS_*`` environment variables directly.

Architecture position:
    Configuration.  Sits above ``expense_kernel``: it may import kernel
    domain types (CategoryTemplate), but the kernel MUST NEVER import from
    ``expense_config``.  Services receive settings values through their
    constructors.

Invariants enforced:
    - Single entrypoint: all runtime settings flow through
      ``get_active_settings()``.
    - Environment overrides are applied before parsing, so the returned
      Settings already reflects them.

Failure modes:
    - ``FileNotFoundError`` -- settings file missing.
    - ``KeyError`` / ``ValueError`` -- required key missing or invalid.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``SETTINGS_TRACE`` log entry naming the source file, database dialect,
    log level and category count.  The database URL itself is not logged.
"""

from __future__ import annotations

import logging
from pathlib import Path

from expense_config.loader import load_settings
from expense_config.schema import (
    DatabaseSettings,
    DirectorySettings,
    LoggingSettings,
    Settings,
)

_logger = logging.getLogger("expense_kernel.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "defaults" / "settings.yaml"


def get_active_settings(path: Path | None = None) -> Settings:
    """The ONLY public settings entrypoint.

    Args:
        path: Override path to a settings YAML file.
            Defaults to expense_config/defaults/settings.yaml.

    Returns:
        Frozen Settings with environment overrides applied.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value is out of range.
    """
    settings = load_settings(Path(path) if path is not None else _DEFAULT_SETTINGS_FILE)

    _logger.info(
        "SETTINGS_TRACE",
        extra={
            "trace_type": "SETTINGS_TRACE",
            "settings_source": settings.source,
            "database_dialect": settings.database.url.split(":", 1)[0],
            "log_level": settings.logging.level,
            "default_category_count": len(settings.directory.default_categories),
        },
    )
    return settings


__all__ = [
    "get_active_settings",
    "Settings",
    "DatabaseSettings",
    "LoggingSettings",
    "DirectorySettings",
]
