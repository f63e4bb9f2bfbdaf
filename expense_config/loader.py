"""
Settings loader (``expense_config.loader``).

Responsibility
--------------
Loads the YAML settings file, applies environment overrides and parses
the result into ``expense_config.schema`` dataclasses.  Runtime callers use
``expense_config.get_active_settings()``, not this module.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Required keys raise ``KeyError``; malformed values raise ``ValueError``.
  There are no silent defaults for required fields.
* Environment overrides (``EXPENSEOPS_DATABASE_URL``,
  ``EXPENSEOPS_LOG_LEVEL``) win over the file.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from expense_config.schema import (
    DatabaseSettings,
    DirectorySettings,
    LoggingSettings,
    Settings,
)
from expense_kernel.domain.dtos import CategoryTemplate

ENV_DATABASE_URL = "EXPENSEOPS_DATABASE_URL"
ENV_LOG_LEVEL = "EXPENSEOPS_LOG_LEVEL"

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=int(data.get("pool_timeout", 30)),
        pool_recycle=int(data.get("pool_recycle", 1800)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r}")
    return LoggingSettings(level=level)


def parse_category(data: dict[str, Any]) -> CategoryTemplate:
    """Parse one default category entry."""
    return CategoryTemplate(
        name=data["name"],
        icon=data.get("icon", "📋"),
        description=data.get("description"),
    )


def parse_directory(data: dict[str, Any]) -> DirectorySettings:
    length = int(data.get("invite_code_length", 6))
    if not 4 <= length <= 20:
        raise ValueError(f"invite_code_length must be between 4 and 20, got {length}")
    categories = tuple(parse_category(c) for c in data.get("default_categories", ()))
    names = [c.name.lower() for c in categories]
    if len(names) != len(set(names)):
        raise ValueError("default_categories contains duplicate names")
    return DirectorySettings(invite_code_length=length, default_categories=categories)


def apply_env_overrides(
    data: dict[str, Any], environ: Mapping[str, str],
) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    merged = {key: dict(value or {}) for key, value in data.items()}
    if environ.get(ENV_DATABASE_URL):
        merged.setdefault("database", {})["url"] = environ[ENV_DATABASE_URL]
    if environ.get(ENV_LOG_LEVEL):
        merged.setdefault("logging", {})["level"] = environ[ENV_LOG_LEVEL]
    return merged


def parse_settings(data: dict[str, Any], source: str = "<dict>") -> Settings:
    """Parse a full settings mapping."""
    return Settings(
        database=parse_database(data["database"]),
        logging=parse_logging(data.get("logging", {})),
        directory=parse_directory(data.get("directory", {})),
        source=source,
    )


def load_settings(
    path: Path, environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load, override and parse the settings file at ``path``."""
    raw = load_yaml_file(path)
    merged = apply_env_overrides(raw, os.environ if environ is None else environ)
    return parse_settings(merged, source=str(path))
