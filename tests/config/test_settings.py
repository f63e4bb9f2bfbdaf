"""
Tests for runtime settings (expense_config).

Covers:
- The shipped defaults file parses and seeds eight categories
- Environment overrides win over the file
- Malformed settings fail loudly
- get_active_settings() emits SETTINGS_TRACE without leaking the URL
- Bridges hand settings values to the kernel
"""

from dataclasses import replace
from pathlib import Path

import pytest
import yaml

from expense_config import get_active_settings
from expense_config.bridges import init_from_settings, services_for
from expense_config.loader import (
    ENV_DATABASE_URL,
    ENV_LOG_LEVEL,
    apply_env_overrides,
    load_settings,
    parse_settings,
)
from expense_config.schema import DatabaseSettings, Settings
from expense_kernel.db.engine import create_tables, get_session, reset_engine
from expense_kernel.domain.values import RequestContext, Role

DEFAULTS = Path(__file__).resolve().parents[2] / "expense_config" / "defaults" / "settings.yaml"


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestDefaults:
    def test_defaults_parse(self):
        settings = load_settings(DEFAULTS, environ={})
        assert settings.database.url.startswith("sqlite")
        assert settings.logging.level == "INFO"
        assert settings.directory.invite_code_length == 6
        names = [c.name for c in settings.directory.default_categories]
        assert len(names) == 8
        assert "Travel" in names
        assert settings.source == str(DEFAULTS)

    def test_categories_have_icons(self):
        settings = load_settings(DEFAULTS, environ={})
        assert all(c.icon for c in settings.directory.default_categories)


class TestEnvironmentOverrides:
    def test_env_wins(self):
        settings = load_settings(DEFAULTS, environ={
            ENV_DATABASE_URL: "postgresql://expense:pw@db/expenses",
            ENV_LOG_LEVEL: "debug",
        })
        assert settings.database.url == "postgresql://expense:pw@db/expenses"
        assert settings.logging.level == "DEBUG"

    def test_empty_env_value_ignored(self):
        settings = load_settings(DEFAULTS, environ={ENV_DATABASE_URL: ""})
        assert settings.database.url.startswith("sqlite")

    def test_overrides_do_not_mutate_input(self):
        data = {"database": {"url": "sqlite://"}}
        apply_env_overrides(data, {ENV_DATABASE_URL: "sqlite:///other.db"})
        assert data["database"]["url"] == "sqlite://"


class TestInvalidSettings:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml", environ={})

    def test_missing_database_section(self):
        with pytest.raises(KeyError):
            parse_settings({"logging": {"level": "INFO"}})

    def test_unknown_log_level(self):
        with pytest.raises(ValueError, match="log level"):
            parse_settings({"database": {"url": "sqlite://"}, "logging": {"level": "LOUD"}})

    @pytest.mark.parametrize("length", [3, 21])
    def test_invite_code_length_bounds(self, length):
        with pytest.raises(ValueError, match="invite_code_length"):
            parse_settings({
                "database": {"url": "sqlite://"},
                "directory": {"invite_code_length": length},
            })

    def test_duplicate_default_categories(self, tmp_path):
        path = _write(tmp_path, {
            "database": {"url": "sqlite://"},
            "directory": {"default_categories": [
                {"name": "Travel", "icon": "✈️"},
                {"name": "travel", "icon": "🚆"},
            ]},
        })
        with pytest.raises(ValueError, match="duplicate"):
            load_settings(path, environ={})

    def test_category_without_name(self):
        with pytest.raises(KeyError):
            parse_settings({
                "database": {"url": "sqlite://"},
                "directory": {"default_categories": [{"icon": "📋"}]},
            })


class TestActiveSettings:
    def test_settings_trace_logged(self, tmp_path, captured_logs, monkeypatch):
        monkeypatch.delenv(ENV_DATABASE_URL, raising=False)
        path = _write(tmp_path, {
            "database": {"url": "postgresql://expense:secret@db/expenses"},
            "directory": {"default_categories": [{"name": "Travel", "icon": "✈️"}]},
        })
        settings = get_active_settings(path)
        assert isinstance(settings, Settings)

        trace = next(r for r in captured_logs() if r["message"] == "SETTINGS_TRACE")
        assert trace["trace_type"] == "SETTINGS_TRACE"
        assert trace["logger"] == "expense_kernel.config"
        assert trace["settings_source"] == str(path)
        assert trace["database_dialect"] == "postgresql"
        assert trace["default_category_count"] == 1
        assert "secret" not in str(trace)

    def test_default_path(self, settings):
        assert len(settings.directory.default_categories) == 8


class TestBridges:
    def test_init_and_services(self, settings, deterministic_clock):
        in_memory = replace(settings, database=DatabaseSettings(url="sqlite:///:memory:"))
        engine = init_from_settings(in_memory)
        try:
            assert engine.dialect.name == "sqlite"
            create_tables()
            session = get_session()
            try:
                services = services_for(session, in_memory, clock=deterministic_clock)
                registration = services.tenants.register_organization(
                    "Acme", "a@acme.test", "A",
                )
                assert len(registration.tenant.invite_code) == 6
                assert registration.user.role == Role.ADMIN

                ctx = RequestContext.for_principal(registration.principal)
                categories = services.categories.list_categories(ctx)
                assert len(categories) == 8
            finally:
                session.close()
        finally:
            reset_engine()
