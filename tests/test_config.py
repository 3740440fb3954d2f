"""Tests for settings."""

import pytest
from pydantic import ValidationError

from autoschema.config import Settings, get_settings, reset_settings
from autoschema.db.base import DEFAULT_DATABASE_URL, get_database_url


def test_defaults():
    settings = Settings()
    assert settings.database_url is None
    assert settings.models_package == "app.models"
    assert settings.migrations_path == "migrations/versions"
    assert settings.batch_recreate == "auto"


def test_environment_prefix(monkeypatch):
    monkeypatch.setenv("AUTOSCHEMA_DATABASE_URL", "sqlite:///./other.db")
    monkeypatch.setenv("AUTOSCHEMA_BATCH_RECREATE", "always")
    settings = Settings()
    assert settings.database_url == "sqlite:///./other.db"
    assert settings.batch_recreate == "always"


def test_invalid_recreate_mode(monkeypatch):
    monkeypatch.setenv("AUTOSCHEMA_BATCH_RECREATE", "sometimes")
    with pytest.raises(ValidationError):
        Settings()


def test_settings_are_cached_until_reset(monkeypatch):
    first = get_settings()
    assert get_settings() is first
    monkeypatch.setenv("AUTOSCHEMA_MODELS_PACKAGE", "shop.models")
    reset_settings()
    assert get_settings().models_package == "shop.models"


class TestDatabaseUrl:
    def test_default_url(self):
        assert get_database_url() == DEFAULT_DATABASE_URL

    def test_configured_url(self, monkeypatch):
        monkeypatch.setenv("AUTOSCHEMA_DATABASE_URL", "sqlite:///./configured.db")
        assert get_database_url() == "sqlite:///./configured.db"

    def test_async_drivers_become_sync(self):
        assert get_database_url("sqlite+aiosqlite:///./x.db") == "sqlite:///./x.db"
        assert get_database_url("postgresql+asyncpg://u:p@host/db") == "postgresql+psycopg://u:p@host/db"
