"""Test configuration and fixtures."""

import pytest

from autoschema.config import reset_settings
from autoschema.db.base import Database, build_engine, set_database
from autoschema.schema.registry import registry

import sample_models


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Keep settings from the developer's environment out of the tests."""
    for name in ("DATABASE_URL", "MODELS_PACKAGE", "MIGRATIONS_PATH", "BATCH_RECREATE"):
        monkeypatch.delenv(f"AUTOSCHEMA_{name}", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def database():
    """Create a fresh in-memory database for each test."""
    db = Database(build_engine("sqlite://"))
    set_database(db)
    yield db
    set_database(None)
    db.dispose()


@pytest.fixture
def schema(database):
    """In-memory database with a table for every persisted sample model."""
    return sample_models.create_schema(database)


@pytest.fixture
def temporary_models():
    """Unregister models defined inside a test once it finishes."""
    before = set(registry.models())
    yield
    for model in registry.models():
        if model not in before:
            registry.unregister(model)
