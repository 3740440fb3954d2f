"""Alembic environment configuration for autoschema projects."""

import os
import sys
from logging.config import fileConfig

import sqlalchemy as sa
from alembic import context
from sqlalchemy import engine_from_config, pool

# Add the project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from autoschema.config import get_settings
from autoschema.db.base import get_database_url
from autoschema.schema.fields import build_table
from autoschema.schema.reflector import reflector
from autoschema.schema.registry import registry
from autoschema.schema.resolver import resolver

# this is the Alembic Config object
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def build_metadata() -> sa.MetaData:
    """Tables of every model with a table declaration in the models package."""
    metadata = sa.MetaData()
    for model in registry.discover(get_settings().models_package):
        table = reflector.declared_table(model)
        if table is not None and table.table not in metadata.tables:
            build_table(table.table, resolver.resolve(model), metadata)
    return metadata


target_metadata = build_metadata()


def get_url() -> str:
    return get_database_url(os.getenv("AUTOSCHEMA_DATABASE_URL"))


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config({"sqlalchemy.url": get_url()}, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            render_as_batch=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
