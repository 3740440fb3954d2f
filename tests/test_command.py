"""Tests for the batch migration command."""

from typing import Annotated

import pytest
import sqlalchemy as sa

from autoschema import BaseModel, Column, Model
from autoschema.migration.command import (
    CREATED,
    ERROR,
    NO_CHANGES,
    SKIPPED,
    UPDATED,
    AutoCreateCommand,
)
from autoschema.migration.store import MigrationStore
from autoschema.schema.fields import build_table

from sample_models import Customer, Draft, Invoice, Order


@pytest.fixture
def store(tmp_path):
    return MigrationStore(tmp_path / "versions")


@pytest.fixture
def command(database, store):
    return AutoCreateCommand(database, store)


def create_tables(database, *models):
    metadata = sa.MetaData()
    for model in models:
        build_table(model.table_name(), model.column_definitions(), metadata)
    metadata.create_all(database.engine)


class TestProcess:
    """One model at a time."""

    def test_missing_table_is_created(self, command, store):
        diagnostic = command.process(Invoice)

        assert diagnostic.status == CREATED
        assert diagnostic.table == "invoices"
        assert diagnostic.message == f"Created migration: {diagnostic.filename}"
        assert diagnostic.filename.endswith("_create_invoices_table.py")
        content = (store.path / diagnostic.filename).read_text()
        assert 'op.create_table(\n        "invoices",' in content

    def test_matching_table_has_no_changes(self, command, database, store):
        create_tables(database, Invoice)

        diagnostic = command.process(Invoice)

        assert diagnostic.status == NO_CHANGES
        assert diagnostic.message == "No changes detected for table [invoices]."
        assert store.scripts() == []

    def test_partial_table_is_altered(self, command, database, store):
        metadata = sa.MetaData()
        sa.Table(
            "invoices",
            metadata,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("amount", sa.Integer()),
            sa.Column("legacy", sa.String()),
        )
        metadata.create_all(database.engine)

        diagnostic = command.process(Invoice)

        assert diagnostic.status == UPDATED
        assert diagnostic.filename.endswith("_update_invoices_table.py")
        content = (store.path / diagnostic.filename).read_text()
        assert 'batch_op.add_column(sa.Column("created_at", sa.DateTime(), nullable=True))' in content
        assert 'batch_op.add_column(sa.Column("updated_at", sa.DateTime(), nullable=True))' in content
        assert 'batch_op.drop_column("legacy")' in content
        assert content.index("drop_column") < content.index("add_column")

    def test_model_without_table_is_skipped(self, command):
        diagnostic = command.process(Draft)
        assert diagnostic.status == SKIPPED
        assert diagnostic.message == "Model [Draft] declares no table."
        assert diagnostic.table is None

    def test_model_without_columns_is_an_error(self, command, temporary_models):
        class Hollow(Model, table="hollows"):
            pass

        diagnostic = command.process(Hollow)
        assert diagnostic.status == ERROR
        assert "declares no columns" in diagnostic.message

    def test_diagnostic_serializes(self, command):
        assert command.process(Draft).to_dict() == {
            "model": "Draft",
            "status": SKIPPED,
            "message": "Model [Draft] declares no table.",
            "table": None,
            "filename": None,
        }


class TestRun:
    """A whole batch."""

    def test_error_does_not_stop_the_batch(self, command, temporary_models):
        class Broken(BaseModel, table="brokens"):
            shape: Annotated[str, Column(type="hologram")]

        diagnostics = command.run([Broken, Invoice, Draft])

        assert [d.status for d in diagnostics] == [ERROR, CREATED, SKIPPED]
        assert "Unknown column type 'hologram'" in diagnostics[0].message

    def test_scripts_chain_and_sort(self, command, store):
        diagnostics = command.run([Customer, Order])

        assert [d.status for d in diagnostics] == [CREATED, CREATED]
        first, second = store.scripts()
        assert first.name == diagnostics[0].filename
        assert second.name == diagnostics[1].filename

        first_text = first.read_text()
        revision = first_text.split('revision = "', 1)[1].split('"', 1)[0]
        assert "down_revision = None" in first_text
        assert f'down_revision = "{revision}"' in second.read_text()

    def test_chains_onto_existing_head(self, database, store):
        AutoCreateCommand(database, store).run([Customer])
        head = store.head()

        fresh = MigrationStore(store.path)
        diagnostics = AutoCreateCommand(database, fresh).run([Invoice])

        assert f'down_revision = "{head}"' in (store.path / diagnostics[0].filename).read_text()

    def test_recreate_mode_is_passed_through(self, database, store):
        metadata = sa.MetaData()
        sa.Table("customers", metadata, sa.Column("id", sa.Integer(), primary_key=True))
        metadata.create_all(database.engine)

        command = AutoCreateCommand(database, store, batch_recreate="always")
        diagnostic = command.process(Customer)

        content = (store.path / diagnostic.filename).read_text()
        assert 'op.batch_alter_table("customers", recreate="always")' in content
