"""Tests for the database scope and row helpers."""

import pytest
import sqlalchemy as sa

from autoschema.db.base import Database, build_engine, get_database, set_database

metadata = sa.MetaData()
notes = sa.Table(
    "notes",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("body", sa.String(), nullable=True),
)


@pytest.fixture
def db(database):
    metadata.create_all(database.engine)
    return database


class TestTransaction:
    def test_commit(self, db):
        with db.transaction():
            db.tables().insert(notes, {"body": "kept"})
        assert [row["body"] for row in db.tables().select(notes)] == ["kept"]

    def test_rollback_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.tables().insert(notes, {"body": "lost"})
                raise RuntimeError("boom")
        assert db.tables().select(notes) == []
        assert not db.in_transaction

    def test_nested_scopes_join_the_outer_one(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction() as outer:
                with db.transaction() as inner:
                    assert inner is outer
                    db.tables().insert(notes, {"body": "inner"})
                assert db.tables().exists(notes, {"body": "inner"})
                raise RuntimeError("boom")
        assert not db.tables().exists(notes, {"body": "inner"})


class TestTableAccess:
    def test_insert_returns_primary_key(self, db):
        first = db.tables().insert(notes, {"body": "a"})
        second = db.tables().insert(notes, {"body": "b", "unknown": 1})
        assert second == first + 1

    def test_update_delete_and_null_predicates(self, db):
        tables = db.tables()
        key = tables.insert(notes, {"body": None})
        assert tables.first(notes, {"body": None})["id"] == key
        assert tables.update(notes, {"id": key}, {"body": "filled"}) == 1
        assert tables.update(notes, {"id": key}, {"unknown": 1}) == 0
        assert tables.first(notes, {"id": key}) == {"id": key, "body": "filled"}
        assert tables.delete(notes, {"id": key}) == 1
        assert tables.first(notes, {"id": key}) is None

    def test_fetch(self, db):
        db.tables().insert(notes, {"body": "x"})
        rows = db.tables().fetch(sa.select(notes.c.body))
        assert rows == [{"body": "x"}]


def test_process_database_is_replaceable():
    replacement = Database(build_engine("sqlite://"))
    set_database(replacement)
    try:
        assert get_database() is replacement
    finally:
        set_database(None)
        replacement.dispose()
