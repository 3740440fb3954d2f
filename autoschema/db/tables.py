"""
Row-level table access.

Thin helpers over SQLAlchemy Core that take a ``sqlalchemy.Table`` and an
equality predicate mapping (``{"column": value}``). Writes always run inside
``Database.transaction()`` so they join any transaction already open.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

import sqlalchemy as sa

if TYPE_CHECKING:
    from .base import Database

Row = Dict[str, Any]


def where(table: sa.Table, predicate: Mapping[str, Any]) -> List[Any]:
    """Equality clauses for ``predicate``; ``None`` values match ``IS NULL``."""
    clauses = []
    for name, value in predicate.items():
        column = table.c[name]
        clauses.append(column.is_(None) if value is None else column == value)
    return clauses


def _known(table: sa.Table, values: Mapping[str, Any]) -> Row:
    return {name: value for name, value in values.items() if name in table.c}


class TableAccess:
    """Insert, update, delete and fetch rows of one database."""

    def __init__(self, database: "Database"):
        self.database = database

    def insert(self, table: sa.Table, values: Mapping[str, Any]) -> Any:
        """Insert one row and return its primary key (``None`` if it has none)."""
        with self.database.transaction() as conn:
            result = conn.execute(table.insert().values(**_known(table, values)))
            key = result.inserted_primary_key
        return key[0] if key else None

    def update(
        self, table: sa.Table, predicate: Mapping[str, Any], values: Mapping[str, Any]
    ) -> int:
        payload = _known(table, values)
        if not payload:
            return 0
        with self.database.transaction() as conn:
            result = conn.execute(table.update().where(*where(table, predicate)).values(**payload))
        return result.rowcount

    def delete(self, table: sa.Table, predicate: Mapping[str, Any]) -> int:
        with self.database.transaction() as conn:
            result = conn.execute(table.delete().where(*where(table, predicate)))
        return result.rowcount

    def exists(self, table: sa.Table, predicate: Mapping[str, Any]) -> bool:
        stmt = sa.select(sa.literal(1)).select_from(table).where(*where(table, predicate)).limit(1)
        with self.database.connection() as conn:
            return conn.execute(stmt).first() is not None

    def first(self, table: sa.Table, predicate: Mapping[str, Any]) -> Optional[Row]:
        stmt = sa.select(table).where(*where(table, predicate)).limit(1)
        with self.database.connection() as conn:
            row = conn.execute(stmt).mappings().first()
        return dict(row) if row is not None else None

    def select(
        self, table: sa.Table, predicate: Optional[Mapping[str, Any]] = None
    ) -> List[Row]:
        stmt = sa.select(table)
        if predicate:
            stmt = stmt.where(*where(table, predicate))
        with self.database.connection() as conn:
            return [dict(row) for row in conn.execute(stmt).mappings()]

    def fetch(self, statement: sa.Select) -> List[Row]:
        """Run an arbitrary ``SELECT`` and return its rows as dicts."""
        with self.database.connection() as conn:
            return [dict(row) for row in conn.execute(statement).mappings()]
