"""Live schema inspection over ``sqlalchemy.inspect``."""

from typing import List

import sqlalchemy as sa

from ..db.base import Database


class SchemaInspector:
    """
    Answers questions about the live database schema.

    A fresh inspector is taken for every call; SQLAlchemy inspectors cache
    reflection results, and tables change between calls in a batch run.
    """

    def __init__(self, database: Database):
        self.database = database

    def table_exists(self, name: str) -> bool:
        with self.database.connection() as conn:
            return sa.inspect(conn).has_table(name)

    def list_columns(self, table: str) -> List[str]:
        """Column names of ``table`` in physical order."""
        with self.database.connection() as conn:
            return [column["name"] for column in sa.inspect(conn).get_columns(table)]
