"""Database engine, transaction scope and table access."""

from .base import Database, build_engine, get_database, get_database_url, set_database
from .tables import TableAccess

__all__ = [
    "Database",
    "TableAccess",
    "build_engine",
    "get_database",
    "get_database_url",
    "set_database",
]
