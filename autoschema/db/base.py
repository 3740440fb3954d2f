"""Database engine and transaction scope for autoschema."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import Connection, Engine, create_engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.pool import StaticPool

from ..config import get_settings

# Default to a local SQLite database when no URL is configured.
DEFAULT_DATABASE_URL = "sqlite:///./autoschema.db"


def _ensure_sync_driver(url: URL) -> URL:
    """Force a synchronous driver for Alembic and the model layer."""

    if url.drivername.startswith("postgresql+"):
        # Normalize any async driver variants to psycopg (sync)
        if any(token in url.drivername for token in ("async", "aiopg")):
            url = url.set(drivername="postgresql+psycopg")
    elif url.drivername.startswith("sqlite+"):
        # Align async SQLite drivers to the synchronous default
        if "aiosqlite" in url.drivername:
            url = url.set(drivername="sqlite")

    return url


def get_database_url(raw_url: Optional[str] = None) -> str:
    """Return a database URL with a guaranteed synchronous driver."""

    url = make_url(raw_url or get_settings().database_url or DEFAULT_DATABASE_URL)
    # render_as_string keeps the password; str(url) would mask it
    return _ensure_sync_driver(url).render_as_string(hide_password=False)


def build_engine(raw_url: Optional[str] = None) -> Engine:
    """Create an engine configured for the target backend."""
    database_url = get_database_url(raw_url)

    if database_url.startswith("sqlite"):
        # SQLite configuration for development/testing
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # PostgreSQL / MySQL configuration for production
    return create_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


class Database:
    """
    Shared connection and transaction scope.

    ``transaction()`` opens one ``engine.begin()`` block; nested calls join
    it, so a caller can wrap several writes into a single atomic unit.
    Reads made while a transaction is open see its uncommitted writes.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._active: Optional[Connection] = None

    @property
    def in_transaction(self) -> bool:
        return self._active is not None

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Connection for reads: the open transaction's, or a short-lived one."""
        if self._active is not None:
            yield self._active
            return
        with self.engine.connect() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Atomic scope; commits on exit, rolls back if anything raises."""
        if self._active is not None:
            yield self._active
            return
        with self.engine.begin() as conn:
            self._active = conn
            try:
                yield conn
            finally:
                self._active = None

    def tables(self) -> "TableAccess":
        from .tables import TableAccess

        return TableAccess(self)

    def dispose(self) -> None:
        self.engine.dispose()


_database: Optional[Database] = None


def get_database() -> Database:
    """
    Return the process-wide database, creating it on first use.

    Lazy so that environment variables are read at runtime rather than at
    import time.
    """
    global _database
    if _database is None:
        _database = Database(build_engine())
    return _database


def set_database(database: Optional[Database]) -> None:
    """Replace (or clear) the process-wide database."""
    global _database
    _database = database
