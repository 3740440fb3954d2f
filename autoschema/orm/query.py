"""Query builder over one model's table."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, List, Optional

import sqlalchemy as sa

from ..db.base import Database, get_database
from ..schema.fields import DELETED_AT
from .relations import eager_load

if TYPE_CHECKING:
    from .model import Model


class Query:
    """
    Chainable ``SELECT`` for a model.

    Rows come back as model instances, hydrated through the inheritance
    protocol, with the model's eager relations (plus any added with
    ``with_()``) loaded in bulk.
    """

    def __init__(self, model: type, database: Optional[Database] = None):
        self.model = model
        self.meta = model.metadata()
        self.database = database
        self._clauses: List[Any] = []
        self._joins: List[Any] = []
        self._order: List[Any] = []
        self._limit: Optional[int] = None
        self._eager: List[str] = list(self.meta.eager)
        self._with_trashed = False
        self._discriminate = True

    @property
    def table(self) -> sa.Table:
        return self.meta.table

    def _db(self) -> Database:
        return self.database or get_database()

    def where(self, column: Optional[str] = None, value: Any = None, **equals: Any) -> "Query":
        """Equality filters: ``where("amount", 5)`` or ``where(amount=5)``."""
        if column is not None:
            equals = {column: value, **equals}
        for name, expected in equals.items():
            col = self.table.c[name]
            self._clauses.append(col.is_(None) if expected is None else col == expected)
        return self

    def where_in(self, column: str, values: Iterable[Any]) -> "Query":
        self._clauses.append(self.table.c[column].in_(list(values)))
        return self

    def where_clause(self, *clauses: Any) -> "Query":
        self._clauses.extend(clauses)
        return self

    def join(self, target: Any, onclause: Any) -> "Query":
        self._joins.append((target, onclause))
        return self

    def order_by(self, *columns: Any) -> "Query":
        for column in columns:
            self._order.append(self.table.c[column] if isinstance(column, str) else column)
        return self

    def limit(self, count: int) -> "Query":
        self._limit = count
        return self

    def with_(self, *paths: str) -> "Query":
        """Eager-load the given (dotted) relation paths."""
        for path in paths:
            if path not in self._eager:
                self._eager.append(path)
        return self

    def without_eager(self) -> "Query":
        self._eager = []
        return self

    def with_trashed(self) -> "Query":
        self._with_trashed = True
        return self

    def without_discrimination(self) -> "Query":
        """Hydrate rows as this model even if their discriminator names a subclass."""
        self._discriminate = False
        return self

    def statement(self) -> sa.Select:
        stmt = sa.select(self.table)
        for target, onclause in self._joins:
            stmt = stmt.join(target, onclause)
        clauses = list(self._clauses)
        if self.meta.soft_deletes and not self._with_trashed:
            clauses.append(self.table.c[DELETED_AT].is_(None))
        if clauses:
            stmt = stmt.where(*clauses)
        if self._order:
            stmt = stmt.order_by(*self._order)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        return stmt

    def get(self) -> List["Model"]:
        from .inheritance import hydrate

        database = self._db()
        rows = database.tables().fetch(self.statement())
        models = [hydrate(self.model, row, database, discriminate=self._discriminate) for row in rows]
        if self.database is not None:
            for model in models:
                model.bind(self.database)
        if models and self._eager:
            eager_load(models, self._eager, self.database)
        return models

    def first(self) -> Optional["Model"]:
        previous, self._limit = self._limit, 1
        try:
            models = self.get()
        finally:
            self._limit = previous
        return models[0] if models else None

    def find(self, key: Any) -> Optional["Model"]:
        return self.where(self.meta.primary_key, key).first()

    def exists(self) -> bool:
        stmt = sa.select(sa.literal(1)).select_from(self.statement().limit(1).subquery())
        with self._db().connection() as conn:
            return conn.execute(stmt).first() is not None

    def count(self) -> int:
        stmt = sa.select(sa.func.count()).select_from(self.statement().subquery())
        with self._db().connection() as conn:
            return conn.execute(stmt).scalar_one()
