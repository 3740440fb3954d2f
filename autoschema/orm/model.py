"""
Model root.

Models declare their columns and relationships as annotated properties and
their table through class keywords::

    class Animal(BaseModel, table="animals"):
        name: Annotated[str, Column()]

    class Dog(Animal, table="dogs", parent="Animal"):
        breed: Annotated[str, Column(nullable=True)]

Every subclass registers itself with the model registry on creation. The
per-type metadata (fillable, hidden, casts, relations, table) is computed on
first use by the initializer and shared by all instances of the type.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from ..db.base import Database, get_database
from ..schema.attributes import Table
from ..schema.fields import DELETED_AT, UPDATED_AT
from ..schema.naming import foreign_key_for, table_name_for
from ..schema.reflector import reflector
from ..schema.registry import registry
from ..schema.resolver import EffectiveColumnSet, resolver
from . import inheritance
from .casts import get_cast
from .initializer import ModelMetadata, initializer
from .query import Query
from .relations import BelongsToRelation, Relation, eager_load

logger = logging.getLogger(__name__)


def _serialize(value: Any) -> Any:
    if isinstance(value, Model):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class Model:
    """Base class of all autoschema models."""

    __abstract__ = True

    primary_key: ClassVar[str] = "id"

    def __init_subclass__(
        cls,
        table: Optional[str] = None,
        parent: Optional[str] = None,
        abstract: bool = False,
        discriminator: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init_subclass__(**kwargs)
        cls.__abstract__ = abstract
        if table is not None or parent is not None:
            cls.__table_meta__ = Table(table=table or table_name_for(cls), parent=parent)
        if discriminator is not None:
            cls.__discriminator__ = discriminator
        registry.register(cls)

    def __init__(self, attributes: Optional[Mapping[Any, Any]] = None, **kwargs: Any):
        self._boot()
        self.fill({**(attributes or {}), **kwargs})

    def _boot(self) -> None:
        self._attributes: Dict[str, Any] = {}
        self._original: Dict[str, Any] = {}
        self._relations: Dict[str, Any] = {}
        self._exists = False
        self._parent_key: Any = None
        self._database_ref: Optional[Database] = None
        initializer.initialize(self)

    def __repr__(self) -> str:
        key = self._attributes.get(self._meta.primary_key)
        return f"<{type(self).__name__} {self._meta.primary_key}={key!r}>"

    # Class-level API

    @classmethod
    def metadata(cls) -> ModelMetadata:
        return initializer.metadata(cls)

    @classmethod
    def table_name(cls) -> str:
        return reflector.describe_table(cls).table

    @classmethod
    def column_definitions(cls) -> EffectiveColumnSet:
        return resolver.resolve(cls)

    @classmethod
    def validation_rules(cls) -> Dict[str, Dict[str, Optional[str]]]:
        return reflector.describe_validation(cls)

    @classmethod
    def new_from_row(cls, row: Mapping[str, Any], parent_key: Any = None) -> "Model":
        """Instance for a stored row; no casts are applied to ``row``."""
        instance = cls.__new__(cls)
        instance._boot()
        instance._attributes = dict(row)
        instance._exists = True
        instance._parent_key = parent_key
        instance.sync_original()
        return instance

    @classmethod
    def query(cls, database: Optional[Database] = None) -> Query:
        return Query(cls, database)

    @classmethod
    def where(cls, column: Optional[str] = None, value: Any = None, **equals: Any) -> Query:
        return cls.query().where(column, value, **equals)

    @classmethod
    def with_(cls, *paths: str) -> Query:
        return cls.query().with_(*paths)

    @classmethod
    def all(cls) -> List["Model"]:
        return cls.query().get()

    @classmethod
    def find(cls, key: Any) -> Optional["Model"]:
        return cls.query().find(key)

    @classmethod
    def create(cls, attributes: Optional[Mapping[Any, Any]] = None, **kwargs: Any) -> "Model":
        """
        Fill, apply column defaults and save a new instance.

        Keys may be model classes; ``{Customer: 3}`` sets ``customer_id``.
        """
        instance = cls({**(attributes or {}), **kwargs})
        columns = dict(instance._meta.columns)
        if instance._meta.parent is not None:
            columns = {**instance._meta.parent.metadata().columns, **columns}
        for name, column in columns.items():
            if column.default is not None and name not in instance._attributes:
                instance.set_attribute(name, column.default)
        instance.save()
        return instance

    # Attributes

    @property
    def exists(self) -> bool:
        return self._exists

    @property
    def parent_key(self) -> Any:
        """Primary key of the parent-table row, for child-role instances."""
        return self._parent_key

    @property
    def bound_database(self) -> Optional[Database]:
        """The database this instance was loaded from or bound to, if not the global one."""
        return self._database_ref

    def bind(self, database: Optional[Database]) -> "Model":
        """Run this instance's writes and relation queries against ``database``."""
        self._database_ref = database
        return self

    @property
    def attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    def _attribute_key(self, key: Any) -> Any:
        if isinstance(key, type) and issubclass(key, Model):
            return foreign_key_for(key)
        return key

    def fill(self, attributes: Mapping[Any, Any]) -> "Model":
        """Mass-assign fillable attributes; other keys are ignored."""
        for key, value in attributes.items():
            key = self._attribute_key(key)
            if key in self._meta.relations:
                self.set_relation(key, value)
            elif key in self._meta.fillable:
                self.set_attribute(key, value)
            else:
                logger.debug(f"Ignoring non-fillable attribute '{key}' on {type(self).__name__}")
        return self

    def force_fill(self, attributes: Mapping[Any, Any]) -> "Model":
        for key, value in attributes.items():
            self.set_attribute(self._attribute_key(key), value)
        return self

    def get_attribute(self, key: str) -> Any:
        value = self._attributes.get(key)
        cast = self._meta.casts.get(key)
        if cast and value is not None:
            return get_cast(cast).get(value)
        return value

    def set_attribute(self, key: str, value: Any) -> None:
        cast = self._meta.casts.get(key)
        if cast:
            value = get_cast(cast).set(value)
        self._attributes[key] = value

    def get_raw(self, key: str) -> Any:
        return self._attributes.get(key)

    def get_dirty(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in self._attributes.items()
            if key not in self._original or self._original[key] != value
        }

    def is_dirty(self, *keys: str) -> bool:
        dirty = self.get_dirty()
        if not keys:
            return bool(dirty)
        return any(key in dirty for key in keys)

    def sync_original(self) -> None:
        self._original = dict(self._attributes)

    # Relations

    def _relation(self, name: str) -> Relation:
        try:
            return self._meta.relations[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no relationship '{name}'") from None

    def related(self, name: str) -> Query:
        """The query behind relationship ``name``, for further constraints."""
        return self._relation(name).query_for(self)

    def get_relation(self, name: str) -> Any:
        if name not in self._relations:
            self._relations[name] = self._relation(name).get_results(self)
        return self._relations[name]

    def set_relation(self, name: str, value: Any) -> None:
        relation = self._relation(name)
        if isinstance(relation, BelongsToRelation) and isinstance(value, Model):
            self._attributes[relation.foreign_key] = value.get_raw(relation.owner_key)
        self._relations[name] = value

    def relation_loaded(self, name: str) -> bool:
        return name in self._relations

    def load(self, *paths: str) -> "Model":
        """Load relation ``paths`` now, replacing anything cached."""
        eager_load([self], paths, self._database_ref)
        return self

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        hidden = set(self._meta.hidden)
        data = {
            key: _serialize(self.get_attribute(key))
            for key in self._attributes
            if key not in hidden
        }
        for name, attr in self._meta.appends.items():
            value = getattr(self, attr)
            data[name] = _serialize(value() if callable(value) else value)
        for name, value in self._relations.items():
            if name not in hidden:
                data[name] = _serialize(value)
        return data

    # Persistence

    def _database(self) -> Database:
        return self._database_ref or get_database()

    def save(self) -> bool:
        database = self._database()
        meta = self._meta
        if meta.parent is not None:
            return inheritance.save_child(self, database)

        tables = database.tables()
        now = inheritance.current_time()
        pk = meta.primary_key

        if self._exists:
            dirty = self.get_dirty()
            dirty.pop(pk, None)
            if not dirty:
                return True
            if UPDATED_AT in meta.table.c and UPDATED_AT not in dirty:
                self._attributes[UPDATED_AT] = dirty[UPDATED_AT] = now
            tables.update(meta.table, {pk: self.get_raw(pk)}, dirty)
        else:
            self._attributes.update(inheritance.timestamps(meta.table, now, self._attributes))
            values = {k: v for k, v in self._attributes.items() if not (k == pk and v is None)}
            key = tables.insert(meta.table, values)
            if key is not None:
                self._attributes[pk] = key
            self._exists = True

        self.sync_original()
        return True

    def delete(self) -> bool:
        """
        Delete this instance.

        A parent-role instance whose discriminator names a subclass delegates
        to that subclass instance; a child-role instance removes both of its
        rows; otherwise rows are soft-deleted when the table has ``deleted_at``.
        """
        if not self._exists:
            return False
        database = self._database()
        meta = self._meta

        if meta.children:
            child = inheritance.subclass_instance(self, database)
            if child is not None:
                self._exists = False
                return child.delete()

        if meta.parent is not None:
            return inheritance.delete_child(self, database)

        if meta.soft_deletes:
            now = inheritance.current_time()
            database.tables().update(
                meta.table, {meta.primary_key: self.get_raw(meta.primary_key)}, {DELETED_AT: now}
            )
            self._attributes[DELETED_AT] = now
            self.sync_original()
            return True

        return self.force_delete()

    def force_delete(self) -> bool:
        """Remove the row(s) even when the table supports soft deletes."""
        if not self._exists:
            return False
        database = self._database()
        meta = self._meta
        if meta.parent is not None:
            return inheritance.delete_child(self, database)
        database.tables().delete(meta.table, {meta.primary_key: self.get_raw(meta.primary_key)})
        self._exists = False
        return True

    def trashed(self) -> bool:
        return self._meta.soft_deletes and self._attributes.get(DELETED_AT) is not None

    def restore(self) -> bool:
        if not self.trashed():
            return False
        self._attributes[DELETED_AT] = None
        return self.save()
