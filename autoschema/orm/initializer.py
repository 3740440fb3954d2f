"""
Model initializer.

Computes the per-type ``ModelMetadata`` once, caches it, and attaches it to
instances. Building the metadata of a type also installs its accessor
descriptors: one ``ColumnAccessor`` per column property and one
``RelationAccessor`` per relationship property.

The cache is cleared whenever the model registry changes, since a new
subclass can add a discriminator column or a child relation to a type that
was already described.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import sqlalchemy as sa

from ..schema.attributes import BelongsTo, Column
from ..schema.fields import DELETED_AT, build_table
from ..schema.naming import foreign_key_for
from ..schema.reflector import Reflector, column_name, reflector as default_reflector
from ..schema.registry import ModelRegistry, registry as default_registry
from ..schema.resolver import ColumnResolver
from .relations import Relation, build_relation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelMetadata:
    """Everything the model layer needs to know about one model type."""

    model: type
    table_name: str
    table: sa.Table
    primary_key: str
    columns: Mapping[str, Column]
    fillable: Tuple[str, ...]
    hidden: Tuple[str, ...]
    casts: Mapping[str, str]
    appends: Mapping[str, str]
    eager: Tuple[str, ...]
    relations: Mapping[str, Relation]
    parent: Optional[type] = None
    parent_link: Optional[str] = None
    children: Tuple[type, ...] = ()

    @property
    def soft_deletes(self) -> bool:
        return DELETED_AT in self.table.c


class ColumnAccessor:
    """Reads and writes one column through the instance's attribute store."""

    def __init__(self, column: str):
        self.column = column

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance.get_attribute(self.column)

    def __set__(self, instance, value):
        instance.set_attribute(self.column, value)


class RelationAccessor:
    """Lazily loads a relationship on first access and caches it on the instance."""

    def __init__(self, name: str):
        self.name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance.get_relation(self.name)

    def __set__(self, instance, value):
        instance.set_relation(self.name, value)


def _unique(values) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _class_attribute(model: type, name: str) -> Any:
    for klass in model.__mro__:
        if name in klass.__dict__:
            return klass.__dict__[name]
    return None


class ModelInitializer:
    """Builds, caches and attaches ``ModelMetadata``."""

    def __init__(
        self,
        reflector: Optional[Reflector] = None,
        models: Optional[ModelRegistry] = None,
    ):
        self.reflector = reflector or default_reflector
        self.resolver = ColumnResolver(self.reflector)
        self.registry = models or default_registry
        self._cache: Dict[type, ModelMetadata] = {}
        self.registry.on_change(self.clear)

    def clear(self) -> None:
        self._cache.clear()

    def initialize(self, instance: Any) -> ModelMetadata:
        """Attach the metadata of ``type(instance)`` to ``instance``."""
        meta = self.metadata(type(instance))
        instance._meta = meta
        return meta

    def metadata(self, model: type) -> ModelMetadata:
        meta = self._cache.get(model)
        if meta is None:
            meta = self._build(model)
            self._install_accessors(model, meta)
            self._cache[model] = meta
        return meta

    def _build(self, model: type) -> ModelMetadata:
        columns = self.resolver.resolve(model)
        table_name = self.reflector.describe_table(model).table

        fillable: List[str] = [name for name, column in columns.items() if column.fillable]
        hidden: List[str] = [name for name, column in columns.items() if column.hidden]
        casts: Dict[str, str] = {name: column.cast for name, column in columns.items() if column.cast}

        relations: Dict[str, Relation] = {}
        eager: List[str] = []
        for declaration in self.reflector.describe_relationships(model):
            relation = build_relation(model, declaration, self.registry)
            relations[declaration.property] = relation
            if isinstance(declaration.relation, BelongsTo):
                fillable.append(relation.foreign_key)
                hidden.append(relation.foreign_key)
            if declaration.relation.eager:
                eager.append(declaration.property)

        parent = self.reflector.find_parent_type(model)
        parent_link = None
        if parent is not None:
            parent_meta = self.metadata(parent)
            parent_link = foreign_key_for(parent)
            fillable.extend(parent_meta.fillable)
            hidden.extend(parent_meta.hidden)
            casts = {**parent_meta.casts, **casts}

        logger.debug(f"Initialized model metadata for {model.__name__} ({table_name})")

        return ModelMetadata(
            model=model,
            table_name=table_name,
            table=build_table(table_name, columns),
            primary_key=getattr(model, "primary_key", "id"),
            columns=MappingProxyType(dict(columns)),
            fillable=_unique(fillable),
            hidden=_unique(hidden),
            casts=MappingProxyType(casts),
            appends=MappingProxyType(self.reflector.describe_appends(model)),
            eager=_unique(eager),
            relations=MappingProxyType(relations),
            parent=parent,
            parent_link=parent_link,
            children=tuple(self.reflector.find_child_types(model)),
        )

    def _install_accessors(self, model: type, meta: ModelMetadata) -> None:
        for declaration in self.reflector.describe_columns(model):
            if declaration.property not in meta.relations:
                setattr(model, declaration.property, ColumnAccessor(column_name(declaration)))

        for name in meta.columns:
            existing = _class_attribute(model, name)
            if existing is None or isinstance(existing, ColumnAccessor):
                setattr(model, name, ColumnAccessor(name))
            else:
                logger.debug(f"{model.__name__}.{name} is already defined; column reachable via get_attribute()")

        for name in meta.relations:
            setattr(model, name, RelationAccessor(name))


# Global initializer instance
initializer = ModelInitializer()
