"""
Relationship queries.

Each relationship declared on a model becomes a ``Relation``: the related
model plus the resolved keys. A relation can build the query for one owner
instance (lazy access) or load itself for many owners at once (eager access).
"""

from __future__ import annotations

import typing
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from ..exceptions import MetadataError
from ..schema import attributes
from ..schema.naming import foreign_key_for
from ..schema.reflector import RelationDeclaration, is_model_type
from ..schema.registry import ModelRegistry

if TYPE_CHECKING:
    from ..db.base import Database
    from .model import Model
    from .query import Query


class Relation(ABC):
    """
    Base relation; ``many`` relations resolve to lists.

    Lazy queries run against the database the owner instance is bound to;
    eager loads run against the database of the query that loaded the owners.
    """

    many = False

    def __init__(self, owner: type, name: str, related: type, load: Sequence[str] = ()):
        self.owner = owner
        self.name = name
        self.related = related
        self.load = tuple(load)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.owner.__name__}.{self.name} -> {self.related.__name__}>"

    def new_query(self, nested: Sequence[str] = (), database: Optional["Database"] = None) -> "Query":
        return self.related.query(database).with_(*self.load, *nested)

    @abstractmethod
    def query_for(self, instance: "Model", nested: Sequence[str] = ()) -> "Query":
        """Query for the rows related to ``instance``."""

    def get_results(self, instance: "Model", nested: Sequence[str] = ()) -> Any:
        query = self.query_for(instance, nested)
        return query.get() if self.many else query.first()

    def match(
        self, instances: Sequence["Model"], nested: Sequence[str] = (), database: Optional["Database"] = None
    ) -> None:
        """Load this relation onto every instance in ``instances``."""
        for instance in instances:
            instance.set_relation(self.name, self.get_results(instance, nested))


class BelongsToRelation(Relation):
    """Owner holds ``foreign_key``; related is matched on ``owner_key``."""

    def __init__(self, owner, name, related, foreign_key=None, owner_key=None, load=()):
        super().__init__(owner, name, related, load)
        self.foreign_key = foreign_key_for(related, foreign_key)
        self.owner_key = owner_key or related.primary_key

    def query_for(self, instance, nested=()):
        query = self.new_query(nested, instance.bound_database)
        return query.where(self.owner_key, instance.get_raw(self.foreign_key))

    def get_results(self, instance, nested=()):
        if instance.get_raw(self.foreign_key) is None:
            return None
        return super().get_results(instance, nested)

    def match(self, instances, nested=(), database=None):
        keys = {instance.get_raw(self.foreign_key) for instance in instances} - {None}
        found: Dict[Any, Any] = {}
        if keys:
            for model in self.new_query(nested, database).where_in(self.owner_key, keys).get():
                found[model.get_raw(self.owner_key)] = model
        for instance in instances:
            instance.set_relation(self.name, found.get(instance.get_raw(self.foreign_key)))


class HasOneRelation(Relation):
    """Related rows hold ``foreign_key`` pointing at the owner's ``local_key``."""

    def __init__(self, owner, name, related, foreign_key=None, local_key=None, load=()):
        super().__init__(owner, name, related, load)
        self.foreign_key = foreign_key_for(owner, foreign_key)
        self.local_key = local_key or owner.primary_key

    def query_for(self, instance, nested=()):
        query = self.new_query(nested, instance.bound_database)
        return query.where(self.foreign_key, instance.get_raw(self.local_key))

    def match(self, instances, nested=(), database=None):
        keys = {instance.get_raw(self.local_key) for instance in instances} - {None}
        grouped: Dict[Any, List[Any]] = defaultdict(list)
        if keys:
            for model in self.new_query(nested, database).where_in(self.foreign_key, keys).get():
                grouped[model.get_raw(self.foreign_key)].append(model)
        for instance in instances:
            models = grouped.get(instance.get_raw(self.local_key), [])
            if self.many:
                instance.set_relation(self.name, models)
            else:
                instance.set_relation(self.name, models[0] if models else None)


class HasManyRelation(HasOneRelation):
    many = True


class HasOneThroughRelation(Relation):
    """
    Related model reached through an intermediate model.

    ``through.first_key`` points at the owner's ``local_key``;
    ``related.second_key`` points at ``through.second_local_key``.
    """

    def __init__(
        self,
        owner,
        name,
        related,
        through,
        first_key=None,
        second_key=None,
        local_key=None,
        second_local_key=None,
        load=(),
    ):
        super().__init__(owner, name, related, load)
        self.through = through
        self.first_key = foreign_key_for(owner, first_key)
        self.second_key = foreign_key_for(through, second_key)
        self.local_key = local_key or owner.primary_key
        self.second_local_key = second_local_key or through.primary_key

    def query_for(self, instance, nested=()):
        through_table = self.through.metadata().table
        related_table = self.related.metadata().table
        return (
            self.new_query(nested, instance.bound_database)
            .join(
                through_table,
                through_table.c[self.second_local_key] == related_table.c[self.second_key],
            )
            .where_clause(through_table.c[self.first_key] == instance.get_raw(self.local_key))
        )


def _element_type(annotation: Any) -> Any:
    """``List[X]`` and friends -> ``X``."""
    args = typing.get_args(annotation)
    if typing.get_origin(annotation) is not None and len(args) == 1:
        return args[0]
    return annotation


def _model(ref: Any, models: ModelRegistry, owner: type, prop: str) -> type:
    if isinstance(ref, (str, typing.ForwardRef)):
        ref = models.resolve(ref if isinstance(ref, str) else ref.__forward_arg__)
    if not is_model_type(ref):
        raise MetadataError(f"{owner.__name__}.{prop} does not reference a model: {ref!r}")
    return ref


def build_relation(owner: type, declaration: RelationDeclaration, models: ModelRegistry) -> Relation:
    """Resolve a declared relationship into a ``Relation`` for ``owner``."""
    rel = declaration.relation
    prop = declaration.property

    if isinstance(rel, attributes.BelongsTo):
        related = _model(declaration.annotation, models, owner, prop)
        return BelongsToRelation(owner, prop, related, rel.foreign_key, rel.owner_key, rel.load)

    if isinstance(rel, attributes.HasMany):
        related = _model(rel.related or _element_type(declaration.annotation), models, owner, prop)
        return HasManyRelation(owner, prop, related, rel.foreign_key, rel.local_key, rel.load)

    if isinstance(rel, attributes.HasOne):
        related = _model(declaration.annotation, models, owner, prop)
        return HasOneRelation(owner, prop, related, rel.foreign_key, rel.local_key, rel.load)

    if isinstance(rel, attributes.HasOneThrough):
        related = _model(declaration.annotation, models, owner, prop)
        through = _model(rel.through, models, owner, prop)
        return HasOneThroughRelation(
            owner,
            prop,
            related,
            through,
            rel.first_key,
            rel.second_key,
            rel.local_key,
            rel.second_local_key,
            rel.load,
        )

    raise MetadataError(f"Unsupported relationship {type(rel).__name__} on {owner.__name__}.{prop}")


def eager_load(
    instances: Sequence["Model"], paths: Iterable[str], database: Optional["Database"] = None
) -> None:
    """
    Load relation ``paths`` onto ``instances``.

    Paths are dotted (``"customer.address"``); the first segment is loaded
    here and the remainder is handed to the related query. Instances are
    grouped by class, since a polymorphic query can return subclasses.
    """
    nested: Dict[str, List[str]] = {}
    for path in paths:
        head, _, rest = path.partition(".")
        nested.setdefault(head, [])
        if rest:
            nested[head].append(rest)

    groups: Dict[type, List["Model"]] = {}
    for instance in instances:
        groups.setdefault(type(instance), []).append(instance)

    for model, group in groups.items():
        relations = model.metadata().relations
        for name, rest in nested.items():
            relation: Optional[Relation] = relations.get(name)
            if relation is None:
                raise MetadataError(f"{model.__name__} has no relationship '{name}'")
            relation.match(group, rest, database)
