"""
Reflector: reads declarative metadata off model classes.

This is the only place that looks at annotations. Everything downstream works
with the declarations it returns.
"""

from __future__ import annotations

import inspect
import logging
import types
import typing
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import MetadataError
from .attributes import APPENDED_MARKER, Column, Relationship, Table, ValidationRule
from .naming import foreign_key_for, snake_case, table_name_for
from .registry import ModelRegistry, registry as default_registry

logger = logging.getLogger(__name__)


def _model_root() -> type:
    from ..orm.model import Model

    return Model


@dataclass(frozen=True)
class ColumnDeclaration:
    """A ``Column`` attached to a property."""

    property: str
    column: Column
    annotation: Any
    owner: type
    rules: Tuple[ValidationRule, ...] = ()


@dataclass(frozen=True)
class RelationDeclaration:
    """A relationship attached to a property."""

    property: str
    relation: Relationship
    annotation: Any
    owner: type


def unwrap_annotation(hint: Any) -> Tuple[Any, Tuple[Any, ...]]:
    """Split ``Annotated[Optional[T], *extras]`` into ``(T, extras)``."""
    extras: Tuple[Any, ...] = ()
    if typing.get_origin(hint) is typing.Annotated:
        extras = tuple(hint.__metadata__)
        hint = typing.get_args(hint)[0]
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        members = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(members) == 1:
            hint = members[0]
    return hint, extras


def is_model_type(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, _model_root())


def column_name(declaration: ColumnDeclaration) -> str:
    """Resolved column name of a declaration, before inheritance filtering."""
    if declaration.column.name:
        return declaration.column.name
    if is_model_type(declaration.annotation):
        return foreign_key_for(declaration.annotation)
    return snake_case(declaration.property)


class Reflector:
    """Extracts table, column, relationship and validation metadata."""

    def __init__(self, models: Optional[ModelRegistry] = None):
        self.registry = models or default_registry

    # Table level

    def declared_table(self, model: type) -> Optional[Table]:
        """The table declared on ``model`` itself; never inherited."""
        return model.__dict__.get("__table_meta__")

    def describe_table(self, model: type) -> Table:
        return self.declared_table(model) or Table(table=table_name_for(model))

    def find_parent_type(self, model: type) -> Optional[type]:
        table = self.declared_table(model)
        if table is None or not table.parent:
            return None
        return self.registry.resolve(table.parent)

    def find_child_types(self, model: type) -> List[type]:
        return self.registry.subclasses_of(model)

    def find_base_type(self, model: type) -> Optional[type]:
        """Nearest ancestor of ``model`` that directly subclasses the root model."""
        root = _model_root()
        for klass in model.__mro__[1:]:
            if klass is root:
                break
            if root in klass.__bases__:
                return klass
        return None

    # Property level

    def _hints(self, model: type) -> Dict[str, Any]:
        try:
            return typing.get_type_hints(
                model, localns=self.registry.namespace(), include_extras=True
            )
        except Exception as e:
            raise MetadataError(
                f"Cannot resolve annotations of {model.__name__}: {e}"
            ) from e

    def _owner(self, model: type, prop: str) -> type:
        for klass in model.__mro__:
            if prop in inspect.get_annotations(klass):
                return klass
        return model

    def describe_columns(self, model: type) -> List[ColumnDeclaration]:
        """Column declarations in declaration order, base classes first."""
        declarations = []
        for prop, hint in self._hints(model).items():
            annotation, extras = unwrap_annotation(hint)
            columns = [extra for extra in extras if isinstance(extra, Column)]
            if not columns:
                continue
            rules = tuple(extra for extra in extras if isinstance(extra, ValidationRule))
            declarations.append(
                ColumnDeclaration(
                    property=prop,
                    column=columns[-1],
                    annotation=annotation,
                    owner=self._owner(model, prop),
                    rules=rules,
                )
            )
        return declarations

    def describe_relationships(self, model: type) -> List[RelationDeclaration]:
        declarations = []
        for prop, hint in self._hints(model).items():
            annotation, extras = unwrap_annotation(hint)
            for extra in extras:
                if isinstance(extra, Relationship):
                    declarations.append(
                        RelationDeclaration(
                            property=prop,
                            relation=extra,
                            annotation=annotation,
                            owner=self._owner(model, prop),
                        )
                    )
        return declarations

    def own_columns(self, model: type) -> List[str]:
        """Resolved names of the columns declared directly on ``model``."""
        return [
            column_name(declaration)
            for declaration in self.describe_columns(model)
            if declaration.owner is model
        ]

    def describe_validation(self, model: type) -> Dict[str, Dict[str, Optional[str]]]:
        """Column name -> rule expression -> optional message."""
        rules: Dict[str, Dict[str, Optional[str]]] = {}
        for declaration in self.describe_columns(model):
            for rule in declaration.rules:
                rules.setdefault(column_name(declaration), {})[rule.rule] = rule.message
        return rules

    def describe_appends(self, model: type) -> Dict[str, str]:
        """Appended attribute name -> name of the method marked with ``@appended``."""
        names: Dict[str, str] = {}
        for klass in reversed(model.__mro__):
            for attr, value in vars(klass).items():
                target = value.fget if isinstance(value, property) else value
                if getattr(target, APPENDED_MARKER, False):
                    name = snake_case(attr)
                    names.setdefault(name, attr)
        return names


# Global reflector instance
reflector = Reflector()
