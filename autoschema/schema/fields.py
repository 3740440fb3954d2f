"""
Field-definition rule.

Turns one effective column into a field directive. A directive can be
rendered as Alembic source (for generated migrations) or materialized as
``sqlalchemy.Column`` objects (for the tables the model layer writes to).

Rules, by precedence:

- name ``deleted_at``  -> soft-delete timestamp
- name ``updated_at``  -> nothing (covered by the timestamps pair)
- name ``created_at``  -> ``created_at`` / ``updated_at`` pair
- type ``id``          -> auto-increment integer primary key
- type ``timestamps``  -> ``created_at`` / ``updated_at`` pair
- type ``rememberToken`` -> nullable ``String(100)``
- anything else        -> the mapped type with length, nullable, default, index
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import sqlalchemy as sa
from sqlalchemy.types import TypeEngine

from ..exceptions import MetadataError
from .attributes import Column
from .resolver import EffectiveColumnSet

ID = "id"
TIMESTAMPS = "timestamps"
REMEMBER_TOKEN = "remember_token"
SOFT_DELETES = "soft_deletes"
COLUMN = "column"

CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
DELETED_AT = "deleted_at"

# Declared type tag -> sqlalchemy type name
TYPE_MAP = {
    "string": "String",
    "char": "CHAR",
    "text": "Text",
    "mediumText": "Text",
    "longText": "Text",
    "integer": "Integer",
    "tinyInteger": "SmallInteger",
    "smallInteger": "SmallInteger",
    "bigInteger": "BigInteger",
    "unsignedInteger": "Integer",
    "unsignedBigInteger": "BigInteger",
    "foreignId": "BigInteger",
    "boolean": "Boolean",
    "date": "Date",
    "dateTime": "DateTime",
    "datetime": "DateTime",
    "timestamp": "DateTime",
    "time": "Time",
    "float": "Float",
    "double": "Float",
    "decimal": "Numeric",
    "json": "JSON",
    "jsonb": "JSON",
    "uuid": "Uuid",
    "binary": "LargeBinary",
}

# Types whose first positional argument is a length or precision
LENGTH_TYPES = {"String", "CHAR", "VARCHAR", "Unicode", "Numeric", "Float", "LargeBinary"}


@dataclass(frozen=True)
class FieldDirective:
    """One field definition of a table."""

    kind: str
    name: str
    column: Column

    def column_names(self) -> Tuple[str, ...]:
        if self.kind == TIMESTAMPS:
            return (CREATED_AT, UPDATED_AT)
        return (self.name,)


def sqlalchemy_type_name(tag: str) -> str:
    """Map a declared type tag to a ``sqlalchemy`` type name."""
    name = TYPE_MAP.get(tag, tag)
    candidate = getattr(sa, name, None)
    if not (isinstance(candidate, type) and issubclass(candidate, TypeEngine)):
        raise MetadataError(f"Unknown column type '{tag}'")
    return name


def field_directive(name: str, column: Column) -> Optional[FieldDirective]:
    """Apply the field-definition rule to one column; ``None`` means omitted."""
    if name == DELETED_AT:
        return FieldDirective(SOFT_DELETES, name, column)
    if name == UPDATED_AT:
        return None
    if name == CREATED_AT:
        return FieldDirective(TIMESTAMPS, name, column)

    if column.type == "id":
        return FieldDirective(ID, name, column)
    if column.type == "timestamps":
        return FieldDirective(TIMESTAMPS, name, column)
    if column.type == "rememberToken":
        return FieldDirective(REMEMBER_TOKEN, name, column)

    sqlalchemy_type_name(column.type)
    return FieldDirective(COLUMN, name, column)


def field_directives(columns: EffectiveColumnSet) -> List[FieldDirective]:
    """Directives for an effective column set, with one timestamps pair at most."""
    directives: List[FieldDirective] = []
    for name, column in columns.items():
        directive = field_directive(name, column)
        if directive is None:
            continue
        if directive.kind == TIMESTAMPS and any(d.kind == TIMESTAMPS for d in directives):
            continue
        directives.append(directive)
    return directives


def _literal_default(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _type_arguments(column: Column) -> Tuple[str, List[Any]]:
    type_name = sqlalchemy_type_name(column.type)
    args = [column.length] if column.length and type_name in LENGTH_TYPES else []
    return type_name, args


def to_columns(directive: FieldDirective, skip: Tuple[str, ...] = ()) -> List[sa.Column]:
    """Materialize a directive as ``sqlalchemy.Column`` objects."""
    kind, name, column = directive.kind, directive.name, directive.column

    if kind == ID:
        columns = [sa.Column(name, sa.Integer(), primary_key=True, autoincrement=True)]
    elif kind == TIMESTAMPS:
        columns = [
            sa.Column(CREATED_AT, sa.DateTime(), nullable=True),
            sa.Column(UPDATED_AT, sa.DateTime(), nullable=True),
        ]
    elif kind == REMEMBER_TOKEN:
        columns = [sa.Column(name, sa.String(100), nullable=True)]
    elif kind == SOFT_DELETES:
        columns = [sa.Column(name, sa.DateTime(), nullable=True)]
    else:
        type_name, args = _type_arguments(column)
        kwargs = {"nullable": column.nullable}
        if column.default is not None:
            kwargs["server_default"] = _literal_default(column.default)
        if column.index:
            kwargs["index"] = True
        columns = [sa.Column(name, getattr(sa, type_name)(*args), **kwargs)]

    return [c for c in columns if c.name not in skip]


def render(directive: FieldDirective, skip: Tuple[str, ...] = ()) -> List[str]:
    """Render a directive as ``sa.Column(...)`` source lines."""
    kind, name, column = directive.kind, directive.name, directive.column

    if kind == ID:
        lines = [(name, f'sa.Column("{name}", sa.Integer(), primary_key=True, autoincrement=True)')]
    elif kind == TIMESTAMPS:
        lines = [
            (CREATED_AT, f'sa.Column("{CREATED_AT}", sa.DateTime(), nullable=True)'),
            (UPDATED_AT, f'sa.Column("{UPDATED_AT}", sa.DateTime(), nullable=True)'),
        ]
    elif kind == REMEMBER_TOKEN:
        lines = [(name, f'sa.Column("{name}", sa.String(100), nullable=True)')]
    elif kind == SOFT_DELETES:
        lines = [(name, f'sa.Column("{name}", sa.DateTime(), nullable=True)')]
    else:
        type_name, args = _type_arguments(column)
        parts = [f'"{name}"', f"sa.{type_name}({', '.join(str(a) for a in args)})"]
        parts.append(f"nullable={column.nullable}")
        if column.default is not None:
            parts.append(f"server_default={_literal_default(column.default)!r}")
        if column.index:
            parts.append("index=True")
        lines = [(name, f"sa.Column({', '.join(parts)})")]

    return [line for column_name, line in lines if column_name not in skip]


def build_table(
    name: str, columns: EffectiveColumnSet, metadata: Optional[sa.MetaData] = None
) -> sa.Table:
    """Build the ``sqlalchemy.Table`` described by an effective column set."""
    table_columns: List[sa.Column] = []
    for directive in field_directives(columns):
        table_columns.extend(to_columns(directive))
    return sa.Table(name, metadata if metadata is not None else sa.MetaData(), *table_columns)
