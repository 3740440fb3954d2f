"""
Declarative metadata attached to model properties.

Properties are declared with ``typing.Annotated``; the annotated type is the
property's type and the extras are the metadata below::

    class Invoice(BaseModel, table="invoices"):
        amount: Annotated[int, Column(type="integer"), ValidationRule("required")]
        customer: Annotated[Customer, Column(), BelongsTo(eager=True)]

The classes here are plain data. Reading them off a model is the job of
:mod:`autoschema.schema.reflector`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, TypeVar, Union

F = TypeVar("F", bound=Callable[..., Any])

APPENDED_MARKER = "__autoschema_appended__"


@dataclass(frozen=True)
class Column:
    """Intended definition of one database column."""

    name: Optional[str] = None
    type: str = "string"
    fillable: bool = True
    hidden: bool = False
    cast: Optional[str] = None

    nullable: bool = False
    default: Any = None
    length: Optional[int] = None
    index: bool = False


@dataclass(frozen=True)
class Table:
    """Table mapping of a model class, with an optional parent model."""

    table: str
    parent: Optional[str] = None


@dataclass(frozen=True)
class ValidationRule:
    """One validation rule of a property; repeatable."""

    rule: str
    message: Optional[str] = None


class Relationship:
    """Marker base for the relationship variants."""

    eager: bool
    load: Tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.load, str):
            object.__setattr__(self, "load", (self.load,))
        else:
            object.__setattr__(self, "load", tuple(self.load))


@dataclass(frozen=True)
class BelongsTo(Relationship):
    """The annotated model owns this one through a local foreign key."""

    foreign_key: Optional[str] = None
    owner_key: Optional[str] = None
    eager: bool = False
    load: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HasOne(Relationship):
    """The annotated model holds a foreign key pointing at this one."""

    foreign_key: Optional[str] = None
    local_key: Optional[str] = None
    eager: bool = False
    load: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HasMany(Relationship):
    """Rows of ``related`` hold a foreign key pointing at this one."""

    related: Union[str, type] = ""
    foreign_key: Optional[str] = None
    local_key: Optional[str] = None
    eager: bool = False
    load: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HasOneThrough(Relationship):
    """The annotated model is reached through an intermediate ``through`` model."""

    through: Union[str, type] = ""
    first_key: Optional[str] = None
    second_key: Optional[str] = None
    local_key: Optional[str] = None
    second_local_key: Optional[str] = None
    eager: bool = False
    load: Tuple[str, ...] = ()


def appended(method: F) -> F:
    """Mark a method as a computed attribute appended to serialized output."""
    setattr(method, APPENDED_MARKER, True)
    return method
