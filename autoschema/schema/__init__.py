"""Declarative metadata, reflection and column resolution."""

from .attributes import (
    BelongsTo,
    Column,
    HasMany,
    HasOne,
    HasOneThrough,
    Table,
    ValidationRule,
    appended,
)
from .reflector import Reflector, reflector
from .registry import ModelRegistry, registry
from .resolver import ColumnResolver, EffectiveColumnSet, resolver

__all__ = [
    "BelongsTo",
    "Column",
    "ColumnResolver",
    "EffectiveColumnSet",
    "HasMany",
    "HasOne",
    "HasOneThrough",
    "ModelRegistry",
    "Reflector",
    "Table",
    "ValidationRule",
    "appended",
    "reflector",
    "registry",
    "resolver",
]
