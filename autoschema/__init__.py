"""
autoschema

Declarative column, relationship and table-inheritance metadata for model
classes, with migrations generated from it.
"""

import importlib.metadata

__version__ = importlib.metadata.version("autoschema")

from .exceptions import AutoSchemaError, MetadataError, MissingRelatedRow, UnknownModelError
from .models import BaseModel
from .orm import Model, Query, register_cast
from .schema import (
    BelongsTo,
    Column,
    HasMany,
    HasOne,
    HasOneThrough,
    Table,
    ValidationRule,
    appended,
)

__all__ = [
    "AutoSchemaError",
    "BaseModel",
    "BelongsTo",
    "Column",
    "HasMany",
    "HasOne",
    "HasOneThrough",
    "MetadataError",
    "MissingRelatedRow",
    "Model",
    "Query",
    "Table",
    "UnknownModelError",
    "ValidationRule",
    "appended",
    "register_cast",
]
