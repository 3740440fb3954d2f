"""Active-record layer over SQLAlchemy Core, driven by declared metadata."""

from .casts import Cast, get_cast, register_cast
from .initializer import ModelInitializer, ModelMetadata, initializer
from .model import Model
from .query import Query

__all__ = [
    "Cast",
    "Model",
    "ModelInitializer",
    "ModelMetadata",
    "Query",
    "get_cast",
    "initializer",
    "register_cast",
]
