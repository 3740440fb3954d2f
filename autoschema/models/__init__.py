"""Ready-made model bases."""

from .base import BaseModel

__all__ = ["BaseModel"]
