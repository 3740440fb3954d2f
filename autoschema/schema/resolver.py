"""
Column resolver: computes the effective column set of a model.

The effective column set is the ordered mapping ``column name -> Column``
that both the migration synthesizer and the model layer work from:

1. declared columns, in declaration order;
2. columns typed with a model become ``<model>_id`` integer foreign keys;
3. columns that live in the parent table are not repeated on a child table;
4. a child table gets a hidden parent-link column;
5. a model with concrete subclasses gets a hidden ``type`` discriminator.

Resolution is pure and uncached: the same class structure always yields the
same ordered result.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional

from ..exceptions import MetadataError
from .attributes import Column
from .naming import foreign_key_for
from .reflector import Reflector, column_name, is_model_type, reflector as default_reflector

logger = logging.getLogger(__name__)

EffectiveColumnSet = Dict[str, Column]

DISCRIMINATOR_COLUMN = "type"


class ColumnResolver:
    """Builds effective column sets from reflected declarations."""

    def __init__(self, reflector: Optional[Reflector] = None):
        self.reflector = reflector or default_reflector

    def declared(self, model: type) -> EffectiveColumnSet:
        """Declared columns with foreign-key renaming applied, nothing else."""
        columns: EffectiveColumnSet = {}
        for declaration in self.reflector.describe_columns(model):
            column = declaration.column
            if is_model_type(declaration.annotation):
                column = replace(column, type="integer")
            name = column_name(declaration)
            columns[name] = replace(column, name=name)
        return columns

    def _check_chain(self, model: type) -> None:
        visited = set()
        current: Optional[type] = model
        while current is not None:
            if current in visited:
                raise MetadataError(f"Inheritance cycle through {current.__name__}")
            visited.add(current)
            current = self.reflector.find_parent_type(current)

    def resolve(self, model: type) -> EffectiveColumnSet:
        self._check_chain(model)

        columns = self.declared(model)
        parent = self.reflector.find_parent_type(model)
        base = self.reflector.find_base_type(model)

        if base is not None and parent is not None:
            base_names = set(self.declared(base))
            parent_names = set(self.declared(parent)) | set(self.resolve(parent))
            own_names = set(self.reflector.own_columns(model))
            columns = {
                name: column
                for name, column in columns.items()
                if name in base_names or name not in parent_names or name in own_names
            }

        if parent is not None:
            link = foreign_key_for(parent)
            columns[link] = Column(name=link, type="integer", hidden=True, nullable=True)

        if self.reflector.find_child_types(model) and DISCRIMINATOR_COLUMN not in columns:
            columns[DISCRIMINATOR_COLUMN] = Column(
                name=DISCRIMINATOR_COLUMN, type="string", hidden=True, nullable=True
            )

        return columns


# Global resolver instance
resolver = ColumnResolver()
