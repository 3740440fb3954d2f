"""
Naming conventions shared by the resolver, the relations and the model layer.

- class ``InvoiceLine`` -> table ``invoice_lines``
- class ``InvoiceLine`` -> foreign key ``invoice_line_id``
"""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

_IRREGULAR = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
}
_IRREGULAR_SINGULAR = {plural: single for single, plural in _IRREGULAR.items()}
_UNCOUNTABLE = {"data", "equipment", "information", "media", "metadata", "news", "series", "species"}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(value: str) -> str:
    """Convert ``StudlyCase`` or ``camelCase`` to ``snake_case``."""
    value = value.strip().replace("-", "_").replace(" ", "_")
    return _CAMEL_BOUNDARY.sub("_", value).lower().strip("_")


def _split_last(word: str) -> Tuple[str, str]:
    head, sep, last = word.rpartition("_")
    return head + sep, last


def pluralize(word: str) -> str:
    """Pluralize the last segment of a snake_case word."""
    head, last = _split_last(word)
    lower = last.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in _IRREGULAR:
        return head + _IRREGULAR[lower]
    if re.search(r"[^aeiou]y$", lower):
        return head + last[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", lower):
        return head + last + "es"
    return head + last + "s"


def singularize(word: str) -> str:
    """Singularize the last segment of a snake_case word."""
    head, last = _split_last(word)
    lower = last.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in _IRREGULAR_SINGULAR:
        return head + _IRREGULAR_SINGULAR[lower]
    if lower.endswith("ies") and len(lower) > 3:
        return head + last[:-3] + "y"
    if re.search(r"(ss|x|z|ch|sh)es$", lower):
        return head + last[:-2]
    if lower.endswith(("ss", "us", "is")):
        return word
    if lower.endswith("s") and len(lower) > 1:
        return head + last[:-1]
    return word


def model_name(model: Any) -> str:
    """Return the class name for a model class, instance or name."""
    if isinstance(model, str):
        return model.rsplit(".", 1)[-1]
    if isinstance(model, type):
        return model.__name__
    return type(model).__name__


def table_name_for(model: Any) -> str:
    """Conventional table name: snake-cased plural of the class name."""
    return pluralize(snake_case(model_name(model)))


def foreign_key_for(model: Any, column: Optional[str] = None) -> str:
    """
    Foreign key column pointing at ``model``.

    An explicit, non-empty ``column`` wins; otherwise the singular snake-cased
    class name joined to the model's primary key (``customer_id``).
    """
    if column:
        return column
    key = getattr(model, "primary_key", "id") if not isinstance(model, str) else "id"
    return f"{singularize(snake_case(model_name(model)))}_{key}"
