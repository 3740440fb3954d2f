"""
Named attribute casts.

A cast converts between the stored (database) form of a value and the form
the model exposes. ``set`` runs on assignment, ``get`` on read. ``None``
passes through untouched unless a cast says otherwise.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict

from ..exceptions import MetadataError


class Cast:
    """Identity cast; subclasses override ``get`` and ``set``."""

    def get(self, value: Any) -> Any:
        return value

    def set(self, value: Any) -> Any:
        return value


class IntegerCast(Cast):
    def get(self, value: Any) -> Any:
        return None if value is None else int(value)

    set = get


class FloatCast(Cast):
    def get(self, value: Any) -> Any:
        return None if value is None else float(value)

    set = get


class StringCast(Cast):
    def get(self, value: Any) -> Any:
        return None if value is None else str(value)

    set = get


class BooleanCast(Cast):
    def get(self, value: Any) -> Any:
        return None if value is None else bool(value)

    set = get


class DateTimeCast(Cast):
    def get(self, value: Any) -> Any:
        if isinstance(value, str):
            return datetime.fromisoformat(value)
        return value

    set = get


class DateCast(Cast):
    def get(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            return date.fromisoformat(value[:10])
        return value

    set = get


class JsonCast(Cast):
    """Stores JSON text, exposes decoded values."""

    def get(self, value: Any) -> Any:
        if isinstance(value, (str, bytes)):
            return json.loads(value)
        return value

    def set(self, value: Any) -> Any:
        return None if value is None else json.dumps(value)


class DecimalCast(Cast):
    def get(self, value: Any) -> Any:
        return None if value is None else Decimal(str(value))

    set = get


class CurrencyCast(Cast):
    """Amounts stored as integer cents, exposed as floats."""

    def get(self, value: Any) -> Any:
        return None if value is None else value / 100

    def set(self, value: Any) -> Any:
        return int(round((value or 0) * 100))


_CASTS: Dict[str, Cast] = {
    "int": IntegerCast(),
    "integer": IntegerCast(),
    "float": FloatCast(),
    "double": FloatCast(),
    "str": StringCast(),
    "string": StringCast(),
    "bool": BooleanCast(),
    "boolean": BooleanCast(),
    "datetime": DateTimeCast(),
    "date": DateCast(),
    "json": JsonCast(),
    "array": JsonCast(),
    "decimal": DecimalCast(),
    "currency": CurrencyCast(),
}


def register_cast(name: str, cast: Cast) -> None:
    """Register (or replace) a named cast."""
    _CASTS[name] = cast


def get_cast(name: str) -> Cast:
    try:
        return _CASTS[name]
    except KeyError:
        raise MetadataError(f"Unknown cast '{name}'") from None
