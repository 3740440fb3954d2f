"""
Error types raised by autoschema.

Every error carries a stable code so callers (the batch migration command in
particular) can report failures per model without parsing messages.
"""

from typing import Any, Dict, Optional


class AutoSchemaError(Exception):
    """
    Base class for autoschema errors.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
    """

    code = "AUTOSCHEMA_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code or self.code
        self.message = message
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": "autoschema_error",
            "code": self.code,
            "message": self.message,
        }


class MetadataError(AutoSchemaError):
    """A model's declarations cannot be introspected or rendered."""

    code = "METADATA_ERROR"


class UnknownModelError(AutoSchemaError):
    """A model name could not be resolved through the registry."""

    code = "UNKNOWN_MODEL"


class MissingRelatedRow(AutoSchemaError):
    """The parent-table row of a child model is missing."""

    code = "MISSING_RELATED_ROW"

    def __init__(self, table: str, key: Any):
        self.table = table
        self.key = key
        super().__init__(f"No row in '{table}' for primary key {key!r}")
