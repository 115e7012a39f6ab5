"""Exceptions raised by the delta object package."""

from typing import Optional


class DeltaObjectError(Exception):
    """Base exception for delta construction, query and patch failures."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[type] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.entity_type = entity_type
        self.field = field

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class UnknownFieldError(DeltaObjectError, KeyError):
    """Raised when a field name is not declared on the entity type."""


class InvalidAccessorError(DeltaObjectError, TypeError):
    """Raised when an accessor is not a direct read of a single field."""


class FieldTypeMismatchError(DeltaObjectError, TypeError):
    """Raised when a typed query disagrees with the registered field type."""


class CoercionError(DeltaObjectError, ValueError):
    """Raised when a payload value cannot be converted to the field's type."""
