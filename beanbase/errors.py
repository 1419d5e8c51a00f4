"""Error hierarchy raised by the bean helpers.

Every error carries a type string next to its message so callers can branch
on the failure kind without parsing text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Union

from beanbase.models.enumerations import (
    CrudOperation,
    RelationErrorType,
    ValidationErrorType,
)

ErrorType = Union[str, Enum]


def _type_value(error_type: ErrorType) -> str:
    return error_type.value if isinstance(error_type, Enum) else str(error_type)


class BeanBaseError(Exception):
    """Base exception for all bean helper failures."""

    def __init__(self, message: str, error_type: ErrorType, code: int = 0) -> None:
        self.message = message
        self.error_type = _type_value(error_type)
        self.code = code
        super().__init__(f"(Error Type - {self.error_type}) {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "type": self.error_type,
            "message": self.message,
            "code": self.code,
        }


class ArgumentError(BeanBaseError, ValueError):
    """Raised when a caller passes malformed input, e.g. a non-associative mapping."""

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message, "ARGUMENT", code)


class CrudError(BeanBaseError):
    CREATE = CrudOperation.CREATE
    READ = CrudOperation.READ
    UPDATE = CrudOperation.UPDATE
    DELETE = CrudOperation.DELETE


class RelationError(BeanBaseError):
    ONE_TO_ONE = RelationErrorType.ONE_TO_ONE
    ONE_TO_MANY = RelationErrorType.ONE_TO_MANY
    MANY_TO_MANY = RelationErrorType.MANY_TO_MANY
    BELONGS_TO = RelationErrorType.BELONGS_TO
    UNKNOWN = RelationErrorType.UNKNOWN


class ValidationError(BeanBaseError):
    INCOMPLETE = ValidationErrorType.INCOMPLETE
    UNIQUE = ValidationErrorType.UNIQUE
    UNKNOWN = ValidationErrorType.UNKNOWN
