"""System-wide utilities and shared functionality."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from servicedesk.shared.exceptions import ValidationError

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# Operation result wrapper
# -------------------------------------------------------------------
T = TypeVar("T")


class ResultCode(str, Enum):
    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CONFLICT = "CONFLICT"


@dataclass
class OperationResult(Generic[T]):
    """Generic result wrapper for service operations.

    Expected negative outcomes (missing record, permission refused, lost
    race) come back as ``success=False`` with a ``code``; they are never
    raised.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    code: ResultCode = ResultCode.OK

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: ResultCode, error: str) -> "OperationResult[T]":
        return cls(success=False, error=error, code=code)


# -------------------------------------------------------------------
# Identifier validation
# -------------------------------------------------------------------
def parse_entity_id(value: object, field: str = "id") -> str:
    """Validate an opaque identifier and return its canonical 32-char hex form.

    Raises ``ValidationError`` for anything that is not a UUID string.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {field}", details=repr(value))
    try:
        return uuid.UUID(value.strip()).hex
    except ValueError as exc:
        raise ValidationError(f"Invalid {field}", details=repr(value)) from exc


def is_valid_entity_id(value: object) -> bool:
    try:
        parse_entity_id(value)
    except ValidationError:
        return False
    return True


__all__ = [
    "OperationResult",
    "ResultCode",
    "parse_entity_id",
    "is_valid_entity_id",
]
