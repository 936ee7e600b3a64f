from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Optional[str] = None
    timestamp: datetime


class AppError(Exception):
    """Base class for application errors."""

    error_code: str = "APP_ERROR"

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(AppError):
    """Malformed input rejected before any store access."""

    error_code = "INVALID_ARGUMENT"


class DatabaseError(AppError):
    """The underlying store failed or is unreachable."""

    error_code = "STORE_UNAVAILABLE"


__all__ = ["ErrorResponse", "AppError", "ValidationError", "DatabaseError"]
