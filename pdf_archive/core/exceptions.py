from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base application exception."""

    status_code = 500

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(AppError):
    """Raised when user input is invalid."""

    status_code = 400


class PayloadTooLargeError(ValidationError):
    """Raised when an upload exceeds the configured size limit."""

    status_code = 413


class NotFoundError(AppError):
    """Raised when an id does not resolve to a stored file."""

    status_code = 404


class StoreError(AppError):
    """Raised when the blob store is unreachable or a read/write fails."""

    status_code = 500
