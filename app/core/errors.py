"""Typed business errors rendered by the handlers in ``app.main``."""
from typing import Any, Optional

from .messages import BOOK_MESSAGES, GENERAL_MESSAGES


class AppError(Exception):
    """Base for expected failures. Carries the HTTP status to answer with."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400

    def __init__(self, errors: list[dict[str, Any]], message: str = GENERAL_MESSAGES["VALIDATION_FAILED"]):
        super().__init__(message)
        # [{"field": ..., "message": ..., "value": ...}]
        self.errors = errors


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = BOOK_MESSAGES["NOT_FOUND"]):
        super().__init__(message)


class ConflictError(AppError):
    status_code = 409

    def __init__(self, message: str = BOOK_MESSAGES["DUPLICATE_ISBN"]):
        super().__init__(message)
