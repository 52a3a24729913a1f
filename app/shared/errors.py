"""Typed domain errors.

Services raise these directly; they subclass ``HTTPException`` so FastAPI
renders them as ``{"detail": message}`` with the matching status code.
"""

from typing import Optional

from fastapi import HTTPException


class ApiError(HTTPException):
    """Base class for recoverable, user-facing errors"""

    status_code_default = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.status_code_default, detail=message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class BadRequestError(ApiError):
    """Business rule violated (wrong day, outside hours, illegal transition, overpayment)"""

    status_code_default = 400


class ForbiddenError(ApiError):
    status_code_default = 403


class NotFoundError(ApiError):
    """Entity absent or owned by another tenant"""

    status_code_default = 404


class ConflictError(ApiError):
    """Overlapping booking, duplicate invoice per appointment, duplicate phone"""

    status_code_default = 409
