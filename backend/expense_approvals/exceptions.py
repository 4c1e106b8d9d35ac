from __future__ import annotations

import logging
from typing import ClassVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception.

    ``kind`` is the machine-checkable failure category returned to callers,
    ``message`` the human-readable reason.
    """

    kind: ClassVar[str] = "INTERNAL"
    default_status: ClassVar[int] = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        super().__init__(self.message)


class ValidationFailedError(AppError):
    """Input is malformed or out of range for the requested operation."""

    kind = "VALIDATION"
    default_status = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    """A referenced expense, user, or rule does not exist."""

    kind = "NOT_FOUND"
    default_status = status.HTTP_404_NOT_FOUND


class ForbiddenError(AppError):
    """The actor has no authority over the target record."""

    kind = "FORBIDDEN"
    default_status = status.HTTP_403_FORBIDDEN


class InvalidStateError(AppError):
    """The operation is not permitted in the expense's current status."""

    kind = "INVALID_STATE"
    default_status = status.HTTP_409_CONFLICT


class ConflictError(AppError):
    """A uniqueness constraint would be violated."""

    kind = "CONFLICT"
    default_status = status.HTTP_409_CONFLICT


class UnavailableError(AppError):
    """A referenced artifact is missing from storage or could not be written."""

    kind = "UNAVAILABLE"
    default_status = status.HTTP_503_SERVICE_UNAVAILABLE


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.kind,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error=ValidationFailedError.kind,
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error=AppError.kind,
            detail="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)
