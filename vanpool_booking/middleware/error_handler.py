"""
Error handling middleware for the Vanpool Booking platform.
"""

import logging
import traceback
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import OperationalError, TimeoutError as SQLTimeoutError
from pydantic import ValidationError as PydanticValidationError

from ..utils.exceptions import (
    VanpoolError,
    ErrorCode,
    ValidationError,
    NotFoundError,
    ConflictError,
    ConcurrencyError,
    UnexpectedError,
)

logger = logging.getLogger(__name__)

STATUS_MAP = {
    ErrorCode.VALIDATION: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DUPLICATE_NAME: status.HTTP_409_CONFLICT,
    ErrorCode.VAN_CLOSED: status.HTTP_409_CONFLICT,
    ErrorCode.HAS_ACTIVE_PASSENGERS: status.HTTP_409_CONFLICT,
    ErrorCode.FINALIZED_LOCKED: status.HTTP_409_CONFLICT,
    ErrorCode.NO_CONFIRMED_PASSENGERS: status.HTTP_409_CONFLICT,
    ErrorCode.VAN_COST_REQUIRED: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_ATTACHED: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ErrorCode.CONCURRENCY_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(exc: VanpoolError) -> int:
    """Map error codes to HTTP status codes."""
    return STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(exc: VanpoolError, error_id: str) -> JSONResponse:
    """Render a platform error in the standard envelope."""
    headers = {}
    if exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=status_code_for(exc),
        content={
            "error": exc.to_dict(),
            "error_id": error_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        headers=headers,
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn exceptions escaping the routers into JSON error envelopes."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        error_id = str(uuid4())

        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc, error_id)

    def _handle_exception(self, request: Request, exc: Exception, error_id: str) -> JSONResponse:
        self._log_error(request, exc, error_id)

        if isinstance(exc, VanpoolError):
            return error_response(exc, error_id)
        if isinstance(exc, PydanticValidationError):
            return self._handle_validation_error(exc, error_id)
        if isinstance(exc, (OperationalError, SQLTimeoutError)):
            return self._handle_database_error(exc, error_id)
        return self._handle_unexpected_error(exc, error_id)

    def _handle_validation_error(self, exc: PydanticValidationError, error_id: str) -> JSONResponse:
        field_errors: dict = {}
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            field_errors.setdefault(field_path, []).append(error["msg"])

        return error_response(
            ValidationError("Request validation failed", field_errors=field_errors),
            error_id,
        )

    def _handle_database_error(self, exc: Exception, error_id: str) -> JSONResponse:
        response = error_response(
            UnexpectedError(
                "Database temporarily unavailable",
                details={"error_type": type(exc).__name__},
            ),
            error_id,
        )
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        response.headers["Retry-After"] = "30"
        return response

    def _handle_unexpected_error(self, exc: Exception, error_id: str) -> JSONResponse:
        error = UnexpectedError(
            "An unexpected error occurred",
            details={"error_type": type(exc).__name__} if self.debug else None,
        )
        content = {
            "error": error.to_dict(),
            "error_id": error_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        # Include stack trace in debug mode
        if self.debug:
            content["debug"] = {"exception": str(exc), "traceback": traceback.format_exc()}

        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    def _log_error(self, request: Request, exc: Exception, error_id: str):
        request_info = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }

        if isinstance(exc, VanpoolError):
            extra = {
                "error_id": error_id,
                "error_code": exc.error_code.value,
                "request": request_info,
                "details": exc.details,
            }
            if isinstance(exc, (ValidationError, NotFoundError, ConflictError)):
                logger.warning(f"Client error [{error_id}]: {exc.message}", extra=extra)
            elif isinstance(exc, ConcurrencyError):
                logger.error(f"Concurrency error [{error_id}]: {exc.message}", extra=extra)
            else:
                logger.error(f"Platform error [{error_id}]: {exc.message}", extra=extra)
        else:
            logger.error(
                f"Unexpected error [{error_id}]: {exc}",
                extra={
                    "error_id": error_id,
                    "error_type": type(exc).__name__,
                    "request": request_info,
                },
                exc_info=True,
            )
