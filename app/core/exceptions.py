"""
Global exception handling for the application.
Every error leaves the API in the shared envelope: {"success": false, "message": ..., "error": {...}}.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AppError):
    """Malformed or missing input."""
    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class InvalidOTPException(ValidationException):
    def __init__(self, message: str = "Invalid or expired OTP", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class AlreadyVerifiedException(ValidationException):
    def __init__(self, message: str = "Email already verified", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ConflictException(AppError):
    """Duplicate unique key or a state the request cannot apply to."""
    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_409_CONFLICT, details)


class EntityNotFoundException(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Entity not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class UnauthorizedException(AppError):
    """Authentication failure error."""
    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, details)


class InvalidCredentialsException(UnauthorizedException):
    def __init__(self, message: str = "Invalid credentials", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ForbiddenException(AppError):
    """Authorization failure error."""
    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_403_FORBIDDEN, details)


class AccountDeactivatedException(ForbiddenException):
    def __init__(self, message: str = "Account is deactivated", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


def _envelope(request: Request, status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    error: Dict[str, Any] = {"code": code, "path": request.url.path}
    if details:
        error["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": error},
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _envelope(request, exc.status_code, exc.__class__.__name__, exc.message, exc.details)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid request"
    return _envelope(request, status.HTTP_400_BAD_REQUEST, "ValidationException", message, {"errors": errors})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope(request, exc.status_code, "HTTPException", str(exc.detail))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions globally."""
    logger.exception("Unhandled error", path=request.url.path, error=str(exc))
    return _envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred. Please try again later.",
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
