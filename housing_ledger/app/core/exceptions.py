"""
Custom exceptions and error handlers for consistent error responses.

Provides the pool fund error taxonomy, standardized error codes and
global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, List, Optional

logger = logging.getLogger("housing_ledger.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Raised when an entry or record carries malformed fields. Caller-correctable."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"field": field} if field else {}
        )


class NotFoundError(AppException):
    """Raised when an update or lookup references an unknown id."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ScopeViolation(AppException):
    """Raised when a scoped request resolves to data outside the caller's tenant."""

    def __init__(self, message: str = "Requested data is outside the caller's tenant scope", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_SCOPE_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class PartialCascadeFailure(AppException):
    """
    Raised when a later step of a multi-step cascade fails after an
    earlier step was written.

    `completed_steps` lists the steps that were flushed before the failure,
    `failed_step` names the step that raised. `rolled_back` is set by the
    unit of work once it has discarded the flushed steps.
    """

    def __init__(
        self,
        cascade: str,
        completed_steps: List[str],
        failed_step: str,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.cascade = cascade
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        self.cause = cause
        super().__init__(
            message=f"Cascade '{cascade}' failed at step '{failed_step}' after {completed_steps or 'no steps'}",
            error_code="ERR_CASCADE_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={
                "cascade": cascade,
                "completed_steps": self.completed_steps,
                "failed_step": failed_step,
                "cause": repr(cause) if cause else None,
                "rolled_back": False,
                **(context or {})
            }
        )

    def mark_rolled_back(self, dead_letter_id: Optional[int] = None):
        self.details["rolled_back"] = True
        if dead_letter_id is not None:
            self.details["dead_letter_id"] = dead_letter_id


class ConcurrencyConflict(AppException):
    """Raised when the running-total version check detects a concurrent write. Retry the request."""

    def __init__(self, message: str = "Concurrent update detected, retry the request", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.error_code, exc.message, extra={"details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
