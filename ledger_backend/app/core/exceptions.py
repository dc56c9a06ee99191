"""
Custom exceptions and error handlers for consistent error responses.

Every error leaves the API as {"error_code", "message", "details"}.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationFailedError(AppException):
    """Raised when input passes schema validation but breaks a business rule."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class ForbiddenError(AppException):
    """Raised when the caller is outside the resource's access scope."""

    def __init__(self, message: str = "Insufficient permissions", error_code: str = "FORBIDDEN"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_403_FORBIDDEN
        )


class BusinessMismatchError(ForbiddenError):
    """Raised when a confirmation targets a different business than the caller expects."""

    def __init__(self):
        super().__init__(
            message="Security alert: business mismatch detected",
            error_code="BUSINESS_MISMATCH"
        )


class NotYourRequestError(ForbiddenError):
    """Raised when a customer acts on a debt request addressed to someone else."""

    def __init__(self):
        super().__init__(
            message="This debt request is not addressed to you",
            error_code="NOT_YOUR_REQUEST"
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": str(resource_id) if resource_id else None}
        )


class InvalidStatusError(AppException):
    """Raised when the current status does not allow the requested transition."""

    def __init__(self, resource: str, current_status: str, target_status: str = None):
        message = f"{resource} is {current_status}"
        if target_status:
            message = f"{resource} cannot move from {current_status} to {target_status}"
        super().__init__(
            message=message,
            error_code="INVALID_STATUS",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "status": current_status}
        )


class AlreadyProcessedError(AppException):
    """Raised when an idempotency constraint rejects a repeated settlement."""

    def __init__(self, resource: str):
        super().__init__(
            message=f"{resource} already processed",
            error_code="ALREADY_PROCESSED",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource}
        )


class ExpiredError(AppException):
    """Raised when a time-boxed request is used after its window."""

    def __init__(self, resource: str):
        super().__init__(
            message=f"{resource} expired",
            error_code="EXPIRED",
            status_code=status.HTTP_410_GONE,
            details={"resource": resource}
        )


class ConfigurationError(AppException):
    """Raised when a required server-side setting is missing."""

    def __init__(self, message: str = "Server configuration error"):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.error_code, request.url.path, exc.message)
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
        400: "VALIDATION_ERROR",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        410: "EXPIRED",
        500: "INTERNAL_ERROR"
    }

    error_code = error_code_map.get(exc.status_code, "UNKNOWN_ERROR")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error_code": "VALIDATION_ERROR",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions. Never echoes internals."""
    logger.error(
        "Unhandled exception on %s: %s", request.url.path, type(exc).__name__,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
