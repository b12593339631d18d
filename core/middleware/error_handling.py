"""
Exception handlers with error message sanitization.
Every error leaves the API in the same envelope:
``{"error": {"code", "message", "path", "method"}}``.
"""

import logging
from typing import Any, Optional
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, OperationalError
import re

from core.workflow.errors import WorkflowError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be returned or logged
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'postgres(?:ql)?(?:\+\w+)?://\S+', re.IGNORECASE),
    re.compile(r'redis://\S+', re.IGNORECASE),
]


def sanitize_error_message(message: str) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    """Build the JSON error envelope."""
    body = {
        "error": {
            "code": code,
            "message": message,
            "path": str(request.url.path),
            "method": request.method,
        }
    }
    if details is not None:
        body["error"]["details"] = details

    request_id = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
    if request_id:
        body["error"]["request_id"] = request_id

    return JSONResponse(status_code=status_code, content=body)


def setup_error_handlers(app: FastAPI):
    """
    Set up exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(WorkflowError)
    async def workflow_exception_handler(request: Request, exc: WorkflowError):
        """Map workflow errors to their status codes."""
        message = sanitize_error_message(exc.message)
        logger.warning(
            f"Workflow error: {request.method} {request.url.path} - "
            f"Status: {exc.status_code}, Code: {exc.code}, Message: {message}"
        )
        context = exc.to_dict().get("context")
        return error_response(request, exc.status_code, exc.code, message, context)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return error_response(
            request,
            exc.status_code,
            "HTTP_EXCEPTION",
            sanitize_error_message(exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": sanitize_error_message(error["msg"]),
                "type": error["type"],
            })
        logger.warning(
            f"Validation error: {request.method} {request.url.path} - Errors: {errors}"
        )
        return error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "REQUEST_VALIDATION_ERROR",
            "Request validation failed",
            errors,
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        """Handle database failures without leaking connection details."""
        logger.error(
            f"Database error: {request.method} {request.url.path} - {type(exc).__name__}",
            exc_info=True,
        )
        if isinstance(exc, OperationalError):
            return error_response(
                request,
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "DATABASE_ERROR",
                "Database service temporarily unavailable",
            )
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "DATABASE_ERROR",
            "A database error occurred",
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        logger.error(
            f"Unhandled exception: {request.method} {request.url.path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=True,
        )
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred",
        )
