"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain, validation, HTTP and unexpected) and return the error envelope
``{"error", "code"?, "validationErrors"?, "requestId"?}`` with the status
resolved by the error taxonomy.

Design:
- AppError → its own payload and taxonomy status
- RequestValidationError → 400 with per-field validationErrors
- HTTPException → category inferred from the status code
- Unexpected Exception → generic 500 (safety net, no internals leaked)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from victry.core.errors import (
    AppError,
    ErrorCategory,
    ErrorCode,
    FieldError,
    create_api_error,
    create_server_error,
    create_validation_error,
    get_error_category_from_status,
)
from victry.core.logging import get_request_id
from victry.core.responses import error_response

logger = logging.getLogger(__name__)

_DEFAULT_CODES: dict[ErrorCategory, ErrorCode] = {
    ErrorCategory.VALIDATION: ErrorCode.VALIDATION_INVALID_DATA,
    ErrorCategory.AUTH: ErrorCode.AUTH_NOT_AUTHENTICATED,
    ErrorCategory.PERMISSION: ErrorCode.PERMISSION_DENIED,
    ErrorCategory.NOT_FOUND: ErrorCode.NOT_FOUND_RESOURCE,
    ErrorCategory.CONFLICT: ErrorCode.CONFLICT_ALREADY_EXISTS,
    ErrorCategory.RATE_LIMIT: ErrorCode.RATE_LIMIT_EXCEEDED,
    ErrorCategory.SERVER: ErrorCode.SERVER_INTERNAL_ERROR,
    ErrorCategory.SERVICE: ErrorCode.SERVICE_ERROR,
}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors.

    Args:
        request: FastAPI request object.
        exc: AppError instance.

    Returns:
        JSONResponse with the taxonomy status and error envelope.
    """
    status_code = exc.status_code
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_category": exc.category.value,
            "error_code": exc.code.value if exc.code else None,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    response = error_response(exc.error)
    response.status_code = status_code
    return response


def _field_name(loc: tuple) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts first
    parts = [str(part) for part in loc[1:]] if len(loc) > 1 else [str(part) for part in loc]
    return ".".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Turn request validation failures into the validation envelope."""
    field_errors = [
        FieldError(field=_field_name(tuple(error.get("loc", ()))), message=error.get("msg", "Invalid value"))
        for error in exc.errors()
    ]
    logger.info(
        "request_validation_failed",
        extra={
            "request_path": request.url.path,
            "fields": [error.field for error in field_errors],
        },
    )
    return error_response(create_validation_error("Validation failed", field_errors))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (404 route, 405 method) in the error envelope."""
    category = get_error_category_from_status(exc.status_code)
    code = ErrorCode.VALIDATION_INVALID_DATA if exc.status_code == 405 else _DEFAULT_CODES.get(category)
    error = create_api_error(str(exc.detail), category, code=code)

    response = error_response(error, headers=getattr(exc, "headers", None))
    response.status_code = exc.status_code
    return response


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    Prevents information leakage (no stack traces to client).
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return error_response(create_server_error("An unexpected error occurred. Please try again later."))


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.

    Example:
        >>> from fastapi import FastAPI
        >>> from victry.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
