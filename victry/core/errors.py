"""Error taxonomy shared by every route, service and adapter.

Failures from any collaborator (database, AI service, network) are translated
into a closed set of categories and codes. The category carries the default
HTTP status; a code may override it. ``ApiError`` is the immutable payload
serialized as the response body, ``AppError`` is the exception that carries it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import openai
from pydantic import BaseModel, ConfigDict, Field

from victry.core.config import settings

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Coarse failure classes; each maps to one default HTTP status."""

    AUTH = "auth"
    PERMISSION = "permission"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    # External service errors (third-party APIs)
    SERVICE = "service"
    DATABASE = "database"
    AI = "ai"
    SERVER = "server"
    # File handling, storage quotas, uploads
    IO = "io"
    NETWORK = "network"


class ErrorCode(str, Enum):
    """Fine-grained codes, prefixed by the category they refine."""

    AUTH_INVALID_CREDENTIALS = "auth_invalid_credentials"
    AUTH_SESSION_EXPIRED = "auth_session_expired"
    AUTH_NOT_AUTHENTICATED = "auth_not_authenticated"
    AUTH_TOKEN_INVALID = "auth_token_invalid"
    AUTH_MFA_REQUIRED = "auth_mfa_required"

    PERMISSION_DENIED = "permission_denied"
    PERMISSION_INSUFFICIENT_TIER = "permission_insufficient_tier"
    PERMISSION_RESOURCE_LIMIT = "permission_resource_limit"

    VALIDATION_REQUIRED_FIELD = "validation_required_field"
    VALIDATION_INVALID_FORMAT = "validation_invalid_format"
    VALIDATION_INVALID_DATA = "validation_invalid_data"

    NOT_FOUND_RESOURCE = "not_found_resource"
    NOT_FOUND_USER = "not_found_user"
    NOT_FOUND_RESUME = "not_found_resume"
    NOT_FOUND_JOB_DESCRIPTION = "not_found_job_description"

    CONFLICT_DUPLICATE_ENTRY = "conflict_duplicate_entry"
    CONFLICT_VERSION_MISMATCH = "conflict_version_mismatch"
    CONFLICT_ALREADY_EXISTS = "conflict_already_exists"

    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    RATE_LIMIT_COOL_DOWN = "rate_limit_cool_down"

    SERVICE_UNAVAILABLE = "service_unavailable"
    SERVICE_TIMEOUT = "service_timeout"
    SERVICE_ERROR = "service_error"

    DATABASE_CONNECTION_ERROR = "database_connection_error"
    DATABASE_QUERY_ERROR = "database_query_error"
    DATABASE_INTEGRITY_ERROR = "database_integrity_error"
    DATABASE_FOREIGN_KEY_ERROR = "database_foreign_key_error"

    AI_GENERATION_ERROR = "ai_generation_error"
    AI_CONTENT_POLICY = "ai_content_policy"
    AI_TOKEN_LIMIT = "ai_token_limit"
    AI_MODEL_ERROR = "ai_model_error"

    SERVER_INTERNAL_ERROR = "server_internal_error"
    SERVER_NOT_IMPLEMENTED = "server_not_implemented"
    SERVER_MAINTENANCE = "server_maintenance"

    IO_FILE_ERROR = "io_file_error"
    IO_STORAGE_LIMIT = "io_storage_limit"
    IO_UPLOAD_ERROR = "io_upload_error"

    NETWORK_CONNECTION_ERROR = "network_connection_error"
    NETWORK_TIMEOUT = "network_timeout"


HTTP_STATUS_MAP: dict[ErrorCategory, int] = {
    ErrorCategory.AUTH: 401,
    ErrorCategory.PERMISSION: 403,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.RATE_LIMIT: 429,
    ErrorCategory.SERVICE: 503,
    ErrorCategory.DATABASE: 500,
    ErrorCategory.AI: 500,
    ErrorCategory.SERVER: 500,
    ErrorCategory.IO: 500,
    ErrorCategory.NETWORK: 500,
}

# Only codes whose status differs from (or must stay pinned to) the category default
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND_RESOURCE: 404,
    ErrorCode.NOT_FOUND_USER: 404,
    ErrorCode.NOT_FOUND_RESUME: 404,
    ErrorCode.NOT_FOUND_JOB_DESCRIPTION: 404,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
    ErrorCode.SERVER_NOT_IMPLEMENTED: 501,
    ErrorCode.SERVER_MAINTENANCE: 503,
}

RETRYABLE_CATEGORIES: frozenset[ErrorCategory] = frozenset(
    {
        ErrorCategory.NETWORK,
        ErrorCategory.DATABASE,
        ErrorCategory.SERVICE,
        ErrorCategory.RATE_LIMIT,
    }
)

# Compared by value: Enum hashes by member name, not by the string value
RETRYABLE_CODES: frozenset[str] = frozenset(
    code.value
    for code in (
        ErrorCode.DATABASE_CONNECTION_ERROR,
        ErrorCode.NETWORK_CONNECTION_ERROR,
        ErrorCode.NETWORK_TIMEOUT,
        ErrorCode.SERVICE_TIMEOUT,
        ErrorCode.SERVICE_UNAVAILABLE,
        ErrorCode.RATE_LIMIT_EXCEEDED,
    )
)

RETRYABLE_MESSAGE_PATTERNS: tuple[str, ...] = (
    "network",
    "timeout",
    "connection",
    "unavailable",
    "temporary",
    "rate limit",
    "try again",
)


class FieldError(BaseModel):
    """A single field-level validation failure."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ApiError(BaseModel):
    """Immutable error payload, serialized directly as the response body.

    Serialized shape: ``{"error", "code"?, "validationErrors"?, "requestId"?}``.
    The category is kept for status resolution but never sent to clients.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: str = Field(..., alias="error")
    category: ErrorCategory = Field(ErrorCategory.SERVER, exclude=True)
    code: ErrorCode | None = None
    validation_errors: list[FieldError] | None = Field(None, alias="validationErrors")
    request_id: str | None = Field(None, alias="requestId")

    @property
    def status_code(self) -> int:
        return get_error_status_code(self.category, self.code)

    def to_response(self) -> dict[str, Any]:
        """Return the JSON-ready response body."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def with_request_id(self, request_id: str | None) -> "ApiError":
        if not request_id or self.request_id:
            return self
        return self.model_copy(update={"request_id": request_id})


@dataclass(eq=False)
class AppError(Exception):
    """Exception carrying a classified ``ApiError``.

    Attributes:
        error: The taxonomy payload.
        http_status: Status actually returned by a remote server, when the
            error was built from an HTTP response. Overrides the taxonomy
            status.
        details: Local debugging context; never serialized.
    """

    error: ApiError
    http_status: int | None = None
    details: Any = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.error.message)

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def category(self) -> ErrorCategory:
        return self.error.category

    @property
    def code(self) -> ErrorCode | None:
        return self.error.code

    @property
    def status_code(self) -> int:
        return self.http_status or self.error.status_code


def _read_field(error: Any, name: str) -> Any:
    """Read ``name`` from a mapping-shaped or attribute-shaped error."""

    if isinstance(error, Mapping):
        return error.get(name)
    return getattr(error, name, None)


def _code_value(code: Any) -> Any:
    return code.value if isinstance(code, Enum) else code


def create_api_error(
    message: str,
    category: ErrorCategory,
    *,
    code: ErrorCode | None = None,
    validation_errors: list[FieldError] | list[dict[str, str]] | None = None,
    details: Any = None,
    cause: BaseException | Any = None,
    request_id: str | None = None,
) -> ApiError:
    """Build a standardized error payload.

    ``details`` and ``cause`` are logged locally and never serialized. Empty
    ``validation_errors`` are dropped.
    """

    category = ErrorCategory(category)
    error = ApiError(
        message=message,
        category=category,
        code=code,
        validation_errors=validation_errors or None,
        request_id=request_id,
    )

    if details is not None and not settings.is_production:
        logger.error(
            "api_error.details",
            extra={
                "error_message": message,
                "error_category": category.value,
                "error_code": _code_value(code),
                "details": details,
                "cause": repr(cause) if cause is not None else None,
            },
        )
    elif cause is not None:
        logger.error(
            "api_error.cause",
            extra={
                "error_category": category.value,
                "error_code": _code_value(code),
                "cause": repr(cause),
            },
        )

    return error


def get_error_status_code(category: ErrorCategory | str, code: ErrorCode | str | None = None) -> int:
    """Resolve the HTTP status: specific code override first, category default second."""

    if code is not None:
        try:
            override = ERROR_CODE_STATUS_MAP.get(ErrorCode(code))
        except ValueError:
            override = None
        if override is not None:
            return override
    return HTTP_STATUS_MAP[ErrorCategory(category)]


def get_error_category_from_status(status: int) -> ErrorCategory:
    """Infer a category from an HTTP status when a payload carries none."""

    if status == 400:
        return ErrorCategory.VALIDATION
    if status == 401:
        return ErrorCategory.AUTH
    if status == 403:
        return ErrorCategory.PERMISSION
    if status == 404:
        return ErrorCategory.NOT_FOUND
    if status == 409:
        return ErrorCategory.CONFLICT
    if status == 429:
        return ErrorCategory.RATE_LIMIT
    if status >= 500:
        return ErrorCategory.SERVER
    return ErrorCategory.SERVICE


def create_validation_error(
    message: str = "Validation failed",
    validation_errors: list[FieldError] | list[dict[str, str]] | None = None,
) -> ApiError:
    return create_api_error(
        message,
        ErrorCategory.VALIDATION,
        code=ErrorCode.VALIDATION_INVALID_DATA,
        validation_errors=validation_errors,
    )


def create_auth_error(
    message: str = "Authentication failed",
    code: ErrorCode = ErrorCode.AUTH_NOT_AUTHENTICATED,
) -> ApiError:
    return create_api_error(message, ErrorCategory.AUTH, code=code)


_NOT_FOUND_CODES: dict[str, ErrorCode] = {
    "resume": ErrorCode.NOT_FOUND_RESUME,
    "job description": ErrorCode.NOT_FOUND_JOB_DESCRIPTION,
    "user": ErrorCode.NOT_FOUND_USER,
}


def create_not_found_error(resource: str, id: str | None = None) -> ApiError:
    """Build a not-found error, picking a resource-specific code when known.

    Example:
        >>> create_not_found_error("resume", "r1").to_response()
        {'error': 'resume with ID r1 not found', 'code': 'not_found_resume'}
    """

    message = f"{resource} with ID {id} not found" if id else f"{resource} not found"
    code = _NOT_FOUND_CODES.get(resource.lower(), ErrorCode.NOT_FOUND_RESOURCE)
    return create_api_error(message, ErrorCategory.NOT_FOUND, code=code)


def create_permission_error(
    message: str = "Permission denied",
    code: ErrorCode = ErrorCode.PERMISSION_DENIED,
) -> ApiError:
    return create_api_error(message, ErrorCategory.PERMISSION, code=code)


def create_server_error(
    message: str = "An unexpected server error occurred",
    error: Any = None,
) -> ApiError:
    return create_api_error(
        message,
        ErrorCategory.SERVER,
        code=ErrorCode.SERVER_INTERNAL_ERROR,
        cause=error,
        details=error,
    )


def is_retryable_error(error: Any, category: ErrorCategory | str | None = None) -> bool:
    """Decide whether a failure is worth retrying.

    Structured signals are trusted over message sniffing:

    1. An explicit ``category`` is checked against the retryable categories.
    2. Otherwise a string ``code`` on the error is checked against the
       retryable codes.
    3. Otherwise the lower-cased message is searched for transient-failure
       keywords. Exceptions with an empty message fall back to their type
       name, so a bare ``TimeoutError()`` still reads as a timeout.
    """

    if category is not None:
        return ErrorCategory(category) in RETRYABLE_CATEGORIES

    code = _code_value(_read_field(error, "code"))
    if isinstance(code, str):
        return code in RETRYABLE_CODES

    message = _read_field(error, "message")
    if not isinstance(message, str):
        if not isinstance(error, BaseException):
            return False
        message = str(error)
    if not message and isinstance(error, BaseException):
        message = type(error).__name__

    lowered = message.lower()
    return any(pattern in lowered for pattern in RETRYABLE_MESSAGE_PATTERNS)


def handle_supabase_error(error: Any) -> ApiError:
    """Translate a Supabase/PostgREST/Postgres error into the taxonomy.

    Accepts mapping-shaped (``{"code", "message", "details"}``) or
    attribute-shaped errors. Never raises.
    """

    logger.error(
        "supabase_error",
        extra={"error_type": type(error).__name__, "error_msg": str(error)},
    )

    code = _read_field(error, "code")
    message = _read_field(error, "message")

    if code is not None and message is not None:
        code = str(code)
        details = _read_field(error, "details")

        if code == "PGRST116":
            return create_not_found_error("Resource")
        if code == "42P01":
            return create_api_error(
                "Database table not found",
                ErrorCategory.DATABASE,
                code=ErrorCode.DATABASE_QUERY_ERROR,
                details=details,
            )
        if code == "23505":
            return create_api_error(
                "Unique constraint violation",
                ErrorCategory.CONFLICT,
                code=ErrorCode.CONFLICT_DUPLICATE_ENTRY,
                details=details,
            )
        if code == "23503":
            return create_api_error(
                "Foreign key constraint violation",
                ErrorCategory.DATABASE,
                code=ErrorCode.DATABASE_FOREIGN_KEY_ERROR,
                details=details,
            )
        if code == "auth-user-not-found":
            return create_not_found_error("User")
        if code == "auth-invalid-credentials":
            return create_auth_error("Invalid credentials", ErrorCode.AUTH_INVALID_CREDENTIALS)
        if code.startswith("auth-"):
            return create_auth_error(
                message or "Authentication error",
                ErrorCode.AUTH_INVALID_CREDENTIALS,
            )

        return create_api_error(
            message or "An unexpected database error occurred",
            ErrorCategory.DATABASE,
            details=details,
            cause=error,
        )

    if isinstance(error, str):
        return create_server_error(error, error)
    return create_server_error(
        "An unexpected error occurred while accessing the database",
        error,
    )


_AI_ERROR_TYPES: dict[str, tuple[str | None, ErrorCategory, ErrorCode]] = {
    # type -> (fixed message or None to keep the vendor message, category, code)
    "authentication_error": (
        "AI service authentication error",
        ErrorCategory.SERVICE,
        ErrorCode.SERVICE_ERROR,
    ),
    "invalid_request_error": (None, ErrorCategory.VALIDATION, ErrorCode.VALIDATION_INVALID_DATA),
    "permission_error": (
        "AI service permission error",
        ErrorCategory.PERMISSION,
        ErrorCode.PERMISSION_DENIED,
    ),
    "rate_limit_error": (
        "AI service rate limit exceeded",
        ErrorCategory.RATE_LIMIT,
        ErrorCode.RATE_LIMIT_EXCEEDED,
    ),
    "content_policy_violation": (
        "Content policy violation",
        ErrorCategory.AI,
        ErrorCode.AI_CONTENT_POLICY,
    ),
    "server_error": (
        "AI service is currently unavailable",
        ErrorCategory.SERVICE,
        ErrorCode.SERVICE_UNAVAILABLE,
    ),
}


def _ai_error_from_type(error_type: str, vendor_message: str | None, details: Any) -> ApiError:
    fixed_message, category, code = _AI_ERROR_TYPES[error_type]
    if fixed_message is None:
        fixed_message = vendor_message or "Invalid request to AI service"
    return create_api_error(fixed_message, category, code=code, details=details)


def _ai_error_from_status(status: int, vendor_message: str | None, details: Any) -> ApiError:
    if status == 401:
        return _ai_error_from_type("authentication_error", vendor_message, details)
    if status == 403:
        return _ai_error_from_type("permission_error", vendor_message, details)
    if status == 429:
        return _ai_error_from_type("rate_limit_error", vendor_message, details)
    if status in (400, 422):
        return _ai_error_from_type("invalid_request_error", vendor_message, details)
    if status >= 500:
        return _ai_error_from_type("server_error", vendor_message, details)
    return create_api_error(
        vendor_message or "AI service error",
        ErrorCategory.AI,
        code=ErrorCode.AI_GENERATION_ERROR,
        details=details,
    )


def handle_ai_error(error: Any) -> ApiError:
    """Translate an AI provider error into the taxonomy. Never raises.

    Understands the vendor payload ``{"status", "error": {"type", "message",
    "param"?}}`` and SDK exceptions exposing ``status_code`` with ``type`` or
    a ``body`` mapping.
    """

    if isinstance(error, AppError):
        return error.error

    logger.error(
        "ai_service_error",
        extra={"error_type": type(error).__name__, "error_msg": str(error)},
    )

    status = _read_field(error, "status")
    vendor_error = _read_field(error, "error")

    if status is not None and isinstance(vendor_error, Mapping):
        error_type = vendor_error.get("type")
        vendor_message = vendor_error.get("message")
        if error_type in _AI_ERROR_TYPES:
            return _ai_error_from_type(error_type, vendor_message, details=error)
        return create_api_error(
            vendor_message or "AI service error",
            ErrorCategory.AI,
            code=ErrorCode.AI_GENERATION_ERROR,
            details=error,
        )

    status_code = getattr(error, "status_code", None)
    if isinstance(error, BaseException) and isinstance(status_code, int):
        body = getattr(error, "body", None)
        error_type = getattr(error, "type", None)
        vendor_message = getattr(error, "message", None)
        if isinstance(body, Mapping):
            error_type = error_type or body.get("type")
            vendor_message = body.get("message") or vendor_message
        details = {"status": status_code, "type": error_type, "message": vendor_message}
        if error_type in _AI_ERROR_TYPES:
            return _ai_error_from_type(error_type, vendor_message, details)
        return _ai_error_from_status(status_code, vendor_message, details)

    if isinstance(error, (TimeoutError, openai.APITimeoutError, httpx.TimeoutException)):
        return create_api_error(
            "AI service request timed out",
            ErrorCategory.SERVICE,
            code=ErrorCode.SERVICE_TIMEOUT,
            cause=error,
        )
    if isinstance(error, (ConnectionError, openai.APIConnectionError, httpx.TransportError)):
        return create_api_error(
            "Could not reach the AI service",
            ErrorCategory.NETWORK,
            code=ErrorCode.NETWORK_CONNECTION_ERROR,
            cause=error,
        )

    return create_api_error(
        str(error) if isinstance(error, BaseException) and str(error) else "AI processing error",
        ErrorCategory.AI,
        code=ErrorCode.AI_GENERATION_ERROR,
        cause=error,
    )
