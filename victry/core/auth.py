"""API key authentication and caller identity.

Keys are validated against a comma-separated list from environment variables.
The caller's user id is asserted by the trusted gateway in ``X-User-ID``.

Design principles:
- Single Responsibility: only handles request credentials
- Dependency Injection: used via FastAPI Depends() for loose coupling
- Configuration-driven: keys managed via env vars, not hardcoded
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header

from victry.core.config import AppSettings, settings
from victry.core.errors import (
    AppError,
    ErrorCategory,
    ErrorCode,
    create_api_error,
    create_auth_error,
    create_permission_error,
)

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def _hash_key(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def validate_api_key(provided_key: str | None, app_settings: AppSettings | None = None) -> None:
    """Validate the provided API key against configured keys.

    Pure validation logic without FastAPI dependencies for easy testing.

    Raises:
        AppError: ``auth_not_authenticated`` (401) when the key is missing,
            ``permission_denied`` (403) when it is invalid,
            ``server_internal_error`` (500) when auth is on but no keys exist.
    """
    cfg = app_settings or settings.app
    if not cfg.api_key_required:
        logger.debug("auth.skipped", extra={"reason": "auth_required_false"})
        return

    valid_keys = parse_api_keys(cfg.api_keys)
    if not valid_keys:
        logger.error(
            "api_key_validation_failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AppError(
            create_api_error(
                "API key authentication is enabled but no valid keys are configured",
                ErrorCategory.SERVER,
                code=ErrorCode.SERVER_INTERNAL_ERROR,
            )
        )

    if not provided_key:
        logger.warning("auth.missing_key", extra={"api_key_present": False})
        raise AppError(create_auth_error("Missing API key. Provide X-API-Key header."))

    if provided_key not in valid_keys:
        logger.warning(
            "api_key_validation_failed",
            extra={"reason": "invalid_api_key", "api_key_hash": _hash_key(provided_key)},
        )
        raise AppError(create_permission_error("Invalid API key"))

    logger.debug("auth.success", extra={"api_key_hash": _hash_key(provided_key)})


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency for API key authentication.

    Usage:
        @router.post("/protected", dependencies=[Depends(verify_api_key)])
        async def protected_endpoint(): ...
    """
    validate_api_key(x_api_key)


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-ID")] = None,
) -> str:
    """FastAPI dependency returning the authenticated user id.

    Raises:
        AppError: 401 ``auth_not_authenticated`` when the header is absent.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AppError(create_auth_error("Authentication required"))
    return user_id
