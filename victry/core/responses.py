"""Response envelope helpers.

Success: ``{"data": ..., "metadata"?: {...}, "requestId"?: "..."}``.
Error: ``{"error": "...", "code"?: "...", "validationErrors"?: [...], "requestId"?: "..."}``
with the status resolved by the error taxonomy.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from victry.core.config import settings
from victry.core.errors import ApiError, ErrorCategory, ErrorCode, create_api_error
from victry.core.logging import get_request_id


def create_api_success(
    data: Any,
    metadata: Mapping[str, Any] | None = None,
    include_request_id: bool | None = None,
) -> dict[str, Any]:
    """Build the JSON-ready success envelope.

    Args:
        data: Payload; pydantic models and dataclasses are encoded.
        metadata: Optional extra information (pagination, timings).
        include_request_id: Attach the current request id; defaults to
            ``APP_INCLUDE_REQUEST_ID``.
    """

    body: dict[str, Any] = {"data": jsonable_encoder(data)}
    if metadata:
        body["metadata"] = jsonable_encoder(metadata)

    if include_request_id is None:
        include_request_id = settings.app.include_request_id
    request_id = get_request_id() if include_request_id else None
    if request_id:
        body["requestId"] = request_id
    return body


def api_response(
    data: Any,
    status: int = 200,
    metadata: Mapping[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(status_code=status, content=create_api_success(data, metadata))


def error_response(error: ApiError, headers: Mapping[str, str] | None = None) -> JSONResponse:
    """Serialize an ``ApiError`` with its taxonomy status and the current request id."""

    error = error.with_request_id(get_request_id())
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_response(),
        headers=dict(headers) if headers else None,
    )


def api_error(
    message: str,
    category: ErrorCategory | str,
    code: ErrorCode | None = None,
    details: Any = None,
) -> JSONResponse:
    return error_response(create_api_error(message, ErrorCategory(category), code=code, details=details))


def is_api_error_response(payload: Any) -> bool:
    """True for a mapping whose ``error`` is a string."""

    return isinstance(payload, Mapping) and isinstance(payload.get("error"), str)


def is_api_success_response(payload: Any) -> bool:
    """True for a mapping carrying a ``data`` key."""

    return isinstance(payload, Mapping) and "data" in payload
