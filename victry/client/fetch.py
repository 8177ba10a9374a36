"""Envelope-aware fetch wrapper over ``httpx``.

``api_fetch`` performs one logical request and returns the unwrapped payload:

- ``application/json``: error envelopes raise ``AppError``; success envelopes
  return ``data``; any other JSON document is returned as-is.
- ``text/*``: the body as ``str``.
- ``application/pdf`` and ``image/*``: the body as ``bytes``.
- anything else: the raw ``httpx.Response``.

Optional retries reuse ``with_retry`` and the same exponential backoff as
server-side collaborator calls, gated by an HTTP-aware predicate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from victry.core.errors import (
    RETRYABLE_CODES,
    ApiError,
    AppError,
    ErrorCategory,
    ErrorCode,
    FieldError,
    create_api_error,
    get_error_category_from_status,
)
from victry.core.logger import Logger
from victry.core.responses import is_api_error_response, is_api_success_response
from victry.core.retry import RetryOptions, with_retry

logger = logging.getLogger(__name__)

ErrorTransformer = Callable[[Any, httpx.Response | None], ApiError]
ResponseValidator = Callable[[Any], bool]

_BINARY_CONTENT_TYPES = ("application/pdf", "image/")
_RETRYABLE_MESSAGE_PATTERNS = ("network", "timeout", "connection", "abort")


def is_retryable_fetch_error(error: Exception, attempt: int) -> bool:
    """Retry 5xx, 429, transport failures and retryable taxonomy codes.

    Accepts raw ``httpx`` errors too, so it can gate ``with_retry`` around
    plain ``httpx`` calls as well as ``api_fetch``.
    """

    if isinstance(error, httpx.TransportError):
        return True

    if isinstance(error, AppError):
        status = error.http_status
        if status is not None and (status >= 500 or status == 429):
            return True
        if error.code is not None and error.code.value in RETRYABLE_CODES:
            return True

    message = str(error).lower()
    return any(pattern in message for pattern in _RETRYABLE_MESSAGE_PATTERNS)


def _build_url(url: str, base_url: str) -> str:
    if url.startswith(("http://", "https://")):
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def _service_error(message: str, response: httpx.Response, details: Any = None) -> AppError:
    return AppError(
        create_api_error(
            message,
            ErrorCategory.SERVICE,
            code=ErrorCode.SERVICE_ERROR,
            details=details
            if details is not None
            else {"status": response.status_code, "reason": response.reason_phrase},
        ),
        http_status=response.status_code,
    )


def _parse_code(raw: Any) -> ErrorCode | None:
    try:
        return ErrorCode(raw) if isinstance(raw, str) else None
    except ValueError:
        return None


def _parse_field_errors(raw: Any) -> list[FieldError] | None:
    if not isinstance(raw, list):
        return None
    parsed = [
        FieldError(field=str(item["field"]), message=str(item["message"]))
        for item in raw
        if isinstance(item, Mapping) and "field" in item and "message" in item
    ]
    return parsed or None


def _envelope_error(
    payload: Mapping[str, Any],
    response: httpx.Response,
    error_transformer: ErrorTransformer | None,
) -> AppError:
    if error_transformer is not None:
        return AppError(error_transformer(payload, response), http_status=response.status_code)

    return AppError(
        create_api_error(
            payload["error"],
            get_error_category_from_status(response.status_code),
            code=_parse_code(payload.get("code")),
            validation_errors=_parse_field_errors(payload.get("validationErrors")),
            request_id=payload.get("requestId") if isinstance(payload.get("requestId"), str) else None,
        ),
        http_status=response.status_code,
        details=dict(payload),
    )


def _read_response(
    response: httpx.Response,
    validate_response: ResponseValidator | None,
    error_transformer: ErrorTransformer | None,
) -> Any:
    content_type = response.headers.get("content-type", "").lower()

    if content_type and "application/json" not in content_type:
        if "text/" in content_type:
            if response.is_error:
                raise _service_error(
                    response.text or f"Request failed with status {response.status_code}",
                    response,
                )
            return response.text

        if any(kind in content_type for kind in _BINARY_CONTENT_TYPES):
            if response.is_error:
                raise _service_error(f"Binary request failed with status {response.status_code}", response)
            return response.content

        if response.is_error:
            raise _service_error(
                f"Request failed with status {response.status_code}",
                response,
                {
                    "status": response.status_code,
                    "reason": response.reason_phrase,
                    "content_type": content_type,
                },
            )
        return response

    if not response.content:
        if response.is_error:
            raise _service_error(f"Request failed with status {response.status_code}", response)
        return None

    try:
        payload = response.json()
    except ValueError as exc:
        raise _service_error("Invalid JSON response", response) from exc

    if is_api_error_response(payload):
        raise _envelope_error(payload, response, error_transformer)
    if response.is_error:
        raise _service_error(f"Request failed with status {response.status_code}", response, payload)

    data = payload["data"] if is_api_success_response(payload) else payload
    if validate_response is not None and not validate_response(data):
        raise _service_error("Invalid response data", response, payload)
    return data


async def api_fetch(
    url: str,
    *,
    method: str = "GET",
    base_url: str = "/api",
    json: Any = None,
    content: bytes | str | None = None,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    validate_response: ResponseValidator | None = None,
    retry: bool = False,
    max_retries: int = 3,
    retry_delay: float = 0.5,
    error_transformer: ErrorTransformer | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
    retry_logger: Logger | None = None,
) -> Any:
    """Fetch ``url`` and unwrap the API envelope.

    Args:
        url: Absolute URL, or a path joined onto ``base_url``.
        method: HTTP method.
        base_url: Prefix for relative paths. Relative results need a
            ``client`` configured with its own ``base_url``.
        json: JSON body (serialized by httpx).
        content: Raw body.
        params: Query string parameters.
        headers: Extra headers; ``Accept: application/json`` is added by
            default.
        validate_response: Predicate over the unwrapped data; a ``False``
            result raises a service error.
        retry: Retry transient failures.
        max_retries: Total attempts when ``retry`` is set; 0 means a single
            attempt.
        retry_delay: Delay in seconds before the first retry; doubles per
            attempt with jitter.
        error_transformer: Maps an error envelope (or a terminal unexpected
            exception) to the ``ApiError`` to raise.
        client: Shared ``httpx.AsyncClient``; a short-lived one is opened per
            call otherwise.
        timeout: Timeout in seconds for the short-lived client.
        retry_logger: Structured logger for retry warnings.

    Raises:
        AppError: Classified failure. ``http_status`` carries the remote
            status when a response was received.
    """

    full_url = _build_url(url, base_url)
    request_headers = {"Accept": "application/json", **(headers or {})}
    options = RetryOptions(
        max_attempts=max(1, max_retries) if retry else 1,
        initial_delay=retry_delay,
        max_delay=max(retry_delay * 2 ** max(max_retries - 1, 0), retry_delay),
        should_retry=is_retryable_fetch_error,
    )

    async def _run(http: httpx.AsyncClient) -> Any:
        async def _attempt() -> Any:
            try:
                response = await http.request(
                    method,
                    full_url,
                    json=json,
                    content=content,
                    params=params,
                    headers=request_headers,
                )
            except httpx.TimeoutException as exc:
                raise AppError(
                    create_api_error(
                        "Request timed out",
                        ErrorCategory.NETWORK,
                        code=ErrorCode.NETWORK_TIMEOUT,
                        cause=exc,
                    )
                ) from exc
            except httpx.TransportError as exc:
                raise AppError(
                    create_api_error(
                        "Network error",
                        ErrorCategory.NETWORK,
                        code=ErrorCode.NETWORK_CONNECTION_ERROR,
                        cause=exc,
                    )
                ) from exc
            return _read_response(response, validate_response, error_transformer)

        return await with_retry(_attempt, options, logger=retry_logger)

    try:
        if client is not None:
            return await _run(client)
        async with httpx.AsyncClient(timeout=timeout) as owned_client:
            return await _run(owned_client)
    except AppError:
        raise
    except Exception as exc:
        logger.warning(
            "api_fetch.unexpected_error",
            extra={"method": method, "url": full_url, "error_type": type(exc).__name__},
        )
        if error_transformer is not None:
            raise AppError(error_transformer(exc, None)) from exc
        raise AppError(
            create_api_error(
                str(exc) or "API request failed",
                ErrorCategory.SERVICE,
                code=ErrorCode.SERVICE_ERROR,
                cause=exc,
            )
        ) from exc
