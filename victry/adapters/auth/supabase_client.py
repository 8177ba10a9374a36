"""Supabase Auth (GoTrue) adapter over ``httpx``."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from victry.adapters.auth.base import AbstractAuthClient
from victry.core.errors import (
    ApiError,
    AppError,
    ErrorCategory,
    ErrorCode,
    create_api_error,
    handle_supabase_error,
)

logger = logging.getLogger(__name__)


def _error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def translate_auth_response(response: httpx.Response) -> ApiError:
    """Map a failed GoTrue response onto the error taxonomy.

    GoTrue answers ``{"code": <status>, "error_code": "...", "msg": "..."}``;
    older releases use ``{"error", "error_description"}``.
    """

    payload = _error_payload(response)
    message = payload.get("msg") or payload.get("error_description") or payload.get("message")
    error_code = payload.get("error_code") or payload.get("error")

    if response.status_code == 429:
        return create_api_error(
            message or "Too many requests to the auth service",
            ErrorCategory.RATE_LIMIT,
            code=ErrorCode.RATE_LIMIT_EXCEEDED,
        )
    if response.status_code >= 500:
        return create_api_error(
            "Auth service is currently unavailable",
            ErrorCategory.SERVICE,
            code=ErrorCode.SERVICE_UNAVAILABLE,
            details={"status": response.status_code, "message": message},
        )

    vendor_code = f"auth-{str(error_code).replace('_', '-')}" if error_code else "auth-error"
    return handle_supabase_error(
        {"code": vendor_code, "message": message or "Authentication error"}
    )


class SupabaseAuthClient(AbstractAuthClient):
    """Calls ``POST {url}/auth/v1/recover`` with the project's anon key.

    A short-lived ``httpx.AsyncClient`` is opened per call; ``transport`` lets
    tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def send_password_reset(self, email: str, redirect_to: str) -> None:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    f"{self.url}/auth/v1/recover",
                    params={"redirect_to": redirect_to},
                    json={"email": email},
                    headers=headers,
                )
        except httpx.TimeoutException as exc:
            raise AppError(
                create_api_error(
                    "Auth service request timed out",
                    ErrorCategory.NETWORK,
                    code=ErrorCode.NETWORK_TIMEOUT,
                    cause=exc,
                )
            ) from exc
        except httpx.TransportError as exc:
            raise AppError(
                create_api_error(
                    "Could not reach the auth service",
                    ErrorCategory.NETWORK,
                    code=ErrorCode.NETWORK_CONNECTION_ERROR,
                    cause=exc,
                )
            ) from exc

        if response.is_error:
            logger.warning(
                "auth.recover_failed",
                extra={"status_code": response.status_code},
            )
            raise AppError(translate_auth_response(response))

        logger.info("auth.recover_requested")
