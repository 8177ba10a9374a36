"""Rate limiting wiring for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on ``get_rate_limiter`` only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- Explicit lifecycle: the limiter is built by the app factory and stored on
  ``app.state``; no module-level instance.

Password reset strategy:
- Per email address (key ``email:<lowercased address>``), default 5 per hour.
- Per client IP (key ``ip:<address>``), default 20 per hour.
"""

from __future__ import annotations

import hashlib
import logging
import math

from fastapi import Request

from victry.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult, RateLimitStatus
from victry.core.config import AppSettings, settings

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_IP = "127.0.0.1"


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """FastAPI dependency returning the app-owned limiter."""

    return request.app.state.rate_limiter


def _email_key(email: str) -> str:
    return f"email:{email.lower()}"


def _ip_key(ip: str) -> str:
    return f"ip:{ip}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing emails or IPs."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _check(
    limiter: AbstractRateLimiter,
    key: str,
    limit: int,
    window_seconds: float,
    key_type: str,
) -> RateLimitResult:
    result = limiter.is_allowed(key, limit, window_seconds)
    if not result.allowed:
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_type": key_type,
                "key_hash": _hash_limiter_key(key),
                "limit": limit,
                "count": result.count,
                "window_s": window_seconds,
                "retry_after_s": math.ceil(result.remaining_time or 0),
            },
        )
    return result


def check_password_reset_email_rate_limit(
    limiter: AbstractRateLimiter,
    email: str,
    app_settings: AppSettings | None = None,
) -> RateLimitResult:
    """Count a password reset request for ``email`` (case-insensitive)."""

    cfg = app_settings or settings.app
    return _check(
        limiter,
        _email_key(email),
        cfg.password_reset_email_limit,
        cfg.password_reset_email_window_seconds,
        "email",
    )


def check_password_reset_ip_rate_limit(
    limiter: AbstractRateLimiter,
    ip: str,
    app_settings: AppSettings | None = None,
) -> RateLimitResult:
    """Count a password reset request coming from ``ip``."""

    cfg = app_settings or settings.app
    return _check(
        limiter,
        _ip_key(ip),
        cfg.password_reset_ip_limit,
        cfg.password_reset_ip_window_seconds,
        "ip",
    )


def get_password_reset_email_status(limiter: AbstractRateLimiter, email: str) -> RateLimitStatus | None:
    return limiter.get_status(_email_key(email))


def get_password_reset_ip_status(limiter: AbstractRateLimiter, ip: str) -> RateLimitStatus | None:
    return limiter.get_status(_ip_key(ip))


def reset_password_reset_email_rate_limit(limiter: AbstractRateLimiter, email: str) -> None:
    limiter.reset(_email_key(email))


def reset_password_reset_ip_rate_limit(limiter: AbstractRateLimiter, ip: str) -> None:
    limiter.reset(_ip_key(ip))


def get_client_ip(request: Request) -> str:
    """Best-effort client address.

    Order: first hop of ``X-Forwarded-For``, ``X-Real-IP``,
    ``CF-Connecting-IP``, the socket peer, then ``127.0.0.1``.
    """

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for and forwarded_for.split(",")[0].strip():
        return forwarded_for.split(",")[0].strip()

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value and value.strip():
            return value.strip()

    if request.client and request.client.host:
        return request.client.host

    return DEFAULT_CLIENT_IP


def format_remaining_time(seconds: float) -> str:
    """Human wait time: "N minute(s)" below an hour, else "N hour(s)", rounded up.

    Example:
        >>> format_remaining_time(90)
        '2 minutes'
        >>> format_remaining_time(3600)
        '1 hour'
    """

    minutes = math.ceil(seconds / 60)
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"

    hours = math.ceil(minutes / 60)
    return f"{hours} hour{'s' if hours != 1 else ''}"
