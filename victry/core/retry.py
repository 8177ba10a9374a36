"""Retry executor with exponential backoff and jitter.

Every database and AI call is wrapped by ``with_retry``. Attempts are strictly
sequential: attempt N+1 starts only after attempt N has settled and its delay
has elapsed. The attempt ceiling is unconditional, whatever ``should_retry``
says. Cancellation (``asyncio.CancelledError``) is never retried and
propagates immediately, including from the sleep between attempts.
"""

from __future__ import annotations

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any, ParamSpec, TypeVar

from victry.core.config import AppSettings, settings
from victry.core.errors import is_retryable_error
from victry.core.logger import Logger

T = TypeVar("T")
P = ParamSpec("P")

ShouldRetry = Callable[[Exception, int], bool]
CalculateDelay = Callable[[int, "RetryOptions"], float]
OnRetry = Callable[[Exception, int, float], None]


def default_should_retry(error: Exception, attempt: int) -> bool:
    """Retry whatever the error taxonomy classifies as transient."""

    return is_retryable_error(error)


@dataclass(frozen=True)
class RetryOptions:
    """Retry configuration for one call site; immutable during a retry sequence.

    Attributes:
        max_attempts: Attempts including the first one (1 disables retries).
        initial_delay: Delay in seconds before the first retry.
        max_delay: Upper bound in seconds for the backoff delay (not for the
            operation itself).
        backoff_factor: Multiplier applied per attempt.
        jitter: Fraction (0-1) widening the delay into
            ``[base * (1 - jitter), base * (1 + jitter)]``.
        should_retry: ``(error, attempt) -> bool``; defaults to the taxonomy.
        calculate_delay: ``(attempt, options) -> seconds``; defaults to
            ``calculate_exponential_delay``.
        on_retry: ``(error, attempt, delay)`` callback run before each sleep.
    """

    max_attempts: int = 3
    initial_delay: float = 0.1
    max_delay: float = 5.0
    backoff_factor: float = 2.0
    jitter: float = 0.1
    should_retry: ShouldRetry | None = None
    calculate_delay: CalculateDelay | None = None
    on_retry: OnRetry | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")

    @staticmethod
    def from_settings(app_settings: AppSettings | None = None) -> "RetryOptions":
        """Build the default collaborator retry policy from settings."""

        cfg = app_settings or settings.app
        return RetryOptions(
            max_attempts=cfg.retry_max_attempts,
            initial_delay=cfg.retry_initial_delay_seconds,
            max_delay=cfg.retry_max_delay_seconds,
            backoff_factor=cfg.retry_backoff_factor,
            jitter=cfg.retry_jitter,
        )

    def merge(self, **changes: Any) -> "RetryOptions":
        """Return a copy with the given fields overridden."""

        return replace(self, **changes)


def calculate_exponential_delay(attempt: int, options: RetryOptions) -> float:
    """Exponential backoff with jitter for a 1-based attempt number.

    ``base = min(initial_delay * backoff_factor ** (attempt - 1), max_delay)``;
    the result is ``base`` scaled by a random factor in
    ``[1 - jitter, 1 + jitter]``. With ``jitter == 0`` it equals ``base``.

    Returns:
        float: Delay in seconds.
    """

    base_delay = min(
        options.initial_delay * options.backoff_factor ** (attempt - 1),
        options.max_delay,
    )
    jitter_factor = 1 - options.jitter + random.random() * options.jitter * 2
    return base_delay * jitter_factor


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    options: RetryOptions | None = None,
    *,
    logger: Logger | None = None,
) -> T:
    """Run ``operation`` and retry transient failures.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        options: Retry configuration; defaults to ``RetryOptions()``.
        logger: Structured logger for retry warnings.

    Returns:
        The first successful result.

    Raises:
        Exception: The error of the last attempt, or the first error the
            retry predicate rejects, unchanged.
    """

    opts = options or RetryOptions()
    should_retry = opts.should_retry or default_should_retry
    calculate_delay = opts.calculate_delay or calculate_exponential_delay
    log = logger or Logger(source="retry")

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as error:
            if attempt >= opts.max_attempts or not should_retry(error, attempt):
                raise

            delay = calculate_delay(attempt, opts)
            log.warn(
                "retry.scheduled",
                {
                    "attempt": attempt,
                    "max_attempts": opts.max_attempts,
                    "delay_s": round(delay, 4),
                    "error": error,
                },
            )

            if opts.on_retry is not None:
                try:
                    opts.on_retry(error, attempt, delay)
                except Exception as callback_error:
                    log.warn("retry.on_retry_failed", {"error": callback_error})

        await _sleep(delay)
        attempt += 1


def create_retryable(
    fn: Callable[P, Awaitable[T]],
    options: RetryOptions | None = None,
    *,
    logger: Logger | None = None,
) -> Callable[P, Awaitable[T]]:
    """Wrap an async function so every call goes through ``with_retry``."""

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        return await with_retry(lambda: fn(*args, **kwargs), options, logger=logger)

    return wrapper


def retryable(
    options: RetryOptions | None = None,
    *,
    logger: Logger | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator form of ``create_retryable``.

    Example:
        >>> @retryable(RetryOptions(max_attempts=5))
        ... async def fetch_profile(user_id: str) -> dict: ...
    """

    def decorator(fn: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        return create_retryable(fn, options, logger=logger)

    return decorator
