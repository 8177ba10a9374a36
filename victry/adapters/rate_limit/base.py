"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        count: Requests counted in the current window (including this one
            when allowed).
        remaining_time: Seconds until the window resets; only set when blocked.
    """

    allowed: bool
    count: int
    remaining_time: float | None = None


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only view of an identifier's current window."""

    count: int
    remaining_time: float


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def is_allowed(self, identifier: str, limit: int, window_seconds: float) -> RateLimitResult:
        """Count a request for ``identifier`` and decide whether it may proceed.

        Args:
            identifier: Namespaced key (e.g., ``email:a@b.com``, ``ip:1.2.3.4``).
            limit: Max requests per window.
            window_seconds: Window length in seconds.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def get_status(self, identifier: str) -> RateLimitStatus | None:
        """Return the current window for ``identifier`` without counting."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, identifier: str) -> None:
        """Forget ``identifier`` (administrative clearing)."""
        raise NotImplementedError

    def start(self, interval_seconds: float) -> None:
        """Begin background maintenance; no-op for stores that expire natively."""

    async def destroy(self) -> None:
        """Stop background work and release state."""
