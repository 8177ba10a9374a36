"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state (sync dependencies run in the
  threadpool).
- A window opens on the first request for an identifier, so a burst straddling
  two windows can admit up to ``2 * limit`` requests in a short span. This is
  accepted fixed-window behavior.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from victry.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult, RateLimitStatus

logger = logging.getLogger(__name__)


@dataclass
class _WindowState:
    count: int
    reset_at: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per identifier.

    Each identifier holds ``{count, reset_at}``. A request with no entry, or
    whose entry has expired (``now > reset_at``), opens a new window with
    ``count=1``. Otherwise it is denied once ``count >= limit`` and counted
    when below the limit. Denied requests are not counted.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def is_allowed(self, identifier: str, limit: int, window_seconds: float) -> RateLimitResult:
        """Count a request and decide whether it may proceed.

        Raises:
            ValueError: If identifier is empty or limit/window are invalid.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        now = self._clock()

        with self._lock:
            state = self._state_by_key.get(identifier)

            if state is None or now > state.reset_at:
                self._state_by_key[identifier] = _WindowState(count=1, reset_at=now + window_seconds)
                return RateLimitResult(allowed=True, count=1)

            if state.count >= limit:
                return RateLimitResult(
                    allowed=False,
                    count=state.count,
                    remaining_time=state.reset_at - now,
                )

            state.count += 1
            return RateLimitResult(allowed=True, count=state.count)

    def get_status(self, identifier: str) -> RateLimitStatus | None:
        """Return the current window without counting; evicts an expired entry."""
        now = self._clock()

        with self._lock:
            state = self._state_by_key.get(identifier)
            if state is None:
                return None
            if now > state.reset_at:
                del self._state_by_key[identifier]
                return None
            return RateLimitStatus(count=state.count, remaining_time=state.reset_at - now)

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._state_by_key.pop(identifier, None)

    def sweep_expired(self) -> int:
        """Evict every expired entry.

        Returns:
            int: Number of evicted identifiers.
        """
        now = self._clock()

        with self._lock:
            expired = [key for key, state in self._state_by_key.items() if now > state.reset_at]
            for key in expired:
                del self._state_by_key[key]

        if expired:
            logger.debug("rate_limit.swept", extra={"evicted": len(expired)})
        return len(expired)

    def start(self, interval_seconds: float = 300.0) -> None:
        """Schedule the periodic sweep on the running event loop.

        Calling it again while a sweep task is alive is a no-op.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.get_running_loop().create_task(
            self._sweep_periodically(interval_seconds)
        )

    async def destroy(self) -> None:
        """Cancel the sweep task and clear all windows."""
        task, self._sweep_task = self._sweep_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        with self._lock:
            self._state_by_key.clear()

    async def _sweep_periodically(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep_expired()
