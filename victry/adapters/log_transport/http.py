"""Log server transport: ships entries as JSON over HTTP POST."""

from __future__ import annotations

import logging

import httpx

from victry.core.logger import LogEntry, LogLevel, LogTransport
from victry.core.logging import redact

logger = logging.getLogger(__name__)


class HttpLogTransport(LogTransport):
    """POST each entry to a log collection endpoint.

    Delivery problems are reported on the stdlib logger and never raised, so
    a dead log server cannot break request handling. A fresh client is used
    per delivery; entries are rare (error and above by default).

    Args:
        url: Collector endpoint.
        api_key: Optional key sent as ``X-API-Key``.
        min_level: Minimum level shipped (default ``error``).
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    name = "server"

    def __init__(
        self,
        url: str,
        *,
        api_key: str | None = None,
        min_level: LogLevel | str | None = LogLevel.ERROR,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(min_level=min_level)
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    async def log(self, entry: LogEntry) -> None:
        payload = redact(entry.to_dict())
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            # Not routed through the structured logger: that could loop forever
            logger.error(
                "log_server.delivery_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return

        if response.is_error:
            logger.warning(
                "log_server.rejected",
                extra={"status_code": response.status_code},
            )
