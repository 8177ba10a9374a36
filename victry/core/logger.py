"""Structured, multi-transport logger.

A ``Logger`` is a pure dispatcher: it filters by level, builds one
``LogEntry`` per call and hands it to each transport whose own minimum level
also passes. Transports do the I/O. One failing transport never blocks the
others; its failure is reported on the stdlib fallback logger.

The logger is constructed explicitly (see ``build_logger``) and injected
where needed; ``child(source)`` derives a tagged logger without touching the
parent.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import traceback
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from victry.core.errors import AppError, ErrorCategory, ErrorCode
from victry.core.logging import get_request_id

_fallback_logger = logging.getLogger("victry.logger")


class LogLevel(str, Enum):
    """Severity levels, ordered debug < info < warn < error < fatal."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def at_least(self, other: "LogLevel | str") -> bool:
        return self.severity >= LogLevel(other).severity


_SEVERITY: dict[LogLevel, int] = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
    LogLevel.FATAL: 4,
}

# Metadata keys lifted out of ``metadata`` into dedicated entry fields
_RESERVED_KEYS = ("user_id", "request_id", "error", "error_category", "error_code")


def describe_error(error: Any) -> Any:
    """Convert an exception into a JSON-friendly mapping; other values pass through."""

    if isinstance(error, AppError):
        described: dict[str, Any] = {
            "name": type(error).__name__,
            "message": error.message,
            "category": error.category.value,
        }
        if error.code is not None:
            described["code"] = error.code.value
        return described
    if isinstance(error, BaseException):
        return {"name": type(error).__name__, "message": str(error)}
    return error


@dataclass(frozen=True)
class LogEntry:
    """One log event; transient, handed to transports and discarded."""

    level: LogLevel
    message: str
    timestamp: str
    source: str | None = None
    user_id: str | None = None
    request_id: str | None = None
    metadata: dict[str, Any] | None = None
    error: Any = None
    error_category: ErrorCategory | None = None
    error_code: ErrorCode | None = None
    stack: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the wire record shipped to log servers and files."""

        record: dict[str, Any] = {
            "level": self.level.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        optional = {
            "source": self.source,
            "userId": self.user_id,
            "requestId": self.request_id,
            "metadata": self.metadata,
            "error": describe_error(self.error),
            "errorCategory": self.error_category.value if self.error_category else None,
            "errorCode": self.error_code.value if self.error_code else None,
            "stack": self.stack,
        }
        record.update({key: value for key, value in optional.items() if value is not None})
        return record


class LogTransport(ABC):
    """Destination for log entries.

    Attributes:
        name: Transport name used when reporting transport failures.
        min_level: Optional per-transport minimum level, applied after the
            logger's own minimum.
    """

    name: str = "transport"

    def __init__(self, *, min_level: LogLevel | str | None = None) -> None:
        self.min_level = LogLevel(min_level) if min_level is not None else None

    def accepts(self, level: LogLevel) -> bool:
        return self.min_level is None or level.at_least(self.min_level)

    @abstractmethod
    def log(self, entry: LogEntry) -> Awaitable[None] | None:
        """Deliver an entry. May return a coroutine for asynchronous I/O."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release resources held by the transport."""


_STDLIB_LEVELS: dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.FATAL: logging.CRITICAL,
}


class ConsoleTransport(LogTransport):
    """Forward entries into the stdlib ``logging`` pipeline.

    ``configure_logging`` decides how they are rendered (redacted JSON or
    plain text) and where they go (stdout or a rotating file).
    """

    name = "console"

    def __init__(self, *, namespace: str = "victry", min_level: LogLevel | str | None = None) -> None:
        super().__init__(min_level=min_level)
        self.namespace = namespace

    def log(self, entry: LogEntry) -> None:
        logger_name = f"{self.namespace}.{entry.source}" if entry.source else self.namespace
        fields = {
            "source": entry.source,
            "user_id": entry.user_id,
            "request_id": entry.request_id,
            "metadata": entry.metadata,
            "error": describe_error(entry.error),
            "error_category": entry.error_category.value if entry.error_category else None,
            "error_code": entry.error_code.value if entry.error_code else None,
            "stack_trace": entry.stack,
        }
        logging.getLogger(logger_name).log(
            _STDLIB_LEVELS[entry.level],
            entry.message,
            extra={key: value for key, value in fields.items() if value is not None},
        )


class Logger:
    """Level-filtered dispatcher over an ordered list of transports.

    Args:
        min_level: Entries below this level are dropped before any transport.
        source: Tag recorded on every entry (module or component name).
        transports: Ordered destinations; defaults to a single console transport.
        include_timestamps: Stamp entries with an ISO-8601 UTC timestamp.
        include_stacks: Attach a formatted traceback when the error is an exception.
    """

    def __init__(
        self,
        *,
        min_level: LogLevel | str = LogLevel.INFO,
        source: str | None = None,
        transports: Sequence[LogTransport] | None = None,
        include_timestamps: bool = True,
        include_stacks: bool = True,
        _pending: set[asyncio.Task[None]] | None = None,
    ) -> None:
        self.min_level = LogLevel(min_level)
        self.source = source
        self.transports: tuple[LogTransport, ...] = tuple(
            transports if transports is not None else (ConsoleTransport(),)
        )
        self.include_timestamps = include_timestamps
        self.include_stacks = include_stacks
        # Shared with children so flush() drains every pending delivery
        self._pending: set[asyncio.Task[None]] = _pending if _pending is not None else set()

    def child(self, source: str) -> "Logger":
        """Return a logger with the same options and transports but a new source."""

        return Logger(
            min_level=self.min_level,
            source=source,
            transports=self.transports,
            include_timestamps=self.include_timestamps,
            include_stacks=self.include_stacks,
            _pending=self._pending,
        )

    def log(
        self,
        level: LogLevel | str,
        message: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        level = LogLevel(level)
        if not level.at_least(self.min_level):
            return

        extra = dict(metadata or {})
        user_id, request_id, error, error_category, error_code = (
            extra.pop(key, None) for key in _RESERVED_KEYS
        )

        if isinstance(error, AppError):
            error_category = error_category or error.category
            error_code = error_code or error.code

        stack = None
        if self.include_stacks and isinstance(error, BaseException):
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))

        entry = LogEntry(
            level=level,
            message=message,
            timestamp=datetime.now(timezone.utc).isoformat() if self.include_timestamps else "",
            source=self.source,
            user_id=user_id,
            request_id=request_id or get_request_id(),
            metadata=extra or None,
            error=error,
            error_category=_coerce(ErrorCategory, error_category),
            error_code=_coerce(ErrorCode, error_code),
            stack=stack,
        )
        self._dispatch(entry)

    def debug(self, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.DEBUG, message, metadata)

    def info(self, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.INFO, message, metadata)

    def warn(self, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.WARN, message, metadata)

    def error(
        self,
        message: str,
        error: Any = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self.log(LogLevel.ERROR, message, {**(metadata or {}), "error": error})

    def fatal(
        self,
        message: str,
        error: Any = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self.log(LogLevel.FATAL, message, {**(metadata or {}), "error": error})

    async def flush(self) -> None:
        """Wait for asynchronous deliveries that are still in flight."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.flush()
        for transport in self.transports:
            try:
                await transport.aclose()
            except Exception as exc:
                _report_transport_failure(transport, exc)

    def _dispatch(self, entry: LogEntry) -> None:
        for transport in self.transports:
            if not transport.accepts(entry.level):
                continue
            try:
                result = transport.log(entry)
                if inspect.isawaitable(result):
                    self._schedule(transport, result)
            except Exception as exc:
                _report_transport_failure(transport, exc)

    def _schedule(self, transport: LogTransport, delivery: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop in this thread: deliver synchronously
            asyncio.run(_await(delivery))
            return

        task = loop.create_task(_await(delivery))
        self._pending.add(task)

        def _done(finished: asyncio.Task[None]) -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                _report_transport_failure(transport, finished.exception())

        task.add_done_callback(_done)


def _coerce(enum_cls: type[Enum], value: Any) -> Any:
    # Unknown categories/codes are dropped rather than failing the log call
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


async def _await(delivery: Awaitable[None]) -> None:
    await delivery


def _report_transport_failure(transport: LogTransport, exc: BaseException | None) -> None:
    _fallback_logger.error(
        "log_transport.failed",
        extra={
            "transport": transport.name,
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
        },
    )
