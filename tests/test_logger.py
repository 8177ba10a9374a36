"""Tests for the structured logger and its transports."""

import json
import logging
from pathlib import Path

import httpx
import pytest

from victry.adapters.log_transport import FileLogTransport, HttpLogTransport, MemoryLogTransport, build_logger
from victry.core.config import LogSettings
from victry.core.errors import AppError, ErrorCategory, ErrorCode, create_api_error
from victry.core.logger import ConsoleTransport, LogEntry, Logger, LogLevel, LogTransport
from victry.core.logging import clear_request_id, set_request_id


class ExplodingTransport(LogTransport):
    name = "exploding"

    def log(self, entry: LogEntry) -> None:
        raise RuntimeError("disk full")


class TestLevels:
    def test_ordering(self) -> None:
        assert LogLevel.FATAL.at_least(LogLevel.ERROR)
        assert LogLevel.WARN.at_least("info")
        assert not LogLevel.DEBUG.at_least(LogLevel.INFO)

    def test_entries_below_min_level_are_dropped(self) -> None:
        transport = MemoryLogTransport()
        logger = Logger(min_level="warn", transports=[transport])

        logger.debug("a")
        logger.info("b")
        logger.warn("c")
        logger.error("d")
        logger.fatal("e")

        assert transport.messages() == ["c", "d", "e"]

    def test_transport_min_level_applies_after_logger_level(self) -> None:
        everything = MemoryLogTransport()
        errors_only = MemoryLogTransport(min_level="error")
        logger = Logger(min_level="info", transports=[everything, errors_only])

        logger.info("started")
        logger.error("failed")

        assert everything.messages() == ["started", "failed"]
        assert errors_only.messages() == ["failed"]


class TestEntries:
    def test_reserved_metadata_keys_become_fields(self) -> None:
        transport = MemoryLogTransport()
        logger = Logger(source="resumes", transports=[transport])

        logger.info("resume.created", {"user_id": "u1", "resume_id": "r1"})

        entry = transport.entries[0]
        assert entry.source == "resumes"
        assert entry.user_id == "u1"
        assert entry.metadata == {"resume_id": "r1"}
        assert entry.timestamp

    def test_request_id_comes_from_context(self) -> None:
        transport = MemoryLogTransport()
        logger = Logger(transports=[transport])

        set_request_id("req-42")
        try:
            logger.info("hello")
        finally:
            clear_request_id()

        assert transport.entries[0].request_id == "req-42"

    def test_app_error_fills_category_and_code(self) -> None:
        transport = MemoryLogTransport()
        logger = Logger(transports=[transport])
        error = AppError(create_api_error("DB down", ErrorCategory.DATABASE, code=ErrorCode.DATABASE_CONNECTION_ERROR))

        logger.error("query.failed", error, {"table": "resumes"})

        entry = transport.entries[0]
        assert entry.error_category == ErrorCategory.DATABASE
        assert entry.error_code == ErrorCode.DATABASE_CONNECTION_ERROR
        assert entry.metadata == {"table": "resumes"}

        record = entry.to_dict()
        assert record["level"] == "error"
        assert record["errorCategory"] == "database"
        assert record["errorCode"] == "database_connection_error"
        assert record["error"] == {
            "name": "AppError",
            "message": "DB down",
            "category": "database",
            "code": "database_connection_error",
        }

    def test_stack_is_attached_for_raised_exceptions(self) -> None:
        transport = MemoryLogTransport()
        logger = Logger(transports=[transport])

        try:
            raise ValueError("bad")
        except ValueError as exc:
            logger.error("failed", exc)

        assert "ValueError: bad" in transport.entries[0].stack

    def test_stacks_can_be_disabled(self) -> None:
        transport = MemoryLogTransport()
        logger = Logger(transports=[transport], include_stacks=False)

        logger.error("failed", ValueError("bad"))

        assert transport.entries[0].stack is None

    def test_unknown_error_code_is_dropped(self) -> None:
        transport = MemoryLogTransport()
        logger = Logger(transports=[transport])

        logger.warn("odd", {"error_code": "not_a_code"})

        assert transport.entries[0].error_code is None


class TestChild:
    def test_child_has_own_source_and_shares_transports(self) -> None:
        transport = MemoryLogTransport()
        parent = Logger(min_level="debug", source="app", transports=[transport])

        child = parent.child("ai")
        child.debug("child message")
        parent.info("parent message")

        assert [entry.source for entry in transport.entries] == ["ai", "app"]
        assert parent.source == "app"
        assert child.min_level is LogLevel.DEBUG


class TestTransportIsolation:
    def test_failing_transport_does_not_block_others(self, caplog: pytest.LogCaptureFixture) -> None:
        healthy = MemoryLogTransport()
        logger = Logger(transports=[ExplodingTransport(), healthy])

        with caplog.at_level(logging.ERROR, logger="victry.logger"):
            logger.info("still delivered")

        assert healthy.messages() == ["still delivered"]
        assert "log_transport.failed" in caplog.messages

    @pytest.mark.asyncio
    async def test_async_transport_is_awaited_on_flush(self) -> None:
        delivered: list[str] = []

        class SlowTransport(LogTransport):
            async def log(self, entry: LogEntry) -> None:
                delivered.append(entry.message)

        logger = Logger(transports=[SlowTransport()])
        logger.info("queued")
        await logger.flush()

        assert delivered == ["queued"]


class TestConsoleTransport:
    def test_forwards_to_stdlib_logging(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger(source="auth", transports=[ConsoleTransport()])

        with caplog.at_level(logging.INFO, logger="victry.auth"):
            logger.warn("auth.failed", {"user_id": "u1", "attempts": 3})

        record = caplog.records[0]
        assert record.name == "victry.auth"
        assert record.levelno == logging.WARNING
        assert record.user_id == "u1"
        assert record.metadata == {"attempts": 3}


class TestFileLogTransport:
    def test_writes_redacted_json_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "logs" / "app.jsonl"
        logger = Logger(transports=[FileLogTransport(path)])

        logger.info("reset.requested", {"email": "ada@example.com", "count": 1})
        logger.debug("ignored")

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["message"] == "reset.requested"
        assert record["metadata"] == {"email": "[REDACTED]", "count": 1}


class TestHttpLogTransport:
    @pytest.mark.asyncio
    async def test_posts_entries_with_api_key(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202)

        transport = HttpLogTransport(
            "https://logs.example.com/ingest",
            api_key="log-key",
            transport=httpx.MockTransport(handler),
        )
        logger = Logger(transports=[transport])

        logger.info("not shipped")
        logger.error("shipped", RuntimeError("boom"))
        await logger.flush()

        assert len(requests) == 1
        assert requests[0].headers["X-API-Key"] == "log-key"
        body = json.loads(requests[0].content)
        assert body["message"] == "shipped"
        assert body["error"] == {"name": "RuntimeError", "message": "boom"}

    @pytest.mark.asyncio
    async def test_delivery_failure_is_contained(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        transport = HttpLogTransport("https://logs.example.com", transport=httpx.MockTransport(handler))
        logger = Logger(transports=[transport])

        logger.error("shipped")
        await logger.flush()


class TestBuildLogger:
    def test_console_only_by_default(self) -> None:
        logger = build_logger(LogSettings())

        assert [transport.name for transport in logger.transports] == ["console"]
        assert logger.min_level is LogLevel.INFO

    def test_adds_configured_transports(self, tmp_path: Path) -> None:
        logger = build_logger(
            LogSettings(
                min_level="DEBUG",
                server_url="https://logs.example.com",
                transport_file_path=str(tmp_path / "app.jsonl"),
            )
        )

        assert [transport.name for transport in logger.transports] == ["console", "server", "file"]
        assert logger.transports[1].min_level is LogLevel.ERROR
        assert logger.min_level is LogLevel.DEBUG
