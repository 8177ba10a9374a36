"""Factory composing the application logger from settings."""

from __future__ import annotations

from victry.adapters.log_transport.file import FileLogTransport
from victry.adapters.log_transport.http import HttpLogTransport
from victry.core.config import LogSettings, settings
from victry.core.logger import ConsoleTransport, Logger, LogTransport


def build_logger(log_settings: LogSettings | None = None) -> Logger:
    """Create the root structured logger.

    The console transport is always present; the server and file transports
    are added when their destinations are configured.

    Returns:
        Logger: A logger with no source tag; derive children per component.
    """
    cfg = log_settings or settings.log

    transports: list[LogTransport] = [ConsoleTransport()]

    if cfg.server_url:
        transports.append(
            HttpLogTransport(
                cfg.server_url,
                api_key=cfg.server_api_key,
                min_level=cfg.server_min_level.lower(),
            )
        )

    if cfg.transport_file_path:
        transports.append(
            FileLogTransport(
                cfg.transport_file_path,
                min_level=cfg.transport_file_min_level.lower(),
            )
        )

    return Logger(
        min_level=cfg.min_level.lower(),
        transports=transports,
        include_stacks=cfg.include_stacks,
    )
