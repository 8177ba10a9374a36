"""Log transports that perform I/O outside the process.

Each destination is its own class selected by configuration (see
``factory.build_logger``); the console transport lives with the logger core.
"""

from victry.adapters.log_transport.factory import build_logger
from victry.adapters.log_transport.file import FileLogTransport
from victry.adapters.log_transport.http import HttpLogTransport
from victry.adapters.log_transport.memory import MemoryLogTransport

__all__ = [
    "FileLogTransport",
    "HttpLogTransport",
    "MemoryLogTransport",
    "build_logger",
]
