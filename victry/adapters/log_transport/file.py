"""JSON-lines file transport."""

from __future__ import annotations

import json
import threading
from pathlib import Path

from victry.core.logger import LogEntry, LogLevel, LogTransport
from victry.core.logging import redact


class FileLogTransport(LogTransport):
    """Append one JSON record per entry to a file.

    Metadata is redacted with the same sensitive-key list as the stdlib
    pipeline before it reaches disk.
    """

    name = "file"

    def __init__(self, path: str | Path, *, min_level: LogLevel | str | None = LogLevel.INFO) -> None:
        super().__init__(min_level=min_level)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log(self, entry: LogEntry) -> None:
        record = redact(entry.to_dict())
        line = json.dumps(record, default=str, ensure_ascii=False) + "\n"
        with self._lock, self.path.open("a", encoding="utf-8") as handle:
            handle.write(line)
