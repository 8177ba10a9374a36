"""In-memory transport used to capture entries in tests."""

from __future__ import annotations

from victry.core.logger import LogEntry, LogLevel, LogTransport


class MemoryLogTransport(LogTransport):
    """Collect entries in a list instead of writing them anywhere."""

    name = "test"

    def __init__(self, *, min_level: LogLevel | str | None = None) -> None:
        super().__init__(min_level=min_level)
        self.entries: list[LogEntry] = []

    def log(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def messages(self, level: LogLevel | str | None = None) -> list[str]:
        if level is None:
            return [entry.message for entry in self.entries]
        wanted = LogLevel(level)
        return [entry.message for entry in self.entries if entry.level is wanted]

    def clear(self) -> None:
        self.entries.clear()
