"""
Sink abstraction and in-process sink implementations.
"""

from __future__ import annotations

import sys
import threading
from abc import ABC, abstractmethod
from typing import Any, List, Literal, Optional

from .events import EventChannel, Handler
from .formatters import ConsoleFormatter
from .levels import LogLevel, is_enabled
from .record import EnrichedRecord

ConsoleFormat = Literal["console", "json"]


# =============================================================================
# Sink Abstraction (Strategy Pattern)
# =============================================================================


class BaseSink(ABC):
    """Abstract base class for delivery backends.

    ``deliver`` signals failure by raising. Sinks that complete delivery later
    (network sinks) report through their event channel instead: ``"logged"``
    with the record on success, ``"error"`` with a diagnostic dict on failure.

    Args:
        minimum_level: Gate applied to this sink only.
        name: Label used in diagnostics (defaults to the class name).
    """

    def __init__(self, *, minimum_level: LogLevel | str | None = None, name: Optional[str] = None):
        self.minimum_level = LogLevel.parse(minimum_level) if minimum_level is not None else None
        self.name = name or type(self).__name__
        self.events = EventChannel()

    def accepts(self, level: LogLevel) -> bool:
        return is_enabled(level, self.minimum_level)

    def on(self, event: str, handler: Handler) -> None:
        self.events.subscribe(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        self.events.unsubscribe(event, handler)

    @abstractmethod
    def deliver(self, record: EnrichedRecord) -> None:
        """Deliver one record; raise to report failure."""
        ...

    def close(self) -> None:
        """Release resources. Default: nothing to release."""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} minimum_level={self.minimum_level}>"


class ConsoleSink(BaseSink):
    """Standard I/O sink.

    Args:
        fmt: "json" writes the record's serialized text verbatim, "console"
            writes a human-readable line
        stream: Output stream (default: stdout)
        use_color: Colorize levels; defaults to whether the stream is a TTY
    """

    def __init__(
        self,
        fmt: ConsoleFormat = "json",
        stream: Any = None,
        *,
        use_color: Optional[bool] = None,
        minimum_level: LogLevel | str | None = None,
        name: Optional[str] = None,
    ):
        super().__init__(minimum_level=minimum_level, name=name)
        self._fmt = fmt
        self._stream = stream or sys.stdout
        if use_color is None:
            use_color = bool(getattr(self._stream, "isatty", lambda: False)())
        self._use_color = use_color

    def render(self, record: EnrichedRecord) -> str:
        if self._fmt == "json":
            return record.serialized
        return ConsoleFormatter.format(record, use_color=self._use_color)

    def deliver(self, record: EnrichedRecord) -> None:
        self._stream.write(self.render(record) + "\n")
        self._stream.flush()
        self.events.emit("logged", record)


class MemorySink(BaseSink):
    """Keeps delivered records in memory, in delivery order."""

    def __init__(self, *, minimum_level: LogLevel | str | None = None, name: Optional[str] = None):
        super().__init__(minimum_level=minimum_level, name=name)
        self._lock = threading.Lock()
        self._records: List[EnrichedRecord] = []

    @property
    def records(self) -> List[EnrichedRecord]:
        with self._lock:
            return list(self._records)

    def deliver(self, record: EnrichedRecord) -> None:
        with self._lock:
            self._records.append(record)
        self.events.emit("logged", record)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


def default_console_sink(fmt: ConsoleFormat = "json", stream: Any = None) -> ConsoleSink:
    """Console sink appended to every logger unless disabled."""
    return ConsoleSink(fmt=fmt, stream=stream, name="console")
