"""
Severity levels and level gating.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .exceptions import ValidationError


class LogLevel(str, Enum):
    """Closed set of severities, ordered from most to least severe."""

    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    VERBOSE = "verbose"
    SILLY = "silly"

    @property
    def severity(self) -> int:
        """Rank of the level; 0 is the most severe."""
        return _SEVERITY[self]

    @classmethod
    def parse(cls, value: Any) -> LogLevel:
        """Resolve a level name or member, raising ``ValidationError`` otherwise."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise ValidationError(
            f"Unrecognized log level {value!r}",
            code="INVALID_LEVEL",
            details={"level": value, "allowed": [level.value for level in cls]},
        )


_SEVERITY = {level: rank for rank, level in enumerate(LogLevel)}


def is_enabled(level: LogLevel, threshold: LogLevel | None) -> bool:
    """Return True if ``level`` passes a ``threshold`` gate (no threshold allows all)."""
    if threshold is None:
        return True
    return level.severity <= threshold.severity
