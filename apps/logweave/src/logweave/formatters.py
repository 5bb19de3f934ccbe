"""
Human-readable console rendering and color utilities.
"""

from __future__ import annotations

from typing import Any, Mapping

import orjson

COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "timestamp": "\033[90m",
    "key": "\033[34m",
}

LEVEL_COLORS = {
    "error": "\033[31m",
    "warn": "\033[33m",
    "info": "\033[32m",
    "debug": "\033[34m",
    "verbose": "\033[36m",
    "silly": "\033[35m",
}


def colorize(text: str, color: str) -> str:
    """Apply ANSI color to text."""
    return f"{COLORS.get(color, LEVEL_COLORS.get(color, ''))}{text}{COLORS['reset']}"


class ConsoleFormatter:
    """Renders a record as ``TIMESTAMP [level]: message - <message> <meta JSON>``."""

    EXCLUDED_KEYS = {"level", "message", "timestamp"}

    @staticmethod
    def _dump_meta(meta: Mapping[str, Any]) -> str:
        if not meta:
            return ""
        return orjson.dumps(meta, default=str, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS).decode()

    @classmethod
    def format(cls, record: Mapping[str, Any], *, use_color: bool = False) -> str:
        level = str(record.get("level", ""))
        timestamp = str(record.get("timestamp", ""))
        message = record.get("message")
        meta = {k: v for k, v in record.items() if k not in cls.EXCLUDED_KEYS}

        if use_color:
            level_text = colorize(level, level)
            timestamp = colorize(timestamp, "timestamp")
        else:
            level_text = level

        parts = [f"{timestamp} [{level_text}]:"]
        if message:
            parts.append(f"message - {message}")
        dumped = cls._dump_meta(meta)
        if dumped:
            parts.append(dumped)
        return " ".join(parts)
