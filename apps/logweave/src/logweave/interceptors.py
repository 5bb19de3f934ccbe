"""
Bridge from standard library ``logging`` into a logweave logger.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .core import Logger
from .levels import LogLevel


def level_from_stdlib(levelno: int) -> LogLevel:
    """Map a stdlib numeric level onto the closed logweave level set."""
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARN
    if levelno >= logging.INFO:
        return LogLevel.INFO
    if levelno >= logging.DEBUG:
        return LogLevel.DEBUG
    if levelno > logging.NOTSET:
        return LogLevel.VERBOSE
    return LogLevel.SILLY


class RedirectStdLibHandler(logging.Handler):
    """
    Redirect standard library logging records to a logweave logger, so
    third-party logs go through the same pipeline and sinks.
    """

    def __init__(self, logger: Logger, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            meta = {"logger": record.name}
            if record.exc_info:
                formatter = self.formatter or logging.Formatter()
                meta["exc_info"] = formatter.formatException(record.exc_info)
            self.logger.log(level_from_stdlib(record.levelno).value, record.getMessage(), meta)
        except Exception:
            self.handleError(record)


def intercept_stdlib_loggers(logger: Logger, names: Iterable[str] = ("",)) -> RedirectStdLibHandler:
    """Replace the handlers of the named stdlib loggers ("" is root) with a redirect."""
    handler = RedirectStdLibHandler(logger)
    for name in names:
        target = logging.getLogger(name)
        target.handlers = [handler]
        if name:
            target.propagate = False
    return handler
