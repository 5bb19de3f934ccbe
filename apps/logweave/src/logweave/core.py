"""
Logger façade: parse call shape -> level gate -> normalize -> enrich -> dispatch.
"""

from __future__ import annotations

import sys
from typing import Any, Optional

import structlog

from .config import LoggerOptions
from .dispatcher import ERROR_EVENT, Dispatcher
from .events import EventChannel
from .exceptions import EnrichmentError, LogweaveError
from .levels import LogLevel
from .normalizer import normalize, parse_call
from .processors import EnrichmentChain
from .record import EnrichedRecord
from .sinks import BaseSink, default_console_sink


def print_error(error: Exception) -> None:
    """Default error handler: one line on stderr."""
    structlog.PrintLogger(file=sys.stderr).msg(f"logweave error: {error!r}")


class Logger:
    """Structured logger accepting several call shapes.

    All of these produce the same record (apart from the timestamp)::

        logger.log("info", "hello", {"x": 1})
        logger.log({"level": "info", "message": "hello", "x": 1})
        logger.info("hello", {"x": 1})
        logger.info("hello", x=1)
        logger.info({"message": "hello", "x": 1})

    A trailing callable is a completion callback, called once the record has
    been handed to the sinks (or dropped) with the ``EnrichedRecord`` or None.
    Only an invalid level or call shape raises (``ValidationError``); sink
    failures go to the error handler.
    """

    def __init__(self, options: Optional[LoggerOptions] = None) -> None:
        options = options or LoggerOptions()
        sinks = list(options.sinks)
        if options.use_default_console_sink:
            sinks.append(default_console_sink(options.console_format))

        self.silent = options.silent
        self._dispatcher = Dispatcher(sinks, minimum_level=options.level)
        self._chain = EnrichmentChain(
            service_name=options.service_name,
            clock=options.clock,
            processors=options.processors,
        )
        self._dispatcher.errors.subscribe(ERROR_EVENT, options.on_error or print_error)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def level(self) -> Optional[LogLevel]:
        return self._dispatcher.minimum_level

    @level.setter
    def level(self, value: LogLevel | str | None) -> None:
        self._dispatcher.minimum_level = LogLevel.parse(value) if value is not None else None

    @property
    def service_name(self) -> Optional[str]:
        return self._chain.service_name

    @property
    def sinks(self) -> tuple[BaseSink, ...]:
        return self._dispatcher.sinks

    @property
    def errors(self) -> EventChannel:
        """Error channel; handlers receive ``LogweaveError`` instances."""
        return self._dispatcher.errors

    def is_level_enabled(self, level: LogLevel | str) -> bool:
        return self._dispatcher.accepts(LogLevel.parse(level))

    def add(self, sink: BaseSink) -> Logger:
        self._dispatcher.add(sink)
        return self

    def remove(self, sink: BaseSink) -> Logger:
        self._dispatcher.remove(sink)
        return self

    def clear(self) -> Logger:
        self._dispatcher.clear()
        return self

    def close(self) -> None:
        """Close every sink, waiting for in-flight deliveries."""
        self._dispatcher.close()

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _process(self, args: tuple[Any, ...], kwargs: dict[str, Any], implied: Optional[LogLevel]) -> Optional[EnrichedRecord]:
        parsed = parse_call(args, kwargs, implied_level=implied)
        record: Optional[EnrichedRecord] = None
        if self._dispatcher.accepts(parsed.level):
            try:
                record = self._chain(self, normalize(parsed.shape))
            except EnrichmentError as exc:
                self._report(exc)
            if record is not None and not self.silent:
                self._dispatcher.dispatch(record)
        if parsed.callback is not None:
            parsed.callback(record)
        return record

    def _report(self, error: LogweaveError) -> None:
        self._dispatcher.report(error)

    def log(self, *args: Any, **kwargs: Any) -> Optional[EnrichedRecord]:
        """Log with an explicit level: ``(level, message[, meta])``, ``(level, meta)`` or ``(entry)``."""
        return self._process(args, kwargs, None)

    def error(self, *args: Any, **kwargs: Any) -> Optional[EnrichedRecord]:
        return self._process(args, kwargs, LogLevel.ERROR)

    def warn(self, *args: Any, **kwargs: Any) -> Optional[EnrichedRecord]:
        return self._process(args, kwargs, LogLevel.WARN)

    def info(self, *args: Any, **kwargs: Any) -> Optional[EnrichedRecord]:
        return self._process(args, kwargs, LogLevel.INFO)

    def debug(self, *args: Any, **kwargs: Any) -> Optional[EnrichedRecord]:
        return self._process(args, kwargs, LogLevel.DEBUG)

    def verbose(self, *args: Any, **kwargs: Any) -> Optional[EnrichedRecord]:
        return self._process(args, kwargs, LogLevel.VERBOSE)

    def silly(self, *args: Any, **kwargs: Any) -> Optional[EnrichedRecord]:
        return self._process(args, kwargs, LogLevel.SILLY)


def create_logger(options: Optional[LoggerOptions] = None, **overrides: Any) -> Logger:
    """Create a logger from ``options`` and/or keyword overrides.

    Args:
        options: Base options (defaults to ``LoggerOptions()``)
        **overrides: Any ``LoggerOptions`` field, e.g. ``sinks=[...]``,
            ``use_default_console_sink=False``, ``level="debug"``,
            ``service_name="svc"``, ``on_error=handler``
    """
    if overrides:
        base = dict(options) if options is not None else {}
        options = LoggerOptions(**{**base, **overrides})
    return Logger(options)
