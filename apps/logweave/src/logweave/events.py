"""
Per-instance observer channel for sink notifications and errors.
"""

from __future__ import annotations

import sys
import threading
from typing import Any, Callable, Dict, Tuple

import structlog

Handler = Callable[[Any], Any]


def _stderr() -> structlog.PrintLogger:
    return structlog.PrintLogger(file=sys.stderr)


class EventChannel:
    """Named-event observer list.

    Subscriptions are copy-on-write: ``emit`` iterates over an immutable
    snapshot, so handlers may (un)subscribe concurrently with delivery.
    A raising handler is reported on stderr and does not stop the others.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: Dict[str, Tuple[Handler, ...]] = {}

    def subscribe(self, event: str, handler: Handler) -> None:
        with self._lock:
            self._handlers[event] = self._handlers.get(event, ()) + (handler,)

    def unsubscribe(self, event: str, handler: Handler) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event, ()))
            if handler in handlers:
                handlers.remove(handler)
                self._handlers[event] = tuple(handlers)

    def emit(self, event: str, payload: Any) -> int:
        """Call every handler of ``event``; returns how many were called."""
        handlers = self._handlers.get(event, ())
        for handler in handlers:
            try:
                handler(payload)
            except Exception as exc:
                _stderr().msg(f"logweave: {event} handler {handler!r} failed: {exc!r}")
        return len(handlers)
