"""
Fan-out of enriched records to registered sinks.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from .events import EventChannel, Handler
from .exceptions import DeliveryError, LogweaveError
from .levels import LogLevel, is_enabled
from .record import EnrichedRecord
from .sinks import BaseSink

ERROR_EVENT = "error"


class Dispatcher:
    """Ordered sink set plus the error channel of one logger.

    The sink list is an immutable tuple swapped under a lock, so a dispatch
    in progress always sees a complete list. Sink failures, raised or
    reported later through the sink's ``"error"`` event, are turned into
    ``DeliveryError`` and emitted on ``errors``; they never propagate to the
    caller and never stop delivery to the other sinks.
    """

    def __init__(self, sinks: Iterable[BaseSink] = (), *, minimum_level: Optional[LogLevel] = None) -> None:
        self.minimum_level = minimum_level
        self.errors = EventChannel()
        self._lock = threading.Lock()
        self._sinks: Tuple[BaseSink, ...] = ()
        self._listeners: Dict[int, Handler] = {}
        for sink in sinks:
            self.add(sink)

    @property
    def sinks(self) -> Tuple[BaseSink, ...]:
        return self._sinks

    def accepts(self, level: LogLevel) -> bool:
        return is_enabled(level, self.minimum_level)

    def _listener_for(self, sink: BaseSink) -> Callable[[Any], None]:
        def forward(payload: Any) -> None:
            self.report(self._as_delivery_error(sink, payload))

        return forward

    @staticmethod
    def _as_delivery_error(sink: BaseSink, payload: Any) -> LogweaveError:
        if isinstance(payload, LogweaveError):
            return payload
        if isinstance(payload, BaseException):
            return DeliveryError(sink=sink, cause=payload)
        if isinstance(payload, dict):
            record = payload.get("record")
            details = {k: v for k, v in payload.items() if k != "record"}
            return DeliveryError(sink=sink, record=record, details=details)
        return DeliveryError(sink=sink, details={"message": str(payload)})

    def add(self, sink: BaseSink) -> None:
        with self._lock:
            if any(existing is sink for existing in self._sinks):
                return
            listener = self._listener_for(sink)
            self._listeners[id(sink)] = listener
            sink.on(ERROR_EVENT, listener)
            self._sinks = self._sinks + (sink,)

    def remove(self, sink: BaseSink) -> None:
        with self._lock:
            listener = self._listeners.pop(id(sink), None)
            if listener is not None:
                sink.off(ERROR_EVENT, listener)
            self._sinks = tuple(s for s in self._sinks if s is not sink)

    def clear(self) -> None:
        for sink in self._sinks:
            self.remove(sink)

    def report(self, error: LogweaveError) -> None:
        self.errors.emit(ERROR_EVENT, error)

    def dispatch(self, record: EnrichedRecord) -> int:
        """Hand ``record`` to every sink that accepts its level.

        Returns the number of sinks the record was handed to.
        """
        level = record.level
        delivered = 0
        for sink in self._sinks:
            if not sink.accepts(level):
                continue
            delivered += 1
            try:
                sink.deliver(record)
            except Exception as exc:
                self.report(DeliveryError(sink=sink, record=record, cause=exc))
        return delivered

    def close(self) -> None:
        """Close every sink; close failures are reported, not raised."""
        for sink in self._sinks:
            try:
                sink.close()
            except Exception as exc:
                self.report(DeliveryError(sink=sink, details={"message": f"close failed: {exc}"}, cause=exc))
