"""
Enrichment chain.

Stages use structlog's processor signature ``(logger, method_name, event_dict)``
and run in a fixed order:

1. timestamp            - assigned once, ISO 8601 UTC
2. message disassembly  - a mapping-typed ``message`` is flattened into the record
3. service tag          - configured ``serviceName`` unless the caller set one
4. final representation - the record is frozen together with its serialized text

User processors are inserted between stages 3 and 4. Like in structlog, a
processor may raise ``DropEvent`` to discard the record.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from structlog import DropEvent
from structlog.typing import EventDict, Processor, WrappedLogger

from .exceptions import EnrichmentError
from .normalizer import coerce_message
from .record import EnrichedRecord

Clock = Callable[[], datetime]

SERVICE_NAME_KEY = "serviceName"

# Keys a disassembled message may not replace.
PROTECTED_KEYS = frozenset({"level", "timestamp"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampStamper:
    """Add an ISO 8601 timestamp (microsecond precision), never earlier than
    the previous one it issued."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._last: Optional[datetime] = None

    def _next(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        with self._lock:
            if self._last is not None and now < self._last:
                now = self._last
            self._last = now
        return now

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        if "timestamp" in event_dict:
            return event_dict
        event_dict["timestamp"] = self._next().isoformat(timespec="microseconds")
        return event_dict


def disassemble_message(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Flatten a mapping-typed ``message`` into the top level and drop the key.

    A scalar ``message`` inside the mapping becomes the record's message,
    converted to text the same way the normalizer does.
    """
    message = coerce_message(event_dict.get("message"))
    while isinstance(message, Mapping):
        del event_dict["message"]
        for key, value in message.items():
            if key not in PROTECTED_KEYS:
                event_dict[key] = value
        message = coerce_message(event_dict.get("message"))
    if message is None:
        event_dict.pop("message", None)
    else:
        event_dict["message"] = message
    return event_dict


class ServiceTagger:
    """Inject a configured ``serviceName`` unless the record already has one."""

    def __init__(self, service_name: Optional[str]) -> None:
        self.service_name = service_name

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        if self.service_name is not None and SERVICE_NAME_KEY not in event_dict:
            event_dict[SERVICE_NAME_KEY] = self.service_name
        return event_dict


def render_serialized(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EnrichedRecord:
    """Serialize the final field set once and freeze it with the record."""
    return EnrichedRecord.from_fields(event_dict)


def _processor_name(processor: Processor) -> str:
    return getattr(processor, "__qualname__", None) or type(processor).__name__


class EnrichmentChain:
    """Ordered processors turning a canonical record into an ``EnrichedRecord``."""

    def __init__(
        self,
        *,
        service_name: Optional[str] = None,
        clock: Optional[Clock] = None,
        processors: Sequence[Processor] = (),
    ) -> None:
        self.service_tagger = ServiceTagger(service_name)
        self.processors: tuple[Processor, ...] = (
            TimestampStamper(clock),
            disassemble_message,
            self.service_tagger,
            *processors,
        )

    @property
    def service_name(self) -> Optional[str]:
        return self.service_tagger.service_name

    def __call__(self, logger: WrappedLogger, record: EventDict) -> Optional[EnrichedRecord]:
        """Run every stage on a copy of ``record``; None if a processor dropped it.

        The loop is run here rather than by a structlog-bound logger so that a
        failing stage is reported by name as ``EnrichmentError``.

        Raises:
            EnrichmentError: a processor raised.
        """
        event_dict: Any = dict(record)
        method_name = event_dict["level"]
        for processor in self.processors:
            try:
                event_dict = processor(logger, method_name, event_dict)
            except DropEvent:
                return None
            except Exception as exc:
                raise EnrichmentError(processor=_processor_name(processor), cause=exc) from exc
        try:
            return render_serialized(logger, method_name, event_dict)
        except Exception as exc:
            raise EnrichmentError(processor=_processor_name(render_serialized), cause=exc) from exc
