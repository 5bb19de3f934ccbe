"""
logweave: structured logging façade.

Normalizes the different log call shapes into one canonical record, enriches
it (timestamp, message disassembly, service tag, serialized form) and fans it
out to sinks:
- ConsoleSink: serialized JSON or human-readable lines
- HttpSink: POST to an HTTP endpoint, non-blocking
- MemorySink: in-process collection

Library: structlog processors + orjson serialization + httpx.
"""

from .config import LoggerOptions, LoggerSettings
from .core import Logger, create_logger
from .exceptions import DeliveryError, EnrichmentError, LogweaveError, ValidationError
from .http import HttpSink, HttpSinkOptions
from .levels import LogLevel
from .record import EnrichedRecord
from .sinks import BaseSink, ConsoleSink, MemorySink, default_console_sink

__all__ = [
    "BaseSink",
    "ConsoleSink",
    "DeliveryError",
    "EnrichedRecord",
    "EnrichmentError",
    "HttpSink",
    "HttpSinkOptions",
    "LogLevel",
    "Logger",
    "LoggerOptions",
    "LoggerSettings",
    "LogweaveError",
    "MemorySink",
    "ValidationError",
    "create_logger",
    "default_console_sink",
]
