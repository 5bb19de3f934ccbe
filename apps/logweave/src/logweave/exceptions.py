"""
Error taxonomy for the logging pipeline.

- ValidationError: raised synchronously by the normalizer, before enrichment.
- EnrichmentError: a processor failed; routed to the error channel.
- DeliveryError: a sink failed; routed to the error channel, never raised
  back into the logging call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .record import EnrichedRecord
    from .sinks import BaseSink


class LogweaveError(Exception):
    """Root of every error raised or reported by logweave."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ValidationError(LogweaveError):
    """Unrecognized level or unsupported call shape."""

    pass


class EnrichmentError(LogweaveError):
    """An enrichment processor failed for a record."""

    def __init__(self, *, processor: str, cause: BaseException) -> None:
        super().__init__(
            f"Processor {processor} failed: {cause}",
            code="ENRICHMENT_FAILED",
            details={"processor": processor, "error": str(cause)},
        )
        self.__cause__ = cause


class DeliveryError(LogweaveError):
    """A sink could not deliver a record."""

    def __init__(
        self,
        *,
        sink: BaseSink,
        record: Optional[EnrichedRecord] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        details = dict(details or {})
        if cause is not None and "message" not in details:
            details["message"] = str(cause) or type(cause).__name__
        message = details.get("message", "delivery failed")
        super().__init__(
            f"{sink.name}: {message}",
            code="DELIVERY_FAILED",
            details=details,
        )
        self.sink = sink
        self.record = record
        if cause is not None:
            self.__cause__ = cause
