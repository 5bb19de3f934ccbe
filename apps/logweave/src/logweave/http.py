"""
HTTP sink: POSTs each record's serialized JSON to a URL.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .levels import LogLevel
from .record import EnrichedRecord
from .sinks import BaseSink


class HttpSinkOptions(BaseModel):
    """Structured target; assembled as ``scheme://host:port/path``.

    ``use_tls`` also accepts the ``useTls`` spelling; unknown keys are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    host: str
    port: int
    path: str = "/"
    use_tls: bool = Field(default=False, alias="useTls")


def assemble_url(opts: HttpSinkOptions) -> str:
    scheme = "https" if opts.use_tls else "http"
    path = opts.path if opts.path.startswith("/") else "/" + opts.path
    return f"{scheme}://{opts.host}:{opts.port}{path}"


def _response_data(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def error_details(url: str, exc: BaseException) -> Dict[str, Any]:
    """Diagnostic fields for a failed request; never the raw exception object."""
    details: Dict[str, Any] = {"url": url}
    if isinstance(exc, httpx.HTTPStatusError):
        details["status"] = exc.response.status_code
        details["data"] = _response_data(exc.response)
        details["method"] = exc.request.method
        details["message"] = f"{exc.request.method} {url} returned HTTP {exc.response.status_code}"
    elif isinstance(exc, httpx.RequestError):
        details["method"] = exc.request.method
        details["message"] = f"{exc.request.method} {url} failed: {exc}"
    else:
        details["message"] = str(exc) or type(exc).__name__
    return details


class HttpSink(BaseSink):
    """Delivers records to an HTTP endpoint without blocking the caller.

    Requests run on a small per-sink thread pool. Success emits ``"logged"``
    with the record; failure emits ``"error"`` with ``error_details`` plus
    the record. No retries.

    Args:
        target: Full URL, or ``HttpSinkOptions`` / a dict of its fields
        timeout: Per-request timeout in seconds
        max_workers: Concurrent requests in flight
        transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
    """

    def __init__(
        self,
        target: Union[str, HttpSinkOptions, Dict[str, Any]],
        *,
        timeout: float = 10.0,
        max_workers: int = 4,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
        minimum_level: LogLevel | str | None = None,
        name: Optional[str] = None,
    ):
        super().__init__(minimum_level=minimum_level, name=name)
        if isinstance(target, dict):
            target = HttpSinkOptions(**target)
        self.url = assemble_url(target) if isinstance(target, HttpSinkOptions) else target
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="logweave-http")

    def request(self, record: EnrichedRecord) -> httpx.Response:
        response = self._client.post(self.url, content=record.serialized.encode(), headers=self._headers)
        response.raise_for_status()
        return response

    def _post(self, record: EnrichedRecord) -> None:
        try:
            self.request(record)
        except Exception as exc:
            self.events.emit("error", {**error_details(self.url, exc), "record": record})
        else:
            self.events.emit("logged", record)

    def deliver(self, record: EnrichedRecord) -> None:
        self.submit(record)

    def submit(self, record: EnrichedRecord) -> Future:
        """Schedule delivery and return its future."""
        return self._executor.submit(self._post, record)

    def close(self) -> None:
        """Wait for requests in flight, then close the client."""
        self._executor.shutdown(wait=True)
        self._client.close()

    def __repr__(self) -> str:
        return f"<HttpSink url={self.url!r} minimum_level={self.minimum_level}>"
