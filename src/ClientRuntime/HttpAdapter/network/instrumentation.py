"""HTTP network layer instrumentation and telemetry.

Two concerns live here:

- Tracing: a process-wide registry caching OpenTelemetry tracers by
  instrumentation name, and :func:`start_span`, which opens a span only when
  the request carries :class:`ObservabilityOptions`.
- Logging: httpx event hooks that emit one ``net.request`` log record per
  exchange, with the URL redacted to scheme, host and path.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import Any, Dict, Iterator, Optional
from urllib.parse import urlparse, urlunparse

import httpx
from opentelemetry import trace

from .options import ObservabilityOptions, get_request_option

logger = logging.getLogger(__name__)

_REQUEST_START_EXTENSION = "client_runtime.request_start"


class TracerRegistry:
    """Read-mostly cache of tracers keyed by instrumentation name."""

    def __init__(self) -> None:
        self._tracers: Dict[str, trace.Tracer] = {}
        self._lock = threading.Lock()

    def get_or_create_tracer(self, name: str) -> trace.Tracer:
        tracer = self._tracers.get(name)
        if tracer is not None:
            return tracer
        with self._lock:
            tracer = self._tracers.get(name)
            if tracer is None:
                tracer = trace.get_tracer(name)
                self._tracers[name] = tracer
        return tracer

    def __len__(self) -> int:
        return len(self._tracers)


DEFAULT_TRACER_REGISTRY = TracerRegistry()


@contextlib.contextmanager
def start_span(request: httpx.Request, name: str, **attributes: Any) -> Iterator[Optional[trace.Span]]:
    """Open a span named ``name`` if ``request`` opted into observability.

    Yields ``None`` when it did not; the span is ended on every exit path.
    """
    options = get_request_option(request, ObservabilityOptions)
    if options is None:
        yield None
        return
    tracer = DEFAULT_TRACER_REGISTRY.get_or_create_tracer(options.tracer_instrumentation_name)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            span.set_attribute(key, value)
        if options.include_euii_attributes:
            span.set_attribute("url.full", str(request.url))
        yield span


def create_http_event_hooks() -> dict:
    """Create async httpx event hooks that log each exchange.

    Returns:
        Dict with 'request' and 'response' hooks for ``httpx.AsyncClient``

    Usage:
        >>> hooks = create_http_event_hooks()
        >>> client = httpx.AsyncClient(event_hooks=hooks)
    """

    async def on_request(request: httpx.Request) -> None:
        request.extensions[_REQUEST_START_EXTENSION] = time.perf_counter()

    async def on_response(response: httpx.Response) -> None:
        start_time = response.request.extensions.get(_REQUEST_START_EXTENSION)
        elapsed_ms = None if start_time is None else (time.perf_counter() - start_time) * 1000
        logger.info(
            "net.request",
            extra={
                "method": response.request.method,
                "url_redacted": _redact_url(str(response.request.url)),
                "host": response.request.url.host or "unknown",
                "status": response.status_code,
                "http_version": response.http_version,
                "elapsed_ms": elapsed_ms,
            },
        )

    return {
        "request": [on_request],
        "response": [on_response],
    }


def _redact_url(url: str) -> str:
    """Redact sensitive query parameters from URL.

    Strips query strings, keeping only scheme + host + path.
    """
    parsed = urlparse(url)
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))


__all__ = [
    "TracerRegistry",
    "DEFAULT_TRACER_REGISTRY",
    "start_span",
    "create_http_event_hooks",
]
