"""Telemetry middleware: lets callers enrich outgoing requests.

The configurator comes from the request's :class:`TelemetryHandlerOption`
first, then the handler's default.  A ``None`` configurator forwards the
request unmodified.
"""

from typing import Optional

import httpx

from ..cancellation import CancellationToken
from .middleware import Middleware
from .options import TelemetryHandlerOption, get_request_option


class TelemetryHandler(Middleware):
    def __init__(self, telemetry_option: Optional[TelemetryHandlerOption] = None) -> None:
        super().__init__()
        self.telemetry_option = telemetry_option or TelemetryHandlerOption()

    async def send(self, request: httpx.Request, cancellation: Optional[CancellationToken] = None) -> httpx.Response:
        option = get_request_option(request, TelemetryHandlerOption) or self.telemetry_option
        if option.telemetry_configurator is not None:
            request = option.telemetry_configurator(request)
        return await self.send_next(request, cancellation)


__all__ = ["TelemetryHandler"]
