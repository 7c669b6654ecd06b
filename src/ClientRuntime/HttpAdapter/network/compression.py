"""Compression middleware: gzip request bodies, decode compressed responses.

Design:
- **Negotiation**: ``Accept-Encoding: gzip, deflate`` is added when absent
- **Request bodies**: buffered bodies are gzip-compressed and marked with
  ``Content-Encoding: gzip``; a 415 answer triggers one uncompressed resend
- **Responses**: compressed bodies are read and handed upstream decoded, with
  ``Content-Encoding`` and ``Content-Length`` describing the decoded bytes
"""

import gzip
import logging
from typing import Optional

import httpx

from ..cancellation import CancellationToken
from .instrumentation import start_span
from .middleware import Middleware, clone_request, drain_response, is_replayable
from .options import CompressionHandlerOption, get_request_option
from .policy import UNSUPPORTED_MEDIA_TYPE

logger = logging.getLogger(__name__)

ACCEPT_ENCODING = "gzip, deflate"

_DECODED_ENCODINGS = {"gzip", "deflate", "x-gzip"}


def compress_request(request: httpx.Request) -> httpx.Request:
    """Return a copy of ``request`` with its body gzip-compressed."""
    compressed = clone_request(request, content=gzip.compress(request.content))
    for name, value in request.headers.multi_items():
        if name.lower() == "content-type":
            compressed.headers[name] = value
    compressed.headers["Content-Encoding"] = "gzip"
    return compressed


def _should_compress_body(request: httpx.Request) -> bool:
    if "content-encoding" in request.headers or "content-range" in request.headers:
        return False
    return is_replayable(request) and bool(request.content)


async def decompress_response(response: httpx.Response) -> httpx.Response:
    """Read ``response`` and rebuild it with a decoded body, if it was compressed."""
    encodings = {part.strip().lower() for part in response.headers.get("content-encoding", "").split(",") if part}
    if not encodings or not encodings <= _DECODED_ENCODINGS:
        return response
    body = await response.aread()
    await response.aclose()
    headers = httpx.Headers(
        [
            (name, value)
            for name, value in response.headers.multi_items()
            if name.lower() not in ("content-encoding", "content-length")
        ]
    )
    return httpx.Response(
        response.status_code,
        headers=headers,
        content=body,
        request=response.request,
        extensions=response.extensions,
    )


class CompressionHandler(Middleware):
    def __init__(self, compression_option: Optional[CompressionHandlerOption] = None) -> None:
        super().__init__()
        self.compression_option = compression_option or CompressionHandlerOption()

    async def send(self, request: httpx.Request, cancellation: Optional[CancellationToken] = None) -> httpx.Response:
        option = get_request_option(request, CompressionHandlerOption) or self.compression_option
        if not option.enabled:
            return await self.send_next(request, cancellation)

        with start_span(request, "CompressionHandler_send", **{"com.clientruntime.handler.compression.enable": True}):
            if "accept-encoding" not in request.headers:
                request.headers["Accept-Encoding"] = ACCEPT_ENCODING

            outgoing = compress_request(request) if _should_compress_body(request) else request
            response = await self.send_next(outgoing, cancellation)

            if outgoing is not request and response.status_code == UNSUPPORTED_MEDIA_TYPE:
                logger.debug("Server rejected compressed body; resending uncompressed", extra={"url": str(request.url)})
                await drain_response(response)
                response = await self.send_next(clone_request(request), cancellation)

            return await decompress_response(response)


__all__ = ["CompressionHandler", "compress_request", "decompress_response", "ACCEPT_ENCODING"]
