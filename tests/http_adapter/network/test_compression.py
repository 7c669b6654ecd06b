"""Tests for the compression middleware."""

import gzip

import httpx
import pytest

from ClientRuntime.HttpAdapter.network.compression import (
    ACCEPT_ENCODING,
    CompressionHandler,
    decompress_response,
)
from ClientRuntime.HttpAdapter.network.middleware import chain_handlers
from ClientRuntime.HttpAdapter.network.options import CompressionHandlerOption, attach_request_options


class TestRequestCompression:
    @pytest.mark.asyncio
    async def test_accept_encoding_added(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(CompressionHandler(), final=transport.terminal())

        await head.send(httpx.Request("GET", "https://example.com/"))

        assert transport.last_request.headers["accept-encoding"] == ACCEPT_ENCODING

    @pytest.mark.asyncio
    async def test_body_is_gzipped(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(CompressionHandler(), final=transport.terminal())
        body = b'{"name": "value"}' * 10

        await head.send(
            httpx.Request("POST", "https://example.com/", content=body, headers={"Content-Type": "application/json"})
        )

        sent = transport.last_request
        assert sent.headers["content-encoding"] == "gzip"
        assert sent.headers["content-type"] == "application/json"
        assert gzip.decompress(sent.content) == body

    @pytest.mark.asyncio
    async def test_unsupported_media_type_resends_uncompressed(self, recording_transport, http_mock):
        transport = recording_transport(http_mock(415), http_mock(200))
        head = chain_handlers(CompressionHandler(), final=transport.terminal())

        response = await head.send(httpx.Request("POST", "https://example.com/", content=b"plain"))

        assert response.status_code == 200
        assert transport.call_count == 2
        assert "content-encoding" not in transport.requests[1].headers
        assert transport.requests[1].content == b"plain"

    @pytest.mark.asyncio
    async def test_content_range_body_left_alone(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(CompressionHandler(), final=transport.terminal())

        await head.send(
            httpx.Request(
                "PUT",
                "https://example.com/upload",
                content=b"contents",
                headers={"Content-Range": "bytes 0-7/128"},
            )
        )

        assert transport.last_request.content == b"contents"
        assert "content-encoding" not in transport.last_request.headers

    @pytest.mark.asyncio
    async def test_disabled_by_request_option(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(CompressionHandler(), final=transport.terminal())
        request = httpx.Request("POST", "https://example.com/", content=b"plain")
        option = CompressionHandlerOption(enabled=False)
        attach_request_options(request.extensions, {option.get_key(): option})

        await head.send(request)

        assert transport.last_request.content == b"plain"
        assert "accept-encoding" not in transport.last_request.headers


class TestResponseDecompression:
    @pytest.mark.asyncio
    async def test_gzip_response_decoded_and_headers_dropped(self, recording_transport):
        payload = b'{"id": "1"}'
        transport = recording_transport(
            lambda request: httpx.Response(
                200,
                headers={"Content-Encoding": "gzip", "Content-Type": "application/json"},
                content=gzip.compress(payload),
            )
        )
        head = chain_handlers(CompressionHandler(), final=transport.terminal())

        response = await head.send(httpx.Request("GET", "https://example.com/"))

        assert response.content == payload
        assert "content-encoding" not in response.headers
        assert response.headers["content-length"] == str(len(payload))
        assert response.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_identity_response_untouched(self):
        response = httpx.Response(200, content=b"plain")
        assert await decompress_response(response) is response
