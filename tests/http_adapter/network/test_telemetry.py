"""Tests for request enrichment middleware (telemetry and user agent)."""

import httpx
import pytest

from ClientRuntime.HttpAdapter.network.middleware import chain_handlers
from ClientRuntime.HttpAdapter.network.options import (
    TelemetryHandlerOption,
    UserAgentHandlerOption,
    attach_request_options,
)
from ClientRuntime.HttpAdapter.network.telemetry import TelemetryHandler
from ClientRuntime.HttpAdapter.network.user_agent import UserAgentHandler


def _tag(request):
    request.headers["X-Telemetry"] = "handler-default"
    return request


class TestTelemetryHandler:
    @pytest.mark.asyncio
    async def test_none_configurator_forwards_unmodified(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(TelemetryHandler(TelemetryHandlerOption(None)), final=transport.terminal())
        request = httpx.Request("GET", "https://example.com/", headers={"X-Keep": "1"})

        await head.send(request)

        assert transport.last_request is request
        assert dict(transport.last_request.headers) == dict(request.headers)

    @pytest.mark.asyncio
    async def test_default_configurator_applied(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(TelemetryHandler(TelemetryHandlerOption(_tag)), final=transport.terminal())

        await head.send(httpx.Request("GET", "https://example.com/"))

        assert transport.last_request.headers["x-telemetry"] == "handler-default"

    @pytest.mark.asyncio
    async def test_request_option_wins(self, recording_transport):
        def per_request(request):
            request.headers["X-Telemetry"] = "per-request"
            return request

        transport = recording_transport()
        head = chain_handlers(TelemetryHandler(TelemetryHandlerOption(_tag)), final=transport.terminal())
        request = httpx.Request("GET", "https://example.com/")
        option = TelemetryHandlerOption(per_request)
        attach_request_options(request.extensions, {option.get_key(): option})

        await head.send(request)

        assert transport.last_request.headers["x-telemetry"] == "per-request"

    @pytest.mark.asyncio
    async def test_configurator_may_replace_request(self, recording_transport):
        replacement = httpx.Request("GET", "https://example.com/replaced")
        transport = recording_transport()
        head = chain_handlers(
            TelemetryHandler(TelemetryHandlerOption(lambda request: replacement)),
            final=transport.terminal(),
        )

        await head.send(httpx.Request("GET", "https://example.com/"))

        assert transport.last_request is replacement


class TestUserAgentHandler:
    @pytest.mark.asyncio
    async def test_product_token_appended(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(UserAgentHandler(), final=transport.terminal())

        await head.send(httpx.Request("GET", "https://example.com/", headers={"User-Agent": "my-app/2.0"}))

        assert transport.last_request.headers["user-agent"] == "my-app/2.0 client-runtime-python/1.0.0"

    @pytest.mark.asyncio
    async def test_product_token_not_duplicated(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(UserAgentHandler(), final=transport.terminal())

        await head.send(
            httpx.Request("GET", "https://example.com/", headers={"User-Agent": "client-runtime-python/1.0.0"})
        )

        assert transport.last_request.headers["user-agent"] == "client-runtime-python/1.0.0"

    @pytest.mark.asyncio
    async def test_disabled(self, recording_transport):
        transport = recording_transport()
        head = chain_handlers(UserAgentHandler(UserAgentHandlerOption(enabled=False)), final=transport.terminal())

        await head.send(httpx.Request("GET", "https://example.com/"))

        assert "user-agent" not in transport.last_request.headers
