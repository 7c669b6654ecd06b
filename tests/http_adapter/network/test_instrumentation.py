"""Tests for tracing spans and the net.request logging hooks."""

import logging

import httpx
import pytest

from ClientRuntime.HttpAdapter.network.instrumentation import (
    DEFAULT_TRACER_REGISTRY,
    TracerRegistry,
    _redact_url,
    create_http_event_hooks,
    start_span,
)
from ClientRuntime.HttpAdapter.network.options import ObservabilityOptions, attach_request_options


class TestTracerRegistry:
    def test_tracers_cached_by_name(self):
        registry = TracerRegistry()
        first = registry.get_or_create_tracer("tests.tracer")
        assert registry.get_or_create_tracer("tests.tracer") is first
        assert len(registry) == 1

    def test_distinct_names_distinct_tracers(self):
        registry = TracerRegistry()
        registry.get_or_create_tracer("a")
        registry.get_or_create_tracer("b")
        assert len(registry) == 2


class TestStartSpan:
    def test_no_span_without_observability_options(self):
        with start_span(httpx.Request("GET", "https://example.com/"), "noop") as span:
            assert span is None

    def test_span_opened_when_requested(self):
        request = httpx.Request("GET", "https://example.com/")
        option = ObservabilityOptions(tracer_instrumentation_name="tests.spans")
        attach_request_options(request.extensions, {option.get_key(): option})

        with start_span(request, "RedirectHandler_send", attempt=1) as span:
            assert span is not None
        assert DEFAULT_TRACER_REGISTRY.get_or_create_tracer("tests.spans") is not None


class TestEventHooks:
    def test_redact_url_strips_query(self):
        assert _redact_url("https://example.com/path?token=secret#frag") == "https://example.com/path"

    @pytest.mark.asyncio
    async def test_net_request_logged(self, caplog):
        hooks = create_http_event_hooks()
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(204)),
            event_hooks=hooks,
        )

        with caplog.at_level(logging.INFO, logger="ClientRuntime.HttpAdapter.network.instrumentation"):
            await client.get("https://example.com/items?secret=1")
        await client.aclose()

        records = [r for r in caplog.records if r.getMessage() == "net.request"]
        assert len(records) == 1
        assert records[0].status == 204
        assert records[0].url_redacted == "https://example.com/items"
        assert records[0].elapsed_ms is not None
