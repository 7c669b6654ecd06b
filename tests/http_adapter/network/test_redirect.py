"""Tests for the redirect middleware.

Tests cover:
- Pass-through of non-redirect responses
- Relative and absolute Location resolution
- 303 See Other method and body rewriting
- Authorization stripping across hosts and schemes
- Scheme change guard
- Hop budget (MaxRedirectsExceeded)
- Per-request option overrides
"""

import httpx
import pytest

from ClientRuntime.HttpAdapter.errors import (
    ConfigurationError,
    MaxRedirectsExceeded,
    MissingLocationHeader,
    MissingRedirectRequest,
    RedirectError,
    SchemeChangeNotAllowed,
)
from ClientRuntime.HttpAdapter.network.middleware import Middleware, chain_handlers
from ClientRuntime.HttpAdapter.network.options import RedirectHandlerOption, attach_request_options
from ClientRuntime.HttpAdapter.network.redirect import (
    RedirectHandler,
    format_audit_trail,
    resolve_redirect_url,
)


def _request(method="GET", url="https://example.com/start", **kwargs):
    return httpx.Request(method, url, **kwargs)


class TestRedirectFollowing:
    """Test hop-by-hop redirect following."""

    @pytest.mark.asyncio
    async def test_non_redirect_passes_through(self, recording_transport, http_mock):
        transport = recording_transport(http_mock(200, "done"))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        response = await head.send(_request())

        assert response.status_code == 200
        assert transport.call_count == 1

    @pytest.mark.asyncio
    async def test_relative_location_resolved_against_current_host(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("/next?page=2", 301), http_mock(200))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        response = await head.send(_request(url="https://example.com/a/b"))

        assert response.status_code == 200
        assert str(transport.requests[1].url) == "https://example.com/next?page=2"

    @pytest.mark.asyncio
    async def test_absolute_location_replaces_url(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("https://cdn.example.org/file", 307), http_mock(200))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        await head.send(_request())

        assert str(transport.requests[1].url) == "https://cdn.example.org/file"

    @pytest.mark.asyncio
    async def test_307_keeps_method_and_body(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("/moved", 307), http_mock(200))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        await head.send(_request("POST", content=b"payload"))

        follow_up = transport.requests[1]
        assert follow_up.method == "POST"
        assert follow_up.content == b"payload"

    @pytest.mark.asyncio
    async def test_303_switches_to_get_and_drops_body(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("/result", 303), http_mock(200))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        await head.send(_request("POST", content=b"payload", headers={"Content-Type": "text/plain"}))

        follow_up = transport.requests[1]
        assert follow_up.method == "GET"
        assert follow_up.content == b""
        assert "content-type" not in follow_up.headers

    @pytest.mark.asyncio
    async def test_authorization_kept_on_same_host(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("/other"), http_mock(200))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        await head.send(_request(headers={"Authorization": "Bearer secret"}))

        assert transport.requests[1].headers["authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_authorization_stripped_on_host_change(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("https://evil.example.net/"), http_mock(200))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        await head.send(_request(headers={"Authorization": "Bearer secret", "X-Other": "kept"}))

        follow_up = transport.requests[1]
        assert "authorization" not in follow_up.headers
        assert follow_up.headers["x-other"] == "kept"

    @pytest.mark.asyncio
    async def test_scheme_change_rejected_by_default(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("http://example.com/plain"))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        with pytest.raises(SchemeChangeNotAllowed) as exc_info:
            await head.send(_request())

        assert exc_info.value.from_scheme == "https"
        assert exc_info.value.to_scheme == "http"
        assert transport.call_count == 1

    @pytest.mark.asyncio
    async def test_scheme_change_allowed_strips_authorization(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("http://example.com/plain"), http_mock(200))
        option = RedirectHandlerOption(allow_redirect_on_scheme_change=True)
        head = chain_handlers(RedirectHandler(option), final=transport.terminal())

        response = await head.send(_request(headers={"Authorization": "Bearer secret"}))

        assert response.status_code == 200
        assert "authorization" not in transport.requests[1].headers

    @pytest.mark.asyncio
    async def test_max_redirect_exhausted_after_exact_follow_ups(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("/loop"))
        head = chain_handlers(RedirectHandler(RedirectHandlerOption(max_redirect=5)), final=transport.terminal())

        with pytest.raises(MaxRedirectsExceeded) as exc_info:
            await head.send(_request())

        assert transport.call_count == 1 + 5
        assert exc_info.value.max_hops == 5
        assert "Too many redirects" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_redirect_chain_within_budget_succeeds(self, recording_transport, http_mock):
        transport = recording_transport(
            http_mock().redirect_to("/one"),
            http_mock().redirect_to("/two"),
            http_mock(200, "final"),
        )
        head = chain_handlers(RedirectHandler(RedirectHandlerOption(max_redirect=2)), final=transport.terminal())

        response = await head.send(_request())

        assert response.content == b"final"
        assert [r.url.path for r in transport.requests] == ["/start", "/one", "/two"]

    @pytest.mark.asyncio
    async def test_zero_budget_returns_redirect_response(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("/elsewhere"))
        head = chain_handlers(RedirectHandler(RedirectHandlerOption(max_redirect=0)), final=transport.terminal())

        response = await head.send(_request())

        assert response.status_code == 302
        assert transport.call_count == 1

    @pytest.mark.asyncio
    async def test_should_redirect_predicate_can_refuse(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("/elsewhere"))
        option = RedirectHandlerOption(should_redirect=lambda response: False)
        head = chain_handlers(RedirectHandler(option), final=transport.terminal())

        response = await head.send(_request())

        assert response.status_code == 302

    @pytest.mark.asyncio
    async def test_request_option_overrides_handler_default(self, recording_transport, http_mock):
        transport = recording_transport(http_mock().redirect_to("/loop"))
        head = chain_handlers(RedirectHandler(RedirectHandlerOption(max_redirect=5)), final=transport.terminal())
        request = _request()
        option = RedirectHandlerOption(max_redirect=1)
        attach_request_options(request.extensions, {option.get_key(): option})

        with pytest.raises(MaxRedirectsExceeded):
            await head.send(request)

        assert transport.call_count == 2


class TestRedirectFailures:
    """Test malformed redirect responses."""

    @pytest.mark.asyncio
    async def test_missing_location_header(self, recording_transport, http_mock):
        transport = recording_transport(http_mock(302))
        head = chain_handlers(RedirectHandler(), final=transport.terminal())

        with pytest.raises(MissingLocationHeader) as exc_info:
            await head.send(_request())

        assert exc_info.value.status == 302
        assert isinstance(exc_info.value, RedirectError)

    @pytest.mark.asyncio
    async def test_response_without_request(self):
        class _Detached(Middleware):
            async def send(self, request, cancellation=None):
                return httpx.Response(301, headers={"location": "/x"})

        head = chain_handlers(RedirectHandler(), _Detached())

        with pytest.raises(MissingRedirectRequest):
            await head.send(_request())


class TestRedirectHelpers:
    """Test option validation and formatting helpers."""

    def test_max_redirect_upper_bound(self):
        with pytest.raises(ConfigurationError):
            RedirectHandlerOption(max_redirect=21)

    def test_max_redirect_negative(self):
        with pytest.raises(ConfigurationError):
            RedirectHandlerOption(max_redirect=-1)

    def test_resolve_relative(self):
        assert str(resolve_redirect_url(httpx.URL("https://a.example/x/y"), "z")) == "https://a.example/x/z"

    def test_format_audit_trail(self):
        trail = [("http://a", 301), ("http://b", 200)]
        assert format_audit_trail(trail) == "http://a (301) -> http://b (200)"
