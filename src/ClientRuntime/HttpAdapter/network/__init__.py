"""Network subsystem: middleware chain, terminal transport and client factory.

This package carries every native request from the adapter to the wire:
- HTTPX: async HTTP/1.1 and HTTP/2 client with connection pooling
- Tenacity: retry backoff for 429/503/504 responses
- OpenTelemetry: optional per-handler spans

Modules:
- middleware: middleware contract, httpx terminal transport, chain builder
- redirect: bounded redirect following with credential and scheme guards
- auth_challenge: one re-authentication on a claims challenge
- retry: transient-status retries honouring Retry-After
- compression: gzip request bodies, decoded responses
- telemetry, user_agent: request enrichment
- client: httpx.AsyncClient factory and the default middleware set
- options, policy: per-request options and wire constants
- instrumentation: tracer registry, spans, ``net.request`` event hooks

Example:
    >>> from ClientRuntime.HttpAdapter.network import chain_handlers, HttpxTransport
    >>> from ClientRuntime.HttpAdapter.network import RedirectHandler, create_http_client
    >>> head = chain_handlers(RedirectHandler(), final=HttpxTransport(create_http_client()))
"""

from ClientRuntime.HttpAdapter.network.auth_challenge import AuthenticationChallengeHandler, extract_claims
from ClientRuntime.HttpAdapter.network.client import create_default_handlers, create_http_client
from ClientRuntime.HttpAdapter.network.compression import CompressionHandler
from ClientRuntime.HttpAdapter.network.instrumentation import (
    DEFAULT_TRACER_REGISTRY,
    TracerRegistry,
    create_http_event_hooks,
    start_span,
)
from ClientRuntime.HttpAdapter.network.middleware import (
    HttpxTransport,
    Middleware,
    chain_handlers,
    chain_length,
    clone_request,
    drain_response,
    is_replayable,
    iter_chain,
)
from ClientRuntime.HttpAdapter.network.options import (
    CompressionHandlerOption,
    ObservabilityOptions,
    RedirectHandlerOption,
    RetryHandlerOption,
    TelemetryHandlerOption,
    UserAgentHandlerOption,
    get_request_option,
)
from ClientRuntime.HttpAdapter.network.redirect import RedirectHandler, format_audit_trail
from ClientRuntime.HttpAdapter.network.retry import RetryHandler
from ClientRuntime.HttpAdapter.network.telemetry import TelemetryHandler
from ClientRuntime.HttpAdapter.network.user_agent import UserAgentHandler

__all__ = [
    # Chain
    "Middleware",
    "HttpxTransport",
    "chain_handlers",
    "chain_length",
    "iter_chain",
    "clone_request",
    "drain_response",
    "is_replayable",
    # Handlers
    "RedirectHandler",
    "AuthenticationChallengeHandler",
    "RetryHandler",
    "CompressionHandler",
    "TelemetryHandler",
    "UserAgentHandler",
    "format_audit_trail",
    "extract_claims",
    # Options
    "RedirectHandlerOption",
    "RetryHandlerOption",
    "CompressionHandlerOption",
    "TelemetryHandlerOption",
    "UserAgentHandlerOption",
    "ObservabilityOptions",
    "get_request_option",
    # Client
    "create_http_client",
    "create_default_handlers",
    # Instrumentation
    "TracerRegistry",
    "DEFAULT_TRACER_REGISTRY",
    "start_span",
    "create_http_event_hooks",
]
