"""Public API for the ClientRuntime HTTP request adapter.

The adapter turns a protocol-agnostic :class:`RequestInformation` into an
``httpx`` call that runs through a middleware chain (redirects, claims
challenges, retries, compression, telemetry), then classifies the response
into a typed result, no content, or a mapped domain error.
"""

from __future__ import annotations

from .adapter import HttpxRequestAdapter, has_no_content
from .authentication import (
    AccessTokenProvider,
    AllowedHostsValidator,
    AnonymousAuthenticationProvider,
    AuthenticationProvider,
    BaseBearerTokenAuthenticationProvider,
)
from .cancellation import CancellationToken
from .error_mapping import ErrorMapping, resolve_error_factory
from .errors import (
    ApiError,
    ClientRuntimeError,
    ConfigurationError,
    MaxRedirectsExceeded,
    MissingLocationHeader,
    MissingRedirectRequest,
    RedirectError,
    RequestCancelledError,
    SchemeChangeNotAllowed,
    SerializationError,
    TransportError,
)
from .request_information import Method, RequestInformation, RequestOption
from .serialization import (
    JsonParseNode,
    JsonParseNodeFactory,
    ParseNode,
    ParseNodeFactory,
    ParseNodeFactoryRegistry,
    pydantic_factory,
)
from .settings import AdapterSettings, get_settings, load_settings, reset_settings
from .store import BackingStore, BackingStoreFactory, InMemoryBackingStore, InMemoryBackingStoreFactory

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "HttpxRequestAdapter",
    "has_no_content",
    "AuthenticationProvider",
    "AnonymousAuthenticationProvider",
    "AccessTokenProvider",
    "AllowedHostsValidator",
    "BaseBearerTokenAuthenticationProvider",
    "CancellationToken",
    "ErrorMapping",
    "resolve_error_factory",
    "ClientRuntimeError",
    "ConfigurationError",
    "TransportError",
    "RequestCancelledError",
    "RedirectError",
    "MissingLocationHeader",
    "MissingRedirectRequest",
    "MaxRedirectsExceeded",
    "SchemeChangeNotAllowed",
    "SerializationError",
    "ApiError",
    "Method",
    "RequestInformation",
    "RequestOption",
    "ParseNode",
    "ParseNodeFactory",
    "ParseNodeFactoryRegistry",
    "JsonParseNode",
    "JsonParseNodeFactory",
    "pydantic_factory",
    "AdapterSettings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "BackingStore",
    "BackingStoreFactory",
    "InMemoryBackingStore",
    "InMemoryBackingStoreFactory",
]
