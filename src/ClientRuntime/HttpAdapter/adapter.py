# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.adapter",
#   "purpose": "Request adapter: native request construction, dispatch through middleware, response classification.",
#   "sections": [
#     {
#       "id": "httpxrequestadapter",
#       "name": "HttpxRequestAdapter",
#       "anchor": "class-httpxrequestadapter",
#       "kind": "class"
#     },
#     {
#       "id": "has-no-content",
#       "name": "has_no_content",
#       "anchor": "function-has-no-content",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Request adapter: turns :class:`RequestInformation` into typed results.

Flow of one call:

1. The adapter base URL is written into the ``baseurl`` path parameter.
2. The authentication provider attaches credentials.
3. :meth:`HttpxRequestAdapter.convert_to_native_request` builds an
   ``httpx.Request``; request options and the request information travel in
   its extensions so middleware can read them.
4. The request goes down the middleware chain to :class:`HttpxTransport`.
5. The response is classified: no content, success with a body (parsed by the
   codec registered for its content type), or an error mapped to a domain
   exception.

Example:
    >>> from ClientRuntime.HttpAdapter.authentication import AnonymousAuthenticationProvider
    >>> adapter = HttpxRequestAdapter(AnonymousAuthenticationProvider(), base_url="https://api.example.com/v1/")
    >>> adapter.base_url
    'https://api.example.com/v1'
"""

from __future__ import annotations

import contextlib
import datetime
import logging
import threading
import uuid
from typing import Any, Dict, Iterator, List, Optional, Sequence, Type, TypeVar

import httpx
from opentelemetry import trace

from .authentication import AuthenticationProvider
from .cancellation import CancellationToken, raise_if_cancelled
from .error_mapping import ErrorMapping, is_success, resolve_error_factory
from .errors import ApiError, ConfigurationError, SerializationError
from .network.client import create_default_handlers, create_http_client
from .network.instrumentation import DEFAULT_TRACER_REGISTRY
from .network.middleware import HttpxTransport, Middleware, chain_handlers, chain_length
from .network.options import ObservabilityOptions, attach_request_options
from .network.policy import NO_CONTENT_STATUS_CODES, REQUEST_INFORMATION_EXTENSION
from .request_information import BASE_URL_KEY, RequestInformation
from .serialization import (
    BackingStoreParseNodeFactory,
    JsonParseNode,
    ParsableFactory,
    ParseNode,
    ParseNodeFactory,
    ParseNodeFactoryRegistry,
)
from .settings import AdapterSettings, get_settings
from .store import BackingStoreFactory, InMemoryBackingStoreFactory

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNMAPPED_ERROR_MESSAGE = (
    "The server returned an unexpected status code and no error factory is registered for this code"
)

PRIMITIVE_TYPES = (bytes, str, int, float, bool, datetime.datetime, uuid.UUID)


def has_no_content(response: httpx.Response) -> bool:
    """No-body statuses, or a success whose body is empty.

    Examples:
        >>> has_no_content(httpx.Response(204, content=b"{}"))
        True
        >>> has_no_content(httpx.Response(200, content=b""))
        True
        >>> has_no_content(httpx.Response(200, content=b"{}"))
        False
    """
    if response.status_code in NO_CONTENT_STATUS_CODES:
        return True
    return is_success(response.status_code) and not response.content


def _normalize_base_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.rstrip("/") or None


def _response_headers(response: httpx.Response) -> Dict[str, List[str]]:
    headers: Dict[str, List[str]] = {}
    for name, value in response.headers.multi_items():
        headers.setdefault(name, []).append(value)
    return headers


class HttpxRequestAdapter:
    """Sends :class:`RequestInformation` through a middleware chain over ``httpx``.

    Args:
        authentication_provider: Attaches credentials to every request; required.
        parse_node_factory: Codec registry for response bodies (JSON by default).
        http_client: ``httpx.AsyncClient`` used by the terminal transport; one is
            built from settings when omitted.  Its ``base_url`` seeds the
            adapter's base URL.
        middleware: Middleware list, outermost first; the default set when
            ``None``, no middleware when empty. Instances are linked in
            place and must not be shared between adapters.
        settings: Adapter settings; the process-wide settings when omitted.
        backing_store_factory: Factory handed to generated models.
        base_url: Base URL substituted for ``{+baseurl}``.
        observability_options: Enables tracing spans for every call.
    """

    def __init__(
        self,
        authentication_provider: AuthenticationProvider,
        parse_node_factory: Optional[ParseNodeFactory] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        middleware: Optional[Sequence[Middleware]] = None,
        settings: Optional[AdapterSettings] = None,
        backing_store_factory: Optional[BackingStoreFactory] = None,
        base_url: Optional[str] = None,
        observability_options: Optional[ObservabilityOptions] = None,
    ) -> None:
        if authentication_provider is None:
            raise ConfigurationError("authentication_provider cannot be None")
        self.settings = settings or get_settings()
        self.authentication_provider = authentication_provider
        self.parse_node_factory = parse_node_factory or ParseNodeFactoryRegistry.with_defaults()
        self._owns_client = http_client is None
        self.http_client = http_client if http_client is not None else create_http_client(self.settings)
        self.observability_options = observability_options

        handlers = (
            list(middleware)
            if middleware is not None
            else create_default_handlers(authentication_provider, self.settings)
        )
        self._chain = chain_handlers(*handlers, final=HttpxTransport(self.http_client))

        self._backing_store_factory: BackingStoreFactory = backing_store_factory or InMemoryBackingStoreFactory()
        self._backing_store_enabled = False
        self._backing_store_lock = threading.Lock()

        self._base_url: Optional[str] = None
        self.base_url = base_url or self.settings.base_url or str(self.http_client.base_url)

        logger.debug(
            "Request adapter created",
            extra={"base_url": self._base_url, "middleware_count": chain_length(self._chain) - 1},
        )

    # -- Configuration -----------------------------------------------------

    @property
    def base_url(self) -> Optional[str]:
        return self._base_url

    @base_url.setter
    def base_url(self, value: Optional[str]) -> None:
        self._base_url = _normalize_base_url(value)

    @property
    def backing_store_factory(self) -> BackingStoreFactory:
        return self._backing_store_factory

    @property
    def chain(self) -> Middleware:
        return self._chain

    def enable_backing_store(self, backing_store_factory: Optional[BackingStoreFactory] = None) -> None:
        """Use ``backing_store_factory`` for models materialised by this adapter.

        Parsed objects exposing a ``backing_store`` are marked initialised so
        only later changes are tracked.  May be called once per adapter.
        """
        with self._backing_store_lock:
            if self._backing_store_enabled:
                raise ConfigurationError("The backing store has already been enabled for this adapter")
            if backing_store_factory is not None:
                self._backing_store_factory = backing_store_factory
            self.parse_node_factory = BackingStoreParseNodeFactory(self.parse_node_factory)
            self._backing_store_enabled = True
        logger.debug(
            "Backing store enabled",
            extra={"factory": type(self._backing_store_factory).__name__},
        )

    # -- Native request ----------------------------------------------------

    def _set_base_url_for_request_information(self, request_info: RequestInformation) -> None:
        if not request_info.has_explicit_url:
            request_info.path_parameters[BASE_URL_KEY] = self._base_url or ""

    def _get_request_from_request_information(self, request_info: RequestInformation) -> httpx.Request:
        if request_info.http_method is None:
            raise ConfigurationError("http_method cannot be None")
        try:
            url = request_info.url
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        if not httpx.URL(url).is_absolute_url:
            raise ConfigurationError(f"Request URL must be absolute, got {url!r}")

        headers = httpx.Headers([(name, value) for name, values in request_info.headers.items() for value in values])
        extensions: Dict[str, Any] = {REQUEST_INFORMATION_EXTENSION: request_info}
        options = dict(request_info.request_options)
        if self.observability_options is not None:
            options.setdefault(ObservabilityOptions.get_key(), self.observability_options)
        attach_request_options(extensions, options)

        return httpx.Request(
            request_info.http_method.value,
            url,
            headers=headers,
            content=request_info.read_content(),
            extensions=extensions,
        )

    async def convert_to_native_request(
        self,
        request_info: RequestInformation,
        cancellation: Optional[CancellationToken] = None,
    ) -> httpx.Request:
        """Authenticate ``request_info`` and build the ``httpx.Request`` for it."""
        if request_info is None:
            raise ConfigurationError("request_info cannot be None")
        raise_if_cancelled(cancellation)
        self._set_base_url_for_request_information(request_info)
        await self.authentication_provider.authenticate_request(request_info)
        return self._get_request_from_request_information(request_info)

    # -- Send variants -----------------------------------------------------

    async def send_async(
        self,
        request_info: RequestInformation,
        factory: ParsableFactory[T],
        error_map: Optional[ErrorMapping] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[T]:
        """Send and materialise the body with ``factory``; ``None`` on no content."""
        with self._start_span(request_info, "send_async"):
            response = await self._get_http_response(request_info, cancellation)
            await self._throw_if_failed_response(response, error_map)
            if has_no_content(response):
                return None
            root_node = self._get_root_parse_node(response)
            return root_node.get_object_value(factory)

    async def send_collection_async(
        self,
        request_info: RequestInformation,
        factory: ParsableFactory[T],
        error_map: Optional[ErrorMapping] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[List[T]]:
        with self._start_span(request_info, "send_collection_async"):
            response = await self._get_http_response(request_info, cancellation)
            await self._throw_if_failed_response(response, error_map)
            if has_no_content(response):
                return None
            root_node = self._get_root_parse_node(response)
            return root_node.get_collection_of_object_values(factory)

    async def send_primitive_async(
        self,
        request_info: RequestInformation,
        response_type: Type[T],
        error_map: Optional[ErrorMapping] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[T]:
        """Send and return the body as ``response_type``.

        ``bytes`` returns the raw body; the other primitive types are read
        through the parse node for the response content type.
        """
        if response_type not in PRIMITIVE_TYPES:
            raise ConfigurationError(f"Unsupported primitive response type: {response_type!r}")
        with self._start_span(request_info, "send_primitive_async"):
            response = await self._get_http_response(request_info, cancellation)
            await self._throw_if_failed_response(response, error_map)
            if has_no_content(response):
                return None
            if response_type is bytes:
                return response.content  # type: ignore[return-value]
            root_node = self._get_root_parse_node(response)
            return self._get_primitive_value(root_node, response_type)

    async def send_no_content_async(
        self,
        request_info: RequestInformation,
        error_map: Optional[ErrorMapping] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        """Send and discard any body; only the status is checked."""
        with self._start_span(request_info, "send_no_content_async"):
            response = await self._get_http_response(request_info, cancellation)
            await self._throw_if_failed_response(response, error_map)
            await response.aclose()

    # -- Internals ---------------------------------------------------------

    async def _get_http_response(
        self,
        request_info: RequestInformation,
        cancellation: Optional[CancellationToken],
    ) -> httpx.Response:
        request = await self.convert_to_native_request(request_info, cancellation)
        response = await self._chain.send(request, cancellation)
        await response.aread()
        return response

    def _get_root_parse_node(self, response: httpx.Response) -> ParseNode:
        content_type = response.headers.get("content-type")
        if not content_type:
            raise SerializationError("The response has a body but no Content-Type header to select a parser")
        return self.parse_node_factory.get_root_parse_node(content_type, response.content)

    @staticmethod
    def _get_primitive_value(root_node: ParseNode, response_type: Type[Any]) -> Any:
        if response_type is bool:
            return root_node.get_bool_value()
        if response_type is int:
            return root_node.get_int_value()
        if response_type is float:
            return root_node.get_float_value()
        if response_type is str:
            return root_node.get_str_value()
        if response_type is datetime.datetime:
            return root_node.get_datetime_value()
        return root_node.get_uuid_value()

    async def _throw_if_failed_response(self, response: httpx.Response, error_map: Optional[ErrorMapping]) -> None:
        status_code = response.status_code
        if is_success(status_code) or status_code in NO_CONTENT_STATUS_CODES:
            return

        headers = _response_headers(response)
        factory = resolve_error_factory(error_map, status_code)
        if factory is None:
            logger.debug("No error factory registered", extra={"status": status_code})
            raise ApiError(
                f"{UNMAPPED_ERROR_MESSAGE}: {status_code}",
                response_status_code=status_code,
                response_headers=headers,
            )

        if response.content and response.headers.get("content-type"):
            error = self._get_root_parse_node(response).get_object_value(factory)
        else:
            error = factory(JsonParseNode(None))
        if not isinstance(error, ApiError):
            raise ApiError(
                f"The error factory registered for {status_code} did not return an ApiError",
                response_status_code=status_code,
                response_headers=headers,
            )
        error.response_status_code = status_code
        error.response_headers = headers
        logger.debug(
            "Raising mapped error",
            extra={"status": status_code, "error_type": type(error).__name__},
        )
        raise error

    @contextlib.contextmanager
    def _start_span(self, request_info: RequestInformation, operation: str) -> Iterator[Optional[trace.Span]]:
        options = request_info.get_request_option(ObservabilityOptions) or self.observability_options
        if options is None:
            yield None
            return
        tracer = DEFAULT_TRACER_REGISTRY.get_or_create_tracer(options.tracer_instrumentation_name)
        method = request_info.http_method.value if request_info.http_method else ""
        with tracer.start_as_current_span(f"{operation} - {request_info.url_template or ''}") as span:
            span.set_attribute("http.request.method", method)
            if request_info.url_template:
                span.set_attribute("url.uri_template", request_info.url_template)
            yield span

    async def aclose(self) -> None:
        """Close the httpx client if this adapter created it."""
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "HttpxRequestAdapter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self._base_url!r})"


__all__ = ["HttpxRequestAdapter", "has_no_content", "UNMAPPED_ERROR_MESSAGE", "PRIMITIVE_TYPES"]
