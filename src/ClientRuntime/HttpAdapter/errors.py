# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.errors",
#   "purpose": "Exception hierarchy for request conversion, transport, redirects, serialization, and API errors.",
#   "sections": [
#     {
#       "id": "clientruntimeerror",
#       "name": "ClientRuntimeError",
#       "anchor": "class-clientruntimeerror",
#       "kind": "class"
#     },
#     {
#       "id": "transporterror",
#       "name": "TransportError",
#       "anchor": "class-transporterror",
#       "kind": "class"
#     },
#     {
#       "id": "redirecterror",
#       "name": "RedirectError",
#       "anchor": "class-redirecterror",
#       "kind": "class"
#     },
#     {
#       "id": "serializationerror",
#       "name": "SerializationError",
#       "anchor": "class-serializationerror",
#       "kind": "class"
#     },
#     {
#       "id": "apierror",
#       "name": "ApiError",
#       "anchor": "class-apierror",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared across request conversion, transport and response handling.

A single call crosses URL expansion, the middleware chain, the native httpx
transport and the response parse nodes.  This module groups the failure modes
into a tidy hierarchy so caller code can react to high-level categories (for
example, a redirect security violation vs. a transport timeout) while still
having access to specialised subclasses when finer-grained handling is
required.

``ApiError`` is the one category generated clients subclass: mapped domain
errors derive from it so every surfaced API failure carries the response status
code and headers.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

__all__ = [
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
]


class ClientRuntimeError(RuntimeError):
    """Base exception for request adapter and middleware failures."""


class ConfigurationError(ClientRuntimeError):
    """Raised when adapter, middleware, or settings inputs are invalid."""


class TransportError(ClientRuntimeError):
    """Raised when the native transport fails to produce a response."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class RequestCancelledError(TransportError):
    """Raised when a call observes its cancellation token."""


# ============================================================================
# Redirect failures
# ============================================================================


class RedirectError(ClientRuntimeError):
    """Base exception for redirect handling errors."""


class MissingLocationHeader(RedirectError):
    """Redirect response missing Location header."""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(
            f"Unable to perform redirect as Location header is not set in response "
            f"from {url} (status {status})"
        )


class MissingRedirectRequest(RedirectError):
    """Redirect response does not carry the request it answered, so it cannot be replayed."""

    def __init__(self, status: int):
        self.status = status
        super().__init__(
            f"Unable to perform redirect: response with status {status} has no originating request"
        )


class MaxRedirectsExceeded(RedirectError):
    """Redirect chain exceeds maximum allowed hops."""

    def __init__(self, max_hops: int, actual_hops: List[str]):
        self.max_hops = max_hops
        self.actual_hops = actual_hops
        super().__init__(
            f"Too many redirects performed: exceeded {max_hops} hops. "
            f"Hops: {' -> '.join(actual_hops)}"
        )


class SchemeChangeNotAllowed(RedirectError):
    """Redirect target changes the URL scheme without the option opting in."""

    def __init__(self, source_url: str, target_url: str, from_scheme: str, to_scheme: str):
        self.source_url = source_url
        self.target_url = target_url
        self.from_scheme = from_scheme
        self.to_scheme = to_scheme
        super().__init__(
            f"Redirects with changing schemes not allowed by default "
            f"(scheme changed from {from_scheme} to {to_scheme}). "
            f"Set allow_redirect_on_scheme_change on the redirect option to permit it."
        )


# ============================================================================
# Response handling failures
# ============================================================================


class SerializationError(ClientRuntimeError):
    """Raised when no parse node factory matches a content type or parsing fails."""

    def __init__(self, message: str, *, content_type: Optional[str] = None) -> None:
        super().__init__(message)
        self.content_type = content_type


class ApiError(ClientRuntimeError):
    """Error surfaced for a non-success response.

    Generated domain errors subclass this; the adapter fills in
    ``response_status_code`` and ``response_headers`` before raising.
    """

    def __init__(
        self,
        message: str = "",
        *,
        response_status_code: Optional[int] = None,
        response_headers: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.response_status_code = response_status_code
        self.response_headers: Dict[str, List[str]] = {
            key: list(values) for key, values in (response_headers or {}).items()
        }

    def __str__(self) -> str:
        base = self.message or self.__class__.__name__
        if self.response_status_code is None:
            return base
        return f"{base} (status {self.response_status_code})"
