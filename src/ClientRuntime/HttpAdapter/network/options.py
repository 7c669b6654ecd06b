"""Per-request middleware options.

Each middleware is constructed with a default option object; a request can
override it for one call by carrying an option of the same kind in
:attr:`RequestInformation.request_options`.  The adapter copies those options
into the native request's extensions, where :func:`get_request_option` finds
them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type, TypeVar

import httpx

from ..errors import ConfigurationError
from ..request_information import RequestOption
from .policy import (
    DEFAULT_MAX_REDIRECT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_SECONDS,
    MAX_REDIRECT_LIMIT,
    MAX_RETRY_DELAY_SECONDS,
    MAX_RETRY_LIMIT,
    REQUEST_OPTIONS_EXTENSION,
)

__all__ = [
    "RedirectHandlerOption",
    "RetryHandlerOption",
    "CompressionHandlerOption",
    "TelemetryHandlerOption",
    "UserAgentHandlerOption",
    "ObservabilityOptions",
    "get_request_option",
    "attach_request_options",
]

OptionT = TypeVar("OptionT", bound=RequestOption)

TelemetryConfigurator = Callable[[httpx.Request], httpx.Request]


def _always(_: httpx.Response) -> bool:
    return True


@dataclass
class RedirectHandlerOption(RequestOption):
    """Redirect policy: hop budget, per-response predicate, scheme-change opt-in."""

    max_redirect: int = DEFAULT_MAX_REDIRECT
    should_redirect: Callable[[httpx.Response], bool] = _always
    allow_redirect_on_scheme_change: bool = False

    def __post_init__(self) -> None:
        if self.max_redirect < 0:
            raise ConfigurationError("max_redirect cannot be negative")
        if self.max_redirect > MAX_REDIRECT_LIMIT:
            raise ConfigurationError(f"max_redirect cannot exceed {MAX_REDIRECT_LIMIT}")


@dataclass
class RetryHandlerOption(RequestOption):
    """Transient-failure retry budget and backoff."""

    max_retries: int = DEFAULT_MAX_RETRIES
    delay: float = DEFAULT_RETRY_DELAY_SECONDS
    max_delay: float = MAX_RETRY_DELAY_SECONDS
    should_retry: Callable[[httpx.Response], bool] = _always

    def __post_init__(self) -> None:
        if not 0 <= self.max_retries <= MAX_RETRY_LIMIT:
            raise ConfigurationError(f"max_retries must be between 0 and {MAX_RETRY_LIMIT}")
        if not 0 <= self.delay <= MAX_RETRY_DELAY_SECONDS:
            raise ConfigurationError(f"delay must be between 0 and {MAX_RETRY_DELAY_SECONDS} seconds")
        if not 0 <= self.max_delay <= MAX_RETRY_DELAY_SECONDS:
            raise ConfigurationError(f"max_delay must be between 0 and {MAX_RETRY_DELAY_SECONDS} seconds")


@dataclass
class CompressionHandlerOption(RequestOption):
    enabled: bool = True


@dataclass
class TelemetryHandlerOption(RequestOption):
    """``telemetry_configurator=None`` forwards requests unmodified."""

    telemetry_configurator: Optional[TelemetryConfigurator] = None


@dataclass
class UserAgentHandlerOption(RequestOption):
    enabled: bool = True
    product_name: str = "client-runtime-python"
    product_version: str = "1.0.0"


@dataclass
class ObservabilityOptions(RequestOption):
    """Enables tracing spans in the adapter and middleware for a call."""

    tracer_instrumentation_name: str = "ClientRuntime.HttpAdapter"
    include_euii_attributes: bool = False


def attach_request_options(extensions: Dict[str, object], options: Dict[str, RequestOption]) -> None:
    extensions[REQUEST_OPTIONS_EXTENSION] = dict(options)


def get_request_option(request: httpx.Request, option_type: Type[OptionT]) -> Optional[OptionT]:
    """Return the option of ``option_type`` carried by ``request``, if any."""
    options = request.extensions.get(REQUEST_OPTIONS_EXTENSION) or {}
    option = options.get(option_type.get_key())
    return option if isinstance(option, option_type) else None

