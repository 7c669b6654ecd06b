# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.network.client",
#   "purpose": "httpx.AsyncClient factory and the default middleware set.",
#   "sections": [
#     {
#       "id": "create-http-client",
#       "name": "create_http_client",
#       "anchor": "function-create-http-client",
#       "kind": "function"
#     },
#     {
#       "id": "create-default-handlers",
#       "name": "create_default_handlers",
#       "anchor": "function-create-default-handlers",
#       "kind": "function"
#     },
#     {
#       "id": "create-ssl-context",
#       "name": "_create_ssl_context",
#       "anchor": "function-create-ssl-context",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX client factory and default middleware.

Key design:
- **Redirects off in httpx**: ``follow_redirects=False``; :class:`RedirectHandler`
  follows each hop itself.
- **Config binding**: timeouts, pooling, HTTP/2 and TLS come from
  :class:`~ClientRuntime.HttpAdapter.settings.HttpSettings`.
- **TLS**: certifi bundle with hostname checks; verification can only be turned
  off explicitly, with a warning.
- **Instrumentation**: ``net.request`` event hooks when request logging is on.

Example:
    >>> from ClientRuntime.HttpAdapter.authentication import AnonymousAuthenticationProvider
    >>> client = create_http_client()
    >>> handlers = create_default_handlers(AnonymousAuthenticationProvider())
    >>> [type(handler).__name__ for handler in handlers][:2]
    ['UserAgentHandler', 'TelemetryHandler']
"""

import logging
import ssl
from typing import List, Optional

import certifi
import httpx

from ..authentication import AuthenticationProvider
from ..settings import AdapterSettings, get_settings
from .auth_challenge import AuthenticationChallengeHandler
from .compression import CompressionHandler
from .instrumentation import create_http_event_hooks
from .middleware import Middleware
from .options import (
    CompressionHandlerOption,
    RedirectHandlerOption,
    RetryHandlerOption,
    UserAgentHandlerOption,
)
from .policy import FOLLOW_REDIRECTS
from .redirect import RedirectHandler
from .retry import RetryHandler
from .telemetry import TelemetryHandler
from .user_agent import UserAgentHandler

logger = logging.getLogger(__name__)


def _create_ssl_context(verify_tls: bool) -> ssl.SSLContext:
    """Create SSL context with secure defaults.

    Uses the certifi bundle; refuses self-signed or weak certs unless
    verification was disabled in settings.
    """
    if not verify_tls:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        logger.warning("TLS verification DISABLED (development only!)")
        return ctx

    ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def create_http_client(
    settings: Optional[AdapterSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the ``httpx.AsyncClient`` used by the terminal transport.

    Args:
        settings: Adapter settings; the process-wide settings when omitted.
        transport: Optional custom transport (``httpx.MockTransport`` in tests).

    Returns:
        Configured client with redirects disabled.
    """
    settings = settings or get_settings()
    http = settings.http

    client = httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(
            connect=http.timeout_connect,
            read=http.timeout_read,
            write=http.timeout_write,
            pool=http.timeout_pool,
        ),
        limits=httpx.Limits(
            max_connections=http.pool_max_connections,
            max_keepalive_connections=http.pool_keepalive_max,
            keepalive_expiry=http.keepalive_expiry,
        ),
        http2=http.http2,
        follow_redirects=FOLLOW_REDIRECTS,
        verify=_create_ssl_context(http.verify_tls),
        trust_env=http.trust_env,
        event_hooks=create_http_event_hooks() if settings.logging.log_requests else None,
    )

    logger.debug(
        "HTTPX client created",
        extra={
            "http2": http.http2,
            "max_connections": http.pool_max_connections,
            "max_keepalive": http.pool_keepalive_max,
            "config_hash": settings.config_hash(),
        },
    )
    return client


def create_default_handlers(
    authentication_provider: AuthenticationProvider,
    settings: Optional[AdapterSettings] = None,
) -> List[Middleware]:
    """Return the default middleware, outermost first.

    User agent and telemetry run first so every resend inherits their headers;
    the claims challenge sits outside retry and redirect so a re-authenticated
    request goes through both again.
    """
    settings = settings or get_settings()
    return [
        UserAgentHandler(
            UserAgentHandlerOption(
                product_name=settings.telemetry.product_name,
                product_version=settings.telemetry.product_version,
            )
        ),
        TelemetryHandler(),
        AuthenticationChallengeHandler(authentication_provider),
        RetryHandler(
            RetryHandlerOption(
                max_retries=settings.retry.max_retries,
                delay=settings.retry.delay,
                max_delay=settings.retry.max_delay,
            )
        ),
        RedirectHandler(
            RedirectHandlerOption(
                max_redirect=settings.redirect.max_redirect,
                allow_redirect_on_scheme_change=settings.redirect.allow_redirect_on_scheme_change,
            )
        ),
        CompressionHandler(CompressionHandlerOption(enabled=settings.compression.enabled)),
    ]


__all__ = ["create_http_client", "create_default_handlers"]
