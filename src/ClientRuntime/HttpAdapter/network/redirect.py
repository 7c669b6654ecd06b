# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.network.redirect",
#   "purpose": "Redirect middleware: bounded manual redirect following with security guards and audit trail.",
#   "sections": [
#     {
#       "id": "redirecthandler",
#       "name": "RedirectHandler",
#       "anchor": "class-redirecthandler",
#       "kind": "class"
#     },
#     {
#       "id": "resolve-redirect-url",
#       "name": "resolve_redirect_url",
#       "anchor": "function-resolve-redirect-url",
#       "kind": "function"
#     },
#     {
#       "id": "format-audit-trail",
#       "name": "format_audit_trail",
#       "anchor": "function-format-audit-trail",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Safe redirect handling: manual redirect following with security audit.

The httpx client is built with ``follow_redirects=False``; this middleware
follows redirects itself so every hop passes explicit checks.

Design:
- **Explicit hops**: the originating request is cloned and replayed per hop
- **Credential guard**: ``Authorization`` is dropped when host or scheme changes
- **Scheme guard**: a scheme change fails unless the option opts in
- **Max hops**: bounded by ``RedirectHandlerOption.max_redirect``
- **Audit trail**: all hops recorded and logged at DEBUG

Example:
    >>> handler = RedirectHandler(RedirectHandlerOption(max_redirect=3))
    >>> handler.redirect_option.max_redirect
    3
"""

import logging
from typing import List, Optional, Tuple

import httpx

from ..cancellation import CancellationToken, raise_if_cancelled
from ..errors import (
    MaxRedirectsExceeded,
    MissingLocationHeader,
    MissingRedirectRequest,
    SchemeChangeNotAllowed,
)
from .instrumentation import start_span
from .middleware import Middleware, clone_request, drain_response
from .options import RedirectHandlerOption, get_request_option
from .policy import REDIRECT_STATUS_CODES, SEE_OTHER

logger = logging.getLogger(__name__)


def is_redirect(status_code: int) -> bool:
    return status_code in REDIRECT_STATUS_CODES


def should_redirect(response: httpx.Response, option: RedirectHandlerOption) -> bool:
    """Redirect-eligible: redirect status, accepted by the policy, and a non-zero budget."""
    return is_redirect(response.status_code) and option.should_redirect(response) and option.max_redirect > 0


def originating_request(response: httpx.Response) -> Optional[httpx.Request]:
    try:
        return response.request
    except RuntimeError:
        return None


def resolve_redirect_url(current: httpx.URL, location: str) -> httpx.URL:
    """Absolute locations replace the URL; relative ones keep the current scheme and host.

    Examples:
        >>> str(resolve_redirect_url(httpx.URL("https://a.example/x/y"), "/z?q=1"))
        'https://a.example/z?q=1'
        >>> str(resolve_redirect_url(httpx.URL("https://a.example/x"), "http://b.example/"))
        'http://b.example/'
    """
    target = httpx.URL(location)
    if target.is_absolute_url:
        return target
    return current.join(location)


class RedirectHandler(Middleware):
    """Follows 301/302/303/307/308 responses up to the configured hop budget."""

    def __init__(self, redirect_option: Optional[RedirectHandlerOption] = None) -> None:
        super().__init__()
        self.redirect_option = redirect_option or RedirectHandlerOption()

    async def send(self, request: httpx.Request, cancellation: Optional[CancellationToken] = None) -> httpx.Response:
        option = get_request_option(request, RedirectHandlerOption) or self.redirect_option

        with start_span(request, "RedirectHandler_send", **{"com.clientruntime.handler.redirect.enable": True}):
            response = await self.send_next(request, cancellation)
            if not should_redirect(response, option):
                return response
            return await self._follow(request, response, option, cancellation)

    async def _follow(
        self,
        request: httpx.Request,
        response: httpx.Response,
        option: RedirectHandlerOption,
        cancellation: Optional[CancellationToken],
    ) -> httpx.Response:
        audit_trail: List[Tuple[str, int]] = [(str(request.url), response.status_code)]
        redirect_count = 0

        while redirect_count < option.max_redirect:
            raise_if_cancelled(cancellation)
            with start_span(
                request,
                f"RedirectHandler_send - redirect {redirect_count}",
                **{
                    "com.clientruntime.handler.redirect.count": redirect_count,
                    "http.response.status_code": response.status_code,
                },
            ):
                await drain_response(response)

                previous = originating_request(response)
                if previous is None:
                    raise MissingRedirectRequest(response.status_code)

                location = response.headers.get("location")
                if not location:
                    raise MissingLocationHeader(str(previous.url), response.status_code)

                new_url = resolve_redirect_url(previous.url, location)
                if response.status_code == SEE_OTHER:
                    new_request = clone_request(previous, method="GET", url=new_url, content=None)
                else:
                    new_request = clone_request(previous, url=new_url)

                if new_url.host != request.url.host or new_url.scheme != request.url.scheme:
                    if "authorization" in new_request.headers:
                        del new_request.headers["authorization"]

                if new_url.scheme != request.url.scheme and not option.allow_redirect_on_scheme_change:
                    logger.warning(
                        "Refusing redirect with scheme change",
                        extra={"source": str(request.url), "target": str(new_url), "hop": redirect_count},
                    )
                    raise SchemeChangeNotAllowed(str(request.url), str(new_url), request.url.scheme, new_url.scheme)

                logger.debug(
                    "Following redirect",
                    extra={
                        "from": str(previous.url),
                        "to": str(new_url),
                        "status": response.status_code,
                        "hop": redirect_count + 1,
                    },
                )
                response = await self.send_next(new_request, cancellation)
                audit_trail.append((str(new_url), response.status_code))

            if should_redirect(response, option):
                redirect_count += 1
            else:
                logger.debug(
                    "Redirect following complete",
                    extra={"final_status": response.status_code, "trail": format_audit_trail(audit_trail)},
                )
                return response

        await drain_response(response)
        raise MaxRedirectsExceeded(option.max_redirect, [url for url, _ in audit_trail])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(max_redirect={self.redirect_option.max_redirect})"


def format_audit_trail(audit_trail: List[Tuple[str, int]]) -> str:
    """Format audit trail for logging/display.

    Args:
        audit_trail: List of (url, status) tuples

    Returns:
        Formatted string like "http://a (301) -> http://b (200)"
    """
    return " -> ".join(f"{url} ({status})" for url, status in audit_trail)


__all__ = [
    "RedirectHandler",
    "is_redirect",
    "should_redirect",
    "resolve_redirect_url",
    "format_audit_trail",
]
