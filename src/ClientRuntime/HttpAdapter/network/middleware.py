# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.network.middleware",
#   "purpose": "Middleware contract, httpx terminal transport, and the handler chain builder.",
#   "sections": [
#     {
#       "id": "middleware",
#       "name": "Middleware",
#       "anchor": "class-middleware",
#       "kind": "class"
#     },
#     {
#       "id": "httpxtransport",
#       "name": "HttpxTransport",
#       "anchor": "class-httpxtransport",
#       "kind": "class"
#     },
#     {
#       "id": "chain-handlers",
#       "name": "chain_handlers",
#       "anchor": "function-chain-handlers",
#       "kind": "function"
#     },
#     {
#       "id": "clone-request",
#       "name": "clone_request",
#       "anchor": "function-clone-request",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Middleware chain: a linked list of request/response transforms.

Every link implements ``send(request, cancellation) -> httpx.Response``.  A
middleware does its work around a call to ``self.next.send(...)``; the final
link is the terminal transport, which has no ``next`` and performs the network
call through ``httpx.AsyncClient``.

Design:
- **Explicit successors**: :func:`chain_handlers` wires ``next`` references in
  argument order, so the first middleware sees the request first and the
  response last.
- **Immutable after build**: the chain is built once per adapter and shared by
  concurrent calls; middleware keep no per-call state on ``self``.
- **Cancellation at every hop**: each link checks the token before
  delegating; the terminal transport also aborts an in-flight call.

Example:
    >>> from ClientRuntime.HttpAdapter.network.redirect import RedirectHandler
    >>> head = chain_handlers(RedirectHandler(), final=HttpxTransport(httpx.AsyncClient()))
    >>> chain_length(head)
    2
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterator, Optional

import httpx

from ..cancellation import CancellationToken, raise_if_cancelled
from ..errors import ConfigurationError, RequestCancelledError, TransportError

logger = logging.getLogger(__name__)

_KEEP = object()

_CONTENT_HEADERS = ("content-length", "content-type", "content-encoding", "content-range", "transfer-encoding")


class Middleware:
    """A link of the chain; delegates to :attr:`next`.

    Subclasses override :meth:`send` and call ``await self.next.send(...)``
    (or :meth:`send_next`) to continue down the chain.
    """

    def __init__(self) -> None:
        self.next: Optional[Middleware] = None

    async def send(self, request: httpx.Request, cancellation: Optional[CancellationToken] = None) -> httpx.Response:
        return await self.send_next(request, cancellation)

    async def send_next(
        self, request: httpx.Request, cancellation: Optional[CancellationToken] = None
    ) -> httpx.Response:
        raise_if_cancelled(cancellation)
        if self.next is None:
            raise ConfigurationError(f"{type(self).__name__} has no next handler to send the request to")
        return await self.next.send(request, cancellation)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class HttpxTransport(Middleware):
    """Terminal link: sends the request with ``httpx.AsyncClient``.

    The call runs as a task so a cancelled token aborts it mid-flight; transport
    failures are re-raised as :class:`TransportError`.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        super().__init__()
        if client is None:
            raise ConfigurationError("client cannot be None")
        self.client = client

    async def send(self, request: httpx.Request, cancellation: Optional[CancellationToken] = None) -> httpx.Response:
        raise_if_cancelled(cancellation)
        task = asyncio.ensure_future(self.client.send(request))
        unregister = lambda: None  # noqa: E731
        if cancellation is not None:
            loop = asyncio.get_running_loop()
            unregister = cancellation.register(lambda: loop.call_soon_threadsafe(task.cancel))
        try:
            return await task
        except asyncio.CancelledError:
            if cancellation is not None and cancellation.is_cancelled():
                raise RequestCancelledError(f"Request to {request.url} was cancelled") from None
            raise
        except httpx.TransportError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}", url=str(request.url)) from exc
        finally:
            unregister()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(client={self.client!r})"


def chain_handlers(*handlers: Middleware, final: Optional[Middleware] = None) -> Optional[Middleware]:
    """Link ``handlers`` in order, ending with ``final``; return the head.

    Returns ``None`` when there are neither handlers nor a final transport.
    Handlers are linked in place, so an instance already linked into another
    chain is rejected.

    Examples:
        >>> chain_handlers() is None
        True
        >>> head = chain_handlers(Middleware())
        >>> head.next is None
        True
    """
    links = [handler for handler in handlers if handler is not None]
    if final is not None:
        links.append(final)
    if not links:
        return None
    if len({id(link) for link in links}) != len(links):
        raise ConfigurationError("The same middleware instance cannot appear twice in a chain")
    linked_handlers = links[:-1] if final is not None else links
    for handler in linked_handlers:
        if handler.next is not None:
            raise ConfigurationError(f"{type(handler).__name__} is already linked into another chain")
    for current, following in zip(links, links[1:]):
        current.next = following
    return links[0]


def iter_chain(head: Optional[Middleware]) -> Iterator[Middleware]:
    current = head
    while current is not None:
        yield current
        current = current.next


def chain_length(head: Optional[Middleware]) -> int:
    return sum(1 for _ in iter_chain(head))


def clone_request(
    request: httpx.Request,
    *,
    method: Optional[str] = None,
    url: Any = None,
    content: Any = _KEEP,
    headers: Optional[httpx.Headers] = None,
) -> httpx.Request:
    """Copy ``request`` so it can be replayed, optionally overriding parts of it.

    ``content=None`` drops the body together with its content headers.
    Streaming bodies that were never read cannot be replayed.
    """
    new_headers = httpx.Headers(headers if headers is not None else request.headers)
    if content is _KEEP:
        try:
            body = request.content
        except httpx.RequestNotRead as exc:
            raise TransportError("Cannot replay a request with an unread streaming body", url=str(request.url)) from exc
    else:
        body = content
        for name in _CONTENT_HEADERS:
            if name in new_headers:
                del new_headers[name]
    extensions: Dict[str, Any] = dict(request.extensions)
    return httpx.Request(
        method or request.method,
        url if url is not None else request.url,
        headers=new_headers,
        content=body if body else None,
        extensions=extensions,
    )


def is_replayable(request: httpx.Request) -> bool:
    """Whether the request body is buffered and can be sent again."""
    return isinstance(request.stream, httpx.ByteStream)


async def drain_response(response: httpx.Response) -> None:
    """Read and close ``response`` to release its pooled connection."""
    try:
        await response.aread()
    finally:
        await response.aclose()


__all__ = [
    "Middleware",
    "HttpxTransport",
    "chain_handlers",
    "chain_length",
    "iter_chain",
    "clone_request",
    "is_replayable",
    "drain_response",
]
