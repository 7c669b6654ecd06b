"""Cooperative cancellation primitives threaded through every middleware hop.

A single :class:`CancellationToken` travels with a call from the adapter down
to the native transport.  Middleware check it before delegating; the terminal
transport and retry sleeps register callbacks so an in-flight network call or
backoff wait is aborted as soon as the token is cancelled, even when
``cancel()`` is invoked from another thread.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Callable, List, Optional

from .errors import RequestCancelledError

__all__ = ["CancellationToken", "raise_if_cancelled", "cancellable_sleep"]


class CancellationToken:
    """Thread-safe cancellation token for cooperative request cancellation.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    def cancel(self) -> None:
        """Signal that cancellation has been requested and notify listeners."""
        with self._lock:
            if self._is_cancelled.is_set():
                return
            self._is_cancelled.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._is_cancelled.is_set()

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation; returns a function that unregisters it.

        If the token is already cancelled the callback runs immediately.
        """
        with self._lock:
            if not self._is_cancelled.is_set():
                self._callbacks.append(callback)

                def _unregister() -> None:
                    with self._lock:
                        try:
                            self._callbacks.remove(callback)
                        except ValueError:
                            pass

                return _unregister
        callback()
        return lambda: None

    def raise_if_cancelled(self, message: str = "Request was cancelled") -> None:
        if self._is_cancelled.is_set():
            raise RequestCancelledError(message)


def raise_if_cancelled(token: Optional[CancellationToken], message: str = "Request was cancelled") -> None:
    """Raise :class:`RequestCancelledError` when ``token`` is present and cancelled."""
    if token is not None:
        token.raise_if_cancelled(message)


async def cancellable_sleep(delay: float, cancellation: Optional[CancellationToken] = None) -> None:
    """Sleep for ``delay`` seconds, waking early and raising if the token is cancelled."""
    if cancellation is None:
        await asyncio.sleep(delay)
        return

    cancellation.raise_if_cancelled()
    loop = asyncio.get_running_loop()
    waiter: asyncio.Future = loop.create_future()

    def _wake() -> None:
        if not waiter.done():
            waiter.set_result(None)

    unregister = cancellation.register(lambda: loop.call_soon_threadsafe(_wake))
    try:
        await asyncio.wait_for(waiter, timeout=max(0.0, delay))
    except asyncio.TimeoutError:
        pass
    finally:
        unregister()
    cancellation.raise_if_cancelled("Request was cancelled while waiting to retry")
