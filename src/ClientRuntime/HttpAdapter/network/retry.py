"""Retry middleware: Tenacity-based backoff for transient HTTP failures.

Responses with status 429, 503 or 504 are retried with full-jitter
exponential backoff, honouring ``Retry-After`` when the server sends one.

Design:
- **Full-jitter exponential backoff**: Reduces synchronized retry storms
- **Retry-After support**: Respects server guidance, capped at ``max_delay``
- **Replayable bodies only**: Streaming request bodies are never resent
- **Attempt header**: Each resend carries ``Retry-Attempt: <n>``
- **Cancellable sleeps**: Waiting between attempts aborts when the token fires

Example:
    >>> handler = RetryHandler(RetryHandlerOption(max_retries=2, delay=0.5))
    >>> handler.retry_option.max_retries
    2
"""

import email.utils
import functools
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from ..cancellation import CancellationToken, cancellable_sleep
from .instrumentation import start_span
from .middleware import Middleware, clone_request, drain_response, is_replayable
from .options import RetryHandlerOption, get_request_option
from .policy import RETRY_AFTER_HEADER, RETRY_ATTEMPT_HEADER, RETRY_STATUS_CODES

logger = logging.getLogger(__name__)


def _parse_retry_after_value(value: Optional[str]) -> Optional[float]:
    """Convert a Retry-After header value into a delay in seconds."""
    if not value:
        return None

    try:
        delay = float(int(value))
    except ValueError:
        try:
            dt = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delay = (dt - datetime.now(timezone.utc)).total_seconds()

    return max(0.0, delay)


class _RetryAfterOrBackoff(wait_base):
    """Wait strategy that honours Retry-After before falling back to backoff."""

    def __init__(self, fallback_wait: wait_base, max_delay_seconds: float) -> None:
        self._fallback_wait = fallback_wait
        self._max_delay_seconds = max_delay_seconds

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._retry_after_delay(retry_state)
        if delay is not None:
            return min(delay, float(self._max_delay_seconds))
        return float(self._fallback_wait(retry_state))

    def _retry_after_delay(self, retry_state: RetryCallState) -> Optional[float]:
        outcome = retry_state.outcome
        if outcome is None or outcome.failed:
            return None
        response = outcome.result()
        return _parse_retry_after_value(response.headers.get(RETRY_AFTER_HEADER))


def is_retryable(response: httpx.Response, option: RetryHandlerOption) -> bool:
    return response.status_code in RETRY_STATUS_CODES and option.should_retry(response)


class RetryHandler(Middleware):
    """Replays requests answered with a transient status, up to ``max_retries`` times."""

    def __init__(self, retry_option: Optional[RetryHandlerOption] = None) -> None:
        super().__init__()
        self.retry_option = retry_option or RetryHandlerOption()

    def _build_retrying(
        self, option: RetryHandlerOption, request: httpx.Request, cancellation: Optional[CancellationToken]
    ) -> AsyncRetrying:
        replayable = is_replayable(request)

        def _should_retry(response: httpx.Response) -> bool:
            return replayable and is_retryable(response, option)

        def _log_retry(retry_state: RetryCallState) -> None:
            response = retry_state.outcome.result()
            logger.warning(
                "Retrying request after transient status",
                extra={
                    "method": request.method,
                    "status": response.status_code,
                    "attempt": retry_state.attempt_number,
                    "sleep_seconds": retry_state.upcoming_sleep,
                },
            )

        return AsyncRetrying(
            stop=stop_after_attempt(option.max_retries + 1),
            wait=_RetryAfterOrBackoff(
                fallback_wait=wait_random_exponential(multiplier=option.delay, max=option.max_delay),
                max_delay_seconds=option.max_delay,
            ),
            retry=retry_if_result(_should_retry),
            sleep=functools.partial(cancellable_sleep, cancellation=cancellation),
            before_sleep=_log_retry,
            # Return the last response once the budget is spent
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )

    async def send(self, request: httpx.Request, cancellation: Optional[CancellationToken] = None) -> httpx.Response:
        option = get_request_option(request, RetryHandlerOption) or self.retry_option
        if option.max_retries == 0:
            return await self.send_next(request, cancellation)

        previous: Optional[httpx.Response] = None
        attempt = 0

        async def _attempt() -> httpx.Response:
            nonlocal previous, attempt
            outgoing = request
            if previous is not None:
                await drain_response(previous)
                attempt += 1
                outgoing = clone_request(request)
                outgoing.headers[RETRY_ATTEMPT_HEADER] = str(attempt)
            with start_span(
                outgoing,
                "RetryHandler_send",
                **{"com.clientruntime.handler.retry.enable": True, "http.request.resend_count": attempt},
            ):
                previous = await self.send_next(outgoing, cancellation)
            return previous

        return await self._build_retrying(option, request, cancellation)(_attempt)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(max_retries={self.retry_option.max_retries})"


__all__ = ["RetryHandler", "is_retryable"]
