"""Tests for cancellation tokens and cancellable sleeps."""

import asyncio
import threading

import pytest

from ClientRuntime.HttpAdapter.cancellation import CancellationToken, cancellable_sleep, raise_if_cancelled
from ClientRuntime.HttpAdapter.errors import RequestCancelledError


class TestCancellationToken:
    def test_callbacks_run_once(self):
        token = CancellationToken()
        calls = []
        token.register(lambda: calls.append(1))
        token.cancel()
        token.cancel()
        assert calls == [1]

    def test_register_after_cancel_runs_immediately(self):
        token = CancellationToken()
        token.cancel()
        calls = []
        token.register(lambda: calls.append(1))
        assert calls == [1]

    def test_unregister(self):
        token = CancellationToken()
        calls = []
        unregister = token.register(lambda: calls.append(1))
        unregister()
        token.cancel()
        assert calls == []

    def test_raise_if_cancelled(self):
        raise_if_cancelled(None)
        token = CancellationToken()
        raise_if_cancelled(token)
        token.cancel()
        with pytest.raises(RequestCancelledError):
            raise_if_cancelled(token)


class TestCancellableSleep:
    @pytest.mark.asyncio
    async def test_sleep_without_token(self):
        await cancellable_sleep(0)

    @pytest.mark.asyncio
    async def test_wakes_on_cancel_from_another_thread(self):
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        try:
            with pytest.raises(RequestCancelledError):
                await asyncio.wait_for(cancellable_sleep(30, token), timeout=5)
        finally:
            timer.cancel()

    @pytest.mark.asyncio
    async def test_completes_when_not_cancelled(self):
        await cancellable_sleep(0.01, CancellationToken())
