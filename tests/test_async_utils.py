"""Tests for async_utils.py - async_retry and poll_until."""

import asyncio
import time

import pytest

from orm_discovery.shared.async_utils import async_retry, poll_until
from orm_discovery.shared.exceptions import APIError, TransientNetworkError


class TestAsyncRetry:
    async def test_returns_first_success(self):
        calls = 0

        @async_retry(max_attempts=3, base_delay=0.0)
        async def succeed():
            nonlocal calls
            calls += 1
            return "ok"

        assert await succeed() == "ok"
        assert calls == 1

    async def test_retries_retryable_errors(self):
        calls = 0

        @async_retry(max_attempts=3, base_delay=0.0)
        async def flaky():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise TransientNetworkError("try again")
            return calls

        assert await flaky() == 3

    async def test_gives_up_after_max_attempts(self):
        calls = 0

        @async_retry(max_attempts=2, base_delay=0.0)
        async def always_fails():
            nonlocal calls
            calls += 1
            raise TransientNetworkError("down")

        with pytest.raises(TransientNetworkError):
            await always_fails()
        assert calls == 2

    async def test_non_retryable_raises_immediately(self):
        calls = 0

        @async_retry(max_attempts=5, base_delay=0.0)
        async def bad_request():
            nonlocal calls
            calls += 1
            raise APIError("bad request", status_code=400)

        with pytest.raises(APIError):
            await bad_request()
        assert calls == 1

    async def test_custom_retryable_check(self):
        calls = 0

        @async_retry(max_attempts=3, base_delay=0.0, retryable_check=lambda e: isinstance(e, OSError))
        async def launch():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise OSError("spawn failed")
            return "browser"

        assert await launch() == "browser"
        assert calls == 2


class TestPollUntil:
    async def test_returns_first_value(self):
        attempts = 0

        async def probe():
            nonlocal attempts
            attempts += 1
            return "ready" if attempts == 3 else None

        result = await poll_until(probe, timeout=1.0, interval=0.001)
        assert result == "ready"
        assert attempts == 3

    async def test_probes_at_least_once_with_zero_timeout(self):
        async def probe():
            return 42

        assert await poll_until(probe, timeout=0) == 42

    async def test_times_out(self):
        async def never():
            return None

        with pytest.raises(TimeoutError, match="email field"):
            await poll_until(never, timeout=0.05, interval=0.01, description="email field")

    async def test_does_not_overshoot_deadline(self):
        async def never():
            return None

        start = time.monotonic()
        with pytest.raises(TimeoutError):
            await poll_until(never, timeout=0.1, interval=5.0)
        assert time.monotonic() - start < 1.0

    async def test_interval_backoff_is_capped(self):
        sleeps: list[float] = []
        real_sleep = asyncio.sleep

        async def recording_sleep(delay):
            sleeps.append(delay)
            await real_sleep(0)

        attempts = 0

        async def probe():
            nonlocal attempts
            attempts += 1
            return True if attempts == 5 else None

        with pytest.MonkeyPatch.context() as mp:
            mp.setattr("orm_discovery.shared.async_utils.asyncio.sleep", recording_sleep)
            await poll_until(probe, timeout=100, interval=2.0, backoff=2.0, max_interval=5.0)

        assert sleeps == [2.0, 4.0, 5.0, 5.0]

    async def test_probe_exception_propagates(self):
        async def broken():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await poll_until(broken, timeout=1.0)
