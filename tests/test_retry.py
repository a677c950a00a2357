"""Tests for the generic retry helper."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from linkrelay.relay.retry import RetryPolicy, compute_delay, retry_with_backoff


def flaky(failures: int, result="ok"):
    """Coroutine factory failing ``failures`` times before returning ``result``."""
    calls = {"count": 0}

    async def fn():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise ConnectionError(f"failure {calls['count']}")
        return result

    return fn, calls


def test_compute_delay_schedule():
    policy = RetryPolicy()

    assert compute_delay(1, policy, rand=lambda: 0.0) == pytest.approx(1.0)
    assert compute_delay(2, policy, rand=lambda: 0.0) == pytest.approx(2.0)
    assert compute_delay(3, policy, rand=lambda: 0.5) == pytest.approx(4.5)
    assert compute_delay(10, policy, rand=lambda: 0.99) == pytest.approx(10.0)


def test_policy_from_milliseconds():
    policy = RetryPolicy.from_milliseconds(max_attempts=5, base_delay_ms=250, max_delay_ms=2000, jitter_ms=100)

    assert policy == RetryPolicy(max_attempts=5, base_delay=0.25, max_delay=2.0, jitter=0.1)


def test_policy_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


@pytest.mark.asyncio
async def test_fail_twice_then_succeed_calls_three_times():
    fn, calls = flaky(2, result="value")
    sleep = AsyncMock()

    result = await retry_with_backoff(fn, "Flaky op", RetryPolicy(), sleep=sleep)

    assert result == "value"
    assert calls["count"] == 3
    assert sleep.await_count == 2
    first_delay, second_delay = (call.args[0] for call in sleep.await_args_list)
    assert 1.0 <= first_delay <= 2.0
    assert 2.0 <= second_delay <= 3.0


@pytest.mark.asyncio
async def test_always_failing_raises_original_error_after_max_attempts():
    fn, calls = flaky(100)
    sleep = AsyncMock()

    with pytest.raises(ConnectionError) as excinfo:
        await retry_with_backoff(fn, "Sending message", RetryPolicy(max_attempts=4), sleep=sleep)

    assert calls["count"] == 4
    assert sleep.await_count == 3
    assert str(excinfo.value) == "failure 4"
    assert any("Sending message" in note for note in excinfo.value.__notes__)


@pytest.mark.asyncio
async def test_non_retriable_error_is_raised_immediately():
    fn, calls = flaky(100)
    sleep = AsyncMock()

    with pytest.raises(ConnectionError) as excinfo:
        await retry_with_backoff(fn, "Op", RetryPolicy(), should_retry=lambda exc: False, sleep=sleep)

    assert calls["count"] == 1
    sleep.assert_not_awaited()
    assert any("not retriable" in note for note in excinfo.value.__notes__)


@pytest.mark.asyncio
async def test_cancellation_is_not_retried():
    fn = AsyncMock(side_effect=asyncio.CancelledError())
    sleep = AsyncMock()

    with pytest.raises(asyncio.CancelledError):
        await retry_with_backoff(fn, "Op", RetryPolicy(), sleep=sleep)

    assert fn.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_single_attempt_policy_does_not_sleep():
    fn, calls = flaky(1)
    sleep = AsyncMock()

    with pytest.raises(ConnectionError):
        await retry_with_backoff(fn, "Op", RetryPolicy(max_attempts=1), sleep=sleep)

    assert calls["count"] == 1
    sleep.assert_not_awaited()
