"""Tests for retry with exponential backoff."""

from unittest.mock import AsyncMock

import pytest

from tonwallet.errors import RpcExhausted, RpcPermanent, RpcTransient
from tonwallet.rpc.retry import backoff_delay, retry_async


def test_backoff_doubles():
    assert [backoff_delay(n, 1.0) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]
    assert backoff_delay(2, 0.5) == 1.0


@pytest.mark.asyncio
async def test_succeeds_after_transient_failures():
    sleep = AsyncMock()
    fn = AsyncMock(side_effect=[RpcTransient("429", 429), RpcTransient("503", 503), 42])

    result = await retry_async(fn, max_attempts=3, base_delay=1.0, sleep=sleep)

    assert result == 42
    assert fn.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_permanent_error_not_retried():
    sleep = AsyncMock()
    error = RpcPermanent("bad request", 400)
    fn = AsyncMock(side_effect=error)

    with pytest.raises(RpcPermanent) as exc_info:
        await retry_async(fn, max_attempts=3, sleep=sleep)

    assert exc_info.value is error
    assert fn.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_exhaustion_wraps_last_error():
    sleep = AsyncMock()
    last = RpcTransient("still down", 503)
    fn = AsyncMock(side_effect=[RpcTransient("down", 503), RpcTransient("down", 503), last])

    with pytest.raises(RpcExhausted) as exc_info:
        await retry_async(fn, max_attempts=3, sleep=sleep)

    assert exc_info.value.attempts == 3
    assert exc_info.value.last_error is last
    assert exc_info.value.__cause__ is last
    # no sleep after the final attempt
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_custom_classifier():
    sleep = AsyncMock()
    fn = AsyncMock(side_effect=[KeyError("x"), "ok"])

    result = await retry_async(
        fn, max_attempts=2, sleep=sleep, is_transient=lambda e: isinstance(e, KeyError)
    )

    assert result == "ok"


@pytest.mark.asyncio
async def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        await retry_async(AsyncMock(), max_attempts=0)
