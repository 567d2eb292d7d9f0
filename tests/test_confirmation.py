"""Tests for seqno-based confirmation tracking."""

from unittest.mock import AsyncMock

import pytest

from tonwallet.errors import ConfirmationTimeout, RpcExhausted, RpcPermanent, RpcTransient
from tonwallet.services.confirmation import ConfirmationTracker


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.mark.asyncio
async def test_confirms_when_seqno_advances(rpc, identity, sleep):
    rpc.get_seqno.side_effect = [5, 5, 6]
    tracker = ConfirmationTracker(rpc, interval=3.0, max_attempts=10, sleep=sleep)

    assert await tracker.await_confirmation(identity, 5) == 6
    assert rpc.get_seqno.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [3.0, 3.0, 3.0]


@pytest.mark.asyncio
async def test_timeout_after_max_polls(rpc, identity, sleep):
    rpc.get_seqno.return_value = 5
    tracker = ConfirmationTracker(rpc, max_attempts=10, sleep=sleep)

    with pytest.raises(ConfirmationTimeout) as exc_info:
        await tracker.await_confirmation(identity, 5)

    assert exc_info.value.seqno == 5
    assert exc_info.value.attempts == 10
    assert rpc.get_seqno.await_count == 10


@pytest.mark.asyncio
async def test_exhausted_poll_counts_as_attempt(rpc, identity, sleep):
    rpc.get_seqno.side_effect = [RpcExhausted(3, RpcTransient("503")), 7]
    tracker = ConfirmationTracker(rpc, max_attempts=3, sleep=sleep)

    assert await tracker.await_confirmation(identity, 6) == 7
    assert rpc.get_seqno.await_count == 2


@pytest.mark.asyncio
async def test_permanent_error_propagates(rpc, identity, sleep):
    rpc.get_seqno.side_effect = RpcPermanent("bad")
    tracker = ConfirmationTracker(rpc, sleep=sleep)

    with pytest.raises(RpcPermanent):
        await tracker.await_confirmation(identity, 1)
