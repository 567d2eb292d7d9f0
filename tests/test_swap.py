"""Tests for swap quoting and swap messages."""

import pytest

from tonwallet.errors import InsufficientFunds, MalformedPoolData
from tonwallet.rpc.gateway import GetMethodResult
from tonwallet.services.swap import (
    DEFAULT_PROTOCOL_FEE,
    SwapEngine,
    parse_pool_state,
    quote,
)
from tonwallet.services.transfer import DEFAULT_NETWORK_FEE
from tonwallet.ton.address import Address
from tonwallet.ton.cell import Cell
from tonwallet.ton.payloads import (
    JETTON_TRANSFER_OP,
    SWAP_NATIVE_TO_TOKEN_OP,
    SWAP_TOKEN_TO_NATIVE_OP,
)
from tonwallet.tokens import get_jetton
from tonwallet.types import PoolState, SwapDirection, SwapPool, SwapQuote

from tests.helpers import JETTON_WALLET, POOL_ADDRESS, unpack_internal


@pytest.fixture
def engine(rpc, transfers):
    return SwapEngine(rpc, transfers)


@pytest.fixture
def pool():
    return SwapPool(POOL_ADDRESS, get_jetton("USDT"))


class TestQuote:
    def test_small_pool_example(self):
        state = PoolState(token_reserve=1000, native_reserve=2000, lp_supply=1)
        q = quote(state, 10, SwapDirection.NATIVE_TO_TOKEN, slippage_bps=100)
        assert q.expected_output == 5
        assert q.minimum_output == 4

    def test_token_to_native_uses_other_side(self):
        state = PoolState(token_reserve=1000, native_reserve=2000, lp_supply=1)
        q = quote(state, 10, SwapDirection.TOKEN_TO_NATIVE, slippage_bps=100)
        assert q.expected_output == 20
        assert q.minimum_output == 19

    def test_floor_rounding(self):
        state = PoolState(token_reserve=7, native_reserve=3, lp_supply=1)
        q = quote(state, 2, SwapDirection.NATIVE_TO_TOKEN, slippage_bps=0)
        assert q.expected_output == 4  # 14 // 3

    def test_minimum_never_exceeds_expected(self):
        state = PoolState(token_reserve=10**12, native_reserve=10**9, lp_supply=1)
        for bps in (0, 1, 50, 100, 9999, 10000):
            q = quote(state, 123_456, SwapDirection.NATIVE_TO_TOKEN, bps)
            assert q.minimum_output <= q.expected_output

    def test_empty_input_reserve(self):
        state = PoolState(token_reserve=1000, native_reserve=0, lp_supply=0)
        with pytest.raises(MalformedPoolData):
            quote(state, 10, SwapDirection.NATIVE_TO_TOKEN)

    def test_bad_amount_and_slippage(self):
        state = PoolState(1, 1, 1)
        with pytest.raises(ValueError):
            quote(state, 0, SwapDirection.NATIVE_TO_TOKEN)
        with pytest.raises(ValueError):
            quote(state, 1, SwapDirection.NATIVE_TO_TOKEN, slippage_bps=10001)

    def test_quote_invariant_enforced(self):
        with pytest.raises(ValueError):
            SwapQuote(SwapDirection.NATIVE_TO_TOKEN, 1, 4, 5, 100)


class TestPoolState:
    def test_parse(self):
        state = parse_pool_state([4, 2, 1, 99])
        assert state == PoolState(token_reserve=4, native_reserve=2, lp_supply=1)

    @pytest.mark.parametrize("stack", [[], [1, 2], [1, Cell(), 3], [1, -2, 3]])
    def test_malformed(self, stack):
        with pytest.raises(MalformedPoolData):
            parse_pool_state(stack)

    @pytest.mark.asyncio
    async def test_fetch_with_non_numeric_stack(self, rpc, engine):
        rpc.run_get_method.return_value = GetMethodResult(0, [Cell(), Cell(), Cell()])
        with pytest.raises(MalformedPoolData):
            await engine.get_pool_state(POOL_ADDRESS)

    @pytest.mark.asyncio
    async def test_get_quote_reads_fresh_reserves(self, rpc, engine):
        q = await engine.get_quote(POOL_ADDRESS, 1_000, SwapDirection.NATIVE_TO_TOKEN)
        rpc.run_get_method.assert_awaited_once_with(POOL_ADDRESS, "get_pool_data")
        assert q.expected_output == 2_000  # 1000 * 4_000_000 // 2_000_000


class TestBuildSwap:
    @pytest.mark.asyncio
    async def test_native_to_token(self, engine, pool, identity):
        q = quote(PoolState(4_000_000, 2_000_000, 1), 1_000_000_000, SwapDirection.NATIVE_TO_TOKEN)
        signed = await engine.build_swap(identity, q, pool)

        destination, value, payload = unpack_internal(signed)
        assert destination == Address.parse(POOL_ADDRESS)
        assert value == 1_000_000_000 + DEFAULT_NETWORK_FEE
        assert payload.load_uint(32) == SWAP_NATIVE_TO_TOKEN_OP
        payload.load_uint(64)
        assert payload.load_coins() == 1_000_000_000
        assert payload.load_coins() == q.minimum_output
        assert payload.load_address() == identity.wallet_address

    @pytest.mark.asyncio
    async def test_token_to_native(self, engine, pool, identity):
        q = quote(PoolState(4_000_000, 2_000_000, 1), 100_000, SwapDirection.TOKEN_TO_NATIVE)
        signed = await engine.build_swap(identity, q, pool)

        assert signed.asset.symbol == "USDT"
        assert signed.fee == DEFAULT_NETWORK_FEE + DEFAULT_PROTOCOL_FEE

        destination, value, payload = unpack_internal(signed)
        assert destination == JETTON_WALLET
        assert value == DEFAULT_NETWORK_FEE + DEFAULT_PROTOCOL_FEE
        assert payload.load_uint(32) == JETTON_TRANSFER_OP
        payload.load_uint(64)
        assert payload.load_coins() == 100_000
        assert payload.load_address() == Address.parse(POOL_ADDRESS)
        payload.load_address()
        payload.load_bit()
        assert payload.load_coins() == DEFAULT_PROTOCOL_FEE
        swap = payload.load_maybe_ref().begin_parse()
        assert swap.load_uint(32) == SWAP_TOKEN_TO_NATIVE_OP

    @pytest.mark.asyncio
    async def test_native_balance_must_cover_amount_and_fee(self, rpc, engine, pool, identity):
        rpc.get_balance.return_value = 1_000_000_000
        q = quote(PoolState(4_000_000, 2_000_000, 1), 1_000_000_000, SwapDirection.NATIVE_TO_TOKEN)

        with pytest.raises(InsufficientFunds):
            await engine.build_swap(identity, q, pool)
        rpc.send_boc.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_swap_needs_fee_in_native(self, rpc, engine, pool, identity):
        rpc.get_balance.return_value = DEFAULT_NETWORK_FEE + DEFAULT_PROTOCOL_FEE - 1
        q = quote(PoolState(4_000_000, 2_000_000, 1), 100, SwapDirection.TOKEN_TO_NATIVE)

        with pytest.raises(InsufficientFunds) as exc_info:
            await engine.build_swap(identity, q, pool)
        assert exc_info.value.asset == "TON"

    @pytest.mark.asyncio
    async def test_direction_mismatch(self, engine, pool, identity):
        q = quote(PoolState(10, 10, 1), 1, SwapDirection.NATIVE_TO_TOKEN)
        with pytest.raises(ValueError):
            await engine.build_swap(identity, q, pool, SwapDirection.TOKEN_TO_NATIVE)
