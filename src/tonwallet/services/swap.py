"""Swap quotes from pool reserves and swap message construction."""

import logging
from typing import Optional

from tonwallet.errors import MalformedPoolData, MalformedResponse
from tonwallet.identity import WalletIdentity
from tonwallet.rpc.gateway import RpcGateway
from tonwallet.services.transfer import TransferBuilder
from tonwallet.ton.address import Address
from tonwallet.ton.contract import OutgoingMessage
from tonwallet.ton.payloads import (
    SWAP_NATIVE_TO_TOKEN_OP,
    SWAP_TOKEN_TO_NATIVE_OP,
    jetton_transfer_body,
    swap_body,
)
from tonwallet.types import (
    Asset,
    PoolState,
    SignedMessage,
    SwapDirection,
    SwapPool,
    SwapQuote,
)

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000
DEFAULT_SLIPPAGE_BPS = 100  # 1%
DEFAULT_PROTOCOL_FEE = 300_000_000  # 0.3 TON


def parse_pool_state(stack: list) -> PoolState:
    """Read (token_reserve, native_reserve, lp_supply) from get_pool_data output.

    Raises:
        MalformedPoolData: If fewer than three numeric entries or a negative reserve.
    """
    if len(stack) < 3:
        raise MalformedPoolData(f"Expected at least 3 pool values, got {len(stack)}")
    values = stack[:3]
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        raise MalformedPoolData("Pool reserves must be numbers")
    token_reserve, native_reserve, lp_supply = values
    if token_reserve < 0 or native_reserve < 0 or lp_supply < 0:
        raise MalformedPoolData("Pool reserves cannot be negative")
    return PoolState(token_reserve=token_reserve, native_reserve=native_reserve, lp_supply=lp_supply)


def quote(
    pool: PoolState,
    amount: int,
    direction: SwapDirection,
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
) -> SwapQuote:
    """Compute expected and minimum output with integer arithmetic.

    expected = amount * reserve_out // reserve_in
    minimum  = expected * (10000 - slippage_bps) // 10000

    Both divisions floor, in both directions.

    Raises:
        MalformedPoolData: If the input-side reserve is empty.
    """
    if amount <= 0:
        raise ValueError(f"Swap amount must be positive, got {amount}")
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"Slippage must be between 0 and {BPS_DENOMINATOR} bps")

    if direction == SwapDirection.NATIVE_TO_TOKEN:
        reserve_in, reserve_out = pool.native_reserve, pool.token_reserve
    else:
        reserve_in, reserve_out = pool.token_reserve, pool.native_reserve

    if reserve_in <= 0:
        raise MalformedPoolData("Pool has no liquidity on the input side")

    expected = amount * reserve_out // reserve_in
    minimum = expected * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR
    return SwapQuote(
        direction=direction,
        amount_in=amount,
        expected_output=expected,
        minimum_output=minimum,
        slippage_bps=slippage_bps,
    )


class SwapEngine:
    """Reads pool reserves, quotes swaps and builds signed swap messages."""

    def __init__(
        self,
        rpc: RpcGateway,
        transfers: TransferBuilder,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        protocol_fee: int = DEFAULT_PROTOCOL_FEE,
    ):
        self.rpc = rpc
        self.transfers = transfers
        self.slippage_bps = slippage_bps
        self.protocol_fee = protocol_fee

    @property
    def network_fee(self) -> int:
        return self.transfers.network_fee

    async def get_pool_state(self, pool_address: str) -> PoolState:
        """Fetch a fresh reserve snapshot."""
        try:
            result = await self.rpc.run_get_method(pool_address, "get_pool_data")
        except MalformedResponse as e:
            raise MalformedPoolData(f"Unreadable pool data for {pool_address}: {e}") from e
        state = parse_pool_state(result.stack)
        logger.debug(
            f"Pool {pool_address}: token={state.token_reserve} native={state.native_reserve}"
        )
        return state

    def quote(
        self, pool: PoolState, amount: int, direction: SwapDirection
    ) -> SwapQuote:
        return quote(pool, amount, direction, self.slippage_bps)

    async def get_quote(
        self, pool_address: str, amount: int, direction: SwapDirection
    ) -> SwapQuote:
        """Quote against the pool's current reserves."""
        return self.quote(await self.get_pool_state(pool_address), amount, direction)

    async def build_swap(
        self,
        identity: WalletIdentity,
        swap_quote: SwapQuote,
        pool: SwapPool,
        direction: Optional[SwapDirection] = None,
    ) -> SignedMessage:
        """Build and sign a swap for a previously computed quote.

        Native input sends amount plus the network fee to the pool with the swap
        payload. Jetton input sends a jetton transfer to the pool that forwards
        the protocol fee and carries the swap payload.

        Raises:
            InsufficientFunds: If the input or fee balance is too low
        """
        direction = direction or swap_quote.direction
        if direction != swap_quote.direction:
            raise ValueError("Quote direction does not match requested direction")

        pool_address = Address.parse(pool.address)
        beneficiary = identity.wallet_address
        fee = self.network_fee

        if direction == SwapDirection.NATIVE_TO_TOKEN:
            asset = Asset.native()
            await self.transfers.check_native(identity, swap_quote.amount_in + fee)
            body = swap_body(
                SWAP_NATIVE_TO_TOKEN_OP,
                swap_quote.amount_in,
                swap_quote.minimum_output,
                beneficiary,
            )
            message = OutgoingMessage(
                pool_address, swap_quote.amount_in + fee, bounce=True, body=body
            )
        else:
            asset = pool.jetton
            fee += self.protocol_fee
            await self.transfers.check_native(identity, fee)
            jetton_wallet = await self.transfers.check_jetton(
                identity, asset, swap_quote.amount_in
            )
            payload = swap_body(
                SWAP_TOKEN_TO_NATIVE_OP,
                swap_quote.amount_in,
                swap_quote.minimum_output,
                beneficiary,
            )
            body = jetton_transfer_body(
                swap_quote.amount_in,
                pool_address,
                forward_ton_amount=self.protocol_fee,
                forward_payload=payload,
            )
            message = OutgoingMessage(jetton_wallet, fee, bounce=True, body=body)

        seqno = await self.rpc.get_seqno(identity.address)
        logger.info(
            f"Swap {direction.value}: {swap_quote.amount_in} in, "
            f"min {swap_quote.minimum_output} out via {pool.address}"
        )
        return self.transfers.sign(
            identity,
            seqno,
            [message],
            destination=pool_address.to_string(),
            amount=swap_quote.amount_in,
            asset=asset,
            fee=fee,
        )
