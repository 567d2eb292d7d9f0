"""Native and jetton balance resolution for a wallet."""

import logging
from typing import Optional

from tonwallet.errors import RpcError
from tonwallet.rpc.gateway import RpcGateway
from tonwallet.ton.address import Address
from tonwallet.types import Asset, TokenBalance, WalletBalances
from tonwallet.services.prices import PriceFeed

logger = logging.getLogger(__name__)


class BalanceAggregator:
    """Resolves balances through the RPC gateway.

    A jetton the owner has never held has no jetton wallet contract; that case
    and any other RPC failure while resolving a jetton yield a zero balance.
    """

    def __init__(
        self,
        rpc: RpcGateway,
        jettons: Optional[list[Asset]] = None,
        price_feed: Optional[PriceFeed] = None,
    ):
        self.rpc = rpc
        self.jettons = list(jettons or [])
        self.price_feed = price_feed

    async def get_native_balance(self, address: str) -> TokenBalance:
        amount = await self.rpc.get_balance(address)
        return TokenBalance(Asset.native(), amount)

    async def resolve_jetton_wallet(self, owner: str, asset: Asset) -> Address:
        """Jetton wallet contract holding the owner's balance of asset."""
        return await self.rpc.get_wallet_address(asset.master, Address.parse(owner))

    async def get_jetton_balance(self, owner: str, asset: Asset) -> TokenBalance:
        """Balance of one jetton; zero when the jetton wallet cannot be read."""
        try:
            jetton_wallet = await self.resolve_jetton_wallet(owner, asset)
            wallet_str = jetton_wallet.to_string(bounceable=True)
            amount = await self.rpc.get_jetton_balance(wallet_str)
        except RpcError as e:
            logger.warning(f"{asset.symbol} balance for {owner} resolved to 0: {e}")
            return TokenBalance(asset, 0)
        return TokenBalance(asset, amount, contract_address=wallet_str)

    async def get_balances(self, address: str) -> WalletBalances:
        """Native balance, tracked jetton balances and the native USD price.

        Raises:
            RpcError: If the native balance cannot be fetched.
        """
        native = await self.get_native_balance(address)
        tokens = [await self.get_jetton_balance(address, asset) for asset in self.jettons]

        price = await self.price_feed.get_price() if self.price_feed else None
        balances = WalletBalances(address=address, native=native, tokens=tokens)
        if price is not None:
            balances.price_usd = price

        logger.debug(
            f"Balances for {address}: {native.display} TON, "
            f"{', '.join(f'{t.display} {t.symbol}' for t in tokens) or 'no jettons'}"
        )
        return balances
