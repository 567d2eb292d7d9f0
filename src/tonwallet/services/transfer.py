"""Native and jetton transfer construction, signing and broadcast."""

import base64
import logging
import time
from typing import Callable, Optional

from tonwallet.errors import GetMethodFailed, InsufficientFunds
from tonwallet.identity import WalletIdentity
from tonwallet.rpc.gateway import RpcGateway
from tonwallet.services.balances import BalanceAggregator
from tonwallet.ton.address import Address
from tonwallet.ton.cell import Cell, deserialize_boc
from tonwallet.ton.contract import DEFAULT_TIMEOUT, OutgoingMessage
from tonwallet.ton.payloads import jetton_transfer_body
from tonwallet.types import NATIVE_SYMBOL, Asset, SignedMessage

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_FEE = 50_000_000  # 0.05 TON


def load_wallet_code(boc_b64: Optional[str]) -> Optional[Cell]:
    """Parse a wallet code override; None keeps the built-in v4r2 code."""
    if not boc_b64:
        return None
    return deserialize_boc(base64.b64decode(boc_b64))


class TransferBuilder:
    """Builds signed transfers after checking balances.

    Nothing is signed or sent unless every precondition holds.
    """

    def __init__(
        self,
        rpc: RpcGateway,
        balances: BalanceAggregator,
        network_fee: int = DEFAULT_NETWORK_FEE,
        wallet_code: Optional[Cell] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.rpc = rpc
        self.balances = balances
        self.network_fee = network_fee
        self.wallet_code = wallet_code
        self._clock = clock

    async def check_native(self, identity: WalletIdentity, required: int) -> int:
        """Raise InsufficientFunds unless the native balance covers required."""
        native = await self.balances.get_native_balance(identity.address)
        if native.amount < required:
            raise InsufficientFunds(NATIVE_SYMBOL, required, native.amount)
        return native.amount

    async def check_jetton(self, identity: WalletIdentity, asset: Asset, required: int) -> Address:
        """Raise InsufficientFunds unless the jetton balance covers required.

        Only a jetton wallet that does not exist yet counts as a zero balance;
        every other RPC failure propagates.

        Returns:
            The sender's jetton wallet address
        """
        jetton_wallet = await self.balances.resolve_jetton_wallet(identity.address, asset)
        try:
            available = await self.rpc.get_jetton_balance(jetton_wallet.to_string(bounceable=True))
        except GetMethodFailed as e:
            logger.debug(f"No {asset.symbol} wallet for {identity.address}: {e.message}")
            available = 0

        if available < required:
            raise InsufficientFunds(asset.symbol, required, available)
        return jetton_wallet

    async def build_transfer(
        self,
        identity: WalletIdentity,
        to: str,
        amount: int,
        asset: Optional[Asset] = None,
        network_fee: Optional[int] = None,
    ) -> SignedMessage:
        """Build and sign a transfer of amount base units of asset to `to`.

        Args:
            identity: Sending wallet
            to: Destination address in any accepted form
            amount: Amount in base units of the asset
            asset: Native coin (default) or a jetton
            network_fee: Fee reserve in nanoton; the configured fee by default

        Returns:
            SignedMessage carrying the seqno it consumes

        Raises:
            InvalidAddress: If `to` does not parse
            InsufficientFunds: If a balance check fails
        """
        asset = asset or Asset.native()
        fee = self.network_fee if network_fee is None else network_fee
        if amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {amount}")

        destination = Address.parse(to)

        if asset.is_native:
            await self.check_native(identity, amount + fee)
            message = OutgoingMessage(destination, amount, bounce=destination.bounceable)
        else:
            await self.check_native(identity, fee)
            jetton_wallet = await self.check_jetton(identity, asset, amount)
            body = jetton_transfer_body(amount, destination)
            message = OutgoingMessage(jetton_wallet, fee, bounce=True, body=body)

        seqno = await self.rpc.get_seqno(identity.address)
        return self.sign(
            identity,
            seqno,
            [message],
            destination=destination.to_string(),
            amount=amount,
            asset=asset,
            fee=fee,
        )

    def sign(
        self,
        identity: WalletIdentity,
        seqno: int,
        messages: list[OutgoingMessage],
        *,
        destination: str,
        amount: int,
        asset: Asset,
        fee: int,
    ) -> SignedMessage:
        """Sign messages into an external message for the identity's wallet."""
        valid_until = int(self._clock()) + DEFAULT_TIMEOUT
        wallet = identity.wallet(code=self.wallet_code)
        external = wallet.create_transfer(identity.sign, seqno, messages, valid_until)
        return SignedMessage(
            boc=base64.b64encode(external.to_boc()).decode(),
            seqno=seqno,
            hash=external.hash.hex(),
            destination=destination,
            amount=amount,
            asset=asset,
            fee=fee,
            valid_until=valid_until,
        )

    async def send(self, message: SignedMessage) -> SignedMessage:
        """Broadcast a signed message."""
        await self.rpc.send_boc(message.boc)
        logger.info(
            f"Sent {message.amount} {message.asset.symbol} to {message.destination} "
            f"(seqno {message.seqno}, hash {message.hash})"
        )
        return message
