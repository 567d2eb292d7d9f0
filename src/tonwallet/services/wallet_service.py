"""Wallet service: the integration layer between callers, the core and the ledger.

Flow for writes: verify caller -> load identity -> wallet lock -> build ->
record PENDING -> send -> await confirmation -> mark SUCCESS/FAILED.
"""

import logging
from typing import Awaitable, Callable, Optional

from tonwallet.config import Settings, get_settings
from tonwallet.crypto import EncryptedBlob, KeyVault
from tonwallet.errors import Unauthorized, WalletError, WalletNotFound
from tonwallet.identity import WalletIdentity
from tonwallet.ledger.base import Ledger, StoredUser, StoredWallet, VerifiedUser
from tonwallet.rpc.gateway import RpcGateway
from tonwallet.services.balances import BalanceAggregator
from tonwallet.services.confirmation import ConfirmationTracker
from tonwallet.services.history import TransactionHistory
from tonwallet.services.prices import PriceFeed
from tonwallet.services.swap import SwapEngine
from tonwallet.services.transfer import TransferBuilder, load_wallet_code
from tonwallet.tokens import get_jetton, tracked_jettons
from tonwallet.types import (
    NATIVE_SYMBOL,
    Asset,
    PriceCache,
    SignedMessage,
    SwapDirection,
    SwapPool,
    TransactionRecord,
    TxType,
    WalletBalances,
)
from tonwallet.utils.locks import wallet_lock

logger = logging.getLogger(__name__)

Verifier = Callable[[str], Awaitable[Optional[VerifiedUser]]]


class WalletService:
    """Per-caller wallet operations on top of the core components."""

    def __init__(
        self,
        rpc: RpcGateway,
        vault: KeyVault,
        ledger: Ledger,
        verify: Verifier,
        settings: Optional[Settings] = None,
        *,
        balances: Optional[BalanceAggregator] = None,
        transfers: Optional[TransferBuilder] = None,
        swaps: Optional[SwapEngine] = None,
        tracker: Optional[ConfirmationTracker] = None,
        history: Optional[TransactionHistory] = None,
    ):
        settings = settings or get_settings()
        self.rpc = rpc
        self.vault = vault
        self.ledger = ledger
        self.verify = verify

        self.balances = balances or BalanceAggregator(
            rpc,
            tracked_jettons(settings.jetton_symbols),
            PriceFeed(settings.price_feed_url, PriceCache(ttl=settings.price_cache_ttl)),
        )
        self.transfers = transfers or TransferBuilder(
            rpc,
            self.balances,
            network_fee=settings.network_fee,
            wallet_code=load_wallet_code(settings.wallet_code_boc),
        )
        self.swaps = swaps or SwapEngine(
            rpc,
            self.transfers,
            slippage_bps=settings.slippage_bps,
            protocol_fee=settings.swap_protocol_fee,
        )
        self.tracker = tracker or ConfirmationTracker(
            rpc,
            interval=settings.confirmation_interval,
            max_attempts=settings.confirmation_attempts,
        )
        self.history = history or TransactionHistory(rpc)

    async def _authenticate(self, init_data: str) -> VerifiedUser:
        user = await self.verify(init_data)
        if user is None:
            raise Unauthorized("Invalid session data")
        return user

    async def _require_user(self, verified: VerifiedUser) -> StoredUser:
        user = await self.ledger.find_user(verified.id)
        if user is None:
            raise WalletNotFound(f"No wallet for user {verified.id}")
        return user

    async def _load_identity(self, verified: VerifiedUser) -> tuple[StoredUser, WalletIdentity]:
        user = await self._require_user(verified)
        stored = await self.ledger.get_wallet(user.id)
        if stored is None:
            raise WalletNotFound(f"No wallet for user {verified.id}")
        secret = self.vault.decrypt(EncryptedBlob.from_wire(stored.encrypted_key), verified.context)
        return user, WalletIdentity.from_secret_key(secret)

    async def get_or_create_wallet(self, init_data: str) -> dict:
        """Public wallet data, creating user and wallet on first use."""
        verified = await self._authenticate(init_data)
        user = await self.ledger.create_user(verified)
        stored = await self.ledger.get_wallet(user.id)

        if stored is None:
            identity = WalletIdentity.generate()
            blob = self.vault.encrypt(identity.secret_key, verified.context)
            stored = await self.ledger.save_wallet(
                StoredWallet(
                    user_id=user.id,
                    address=identity.address,
                    public_key=identity.public_key_hex,
                    encrypted_key=blob.to_wire(),
                )
            )
            logger.info(f"Provisioned wallet {stored.address} for user {user.id}")

        return {
            "address": stored.address,
            "public_key": stored.public_key,
            "encrypted_key": stored.encrypted_key,
        }

    async def reset_wallet(self, init_data: str) -> bool:
        """Delete the caller's stored wallet. The next access creates a new one."""
        verified = await self._authenticate(init_data)
        user = await self._require_user(verified)
        deleted = await self.ledger.delete_wallet(user.id)
        if deleted:
            logger.warning(f"Wallet of user {user.id} was reset")
        return deleted

    async def get_balances(self, init_data: str) -> WalletBalances:
        verified = await self._authenticate(init_data)
        user = await self._require_user(verified)
        stored = await self.ledger.get_wallet(user.id)
        if stored is None:
            raise WalletNotFound(f"No wallet for user {verified.id}")

        balances = await self.balances.get_balances(stored.address)
        await self.ledger.update_balance(user.id, balances.native.amount)
        return balances

    async def list_transactions(self, init_data: str, limit: int = 50) -> list[TransactionRecord]:
        verified = await self._authenticate(init_data)
        user = await self._require_user(verified)
        return await self.ledger.list_transactions(user.id, limit)

    async def get_chain_history(self, init_data: str, limit: int = 10) -> list[TransactionRecord]:
        """Deposits and withdrawals as seen on chain, newest first."""
        verified = await self._authenticate(init_data)
        user = await self._require_user(verified)
        stored = await self.ledger.get_wallet(user.id)
        if stored is None:
            raise WalletNotFound(f"No wallet for user {verified.id}")
        return await self.history.get_transactions(stored.address, limit)

    async def export_key(self, init_data: str) -> str:
        """Hex secret key of the caller's wallet, decrypted under their context.

        Raises:
            Unauthorized: If the session cannot be verified
            WalletNotFound: If the caller has no wallet
            AuthenticationError: If the stored blob does not open under the context
        """
        verified = await self._authenticate(init_data)
        user, identity = await self._load_identity(verified)
        logger.warning(f"Secret key of wallet {identity.address} exported by user {user.id}")
        return identity.secret_key.hex()

    async def send(
        self, init_data: str, to: str, amount: int, symbol: str = NATIVE_SYMBOL
    ) -> TransactionRecord:
        """Transfer amount base units of symbol and wait for confirmation."""
        verified = await self._authenticate(init_data)
        user, identity = await self._load_identity(verified)
        asset = Asset.native() if symbol.upper() == NATIVE_SYMBOL else get_jetton(symbol)

        async def build() -> SignedMessage:
            return await self.transfers.build_transfer(identity, to, amount, asset)

        return await self._submit(user, identity, TxType.WITHDRAWAL, build)

    async def swap(
        self, init_data: str, pool: SwapPool, amount: int, direction: SwapDirection
    ) -> TransactionRecord:
        """Quote against fresh reserves, swap, and wait for confirmation."""
        verified = await self._authenticate(init_data)
        user, identity = await self._load_identity(verified)

        async def build() -> SignedMessage:
            swap_quote = await self.swaps.get_quote(pool.address, amount, direction)
            return await self.swaps.build_swap(identity, swap_quote, pool, direction)

        return await self._submit(user, identity, TxType.EXCHANGE, build)

    async def _submit(
        self,
        user: StoredUser,
        identity: WalletIdentity,
        tx_type: TxType,
        build: Callable[[], Awaitable[SignedMessage]],
    ) -> TransactionRecord:
        async with wallet_lock(identity.address, operation=tx_type.value):
            signed = await build()
            record = await self.ledger.record_transaction(
                user.id,
                TransactionRecord(
                    type=tx_type,
                    amount=signed.amount,
                    token=signed.asset.symbol,
                    fee=signed.fee,
                    address=signed.destination,
                    tx_hash=signed.hash,
                    seqno=signed.seqno,
                ),
            )

            try:
                await self.transfers.send(signed)
                await self.tracker.await_confirmation(identity, signed.seqno)
            except WalletError as e:
                logger.error(f"{tx_type.value} #{record.id} failed: {e.message}")
                record.mark_failed(e.message)
                await self.ledger.update_transaction(record)
                raise

            record.mark_success()
            await self.ledger.update_transaction(record)
            return record
