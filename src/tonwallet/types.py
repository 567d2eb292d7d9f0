"""Domain types for balances, transactions, swaps and signed messages."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from tonwallet.errors import TransactionFinalized

NATIVE_SYMBOL = "TON"
NATIVE_DECIMALS = 9


class AssetKind(str, Enum):
    """Kind of asset a balance or transfer refers to."""

    NATIVE = "native"
    JETTON = "jetton"


@dataclass(frozen=True)
class Asset:
    """Native coin or a jetton identified by its master contract."""

    kind: AssetKind
    symbol: str
    decimals: int
    master: Optional[str] = None

    @classmethod
    def native(cls) -> "Asset":
        return cls(AssetKind.NATIVE, NATIVE_SYMBOL, NATIVE_DECIMALS)

    @classmethod
    def jetton(cls, symbol: str, master: str, decimals: int = 9) -> "Asset":
        return cls(AssetKind.JETTON, symbol.upper(), decimals, master)

    @property
    def is_native(self) -> bool:
        return self.kind == AssetKind.NATIVE


def to_display(amount: int, decimals: int) -> Decimal:
    """Scale a base-unit integer to display units."""
    return Decimal(amount).scaleb(-decimals)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Scale a display amount to base units, truncating extra precision."""
    return int(Decimal(amount).scaleb(decimals))


@dataclass(frozen=True)
class TokenBalance:
    """Balance of one asset in base units."""

    asset: Asset
    amount: int
    contract_address: Optional[str] = None

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Balance cannot be negative: {self.amount}")

    @property
    def symbol(self) -> str:
        return self.asset.symbol

    @property
    def decimals(self) -> int:
        return self.asset.decimals

    @property
    def display(self) -> Decimal:
        return to_display(self.amount, self.asset.decimals)


@dataclass
class WalletBalances:
    """Aggregated balances of one wallet."""

    address: str
    native: TokenBalance
    tokens: list[TokenBalance] = field(default_factory=list)
    price_usd: Decimal = Decimal("0")

    @property
    def fiat_value(self) -> Decimal:
        """USD value of the native balance (0 when no price is available)."""
        return self.native.display * self.price_usd

    def get(self, symbol: str) -> Optional[TokenBalance]:
        symbol = symbol.upper()
        if symbol == self.native.symbol:
            return self.native
        for balance in self.tokens:
            if balance.symbol == symbol:
                return balance
        return None


@dataclass
class PriceCache:
    """Last known price with the time it was fetched."""

    value: Optional[Decimal] = None
    last_updated: float = 0.0
    ttl: float = 60.0

    def is_fresh(self, now: Optional[float] = None) -> bool:
        if self.value is None:
            return False
        now = time.monotonic() if now is None else now
        return now - self.last_updated < self.ttl

    def update(self, value: Decimal, now: Optional[float] = None) -> None:
        self.value = value
        self.last_updated = time.monotonic() if now is None else now


class TxType(str, Enum):
    """Transaction record type."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    EXCHANGE = "exchange"


class TxStatus(str, Enum):
    """Transaction record status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class TransactionRecord:
    """A submitted transfer or swap.

    Starts PENDING and moves exactly once to SUCCESS or FAILED.
    """

    type: TxType
    amount: int
    token: str
    fee: int
    address: str
    status: TxStatus = TxStatus.PENDING
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
    tx_hash: Optional[str] = None
    seqno: Optional[int] = None
    id: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != TxStatus.PENDING

    def _check_pending(self) -> None:
        if self.is_terminal:
            raise TransactionFinalized(
                f"Transaction {self.id or self.tx_hash} is already {self.status.value}"
            )

    def mark_success(self) -> None:
        self._check_pending()
        self.status = TxStatus.SUCCESS

    def mark_failed(self, error: str) -> None:
        self._check_pending()
        self.status = TxStatus.FAILED
        self.error = error


@dataclass(frozen=True)
class PoolState:
    """Snapshot of an AMM pool's reserves."""

    token_reserve: int
    native_reserve: int
    lp_supply: int


@dataclass(frozen=True)
class SwapPool:
    """An AMM pool pairing the native coin with one jetton."""

    address: str
    jetton: Asset


class SwapDirection(str, Enum):
    """Which side of the pool the input amount is on."""

    NATIVE_TO_TOKEN = "native_to_token"
    TOKEN_TO_NATIVE = "token_to_native"


@dataclass(frozen=True)
class SwapQuote:
    """Expected and minimum acceptable output for a swap."""

    direction: SwapDirection
    amount_in: int
    expected_output: int
    minimum_output: int
    slippage_bps: int

    def __post_init__(self):
        if self.minimum_output > self.expected_output:
            raise ValueError("Minimum output cannot exceed expected output")


@dataclass(frozen=True)
class SignedMessage:
    """A signed external message ready for broadcast."""

    boc: str  # base64
    seqno: int
    hash: str  # hex hash of the external message cell
    destination: str
    amount: int
    asset: Asset
    fee: int
    valid_until: int
