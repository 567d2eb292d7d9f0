"""Ledger interface consumed by the wallet service.

The wallet core only needs three things from persistence: record a
transaction, find a user, and update a cached balance. The remaining methods
support wallet provisioning and history.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from tonwallet.types import TransactionRecord


@dataclass(frozen=True)
class VerifiedUser:
    """Identity returned by the session verifier."""

    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def context(self) -> bytes:
        """Stable vault context for this user."""
        return f"tg:{self.id}".encode()


@dataclass
class StoredUser:
    id: int
    telegram_id: int
    username: Optional[str] = None


@dataclass
class StoredWallet:
    user_id: int
    address: str
    public_key: str
    encrypted_key: str
    balance: int = 0


class Ledger(ABC):
    """Persistence collaborator for users, wallets and transaction records."""

    @abstractmethod
    async def find_user(self, telegram_id: int) -> Optional[StoredUser]:
        pass

    @abstractmethod
    async def create_user(self, user: VerifiedUser) -> StoredUser:
        pass

    @abstractmethod
    async def get_wallet(self, user_id: int) -> Optional[StoredWallet]:
        pass

    @abstractmethod
    async def save_wallet(self, wallet: StoredWallet) -> StoredWallet:
        """Insert or replace the user's wallet."""
        pass

    @abstractmethod
    async def delete_wallet(self, user_id: int) -> bool:
        pass

    @abstractmethod
    async def update_balance(self, user_id: int, balance: int) -> None:
        """Store the last observed native balance (nanoton)."""
        pass

    @abstractmethod
    async def record_transaction(self, user_id: int, record: TransactionRecord) -> TransactionRecord:
        """Persist a new record and return it with its id set."""
        pass

    @abstractmethod
    async def update_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """Persist a status change of an existing record."""
        pass

    @abstractmethod
    async def list_transactions(self, user_id: int, limit: int = 50) -> list[TransactionRecord]:
        """Newest records first."""
        pass
