"""SQLAlchemy implementation of the Ledger interface."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tonwallet.ledger.base import Ledger, StoredUser, StoredWallet, VerifiedUser
from tonwallet.ledger.models import Transaction, User, Wallet
from tonwallet.types import TransactionRecord, TxStatus, TxType

logger = logging.getLogger(__name__)


def _to_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        type=TxType(row.type),
        amount=int(row.amount),
        token=row.token,
        fee=int(row.fee or 0),
        address=row.address,
        status=TxStatus(row.status),
        timestamp=row.created_at,
        error=row.error,
        tx_hash=row.tx_hash,
        seqno=row.seqno,
        id=row.id,
    )


def _to_wallet(row: Wallet) -> StoredWallet:
    return StoredWallet(
        user_id=row.user_id,
        address=row.address,
        public_key=row.public_key,
        encrypted_key=row.encrypted_key,
        balance=int(row.balance or 0),
    )


class SqlLedger(Ledger):
    """Ledger backed by an async SQLAlchemy session.

    Methods flush but never commit; the session owner decides the transaction
    boundary (see ledger.database.get_db).
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # User operations
    async def _get_user_row(self, telegram_id: int) -> Optional[User]:
        stmt = select(User).where(User.telegram_id == telegram_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_user(self, telegram_id: int) -> Optional[StoredUser]:
        user = await self._get_user_row(telegram_id)
        if user is None:
            return None
        return StoredUser(id=user.id, telegram_id=user.telegram_id, username=user.username)

    async def create_user(self, user: VerifiedUser) -> StoredUser:
        row = await self._get_user_row(user.id)
        if row is None:
            row = User(
                telegram_id=user.id,
                username=user.username,
                first_name=user.first_name,
                last_name=user.last_name,
            )
            self.session.add(row)
            await self.session.flush()
            logger.info(f"Created user {row.id} for telegram id {user.id}")
        return StoredUser(id=row.id, telegram_id=row.telegram_id, username=row.username)

    # Wallet operations
    async def _get_wallet_row(self, user_id: int) -> Optional[Wallet]:
        stmt = select(Wallet).where(Wallet.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_wallet(self, user_id: int) -> Optional[StoredWallet]:
        row = await self._get_wallet_row(user_id)
        return _to_wallet(row) if row is not None else None

    async def save_wallet(self, wallet: StoredWallet) -> StoredWallet:
        row = await self._get_wallet_row(wallet.user_id)
        if row is None:
            row = Wallet(user_id=wallet.user_id)
            self.session.add(row)
        row.address = wallet.address
        row.public_key = wallet.public_key
        row.encrypted_key = wallet.encrypted_key
        row.balance = Decimal(wallet.balance)
        await self.session.flush()
        return _to_wallet(row)

    async def delete_wallet(self, user_id: int) -> bool:
        row = await self._get_wallet_row(user_id)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        logger.info(f"Deleted wallet of user {user_id}")
        return True

    async def update_balance(self, user_id: int, balance: int) -> None:
        row = await self._get_wallet_row(user_id)
        if row is None:
            logger.warning(f"No wallet to update balance for user {user_id}")
            return
        row.balance = Decimal(balance)
        await self.session.flush()

    # Transaction operations
    async def record_transaction(self, user_id: int, record: TransactionRecord) -> TransactionRecord:
        row = Transaction(
            user_id=user_id,
            type=record.type.value,
            amount=Decimal(record.amount),
            token=record.token,
            fee=Decimal(record.fee),
            address=record.address,
            status=record.status.value,
            tx_hash=record.tx_hash,
            seqno=record.seqno,
            error=record.error,
            created_at=record.timestamp,
        )
        self.session.add(row)
        await self.session.flush()
        record.id = row.id
        logger.info(
            f"Recorded {record.type.value} #{row.id}: {record.amount} {record.token} "
            f"-> {record.address} ({record.status.value})"
        )
        return record

    async def update_transaction(self, record: TransactionRecord) -> TransactionRecord:
        if record.id is None:
            raise ValueError("Cannot update a transaction that was never recorded")
        row = await self.session.get(Transaction, record.id)
        if row is None:
            raise ValueError(f"Transaction {record.id} not found")
        row.status = record.status.value
        row.error = record.error
        row.tx_hash = record.tx_hash
        row.seqno = record.seqno
        await self.session.flush()
        return record

    async def list_transactions(self, user_id: int, limit: int = 50) -> list[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [_to_record(row) for row in result.scalars().all()]
