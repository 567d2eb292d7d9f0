"""SQLAlchemy models for the ledger."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from tonwallet.types import TxStatus, TxType


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """User account linked to Telegram."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    wallet: Mapped[Optional["Wallet"]] = relationship(
        back_populates="user", lazy="selectin", cascade="all, delete-orphan"
    )
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="user", lazy="selectin"
    )


class Wallet(Base):
    """A user's wallet: public data plus the vault-encrypted secret key."""

    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    address: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    public_key: Mapped[str] = mapped_column(String(64), nullable=False)
    encrypted_key: Mapped[str] = mapped_column(Text, nullable=False)  # iv:tag:ciphertext hex
    balance: Mapped[Decimal] = mapped_column(Numeric(40, 0), default=Decimal("0"))  # nanoton
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="wallet")


class Transaction(Base):
    """Record of a submitted transfer or swap."""

    __tablename__ = "transactions"
    __table_args__ = (Index("ix_transactions_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    type: Mapped[TxType] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(40, 0), nullable=False)  # base units
    token: Mapped[str] = mapped_column(String(20), nullable=False)
    fee: Mapped[Decimal] = mapped_column(Numeric(40, 0), default=Decimal("0"))  # nanoton
    address: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[TxStatus] = mapped_column(
        String(20), default=TxStatus.PENDING, nullable=False
    )
    tx_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    seqno: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="transactions")
