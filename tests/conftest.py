"""Pytest configuration and fixtures."""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENCRYPTION_KEY"] = "test-server-secret"
os.environ["DEBUG"] = "true"

from tonwallet.crypto import KeyVault
from tonwallet.identity import WalletIdentity
from tonwallet.ledger.models import Base
from tonwallet.ledger.repository import SqlLedger
from tonwallet.rpc.gateway import GetMethodResult
from tonwallet.services.balances import BalanceAggregator
from tonwallet.services.transfer import TransferBuilder
from tonwallet.tokens import JETTONS
from tonwallet.utils.locks import clear_wallet_locks

from tests.helpers import FIXED_NOW, JETTON_WALLET


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def ledger(db_session: AsyncSession) -> SqlLedger:
    return SqlLedger(db_session)


@pytest.fixture(autouse=True)
def _reset_locks():
    clear_wallet_locks()
    yield
    clear_wallet_locks()


@pytest.fixture
def vault() -> KeyVault:
    return KeyVault("test-server-secret")


@pytest.fixture
def identity() -> WalletIdentity:
    return WalletIdentity.from_seed(bytes(range(1, 33)))


@pytest.fixture
def other_identity() -> WalletIdentity:
    return WalletIdentity.from_seed(b"\x42" * 32)


@pytest.fixture
def rpc():
    """RPC gateway double: funded wallet, deployed at seqno 5, USDT wallet resolvable."""
    mock = AsyncMock()
    mock.get_balance.return_value = 10_000_000_000  # 10 TON
    mock.get_seqno.return_value = 5
    mock.get_wallet_address.return_value = JETTON_WALLET
    mock.get_jetton_balance.return_value = 500_000_000  # 500 USDT
    mock.send_boc.return_value = {"@type": "ok"}
    mock.run_get_method.return_value = GetMethodResult(0, [4_000_000, 2_000_000, 1_000])
    return mock


@pytest.fixture
def balances(rpc) -> BalanceAggregator:
    return BalanceAggregator(rpc, [JETTONS["USDT"]])


@pytest.fixture
def transfers(rpc, balances) -> TransferBuilder:
    return TransferBuilder(rpc, balances, clock=lambda: FIXED_NOW)
