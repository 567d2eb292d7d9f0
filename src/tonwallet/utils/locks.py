"""Per-wallet serialization.

Two sends from one wallet read the same seqno and conflict, so every write
operation on a wallet runs under that wallet's lock. A lock is dropped from
the registry once no task holds or waits on it.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from tonwallet.errors import LockTimeoutError

logger = logging.getLogger(__name__)

# Global lock registry: wallet address -> asyncio.Lock
_wallet_locks: dict[str, asyncio.Lock] = {}
# Tasks holding or waiting on each registered lock
_lock_users: dict[str, int] = {}
_registry_lock = asyncio.Lock()


async def get_wallet_lock(address: str) -> asyncio.Lock:
    """Get or create the lock for a wallet address."""
    async with _registry_lock:
        if address not in _wallet_locks:
            _wallet_locks[address] = asyncio.Lock()
        return _wallet_locks[address]


async def _checkout(address: str) -> asyncio.Lock:
    async with _registry_lock:
        lock = _wallet_locks.setdefault(address, asyncio.Lock())
        _lock_users[address] = _lock_users.get(address, 0) + 1
        return lock


def _checkin(address: str) -> None:
    remaining = _lock_users.get(address, 1) - 1
    if remaining > 0:
        _lock_users[address] = remaining
        return
    _lock_users.pop(address, None)
    _wallet_locks.pop(address, None)


@asynccontextmanager
async def wallet_lock(
    address: str,
    timeout: Optional[float] = 30.0,
    operation: str = "wallet_operation",
):
    """Hold the wallet's lock for the duration of the block.

    Args:
        address: Wallet address
        timeout: Maximum seconds to wait (None = wait forever)
        operation: Description for logging

    Raises:
        LockTimeoutError: If the lock is not acquired in time

    Example:
        async with wallet_lock(identity.address, operation="transfer"):
            signed = await builder.build_transfer(...)
            await builder.send(signed)
    """
    lock = await _checkout(address)
    try:
        try:
            if timeout:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Lock timeout for wallet {address} after {timeout}s: {operation}")
            raise LockTimeoutError(
                f"Could not acquire lock for wallet {address} within {timeout}s"
            ) from None

        logger.debug(f"Lock acquired for wallet {address}: {operation}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Lock released for wallet {address}: {operation}")
    finally:
        _checkin(address)


def clear_wallet_locks() -> None:
    """Drop all registered locks (tests only)."""
    _wallet_locks.clear()
    _lock_users.clear()
