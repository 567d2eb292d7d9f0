#!/usr/bin/env python3
"""Re-encrypt legacy wallet keys under per-user contexts.

Legacy rows were encrypted with a key derived from the server secret alone.
Each row is opened with the legacy scheme, checked against the stored public
key, and sealed again under the owner's "tg:<telegram id>" context.

Usage:
    python scripts/migrate_keys.py [--dry-run] [--user TELEGRAM_ID]

Options:
    --user     Only migrate the wallet of one Telegram user
    --dry-run  Show what would be done without making changes
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tonwallet.crypto import EncryptedBlob, KeyVault, get_vault
from tonwallet.errors import AuthenticationError
from tonwallet.identity import WalletIdentity
from tonwallet.ledger.base import StoredWallet, VerifiedUser
from tonwallet.ledger.database import close_db, get_db, init_db
from tonwallet.ledger.models import User
from tonwallet.ledger.repository import SqlLedger

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def migrate_session(
    session: AsyncSession, vault: KeyVault, dry_run: bool, only_user: Optional[int] = None
) -> dict:
    stats = {"migrated": 0, "current": 0, "failed": 0}
    ledger = SqlLedger(session)
    stmt = select(User)
    if only_user is not None:
        stmt = stmt.where(User.telegram_id == only_user)
    users = (await session.execute(stmt)).scalars().all()

    for user in users:
        stored = await ledger.get_wallet(user.id)
        if stored is None:
            continue

        context = VerifiedUser(id=user.telegram_id).context
        try:
            blob = EncryptedBlob.from_wire(stored.encrypted_key)
        except AuthenticationError as e:
            logger.error(f"User {user.telegram_id}: malformed stored key: {e.message}")
            stats["failed"] += 1
            continue

        try:
            vault.decrypt(blob, context)
            stats["current"] += 1
            continue
        except AuthenticationError:
            pass

        try:
            identity = WalletIdentity.from_secret_key(vault.decrypt_legacy(blob))
        except AuthenticationError as e:
            logger.error(f"User {user.telegram_id}: cannot open legacy key: {e.message}")
            stats["failed"] += 1
            continue

        if identity.public_key_hex != stored.public_key:
            logger.error(f"User {user.telegram_id}: decrypted key does not match stored public key")
            stats["failed"] += 1
            continue

        logger.info(f"User {user.telegram_id}: re-encrypting key for {stored.address}")
        stats["migrated"] += 1
        if dry_run:
            continue

        await ledger.save_wallet(
            StoredWallet(
                user_id=stored.user_id,
                address=stored.address,
                public_key=stored.public_key,
                encrypted_key=vault.encrypt(identity.secret_key, context).to_wire(),
                balance=stored.balance,
            )
        )

    return stats


async def migrate(dry_run: bool, only_user: Optional[int] = None) -> dict:
    async with get_db() as session:
        return await migrate_session(session, get_vault(), dry_run, only_user)


async def main():
    parser = argparse.ArgumentParser(description="Re-encrypt legacy wallet keys")
    parser.add_argument("--user", type=int, help="Telegram id of a single user to migrate")
    parser.add_argument("--dry-run", action="store_true", help="Show changes without writing them")
    args = parser.parse_args()

    await init_db()

    logger.info("=" * 60)
    logger.info("WALLET KEY MIGRATION" + (" (dry run)" if args.dry_run else ""))
    logger.info("=" * 60)

    try:
        stats = await migrate(args.dry_run, args.user)
    finally:
        await close_db()

    logger.info(
        f"Migrated: {stats['migrated']}  Already current: {stats['current']}  Failed: {stats['failed']}"
    )
    return 1 if stats["failed"] else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
