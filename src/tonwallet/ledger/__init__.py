"""Ledger: persistence of users, wallets and transaction records."""

from tonwallet.ledger.base import Ledger, StoredUser, StoredWallet, VerifiedUser

__all__ = ["Ledger", "StoredUser", "StoredWallet", "VerifiedUser"]
