"""Wallet identity: ed25519 keypair and the v4r2 address derived from it."""

import logging
import os
from dataclasses import dataclass, field

from nacl.signing import SigningKey

from tonwallet.errors import AuthenticationError
from tonwallet.ton.address import Address
from tonwallet.ton.contract import DEFAULT_WORKCHAIN, WalletV4R2

logger = logging.getLogger(__name__)

SEED_SIZE = 32
SECRET_KEY_SIZE = 64


@dataclass(frozen=True)
class WalletIdentity:
    """Address, public key and secret key of one wallet.

    The secret key is seed || public key (64 bytes). It is kept out of repr and
    equality so that it never shows up in logs or comparisons.
    """

    address: str
    public_key: bytes
    secret_key: bytes = field(repr=False, compare=False)

    @classmethod
    def from_seed(cls, seed: bytes, workchain: int = DEFAULT_WORKCHAIN) -> "WalletIdentity":
        """Derive the keypair and address from a 32-byte seed."""
        if len(seed) != SEED_SIZE:
            raise ValueError(f"Seed must be {SEED_SIZE} bytes, got {len(seed)}")
        signing_key = SigningKey(bytes(seed))
        public_key = bytes(signing_key.verify_key)
        wallet = WalletV4R2(public_key, workchain=workchain)
        return cls(
            address=wallet.address.to_string(bounceable=True),
            public_key=public_key,
            secret_key=bytes(seed) + public_key,
        )

    @classmethod
    def generate(cls) -> "WalletIdentity":
        """Create a new wallet from a fresh random seed."""
        identity = cls.from_seed(os.urandom(SEED_SIZE))
        logger.info(f"Generated new wallet {identity.address}")
        return identity

    @classmethod
    def from_secret_key(cls, secret_key: bytes) -> "WalletIdentity":
        """Rebuild an identity from a decrypted 64-byte secret key.

        Raises:
            AuthenticationError: If the embedded public key does not match the seed.
        """
        if len(secret_key) != SECRET_KEY_SIZE:
            raise AuthenticationError(
                f"Secret key must be {SECRET_KEY_SIZE} bytes, got {len(secret_key)}"
            )
        identity = cls.from_seed(secret_key[:SEED_SIZE])
        if identity.public_key != bytes(secret_key[SEED_SIZE:]):
            raise AuthenticationError("Secret key does not match its public key")
        return identity

    @property
    def seed(self) -> bytes:
        return self.secret_key[:SEED_SIZE]

    @property
    def wallet_address(self) -> Address:
        return Address.parse(self.address)

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    def sign(self, data: bytes) -> bytes:
        """Ed25519 signature (64 bytes) over data."""
        return SigningKey(self.seed).sign(data).signature

    def wallet(self, code=None) -> WalletV4R2:
        """Wallet contract for this identity."""
        return WalletV4R2(self.public_key, workchain=self.wallet_address.workchain, code=code)
