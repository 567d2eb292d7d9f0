"""Cryptographic utilities for wallet secret key storage.

Uses AES-256-GCM with a key derived from the server secret and a per-caller
context, so a stored blob can only be opened by someone holding both.
"""

import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tonwallet.errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16


@dataclass(frozen=True)
class EncryptedBlob:
    """AES-GCM output split into its parts."""

    iv: bytes
    auth_tag: bytes
    ciphertext: bytes

    def to_wire(self) -> str:
        """Serialize as hex(iv):hex(authTag):hex(ciphertext)."""
        return f"{self.iv.hex()}:{self.auth_tag.hex()}:{self.ciphertext.hex()}"

    @classmethod
    def from_wire(cls, value: str) -> "EncryptedBlob":
        """Parse the colon-joined hex form.

        Raises:
            AuthenticationError: If the string is not three hex parts of the right sizes.
        """
        parts = value.strip().split(":")
        if len(parts) != 3:
            raise AuthenticationError("Encrypted key must have three colon-separated parts")
        try:
            iv, tag, ciphertext = (bytes.fromhex(p) for p in parts)
        except ValueError as e:
            raise AuthenticationError("Encrypted key is not valid hex") from e
        if len(iv) != NONCE_SIZE or len(tag) != TAG_SIZE:
            raise AuthenticationError("Encrypted key has wrong nonce or tag length")
        return cls(iv=iv, auth_tag=tag, ciphertext=ciphertext)


def _as_bytes(value) -> bytes:
    return value.encode() if isinstance(value, str) else bytes(value)


class KeyVault:
    """Encrypts and decrypts wallet secret keys.

    Usage:
        vault = KeyVault(server_secret)
        blob = vault.encrypt(secret_key, b"tg:12345")
        secret_key = vault.decrypt(blob, b"tg:12345")
    """

    def __init__(self, server_secret):
        """Initialize with the server-held secret.

        Args:
            server_secret: Secret as str or bytes; never logged
        """
        secret = _as_bytes(server_secret)
        if not secret:
            raise ConfigurationError("Vault secret must not be empty")
        self._secret = secret

    def _derive_key(self, context: bytes) -> bytes:
        return hmac.new(self._secret, _as_bytes(context), hashlib.sha256).digest()

    def encrypt(self, secret: bytes, context) -> EncryptedBlob:
        """Encrypt a secret bound to a caller context.

        Args:
            secret: Plaintext secret key bytes
            context: Stable identity of the authenticated caller

        Returns:
            EncryptedBlob with a fresh random nonce
        """
        nonce = os.urandom(NONCE_SIZE)
        sealed = AESGCM(self._derive_key(context)).encrypt(nonce, bytes(secret), None)
        return EncryptedBlob(
            iv=nonce,
            auth_tag=sealed[-TAG_SIZE:],
            ciphertext=sealed[:-TAG_SIZE],
        )

    def decrypt(self, blob: EncryptedBlob, context) -> bytes:
        """Decrypt a blob under the given context.

        Raises:
            AuthenticationError: If the tag does not verify (wrong context, wrong
                server secret, or corrupted data).
        """
        return self._open(self._derive_key(context), blob)

    def rotate(self, blob: EncryptedBlob, old_context, new_context) -> EncryptedBlob:
        """Re-encrypt a blob under a new context."""
        secret = self.decrypt(blob, old_context)
        return self.encrypt(secret, new_context)

    def decrypt_legacy(self, blob: EncryptedBlob) -> bytes:
        """Decrypt a blob written before keys were bound to a caller context.

        Legacy blobs were keyed with sha256(server secret) and held the secret
        key as hex text.
        """
        plaintext = self._open(hashlib.sha256(self._secret).digest(), blob)
        try:
            return bytes.fromhex(plaintext.decode("ascii"))
        except (UnicodeDecodeError, ValueError) as e:
            raise AuthenticationError("Legacy blob does not contain a hex secret") from e

    @staticmethod
    def _open(key: bytes, blob: EncryptedBlob) -> bytes:
        try:
            return AESGCM(key).decrypt(blob.iv, blob.ciphertext + blob.auth_tag, None)
        except (InvalidTag, ValueError) as e:
            raise AuthenticationError("Encrypted key failed authentication") from e


def get_vault(server_secret: Optional[str] = None) -> KeyVault:
    """Get a vault using ENCRYPTION_KEY from settings.

    Raises:
        ConfigurationError: If no server secret is configured.
    """
    if server_secret is None:
        from tonwallet.config import get_settings

        server_secret = get_settings().encryption_key

    if not server_secret:
        raise ConfigurationError("ENCRYPTION_KEY is not configured")

    return KeyVault(server_secret)
