"""Encrypted-at-rest key store.

Secret keys are sealed with KeyVault under the caller's context and kept as
wire-format blobs, optionally persisted to a JSON file. Only the public parts
(address, public key) are readable without the context.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from tonwallet.crypto import EncryptedBlob, KeyVault
from tonwallet.errors import AuthenticationError
from tonwallet.identity import WalletIdentity
from tonwallet.keystore.base import KeyNotFoundError, KeyStore, KeyStoreType

logger = logging.getLogger(__name__)


class EncryptedKeyStore(KeyStore):
    """Stores vault-encrypted secret keys.

    Usage:
        store = EncryptedKeyStore(vault, path="data/keystore.json")
        await store.save("tg:42", identity, b"tg:42")
        identity = await store.load("tg:42", b"tg:42")
    """

    def __init__(self, vault: KeyVault, path: Optional[str] = None):
        super().__init__(KeyStoreType.ENCRYPTED)
        self._vault = vault
        self._path = Path(path) if path else None
        self._entries: dict[str, dict] = self._read()

    def _read(self) -> dict[str, dict]:
        if self._path is None or not self._path.exists():
            return {}
        with open(self._path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._entries, f, indent=2)
        os.replace(tmp, self._path)

    async def save(self, key_id: str, identity: WalletIdentity, context: bytes = b"") -> None:
        blob = self._vault.encrypt(identity.secret_key, context)
        self._entries[key_id] = {
            "address": identity.address,
            "public_key": identity.public_key_hex,
            "encrypted_key": blob.to_wire(),
        }
        self._write()
        logger.info(f"Stored encrypted key for {identity.address} under {key_id}")

    async def load(self, key_id: str, context: bytes = b"") -> WalletIdentity:
        entry = self._entries.get(key_id)
        if entry is None:
            raise KeyNotFoundError(f"No key stored for {key_id}")

        secret = self._vault.decrypt(EncryptedBlob.from_wire(entry["encrypted_key"]), context)
        identity = WalletIdentity.from_secret_key(secret)
        if identity.public_key_hex != entry["public_key"]:
            raise AuthenticationError(f"Stored public key for {key_id} does not match secret")
        return identity

    async def delete(self, key_id: str) -> bool:
        if self._entries.pop(key_id, None) is None:
            return False
        self._write()
        logger.info(f"Deleted stored key {key_id}")
        return True

    async def exists(self, key_id: str) -> bool:
        return key_id in self._entries

    def get_public(self, key_id: str) -> Optional[dict]:
        """Address and public key stored under key_id, without decrypting."""
        entry = self._entries.get(key_id)
        if entry is None:
            return None
        return {"address": entry["address"], "public_key": entry["public_key"]}
