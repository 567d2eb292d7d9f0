"""In-memory key store.

Suitable for tests and short-lived tools. Keys are lost when the process exits.
"""

import logging

from tonwallet.identity import WalletIdentity
from tonwallet.keystore.base import KeyNotFoundError, KeyStore, KeyStoreType

logger = logging.getLogger(__name__)


class MemoryKeyStore(KeyStore):
    """Keeps identities in a dict. The context argument is ignored."""

    def __init__(self):
        super().__init__(KeyStoreType.MEMORY)
        self._keys: dict[str, WalletIdentity] = {}

    async def save(self, key_id: str, identity: WalletIdentity, context: bytes = b"") -> None:
        self._keys[key_id] = identity
        logger.debug(f"Stored wallet {identity.address} under {key_id}")

    async def load(self, key_id: str, context: bytes = b"") -> WalletIdentity:
        try:
            return self._keys[key_id]
        except KeyError:
            raise KeyNotFoundError(f"No key stored for {key_id}") from None

    async def delete(self, key_id: str) -> bool:
        return self._keys.pop(key_id, None) is not None

    async def exists(self, key_id: str) -> bool:
        return key_id in self._keys
