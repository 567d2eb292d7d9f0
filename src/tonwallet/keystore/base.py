"""Key storage interface.

The wallet core never assumes where secret keys live. A KeyStore hands out
WalletIdentity objects for signing and persists them in whatever form the
backend uses (plain memory, encrypted at rest, or a hardware device).
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum

from tonwallet.errors import WalletError
from tonwallet.identity import WalletIdentity

logger = logging.getLogger(__name__)


class KeyStoreType(str, Enum):
    """Type of key storage backend."""
    MEMORY = "memory"         # Plain identities in process memory
    ENCRYPTED = "encrypted"   # AES-GCM blobs bound to a caller context


class KeyNotFoundError(WalletError):
    """No key is stored under the requested id."""
    pass


class KeyStore(ABC):
    """Abstract base class for key storage backends."""

    def __init__(self, store_type: KeyStoreType):
        self.store_type = store_type

    @abstractmethod
    async def save(self, key_id: str, identity: WalletIdentity, context: bytes = b"") -> None:
        """Store an identity under key_id.

        Args:
            key_id: Storage key, e.g. the owner's stable user id
            identity: Wallet identity including its secret key
            context: Caller context the backend may bind the stored key to
        """
        pass

    @abstractmethod
    async def load(self, key_id: str, context: bytes = b"") -> WalletIdentity:
        """Load the identity stored under key_id.

        Raises:
            KeyNotFoundError: If nothing is stored under key_id
            AuthenticationError: If the stored key cannot be opened with context
        """
        pass

    @abstractmethod
    async def delete(self, key_id: str) -> bool:
        """Remove a stored identity. Returns True if one was removed."""
        pass

    async def exists(self, key_id: str) -> bool:
        try:
            await self.load(key_id)
        except KeyNotFoundError:
            return False
        except WalletError:
            return True
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.store_type.value})"
