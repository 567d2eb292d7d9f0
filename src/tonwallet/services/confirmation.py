"""Transaction confirmation by watching the wallet seqno advance."""

import asyncio
import logging
from typing import Awaitable, Callable

from tonwallet.errors import ConfirmationTimeout, RpcExhausted
from tonwallet.identity import WalletIdentity
from tonwallet.rpc.gateway import RpcGateway

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3.0
DEFAULT_ATTEMPTS = 10


class ConfirmationTracker:
    """Polls seqno until it moves past the one a message was sent with.

    A timeout means inclusion was not observed; the message may still land,
    so the caller must not resend blindly.
    """

    def __init__(
        self,
        rpc: RpcGateway,
        interval: float = DEFAULT_INTERVAL,
        max_attempts: int = DEFAULT_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.rpc = rpc
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def await_confirmation(self, identity: WalletIdentity, submitted_seqno: int) -> int:
        """Wait until the wallet seqno exceeds submitted_seqno.

        Returns:
            The observed seqno

        Raises:
            ConfirmationTimeout: If it does not advance within max_attempts polls
        """
        for attempt in range(1, self.max_attempts + 1):
            await self._sleep(self.interval)
            try:
                seqno = await self.rpc.get_seqno(identity.address)
            except RpcExhausted as e:
                logger.warning(f"Seqno poll {attempt}/{self.max_attempts} failed: {e}")
                continue

            if seqno > submitted_seqno:
                logger.info(
                    f"Confirmed seqno {submitted_seqno} for {identity.address} "
                    f"after {attempt} polls (now {seqno})"
                )
                return seqno
            logger.debug(f"Poll {attempt}/{self.max_attempts}: seqno still {seqno}")

        logger.error(f"Seqno {submitted_seqno} for {identity.address} not confirmed")
        raise ConfirmationTimeout(submitted_seqno, self.max_attempts)
