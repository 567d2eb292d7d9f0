"""On-chain transaction history.

Classifies each account transaction by its messages: an incoming internal
message carrying value is a deposit, otherwise the first outgoing message
makes it a withdrawal.
"""

import base64
import binascii
import logging
from datetime import datetime, timezone
from typing import Optional

from tonwallet.rpc.gateway import RpcGateway
from tonwallet.types import NATIVE_SYMBOL, TransactionRecord, TxStatus, TxType

logger = logging.getLogger(__name__)


def _tx_hash(tx: dict) -> Optional[str]:
    raw = (tx.get("transaction_id") or {}).get("hash")
    if not raw:
        return None
    try:
        return base64.b64decode(raw).hex()
    except (binascii.Error, ValueError):
        return raw


def parse_transaction(tx: dict) -> TransactionRecord:
    """Map one toncenter transaction to a settled record.

    Raises:
        KeyError, TypeError, ValueError: If the entry is missing required fields.
    """
    in_msg = tx.get("in_msg") or {}
    out_msgs = tx.get("out_msgs") or []

    tx_type = TxType.WITHDRAWAL
    amount = 0
    counterparty = ""

    # External inbound messages have no source
    if in_msg.get("source") and int(in_msg.get("value", 0)) > 0:
        tx_type = TxType.DEPOSIT
        amount = int(in_msg["value"])
        counterparty = in_msg["source"]
    elif out_msgs:
        first = out_msgs[0]
        amount = int(first.get("value", 0))
        counterparty = first.get("destination", "")

    return TransactionRecord(
        type=tx_type,
        amount=amount,
        token=NATIVE_SYMBOL,
        fee=int(tx.get("fee", 0)),
        address=counterparty,
        status=TxStatus.SUCCESS,
        timestamp=datetime.fromtimestamp(int(tx["utime"]), tz=timezone.utc),
        tx_hash=_tx_hash(tx),
    )


class TransactionHistory:
    """Reads an account's recent transactions from the chain."""

    def __init__(self, rpc: RpcGateway):
        self.rpc = rpc

    async def get_transactions(self, address: str, limit: int = 10) -> list[TransactionRecord]:
        """Recent transactions as DEPOSIT/WITHDRAWAL records, newest first.

        Raises:
            RpcError: If the history cannot be fetched.
        """
        records = []
        for tx in await self.rpc.get_transactions(address, limit):
            try:
                records.append(parse_transaction(tx))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unparseable transaction for {address}: {e}")
        logger.debug(f"Loaded {len(records)} transactions for {address}")
        return records
