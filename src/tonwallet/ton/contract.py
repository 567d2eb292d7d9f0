"""Wallet v4r2 contract: address derivation and signed external messages."""

import hashlib
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

from tonwallet.errors import ConfigurationError
from tonwallet.ton.address import Address
from tonwallet.ton.cell import Cell, begin_cell, deserialize_boc

logger = logging.getLogger(__name__)

# Published wallet v4r2 code
WALLET_V4R2_CODE_BOC = bytes.fromhex(
    "b5ee9c72410214010002d4000114ff00f4a413f4bcf2c80b010201200203020148040504"
    "f8f28308d71820d31fd31fd31f02f823bbf264ed44d0d31fd31fd3fff404d15143baf2a1"
    "5151baf2a205f901541064f910f2a3f80024a4c8cb1f5240cb1f5230cbff5210f400c9ed"
    "54f80f01d30721c0009f6c519320d74a96d307d402fb00e830e021c001e30021c002e300"
    "01c0039130e30d03a4c8cb1f12cb1fcbff1011121302e6d001d0d3032171b0925f04e022"
    "d749c120925f04e002d31f218210706c7567bd22821064737472bdb0925f05e003fa4030"
    "20fa4401c8ca07cbffc9d0ed44d0810140d721f404305c810108f40a6fa131b3925f07e0"
    "05d33fc8258210706c7567ba923830e30d03821064737472ba925f06e30d060702012008"
    "09007801fa00f40430f8276f2230500aa121bef2e0508210706c7567831eb17080185004"
    "cb0526cf1658fa0219f400cb6917cb1f5260cb3f20c98040fb0006008a5004810108f459"
    "30ed44d0810140d720c801cf16f400c9ed540172b08e23821064737472831eb170801850"
    "05cb055003cf1623fa0213cb6acb1fcb3fc98040fb00925f03e20201200a0b0059bd242b"
    "6f6a2684080a06b90fa0218470d4080847a4937d29910ce6903e9ff9837812801b781014"
    "8987159f31840201580c0d0011b8c97ed44d0d70b1f8003db29dfb513420405035c87d01"
    "0c00b23281f2fff274006040423d029be84c600201200e0f0019adce76a26840206b90eb"
    "85ffc00019af1df6a26840106b90eb858fc0006ed207fa00d4d422f90005c8ca0715cbff"
    "c9d077748018c8cb05cb0222cf165005fa0214cb6b12ccccc973fb00c84014810108f451"
    "f2a7020070810108d718fa00d33fc8542047810108f451f2a782106e6f746570748018c8"
    "cb05cb025006cf165004fa0214cb6a12cb1fcb3fc973fb0002006c810108d718fa00d33f"
    "305224810108f459f2a782106473747270748018c8cb05cb025005cf165003fa0213cb6a"
    "cb1f12cb3fc973fb00000af400c9ed54696225e5"
)

# Its cell hash and depth
WALLET_V4R2_CODE_HASH = bytes.fromhex(
    "feb5ff6820e2ff0d9483e7e0d62c817d846789fb4ae580c878866d959dabd5c0"
)
WALLET_V4R2_CODE_DEPTH = 7

DEFAULT_WORKCHAIN = 0
DEFAULT_SUBWALLET_ID = 698983191
DEFAULT_TIMEOUT = 60  # seconds a signed message stays valid
MAX_MESSAGES = 4

SEND_MODE_PAY_FEES_SEPARATELY = 1
SEND_MODE_IGNORE_ERRORS = 2
DEFAULT_SEND_MODE = SEND_MODE_PAY_FEES_SEPARATELY | SEND_MODE_IGNORE_ERRORS


@dataclass
class OutgoingMessage:
    """One internal message the wallet should send."""

    destination: Address
    value: int
    bounce: bool = True
    body: Optional[Cell] = None
    mode: int = DEFAULT_SEND_MODE


@lru_cache(maxsize=1)
def wallet_v4r2_code() -> Cell:
    """Parsed wallet v4r2 code cell."""
    return deserialize_boc(WALLET_V4R2_CODE_BOC)


def wallet_data_cell(public_key: bytes, subwallet_id: int = DEFAULT_SUBWALLET_ID) -> Cell:
    """Initial persistent data: seqno=0, subwallet, public key, empty plugin dict."""
    return (
        begin_cell()
        .store_uint(0, 32)
        .store_uint(subwallet_id, 32)
        .store_bytes(public_key)
        .store_bit(0)
        .end_cell()
    )


def state_init_cell(code: Cell, data: Cell) -> Cell:
    return (
        begin_cell()
        .store_bit(0)  # split_depth
        .store_bit(0)  # special
        .store_maybe_ref(code)
        .store_maybe_ref(data)
        .store_bit(0)  # library
        .end_cell()
    )


def state_init_hash(code_hash: bytes, code_depth: int, data: Cell) -> bytes:
    """Hash of StateInit(code, data) given only the code cell's hash and depth.

    Layout matches Cell.representation() for the 5-bit StateInit with two refs.
    """
    rep = bytes([0x02, 0x01, 0x34])
    rep += code_depth.to_bytes(2, "big") + data.depth.to_bytes(2, "big")
    rep += code_hash + data.hash
    return hashlib.sha256(rep).digest()


def internal_message(message: OutgoingMessage) -> Cell:
    """Serialize an internal message with zeroed fees and timestamps."""
    b = (
        begin_cell()
        .store_bit(0)  # int_msg_info$0
        .store_bit(1)  # ihr_disabled
        .store_bit(message.bounce)
        .store_bit(0)  # bounced
        .store_address(None)
        .store_address(message.destination)
        .store_coins(message.value)
        .store_bit(0)  # extra currencies
        .store_coins(0)  # ihr_fee
        .store_coins(0)  # fwd_fee
        .store_uint(0, 64)  # created_lt
        .store_uint(0, 32)  # created_at
        .store_bit(0)  # no state init
    )
    if message.body is None or (not message.body.bits and not message.body.refs):
        b.store_bit(0)
    else:
        b.store_bit(1).store_ref(message.body)
    return b.end_cell()


def external_message(destination: Address, body: Cell, state_init: Optional[Cell] = None) -> Cell:
    b = (
        begin_cell()
        .store_uint(0b10, 2)  # ext_in_msg_info$10
        .store_address(None)
        .store_address(destination)
        .store_coins(0)  # import_fee
    )
    if state_init is None:
        b.store_bit(0)
    else:
        b.store_bit(1).store_bit(1).store_ref(state_init)
    return b.store_bit(1).store_ref(body).end_cell()


class WalletV4R2:
    """Wallet v4r2 for one public key.

    Usage:
        wallet = WalletV4R2(public_key)
        ext = wallet.create_transfer(identity.sign, seqno, [OutgoingMessage(...)])
    """

    def __init__(
        self,
        public_key: bytes,
        workchain: int = DEFAULT_WORKCHAIN,
        subwallet_id: int = DEFAULT_SUBWALLET_ID,
        code: Optional[Cell] = None,
    ):
        if len(public_key) != 32:
            raise ValueError("Public key must be 32 bytes")
        if code is not None and code.hash != WALLET_V4R2_CODE_HASH:
            raise ConfigurationError(
                f"Wallet code hash {code.hash.hex()} is not wallet v4r2"
            )
        self.public_key = public_key
        self.workchain = workchain
        self.subwallet_id = subwallet_id
        self.code = code if code is not None else wallet_v4r2_code()
        self._address: Optional[Address] = None

    @property
    def data(self) -> Cell:
        return wallet_data_cell(self.public_key, self.subwallet_id)

    @property
    def address(self) -> Address:
        if self._address is None:
            digest = state_init_hash(WALLET_V4R2_CODE_HASH, WALLET_V4R2_CODE_DEPTH, self.data)
            self._address = Address(self.workchain, digest)
        return self._address

    def state_init(self) -> Cell:
        """StateInit attached to the deploying first message."""
        return state_init_cell(self.code, self.data)

    def signing_message(
        self,
        seqno: int,
        messages: list[OutgoingMessage],
        valid_until: Optional[int] = None,
    ) -> Cell:
        if not messages:
            raise ValueError("At least one message is required")
        if len(messages) > MAX_MESSAGES:
            raise ValueError(f"At most {MAX_MESSAGES} messages per transfer")
        if valid_until is None:
            valid_until = int(time.time()) + DEFAULT_TIMEOUT

        b = (
            begin_cell()
            .store_uint(self.subwallet_id, 32)
            .store_uint(valid_until, 32)
            .store_uint(seqno, 32)
            .store_uint(0, 8)  # simple send
        )
        for message in messages:
            b.store_uint(message.mode, 8).store_ref(internal_message(message))
        return b.end_cell()

    def create_transfer(
        self,
        sign: Callable[[bytes], bytes],
        seqno: int,
        messages: list[OutgoingMessage],
        valid_until: Optional[int] = None,
    ) -> Cell:
        """Build the signed external message.

        Args:
            sign: Returns the 64-byte ed25519 signature of its argument
            seqno: Current wallet seqno
            messages: Up to 4 internal messages
            valid_until: Unix expiry; now + 60s by default

        Returns:
            External message cell ready for BOC serialization
        """
        to_sign = self.signing_message(seqno, messages, valid_until)
        signature = sign(to_sign.hash)
        body = begin_cell().store_bytes(signature).store_cell(to_sign).end_cell()

        state_init = None
        if seqno == 0:
            logger.debug(f"Wallet {self.address} has seqno 0; attaching StateInit")
            state_init = self.state_init()
        return external_message(self.address, body, state_init)
