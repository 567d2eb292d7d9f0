"""TON account addresses: raw (wc:hex) and user-friendly (base64, CRC16) forms."""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Optional

from tonwallet.errors import InvalidAddress

BOUNCEABLE_TAG = 0x11
NON_BOUNCEABLE_TAG = 0x51
TESTNET_FLAG = 0x80


def crc16(data: bytes) -> int:
    """CRC16-XMODEM checksum used by user-friendly addresses."""
    crc = 0
    for byte in data:
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = (crc << 1) ^ 0x1021
            else:
                crc <<= 1
            crc &= 0xFFFF
    return crc


@dataclass(frozen=True)
class Address:
    """Standard account address.

    Equality only looks at workchain and hash; the bounceable/testnet flags are
    presentation hints carried over from the string the address was parsed from.
    """

    workchain: int
    hash_part: bytes
    bounceable: bool = field(default=True, compare=False)
    testnet: bool = field(default=False, compare=False)

    def __post_init__(self):
        if len(self.hash_part) != 32:
            raise InvalidAddress(self.hash_part.hex(), "hash must be 32 bytes")
        if not -128 <= self.workchain <= 127:
            raise InvalidAddress(str(self.workchain), "workchain out of range")

    @classmethod
    def parse(cls, text: str) -> "Address":
        """Parse a user-friendly or raw address.

        Raises:
            InvalidAddress: On bad length, encoding, tag or checksum.
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidAddress(str(text), "empty address")
        text = text.strip()

        if ":" in text:
            return cls._parse_raw(text)
        return cls._parse_friendly(text)

    @classmethod
    def _parse_raw(cls, text: str) -> "Address":
        wc_part, _, hex_part = text.partition(":")
        try:
            workchain = int(wc_part)
            hash_part = bytes.fromhex(hex_part)
        except ValueError as e:
            raise InvalidAddress(text, "malformed raw address") from e
        if len(hash_part) != 32:
            raise InvalidAddress(text, "raw hash must be 64 hex characters")
        if not -128 <= workchain <= 127:
            raise InvalidAddress(text, "workchain out of range")
        return cls(workchain, hash_part)

    @classmethod
    def _parse_friendly(cls, text: str) -> "Address":
        if len(text) != 48:
            raise InvalidAddress(text, "user-friendly address must be 48 characters")
        normalized = text.replace("-", "+").replace("_", "/")
        try:
            raw = base64.b64decode(normalized, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidAddress(text, "not valid base64") from e
        if len(raw) != 36:
            raise InvalidAddress(text, "decoded address must be 36 bytes")

        if crc16(raw[:34]) != int.from_bytes(raw[34:], "big"):
            raise InvalidAddress(text, "checksum mismatch")

        tag = raw[0]
        testnet = bool(tag & TESTNET_FLAG)
        tag &= ~TESTNET_FLAG
        if tag == BOUNCEABLE_TAG:
            bounceable = True
        elif tag == NON_BOUNCEABLE_TAG:
            bounceable = False
        else:
            raise InvalidAddress(text, f"unknown tag 0x{raw[0]:02x}")

        workchain = raw[1] - 256 if raw[1] > 127 else raw[1]
        return cls(workchain, raw[2:34], bounceable=bounceable, testnet=testnet)

    def to_string(
        self,
        bounceable: Optional[bool] = None,
        testnet: Optional[bool] = None,
        url_safe: bool = True,
    ) -> str:
        """Format as a 48-character user-friendly address."""
        if bounceable is None:
            bounceable = self.bounceable
        if testnet is None:
            testnet = self.testnet

        tag = BOUNCEABLE_TAG if bounceable else NON_BOUNCEABLE_TAG
        if testnet:
            tag |= TESTNET_FLAG
        body = bytes([tag, self.workchain & 0xFF]) + self.hash_part
        body += crc16(body).to_bytes(2, "big")
        if url_safe:
            return base64.urlsafe_b64encode(body).decode()
        return base64.b64encode(body).decode()

    def to_raw(self) -> str:
        return f"{self.workchain}:{self.hash_part.hex()}"

    def __str__(self) -> str:
        return self.to_string()


def is_valid_address(text: str) -> bool:
    """Check whether a string parses as an address."""
    try:
        Address.parse(text)
        return True
    except InvalidAddress:
        return False
