"""Shared constants and message decoding for tests."""

import base64

from tonwallet.ton.address import Address
from tonwallet.ton.cell import deserialize_boc
from tonwallet.tokens import JETTONS

FIXED_NOW = 1_700_000_000

# Addresses with valid checksums
USDT_MASTER = JETTONS["USDT"].master
DESTINATION = "EQC61IQRl0_la95t27xhIpjxZt32vl1QQVF2UgTNuvD18W-4"
POOL_ADDRESS = "EQB3ncyBUTjZUA5EnFKR5_EnOMI9V1tTEAAPaiU71gc4TiUt"
JETTON_WALLET = Address(0, bytes(range(32)))


def unpack_internal(signed):
    """Return (destination, value, body slice or None) of the single internal message."""
    ext = deserialize_boc(base64.b64decode(signed.boc)).begin_parse()
    ext.load_uint(2)
    ext.load_address()
    ext.load_address()
    ext.load_coins()
    if ext.load_bit():  # state init
        ext.load_bit()
        ext.load_ref()
    ext.load_bit()
    body = ext.load_ref().begin_parse()
    body.load_bytes(64)  # signature
    body.load_uint(32 * 3 + 8)
    assert body.load_uint(8) == 3
    msg = body.load_ref().begin_parse()
    msg.load_uint(4)
    msg.load_address()
    destination = msg.load_address()
    value = msg.load_coins()
    msg.load_bit()
    msg.load_coins()
    msg.load_coins()
    msg.load_uint(96)
    msg.load_bit()
    payload = msg.load_ref().begin_parse() if msg.load_bit() else None
    return destination, value, payload
