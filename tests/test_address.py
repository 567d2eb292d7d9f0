"""Tests for address parsing and formatting."""

import base64

import pytest

from tonwallet.errors import InvalidAddress
from tonwallet.ton.address import Address, crc16, is_valid_address

ZERO_BOUNCEABLE = "EQAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAM9c"
ZERO_NON_BOUNCEABLE = "UQAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAJKZ"
USDT_MASTER = "EQCxE6mUtQJKFnGfaROTKOt1lZbDiiX1kCixRv7Nw2Id_sDs"
USDT_MASTER_RAW = "0:b113a994b5024a16719f69139328eb759596c38a25f59028b146fecdc3621dfe"


class TestParse:
    def test_zero_address_both_forms(self):
        bounceable = Address.parse(ZERO_BOUNCEABLE)
        non_bounceable = Address.parse(ZERO_NON_BOUNCEABLE)
        assert bounceable.hash_part == b"\x00" * 32
        assert bounceable.bounceable is True
        assert non_bounceable.bounceable is False
        assert bounceable == non_bounceable

    def test_friendly_to_raw(self):
        assert Address.parse(USDT_MASTER).to_raw() == USDT_MASTER_RAW

    def test_raw_to_friendly(self):
        assert Address.parse(USDT_MASTER_RAW).to_string(bounceable=True) == USDT_MASTER

    def test_format_keeps_parsed_flags(self):
        assert Address.parse(ZERO_NON_BOUNCEABLE).to_string() == ZERO_NON_BOUNCEABLE
        assert Address.parse(ZERO_BOUNCEABLE).to_string(bounceable=False) == ZERO_NON_BOUNCEABLE

    def test_testnet_flag(self):
        address = Address.parse(USDT_MASTER)
        testnet = Address.parse(address.to_string(testnet=True))
        assert testnet.testnet is True
        assert testnet == address

    def test_standard_base64(self):
        address = Address.parse(USDT_MASTER)
        assert Address.parse(address.to_string(url_safe=False)) == address

    def test_masterchain_raw(self):
        address = Address.parse("-1:" + "ab" * 32)
        assert address.workchain == -1
        assert Address.parse(address.to_string()).workchain == -1


class TestRejects:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "EQA2kCVNwVsil2EM2mB0SkXytxCqWwTpEpbg6RG-0f6_zZDI",  # checksum mismatch
            "EQAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAM9",  # too short
            "0:abcd",
            "zz:" + "00" * 32,
            "EQ!AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAM9c",
        ],
    )
    def test_invalid(self, text):
        with pytest.raises(InvalidAddress):
            Address.parse(text)
        assert not is_valid_address(text)

    def test_unknown_tag(self):
        body = bytes([0x22, 0]) + b"\x00" * 32
        body += crc16(body).to_bytes(2, "big")
        with pytest.raises(InvalidAddress, match="unknown tag"):
            Address.parse(base64.urlsafe_b64encode(body).decode())
