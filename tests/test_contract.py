"""Tests for wallet v4r2 messages and payload bodies."""

import pytest
from nacl.signing import VerifyKey

from tonwallet.errors import ConfigurationError
from tonwallet.ton.address import Address
from tonwallet.ton.cell import begin_cell
from tonwallet.ton.contract import (
    DEFAULT_SUBWALLET_ID,
    WALLET_V4R2_CODE_DEPTH,
    WALLET_V4R2_CODE_HASH,
    OutgoingMessage,
    WalletV4R2,
    internal_message,
    state_init_cell,
    state_init_hash,
    wallet_data_cell,
    wallet_v4r2_code,
)
from tonwallet.ton.payloads import (
    JETTON_TRANSFER_OP,
    SWAP_MEMO,
    SWAP_NATIVE_TO_TOKEN_OP,
    jetton_transfer_body,
    memo_cell,
    swap_body,
)

DEST = Address(0, b"\x11" * 32)


def test_state_init_hash_matches_full_cell():
    code = begin_cell().store_uint(0xDEADBEEF, 32).store_ref(begin_cell().end_cell()).end_cell()
    data = wallet_data_cell(b"\x07" * 32)
    assert state_init_hash(code.hash, code.depth, data) == state_init_cell(code, data).hash


def test_builtin_code_matches_published_hash():
    code = wallet_v4r2_code()
    assert code.hash == WALLET_V4R2_CODE_HASH
    assert code.depth == WALLET_V4R2_CODE_DEPTH


def test_known_seed_address(identity):
    assert identity.address == "EQDnHytfNeXNUvfdRx41nlsVqT_DuI_WvFzMrNnVr7n8hWAO"
    assert identity.wallet().state_init().hash == identity.wallet_address.hash_part


def test_data_cell_layout():
    s = wallet_data_cell(b"\x07" * 32).begin_parse()
    assert s.load_uint(32) == 0
    assert s.load_uint(32) == DEFAULT_SUBWALLET_ID
    assert s.load_bytes(32) == b"\x07" * 32
    assert s.load_bit() is False
    assert s.remaining_bits == 0


def test_address_depends_on_workchain(identity):
    base = WalletV4R2(identity.public_key)
    master = WalletV4R2(identity.public_key, workchain=-1)
    assert base.address.hash_part == master.address.hash_part
    assert master.address.workchain == -1


def test_wrong_code_rejected(identity):
    with pytest.raises(ConfigurationError):
        WalletV4R2(identity.public_key, code=begin_cell().store_uint(1, 8).end_cell())


def test_signing_message_layout(identity):
    wallet = identity.wallet()
    cell = wallet.signing_message(5, [OutgoingMessage(DEST, 1_000)], valid_until=1_700_000_060)
    s = cell.begin_parse()
    assert s.load_uint(32) == DEFAULT_SUBWALLET_ID
    assert s.load_uint(32) == 1_700_000_060
    assert s.load_uint(32) == 5
    assert s.load_uint(8) == 0
    assert s.load_uint(8) == 3
    assert s.remaining_refs == 1


def test_signing_message_limits(identity):
    wallet = identity.wallet()
    with pytest.raises(ValueError):
        wallet.signing_message(0, [])
    with pytest.raises(ValueError):
        wallet.signing_message(0, [OutgoingMessage(DEST, 1)] * 5)


def test_transfer_signature_verifies(identity):
    wallet = identity.wallet()
    ext = wallet.create_transfer(identity.sign, 3, [OutgoingMessage(DEST, 42)], 1_700_000_060)

    s = ext.begin_parse()
    assert s.load_uint(2) == 0b10
    assert s.load_address() is None
    assert s.load_address() == wallet.address
    assert s.load_coins() == 0
    assert s.load_bit() is False  # no StateInit once deployed
    assert s.load_bit() is True
    body = s.load_ref().begin_parse()

    signature = body.load_bytes(64)
    signed = wallet.signing_message(3, [OutgoingMessage(DEST, 42)], 1_700_000_060)
    VerifyKey(identity.public_key).verify(signed.hash, signature)


def test_seqno_zero_attaches_state_init(identity):
    wallet = identity.wallet()
    ext = wallet.create_transfer(identity.sign, 0, [OutgoingMessage(DEST, 1)], 1)
    s = ext.begin_parse()
    s.load_uint(2)
    s.load_address()
    s.load_address()
    s.load_coins()
    assert s.load_bit() is True
    assert s.load_bit() is True  # StateInit in a ref
    state_init = s.load_ref()
    assert state_init.hash == wallet.address.hash_part

    init = state_init.begin_parse()
    init.load_bit()
    init.load_bit()
    assert init.load_maybe_ref().hash == WALLET_V4R2_CODE_HASH
    assert init.load_maybe_ref() == wallet.data


def test_internal_message_bounce_and_value():
    s = internal_message(OutgoingMessage(DEST, 123, bounce=False)).begin_parse()
    assert s.load_bit() is False  # int_msg_info
    assert s.load_bit() is True  # ihr_disabled
    assert s.load_bit() is False  # bounce
    assert s.load_bit() is False
    assert s.load_address() is None
    assert s.load_address() == DEST
    assert s.load_coins() == 123


def test_jetton_transfer_body():
    payload = memo_cell("hi")
    s = jetton_transfer_body(500, DEST, forward_ton_amount=7, forward_payload=payload).begin_parse()
    assert s.load_uint(32) == JETTON_TRANSFER_OP
    assert s.load_uint(64) == 0
    assert s.load_coins() == 500
    assert s.load_address() == DEST
    assert s.load_address() is None
    assert s.load_bit() is False
    assert s.load_coins() == 7
    assert s.load_maybe_ref() == payload


def test_jetton_transfer_body_starts_with_opcode():
    body = jetton_transfer_body(1, DEST)
    assert body.data()[:4].hex() == "0f8a7ea5"


def test_swap_body_carries_memo():
    s = swap_body(SWAP_NATIVE_TO_TOKEN_OP, 10, 4, DEST).begin_parse()
    assert s.load_uint(32) == SWAP_NATIVE_TO_TOKEN_OP
    s.load_uint(64)
    assert s.load_coins() == 10
    assert s.load_coins() == 4
    assert s.load_address() == DEST
    memo = s.load_ref().begin_parse()
    assert memo.load_uint(32) == 0
    assert memo.load_bytes(len(SWAP_MEMO)) == SWAP_MEMO.encode()
