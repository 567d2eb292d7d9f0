"""Tests for wallet identities."""

import pytest
from nacl.signing import VerifyKey

from tonwallet.errors import AuthenticationError
from tonwallet.identity import WalletIdentity
from tonwallet.ton.address import Address


def test_same_seed_same_wallet():
    a = WalletIdentity.from_seed(b"\x01" * 32)
    b = WalletIdentity.from_seed(b"\x01" * 32)
    assert a == b
    assert a.address == b.address


def test_different_seeds_differ(identity, other_identity):
    assert identity.address != other_identity.address
    assert identity.public_key != other_identity.public_key


def test_address_is_bounceable_mainnet(identity):
    address = Address.parse(identity.address)
    assert address.workchain == 0
    assert address.bounceable is True
    assert address.testnet is False
    assert identity.address.startswith("EQ")


def test_secret_key_layout(identity):
    assert len(identity.secret_key) == 64
    assert identity.secret_key[32:] == identity.public_key
    assert identity.seed == bytes(range(1, 33))


def test_repr_hides_secret(identity):
    text = repr(identity)
    assert identity.secret_key.hex() not in text
    assert "secret_key" not in text


def test_from_secret_key_round_trip(identity):
    assert WalletIdentity.from_secret_key(identity.secret_key) == identity


def test_from_secret_key_mismatch(identity, other_identity):
    forged = identity.seed + other_identity.public_key
    with pytest.raises(AuthenticationError):
        WalletIdentity.from_secret_key(forged)


def test_from_secret_key_bad_length():
    with pytest.raises(AuthenticationError):
        WalletIdentity.from_secret_key(b"\x00" * 32)


def test_signature_verifies(identity):
    signature = identity.sign(b"payload")
    assert len(signature) == 64
    VerifyKey(identity.public_key).verify(b"payload", signature)


def test_generate_is_random():
    assert WalletIdentity.generate().address != WalletIdentity.generate().address
