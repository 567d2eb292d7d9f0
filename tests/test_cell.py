"""Tests for cells, builders, slices and BOC serialization."""

import pytest

from tonwallet.ton.address import Address
from tonwallet.ton.cell import Cell, begin_cell, crc32c, deserialize_boc, serialize_boc

EMPTY_CELL_HASH = "96a296d224f285c67bee93c30f8a309157f0daa35dc5b87e410b78630a09cfc7"


class TestCellHash:
    def test_empty_cell_hash(self):
        assert Cell().hash.hex() == EMPTY_CELL_HASH

    def test_descriptors_for_partial_byte(self):
        cell = begin_cell().store_uint(0b00110, 5).end_cell()
        assert cell.descriptors() == bytes([0, 1])
        assert cell.data() == bytes([0x34])

    def test_descriptors_for_full_bytes(self):
        cell = begin_cell().store_uint(0xABCD, 16).end_cell()
        assert cell.descriptors() == bytes([0, 4])
        assert cell.data() == bytes([0xAB, 0xCD])

    def test_depth_follows_refs(self):
        leaf = Cell()
        middle = begin_cell().store_ref(leaf).end_cell()
        root = begin_cell().store_ref(middle).store_ref(leaf).end_cell()
        assert leaf.depth == 0
        assert middle.depth == 1
        assert root.depth == 2

    def test_equal_content_equal_hash(self):
        a = begin_cell().store_uint(7, 8).end_cell()
        b = begin_cell().store_uint(7, 8).end_cell()
        assert a == b
        assert a != begin_cell().store_uint(7, 9).end_cell()


class TestBuilder:
    def test_overflow_bits(self):
        b = begin_cell().store_uint(0, 1000)
        with pytest.raises(ValueError, match="overflow"):
            b.store_uint(0, 24)

    def test_overflow_refs(self):
        b = begin_cell()
        for _ in range(4):
            b.store_ref(Cell())
        with pytest.raises(ValueError):
            b.store_ref(Cell())

    def test_uint_range(self):
        with pytest.raises(ValueError):
            begin_cell().store_uint(256, 8)

    def test_coins_encoding(self):
        assert begin_cell().store_coins(0).end_cell().bits == "0000"
        cell = begin_cell().store_coins(1_000_000_000).end_cell()
        # 1e9 = 0x3B9ACA00 needs 4 bytes
        assert cell.bits[:4] == "0100"
        assert len(cell.bits) == 4 + 32

    def test_address_none(self):
        assert begin_cell().store_address(None).end_cell().bits == "00"


class TestSlice:
    def test_load_back_values(self):
        address = Address(-1, b"\xaa" * 32)
        cell = (
            begin_cell()
            .store_uint(0x0F8A7EA5, 32)
            .store_int(-5, 8)
            .store_coins(123456789)
            .store_address(address)
            .store_maybe_ref(None)
            .end_cell()
        )
        s = cell.begin_parse()
        assert s.load_uint(32) == 0x0F8A7EA5
        assert s.load_int(8) == -5
        assert s.load_coins() == 123456789
        assert s.load_address() == address
        assert s.load_maybe_ref() is None
        assert s.remaining_bits == 0

    def test_underflow(self):
        s = begin_cell().store_uint(1, 4).end_cell().begin_parse()
        with pytest.raises(ValueError, match="underflow"):
            s.load_uint(8)


class TestBoc:
    def test_empty_cell_boc_header(self):
        boc = serialize_boc(Cell())
        assert boc[:4] == bytes.fromhex("b5ee9c72")
        assert boc[4] == 0x41  # crc flag, 1-byte indexes
        assert int.from_bytes(boc[-4:], "little") == crc32c(boc[:-4])

    def test_tree_survives_serialization(self):
        shared = begin_cell().store_bytes(b"memo").end_cell()
        root = (
            begin_cell()
            .store_uint(42, 32)
            .store_ref(begin_cell().store_ref(shared).end_cell())
            .store_ref(shared)
            .end_cell()
        )
        parsed = deserialize_boc(root.to_boc())
        assert parsed.hash == root.hash
        assert parsed.refs[1].begin_parse().load_bytes(4) == b"memo"

    def test_shared_cell_stored_once(self):
        shared = begin_cell().store_uint(1, 8).end_cell()
        root = begin_cell().store_ref(shared).store_ref(shared).end_cell()
        boc = serialize_boc(root)
        assert boc[6] == 2  # cell count

    def test_without_crc(self):
        root = begin_cell().store_uint(3, 2).end_cell()
        boc = serialize_boc(root, has_crc32c=False)
        assert boc[4] == 0x01
        assert deserialize_boc(boc) == root

    def test_crc_mismatch_rejected(self):
        boc = bytearray(serialize_boc(begin_cell().store_uint(9, 8).end_cell()))
        boc[-1] ^= 0xFF
        with pytest.raises(ValueError, match="CRC32C"):
            deserialize_boc(bytes(boc))

    def test_bad_magic_rejected(self):
        with pytest.raises(ValueError, match="magic"):
            deserialize_boc(b"\x00" * 16)
