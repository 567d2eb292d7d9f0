"""TVM cells and bag-of-cells (BOC) serialization.

A cell holds up to 1023 data bits and up to 4 references to other cells. Cells are
identified by the SHA-256 hash of their standard representation, which is what the
wallet contract signs and what contract addresses are derived from.
"""

import hashlib
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from tonwallet.ton.address import Address

MAX_BITS = 1023
MAX_REFS = 4

BOC_MAGIC = bytes.fromhex("b5ee9c72")

_CRC32C_TABLE: list[int] = []
for _n in range(256):
    _c = _n
    for _ in range(8):
        _c = (_c >> 1) ^ 0x82F63B78 if _c & 1 else _c >> 1
    _CRC32C_TABLE.append(_c)


def crc32c(data: bytes) -> int:
    """CRC-32C (Castagnoli) checksum used as the BOC trailer."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc = _CRC32C_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


def _pad_bits(bits: str) -> bytes:
    """Pack a bit string into bytes, completing a partial last byte with 1 then 0s."""
    if len(bits) % 8:
        bits += "1"
        bits += "0" * (-len(bits) % 8)
    if not bits:
        return b""
    return int(bits, 2).to_bytes(len(bits) // 8, "big")


class Cell:
    """Immutable ordinary cell."""

    def __init__(self, bits: str = "", refs: Optional[list["Cell"]] = None):
        refs = list(refs or [])
        if len(bits) > MAX_BITS:
            raise ValueError(f"Cell overflow: {len(bits)} bits > {MAX_BITS}")
        if len(refs) > MAX_REFS:
            raise ValueError(f"Cell overflow: {len(refs)} refs > {MAX_REFS}")
        self.bits = bits
        self.refs = tuple(refs)
        self._hash: Optional[bytes] = None
        self._depth: Optional[int] = None

    def descriptors(self) -> bytes:
        d1 = len(self.refs)
        d2 = (len(self.bits) + 7) // 8 + len(self.bits) // 8
        return bytes([d1, d2])

    def data(self) -> bytes:
        return _pad_bits(self.bits)

    @property
    def depth(self) -> int:
        if self._depth is None:
            self._depth = max((r.depth for r in self.refs), default=-1) + 1
        return self._depth

    def representation(self) -> bytes:
        """Standard representation: descriptors, data, ref depths, ref hashes."""
        parts = [self.descriptors(), self.data()]
        parts.extend(r.depth.to_bytes(2, "big") for r in self.refs)
        parts.extend(r.hash for r in self.refs)
        return b"".join(parts)

    @property
    def hash(self) -> bytes:
        if self._hash is None:
            self._hash = hashlib.sha256(self.representation()).digest()
        return self._hash

    def begin_parse(self) -> "Slice":
        return Slice(self)

    def to_boc(self, has_crc32c: bool = True) -> bytes:
        return serialize_boc(self, has_crc32c=has_crc32c)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Cell) and self.hash == other.hash

    def __hash__(self) -> int:
        return hash(self.hash)

    def __repr__(self) -> str:
        return f"Cell(bits={len(self.bits)}, refs={len(self.refs)}, hash={self.hash.hex()[:16]})"


class Builder:
    """Incremental cell builder. Every store method returns self for chaining."""

    def __init__(self):
        self._bits: list[str] = []
        self._length = 0
        self._refs: list[Cell] = []

    @property
    def bits_used(self) -> int:
        return self._length

    def _append(self, bits: str) -> "Builder":
        if self._length + len(bits) > MAX_BITS:
            raise ValueError(f"Builder overflow: {self._length + len(bits)} bits > {MAX_BITS}")
        self._bits.append(bits)
        self._length += len(bits)
        return self

    def store_bit(self, bit) -> "Builder":
        return self._append("1" if bit else "0")

    def store_uint(self, value: int, bits: int) -> "Builder":
        if value < 0 or value >= (1 << bits):
            raise ValueError(f"Value {value} does not fit in uint{bits}")
        if bits == 0:
            return self
        return self._append(format(value, f"0{bits}b"))

    def store_int(self, value: int, bits: int) -> "Builder":
        bound = 1 << (bits - 1)
        if value < -bound or value >= bound:
            raise ValueError(f"Value {value} does not fit in int{bits}")
        return self.store_uint(value & ((1 << bits) - 1), bits)

    def store_bytes(self, data: bytes) -> "Builder":
        if not data:
            return self
        return self._append(format(int.from_bytes(data, "big"), f"0{len(data) * 8}b"))

    def store_coins(self, amount: int) -> "Builder":
        """Store a VarUInteger 16: 4-bit byte length followed by the value."""
        if amount < 0:
            raise ValueError("Coins amount cannot be negative")
        length = (amount.bit_length() + 7) // 8
        if length > 15:
            raise ValueError(f"Coins amount {amount} too large")
        self.store_uint(length, 4)
        return self.store_uint(amount, length * 8)

    def store_address(self, address: Optional["Address"]) -> "Builder":
        """Store addr_std, or addr_none when address is None."""
        if address is None:
            return self.store_uint(0, 2)
        self.store_uint(0b10, 2)
        self.store_bit(0)  # no anycast
        self.store_int(address.workchain, 8)
        return self.store_bytes(address.hash_part)

    def store_ref(self, cell: Cell) -> "Builder":
        if len(self._refs) >= MAX_REFS:
            raise ValueError(f"Builder overflow: more than {MAX_REFS} refs")
        self._refs.append(cell)
        return self

    def store_maybe_ref(self, cell: Optional[Cell]) -> "Builder":
        if cell is None:
            return self.store_bit(0)
        self.store_bit(1)
        return self.store_ref(cell)

    def store_cell(self, cell: Cell) -> "Builder":
        """Append another cell's bits and refs inline."""
        self._append(cell.bits)
        for ref in cell.refs:
            self.store_ref(ref)
        return self

    def end_cell(self) -> Cell:
        return Cell("".join(self._bits), self._refs)


def begin_cell() -> Builder:
    return Builder()


class Slice:
    """Read cursor over a cell's bits and refs."""

    def __init__(self, cell: Cell):
        self._cell = cell
        self._pos = 0
        self._ref_pos = 0

    @property
    def remaining_bits(self) -> int:
        return len(self._cell.bits) - self._pos

    @property
    def remaining_refs(self) -> int:
        return len(self._cell.refs) - self._ref_pos

    def _take(self, n: int) -> str:
        if n > self.remaining_bits:
            raise ValueError(f"Slice underflow: need {n} bits, have {self.remaining_bits}")
        chunk = self._cell.bits[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def load_bit(self) -> bool:
        return self._take(1) == "1"

    def load_uint(self, bits: int) -> int:
        if bits == 0:
            return 0
        return int(self._take(bits), 2)

    def load_int(self, bits: int) -> int:
        value = self.load_uint(bits)
        if value >= 1 << (bits - 1):
            value -= 1 << bits
        return value

    def load_bytes(self, length: int) -> bytes:
        return self.load_uint(length * 8).to_bytes(length, "big")

    def load_coins(self) -> int:
        length = self.load_uint(4)
        return self.load_uint(length * 8)

    def load_address(self) -> Optional["Address"]:
        from tonwallet.ton.address import Address

        tag = self.load_uint(2)
        if tag == 0b00:
            return None
        if tag != 0b10:
            raise ValueError(f"Unsupported address tag {tag:02b}")
        if self.load_bit():
            raise ValueError("Anycast addresses are not supported")
        workchain = self.load_int(8)
        return Address(workchain, self.load_bytes(32))

    def load_ref(self) -> Cell:
        if self._ref_pos >= len(self._cell.refs):
            raise ValueError("Slice underflow: no refs left")
        ref = self._cell.refs[self._ref_pos]
        self._ref_pos += 1
        return ref

    def load_maybe_ref(self) -> Optional[Cell]:
        return self.load_ref() if self.load_bit() else None


def _topological_order(root: Cell) -> list[Cell]:
    """Reverse postorder: root first, every ref after the cells that point to it."""
    order: list[Cell] = []
    seen: set[bytes] = set()

    def visit(cell: Cell) -> None:
        if cell.hash in seen:
            return
        seen.add(cell.hash)
        for ref in cell.refs:
            visit(ref)
        order.append(cell)

    visit(root)
    order.reverse()
    return order


def _byte_len(value: int) -> int:
    return max(1, (value.bit_length() + 7) // 8)


def serialize_boc(root: Cell, has_crc32c: bool = True) -> bytes:
    """Serialize a single-root cell tree to BOC bytes."""
    cells = _topological_order(root)
    index = {cell.hash: i for i, cell in enumerate(cells)}
    size_bytes = _byte_len(len(cells))

    payload = bytearray()
    for cell in cells:
        payload += cell.descriptors()
        payload += cell.data()
        for ref in cell.refs:
            payload += index[ref.hash].to_bytes(size_bytes, "big")

    off_bytes = _byte_len(len(payload))
    flags = (0x40 if has_crc32c else 0) | size_bytes

    out = bytearray(BOC_MAGIC)
    out.append(flags)
    out.append(off_bytes)
    out += len(cells).to_bytes(size_bytes, "big")
    out += (1).to_bytes(size_bytes, "big")  # roots
    out += (0).to_bytes(size_bytes, "big")  # absent
    out += len(payload).to_bytes(off_bytes, "big")
    out += (0).to_bytes(size_bytes, "big")  # root index
    out += payload
    if has_crc32c:
        out += crc32c(bytes(out)).to_bytes(4, "little")
    return bytes(out)


def deserialize_boc(data: bytes) -> Cell:
    """Parse BOC bytes and return the first root cell.

    Raises:
        ValueError: If the bytes are not a well-formed BOC.
    """
    if len(data) < 6 or data[:4] != BOC_MAGIC:
        raise ValueError("Not a bag of cells: bad magic")

    flags = data[4]
    has_idx = bool(flags & 0x80)
    has_crc = bool(flags & 0x40)
    size_bytes = flags & 0x07
    off_bytes = data[5]
    if not 1 <= size_bytes <= 4 or not 1 <= off_bytes <= 8:
        raise ValueError("Bad BOC header sizes")

    if has_crc:
        body, trailer = data[:-4], data[-4:]
        if crc32c(body) != int.from_bytes(trailer, "little"):
            raise ValueError("BOC CRC32C mismatch")
        data = body

    pos = 6

    def read(n: int) -> int:
        nonlocal pos
        if pos + n > len(data):
            raise ValueError("Truncated BOC")
        value = int.from_bytes(data[pos:pos + n], "big")
        pos += n
        return value

    cell_count = read(size_bytes)
    root_count = read(size_bytes)
    read(size_bytes)  # absent
    total_size = read(off_bytes)
    roots = [read(size_bytes) for _ in range(root_count)]
    if not roots:
        raise ValueError("BOC has no roots")
    if has_idx:
        pos += cell_count * off_bytes

    end = pos + total_size
    if end > len(data):
        raise ValueError("Truncated BOC cell data")

    raw: list[tuple[str, list[int]]] = []
    for _ in range(cell_count):
        d1 = read(1)
        d2 = read(1)
        if d1 & 0x08:
            raise ValueError("Exotic cells are not supported")
        ref_count = d1 & 0x07
        data_len = (d2 + 1) // 2
        chunk = data[pos:pos + data_len]
        pos += data_len
        bits = "".join(format(b, "08b") for b in chunk)
        if d2 % 2:
            bits = bits.rstrip("0")
            if not bits.endswith("1"):
                raise ValueError("Bad cell padding")
            bits = bits[:-1]
        refs = [read(size_bytes) for _ in range(ref_count)]
        raw.append((bits, refs))

    if pos > end:
        raise ValueError("BOC cell data overflow")

    built: list[Optional[Cell]] = [None] * cell_count
    for i in range(cell_count - 1, -1, -1):
        bits, ref_ids = raw[i]
        children = []
        for ref_id in ref_ids:
            if ref_id <= i or ref_id >= cell_count or built[ref_id] is None:
                raise ValueError(f"Bad ref index {ref_id} in cell {i}")
            children.append(built[ref_id])
        built[i] = Cell(bits, children)

    return built[roots[0]]
