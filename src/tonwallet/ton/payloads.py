"""Message bodies for jetton transfers and DEX swaps."""

import base64
from typing import Optional

from tonwallet.ton.address import Address
from tonwallet.ton.cell import Cell, begin_cell

JETTON_TRANSFER_OP = 0x0F8A7EA5
DEFAULT_FORWARD_TON = 1  # nanoton

# Swap opcodes, one per direction
SWAP_NATIVE_TO_TOKEN_OP = 0xEA06185D
SWAP_TOKEN_TO_NATIVE_OP = 0xE3A0D482

SWAP_MEMO = "Swap via TON Wallet"


def jetton_transfer_body(
    amount: int,
    destination: Address,
    response_destination: Optional[Address] = None,
    forward_ton_amount: int = DEFAULT_FORWARD_TON,
    forward_payload: Optional[Cell] = None,
    query_id: int = 0,
) -> Cell:
    """Standard jetton transfer message (TEP-74)."""
    b = (
        begin_cell()
        .store_uint(JETTON_TRANSFER_OP, 32)
        .store_uint(query_id, 64)
        .store_coins(amount)
        .store_address(destination)
        .store_address(response_destination)
        .store_bit(0)  # no custom payload
        .store_coins(forward_ton_amount)
    )
    if forward_payload is None:
        b.store_bit(0)
    else:
        b.store_bit(1).store_ref(forward_payload)
    return b.end_cell()


def memo_cell(text: str) -> Cell:
    """Text comment cell: 32 zero bits then UTF-8 text."""
    return begin_cell().store_uint(0, 32).store_bytes(text.encode("utf-8")).end_cell()


def swap_body(
    opcode: int,
    amount: int,
    min_output: int,
    beneficiary: Address,
    memo: str = SWAP_MEMO,
    query_id: int = 0,
) -> Cell:
    return (
        begin_cell()
        .store_uint(opcode, 32)
        .store_uint(query_id, 64)
        .store_coins(amount)
        .store_coins(min_output)
        .store_address(beneficiary)
        .store_ref(memo_cell(memo))
        .end_cell()
    )


def address_slice_boc(address: Address) -> str:
    """Base64 BOC of a cell holding only an address, for get-method arguments."""
    cell = begin_cell().store_address(address).end_cell()
    return base64.b64encode(cell.to_boc()).decode()
